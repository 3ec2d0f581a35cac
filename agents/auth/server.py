"""OAuth Callback HTTP Server.

Flask app serving the OAuth redirect target:
- GET /  plain welcome text, or completes authorization when Google
  redirects back with ?code=...&state=<chat id>
"""

import logging

from flask import Flask, Response, request

from agents.auth.agent import OAuthCallbackHandler

logger = logging.getLogger(__name__)


def create_app(handler: OAuthCallbackHandler) -> Flask:
    """Build the Flask app around a callback handler.

    Args:
        handler: Does the actual work for each redirect.

    Returns:
        The configured Flask application.
    """
    app = Flask(__name__)

    @app.route("/", methods=["GET"])
    def oauth_callback() -> Response:
        """Handle the redirect from Google's consent screen."""
        code = request.args.get("code")
        state = request.args.get("state")

        result = handler.handle(code, state)
        return Response(result.body, status=result.status, mimetype="text/plain")

    return app
