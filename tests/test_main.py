"""Tests for application wiring in main.py."""

from datetime import timedelta
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from agents.auth.agent import OAuthCallbackHandler
from agents.telegram.bot import CommandHandler
from config.settings import Settings
from core.scheduler import PollingScheduler
from main import build_components, main


def _settings() -> Settings:
    return Settings(
        telegram_bot_token="bot-token",
        google_client_id="client-id",
        google_client_secret="client-secret",
        redirect_uri="https://bot.example.com",
        poll_interval_seconds=120,
        lookahead_minutes=30,
        user_timezone="Europe/Berlin",
    )


class TestBuildComponents:
    def test_returns_wired_components(self) -> None:
        command_handler, callback_handler, scheduler = build_components(_settings())

        assert isinstance(command_handler, CommandHandler)
        assert isinstance(callback_handler, OAuthCallbackHandler)
        assert isinstance(scheduler, PollingScheduler)

    def test_components_share_dependencies(self) -> None:
        command_handler, callback_handler, scheduler = build_components(_settings())

        assert callback_handler.store is scheduler.store
        assert callback_handler.scheduler is scheduler
        assert callback_handler.checker is scheduler.checker
        assert command_handler.telegram is callback_handler.telegram

    def test_settings_flow_into_components(self) -> None:
        command_handler, callback_handler, scheduler = build_components(_settings())

        assert scheduler.interval == 120
        assert scheduler.checker.lookahead == timedelta(minutes=30)
        assert scheduler.checker.timezone == "Europe/Berlin"
        assert command_handler.telegram.bot_token == "bot-token"

    def test_auth_links_use_configured_redirect(self) -> None:
        command_handler, _, _ = build_components(_settings())

        url = command_handler.auth_url_builder(42)
        query = parse_qs(urlparse(url).query)
        assert query["redirect_uri"] == ["https://bot.example.com"]
        assert query["state"] == ["42"]

    @patch("agents.calendar.google_client.Flow")
    def test_code_exchanger_uses_configured_client(self, mock_flow_cls) -> None:
        mock_flow_cls.from_client_config.return_value.fetch_token.return_value = {"access_token": "T"}
        _, callback_handler, _ = build_components(_settings())

        assert callback_handler.code_exchanger("abc123") == {"access_token": "T"}
        config = mock_flow_cls.from_client_config.call_args.args[0]
        assert config["web"]["client_secret"] == "client-secret"
        assert mock_flow_cls.from_client_config.call_args.kwargs["redirect_uri"] == "https://bot.example.com"


REQUIRED_ENV = {
    "TELEGRAM_BOT_TOKEN": "bot-token",
    "GOOGLE_CLIENT_ID": "client-id",
    "GOOGLE_CLIENT_SECRET": "client-secret",
}


class TestMain:
    @pytest.fixture
    def env(self, monkeypatch):
        for var in ("PORT", "DOMAIN", "GOOGLE_REDIRECT_URI", "USER_TIMEZONE", "APP_ENV"):
            monkeypatch.delenv(var, raising=False)
        for var, value in REQUIRED_ENV.items():
            monkeypatch.setenv(var, value)
        return monkeypatch

    @patch("main.signal.signal")
    @patch("main.start_http_server")
    @patch("main.build_components")
    def test_port_flag_drives_server_and_redirect(self, mock_build, mock_start, mock_signal, env) -> None:
        command_handler, callback_handler, scheduler = MagicMock(), MagicMock(), MagicMock()
        mock_build.return_value = (command_handler, callback_handler, scheduler)

        main(["--port", "8080"])

        settings = mock_build.call_args.args[0]
        assert settings.port == 8080
        assert settings.domain == "http://localhost:8080"
        assert settings.redirect_uri == "http://localhost:8080"
        mock_start.assert_called_once_with(callback_handler, 8080)
        command_handler.run_polling.assert_called_once()
        mock_start.return_value.shutdown.assert_called_once()
        scheduler.shutdown.assert_called_once()

    @patch("main.start_http_server")
    @patch("main.build_components")
    def test_unknown_timezone_exits_before_starting(self, mock_build, mock_start, env) -> None:
        env.setenv("USER_TIMEZONE", "Not/AZone")

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        mock_build.assert_not_called()
        mock_start.assert_not_called()
