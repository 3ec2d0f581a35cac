"""Shared test fixtures."""

import pytest


@pytest.fixture(autouse=True)
def audit_log_dir(tmp_path, monkeypatch):
    """Keep bot audit logs out of the working tree."""
    log_dir = tmp_path / "bot_messages"
    monkeypatch.setattr("core.audit.LOG_DIR", log_dir)
    return log_dir
