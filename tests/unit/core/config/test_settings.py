"""Tests for Settings and the server entry point guards."""

from __future__ import annotations

import pytest

from herstel.core.config.settings import get_settings
from herstel.core.server.main import _is_loopback_host, run


def test_defaults():
    settings = get_settings()
    assert settings.herstel_host == "127.0.0.1"
    assert settings.herstel_port == 8003
    assert settings.encryption_key == ""
    assert settings.default_step_target == 2000
    assert settings.trend_history_limit == 30


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DEFAULT_STEP_TARGET", "3500")
    monkeypatch.setenv("HERSTEL_PORT", "9100")
    settings = get_settings()
    assert settings.default_step_target == 3500
    assert settings.herstel_port == 9100


@pytest.mark.parametrize(
    "host,expected",
    [("127.0.0.1", True), ("localhost", True), ("::1", True), ("0.0.0.0", False), ("example.org", False)],
)
def test_is_loopback_host(host, expected):
    assert _is_loopback_host(host) is expected


def test_run_refuses_public_bind(monkeypatch):
    monkeypatch.setenv("HERSTEL_HOST", "0.0.0.0")
    with pytest.raises(RuntimeError, match="non-loopback"):
        run()
