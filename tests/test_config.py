from datetime import timezone

import pytest

from studycore import config
from studycore.logging_config import LoggingConfig


def test_database_url_required(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValueError):
        config.get_database_url()


def test_test_mode_switches_database(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://user:pw@localhost:5432/studycore")
    monkeypatch.setenv("TEST_MODE", "true")

    assert config.is_test_mode() is True
    assert config.get_database_url() == "postgresql://user:pw@localhost:5432/test_studycore"


def test_store_timeout_from_environment(monkeypatch):
    monkeypatch.setenv("STORE_TIMEOUT_SECONDS", "2.5")
    assert config.get_store_timeout() == 2.5

    monkeypatch.delenv("STORE_TIMEOUT_SECONDS")
    assert config.get_store_timeout() == 5.0


def test_evaluation_timezone(monkeypatch):
    monkeypatch.setenv("EVAL_TIMEZONE", "utc")
    assert config.get_evaluation_timezone() is timezone.utc

    monkeypatch.setenv("EVAL_TIMEZONE", "Europe/Rome")
    assert str(config.get_evaluation_timezone()) == "Europe/Rome"


def test_log_entries_carry_app_context(monkeypatch):
    monkeypatch.setenv("APP_NAME", "concorsi")
    monkeypatch.setenv("ENVIRONMENT", "test")

    event = LoggingConfig()._add_app_context(None, "info", {"event": "Session started"})

    assert event == {"event": "Session started", "app_name": "concorsi", "environment": "test"}
