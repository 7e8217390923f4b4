"""Tests for environment configuration loading."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from src.config import (
    DEFAULT_FALLBACK_TEXT,
    DEFAULT_MODEL,
    RelayConfig,
    load_local_env,
)

_ENV_VARS = (
    "LINE_CHANNEL_SECRET",
    "LINE_CHANNEL_ACCESS_TOKEN",
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "SERVICE_NAME",
    "RELAY_FALLBACK_TEXT",
    "ENVIRONMENT",
    "AUDIT_LOG_PATH",
    "LOG_LEVEL",
    "HTTP_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # load_dotenv writes straight into os.environ; give each test its own copy.
    monkeypatch.setattr(os, "environ", dict(os.environ))
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Point at a file that does not exist so a developer's .env never leaks in.
    monkeypatch.setenv("ENV_FILE", str(tmp_path / "missing.env"))


def test_from_env_reads_all_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LINE_CHANNEL_SECRET", "sec")
    monkeypatch.setenv("LINE_CHANNEL_ACCESS_TOKEN", "tok")
    monkeypatch.setenv("GEMINI_API_KEY", "gem")
    monkeypatch.setenv("GEMINI_MODEL", "gemini-2.0-flash")
    monkeypatch.setenv("SERVICE_NAME", "Test Bot")
    monkeypatch.setenv("AUDIT_LOG_PATH", "/tmp/audit.jsonl")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "5")

    config = RelayConfig.from_env()

    assert config.channel_secret == "sec"
    assert config.channel_access_token == "tok"
    assert config.gemini_api_key == "gem"
    assert config.gemini_model == "gemini-2.0-flash"
    assert config.service_name == "Test Bot"
    assert config.audit_log_path == "/tmp/audit.jsonl"
    assert config.log_level == "DEBUG"
    assert config.http_timeout == 5.0


def test_defaults() -> None:
    config = RelayConfig.from_env()
    assert config.gemini_model == DEFAULT_MODEL
    assert config.service_name == "LINE Chatbot"
    assert config.fallback_text == DEFAULT_FALLBACK_TEXT
    assert config.environment == "development"
    assert config.audit_log_path is None


def test_missing_gemini_key_is_a_warning_not_a_failure(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.WARNING, logger="src.config"):
        config = RelayConfig.from_env()
    assert config.gemini_api_key == ""
    assert "GEMINI_API_KEY is not set" in caplog.text
    record = next(r for r in caplog.records if "GEMINI_API_KEY" in r.getMessage())
    assert record.levelno == logging.WARNING


def test_config_is_immutable() -> None:
    config = RelayConfig.from_env()
    with pytest.raises(AttributeError):
        config.gemini_model = "other"  # type: ignore[misc]


def test_local_env_file_loaded_outside_production(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path,
) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_API_KEY=from-file\nLINE_CHANNEL_SECRET=file-secret\n")
    monkeypatch.setenv("ENV_FILE", str(env_file))

    config = RelayConfig.from_env()

    assert config.gemini_api_key == "from-file"
    assert config.channel_secret == "file-secret"


def test_local_env_file_ignored_in_production(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path,
) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_API_KEY=from-file\n")
    monkeypatch.setenv("ENV_FILE", str(env_file))
    monkeypatch.setenv("ENVIRONMENT", "production")

    config = RelayConfig.from_env()

    assert config.environment == "production"
    assert config.gemini_api_key == ""


def test_process_environment_wins_over_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path,
) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_API_KEY=from-file\n")
    monkeypatch.setenv("ENV_FILE", str(env_file))
    monkeypatch.setenv("GEMINI_API_KEY", "from-process")

    assert RelayConfig.from_env().gemini_api_key == "from-process"


def test_load_local_env_without_file_returns_false() -> None:
    assert load_local_env("development") is False
