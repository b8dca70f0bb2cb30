"""Tests for configuration loading."""

from datetime import timedelta
from pathlib import Path

import pytest

from github_notify.config import Settings, get_settings
from github_notify.core.errors import ConfigError

ENV_VARS = ("TELEGRAM_BOT_TOKEN", "DATABASE_PATH", "POLL_INTERVAL", "RENOTIFY_INTERVAL", "MAX_BODY_LENGTH")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path: Path) -> None:
    settings = get_settings(tmp_path / "missing.yaml")

    assert settings.poll_interval == 60
    assert settings.cool_down == timedelta(seconds=3600)
    assert settings.polling.max_body_length == 300
    assert settings.database_path == Path("github_notify.db")
    assert settings.github.api_base == "https://api.github.com"


def test_yaml_overrides(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        "polling:\n"
        "  poll_interval: 120\n"
        "github:\n"
        "  max_retries: 5\n"
        "storage:\n"
        "  database_path: /var/lib/notify.db\n"
    )

    settings = get_settings(config)

    assert settings.poll_interval == 120
    assert settings.github.max_retries == 5
    assert settings.database_path == Path("/var/lib/notify.db")


def test_env_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("polling:\n  renotify_interval: 60\n")
    monkeypatch.setenv("RENOTIFY_INTERVAL", "7200")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "env.db"))

    settings = get_settings(config)

    assert settings.cool_down == timedelta(hours=2)
    assert settings.telegram_bot_token == "123:abc"
    assert settings.database_path == tmp_path / "env.db"


def test_unknown_key_rejected(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("polling:\n  poll_every: 5\n")

    with pytest.raises(ConfigError):
        get_settings(config)


def test_non_integer_env_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("POLL_INTERVAL", "soon")

    with pytest.raises(ConfigError):
        get_settings(tmp_path / "missing.yaml")


def test_validate_requires_bot_token() -> None:
    settings = Settings()

    with pytest.raises(ConfigError):
        settings.validate()
    settings.validate(require_bot_token=False)


def test_validate_rejects_non_positive_intervals() -> None:
    settings = Settings(telegram_bot_token="123:abc")
    settings.polling.renotify_interval = 0

    with pytest.raises(ConfigError):
        settings.validate()
