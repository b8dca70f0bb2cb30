"""Configuration management."""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from github_notify.core.errors import ConfigError


@dataclass
class PollingConfig:
    """Poll cycle settings. Intervals are in seconds."""
    poll_interval: int = 60
    renotify_interval: int = 3600
    max_body_length: int = 300
    max_concurrent_accounts: int = 4


@dataclass
class GitHubConfig:
    """GitHub API settings."""
    api_base: str = "https://api.github.com"
    timeout: float = 30.0
    max_retries: int = 3
    initial_retry_delay: float = 1.0
    per_page: int = 50
    max_pages: int = 10


@dataclass
class TelegramConfig:
    """Telegram Bot API settings."""
    api_base: str = "https://api.telegram.org"
    polling_timeout: int = 60
    timeout: float = 30.0


@dataclass
class StorageConfig:
    """Storage settings."""
    database_path: Path = Path("github_notify.db")


@dataclass
class Settings:
    """Application settings."""

    # Secrets (from environment only)
    telegram_bot_token: str = ""

    # Config sections
    polling: PollingConfig = field(default_factory=PollingConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @property
    def cool_down(self) -> timedelta:
        return timedelta(seconds=self.polling.renotify_interval)

    @property
    def poll_interval(self) -> int:
        return self.polling.poll_interval

    @property
    def database_path(self) -> Path:
        return self.storage.database_path

    def validate(self, require_bot_token: bool = True) -> None:
        """Raise ConfigError for settings the process cannot start without."""
        if require_bot_token and not self.telegram_bot_token:
            raise ConfigError("TELEGRAM_BOT_TOKEN environment variable is required but not set")
        if self.polling.poll_interval <= 0:
            raise ConfigError("poll_interval must be a positive number of seconds")
        if self.polling.renotify_interval <= 0:
            raise ConfigError("renotify_interval must be a positive number of seconds")
        if self.polling.max_body_length < 4:
            raise ConfigError("max_body_length must leave room for the ellipsis")
        if self.polling.max_concurrent_accounts < 1:
            raise ConfigError("max_concurrent_accounts must be at least 1")


def load_config(config_path: Path = Path("config.yaml")) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"Invalid {name}: {value!r} is not an integer") from e


def get_settings(config_path: Path = Path("config.yaml")) -> Settings:
    """Get application settings from .env, YAML config and environment."""
    load_dotenv()
    config = load_config(config_path)

    settings = Settings(telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""))

    # Apply YAML config
    for section in ("polling", "github", "telegram"):
        for key, value in (config.get(section) or {}).items():
            target = getattr(settings, section)
            if not hasattr(target, key):
                raise ConfigError(f"Unknown setting {section}.{key}")
            setattr(target, key, value)

    for key, value in (config.get("storage") or {}).items():
        if key != "database_path":
            raise ConfigError(f"Unknown setting storage.{key}")
        settings.storage.database_path = Path(value)

    # Environment overrides
    if os.getenv("DATABASE_PATH"):
        settings.storage.database_path = Path(os.environ["DATABASE_PATH"])
    for env_name, attr in (
        ("POLL_INTERVAL", "poll_interval"),
        ("RENOTIFY_INTERVAL", "renotify_interval"),
        ("MAX_BODY_LENGTH", "max_body_length"),
    ):
        value = _env_int(env_name)
        if value is not None:
            setattr(settings.polling, attr, value)

    return settings
