"""Forward actionable GitHub review requests and mentions to Telegram."""

__version__ = "0.1.0"
