"""Adapters for GitHub, Telegram and storage."""
