"""Telegram chat command handling."""

from github_notify.adapters.bot.commands import CommandHandler
from github_notify.adapters.bot.updates import UpdateListener

__all__ = ["CommandHandler", "UpdateListener"]
