"""Notification adapters."""

from github_notify.adapters.notifications.telegram_notifier import TelegramNotifier

__all__ = ["TelegramNotifier"]
