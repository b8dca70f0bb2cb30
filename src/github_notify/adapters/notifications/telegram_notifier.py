"""Telegram Bot API notification adapter."""

import logging
from typing import Any, Optional

import httpx

from github_notify.core import AlertType, MessageSink

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"

# Characters reserved by MarkdownV2 outside of code entities.
_MARKDOWN_V2_RESERVED = "\\_*[]()~`>#+-=|{}.!"

_TYPE_EMOJI = {
    AlertType.MENTION.value: "💬",
    AlertType.REVIEW_REQUESTED.value: "👀",
}


def escape_markdown(text: str) -> str:
    """Escape every MarkdownV2 reserved character."""
    return "".join(f"\\{ch}" if ch in _MARKDOWN_V2_RESERVED else ch for ch in text)


def escape_link_url(url: str) -> str:
    """Escape the characters MarkdownV2 reserves inside ``(...)`` of a link."""
    return url.replace("\\", "\\\\").replace(")", "\\)")


def type_header(notification_type: AlertType) -> tuple[str, str]:
    """Emoji and title-cased label heading an alert, e.g. ("👀", "Review Requested")."""
    value = AlertType(notification_type).value
    return _TYPE_EMOJI.get(value, "🔔"), value.replace("_", " ").title()


class TelegramNotifier(MessageSink):
    """Send alerts and replies to Telegram chats via the Bot API."""

    def __init__(self, bot_token: str, api_base: str = TELEGRAM_API, timeout: float = 30.0) -> None:
        """Initialize Telegram notifier.

        Args:
            bot_token: Token issued by @BotFather.
            api_base: Bot API root, overridable for local Bot API servers.
            timeout: Per-request timeout in seconds.
        """
        self.bot_token = bot_token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    def _endpoint(self, method: str) -> str:
        return f"{self.api_base}/bot{self.bot_token}/{method}"

    def format_message(
        self, text: str, url: Optional[str] = None, notification_type: Optional[AlertType] = None
    ) -> str:
        """Render an alert as MarkdownV2 under a bold type header, with a trailing link."""
        message = escape_markdown(text)
        if notification_type:
            emoji, label = type_header(notification_type)
            message = f"{emoji} *{escape_markdown(label)}*\n\n{message}"
        if url:
            message += f"\n\n🔗 [View on GitHub]({escape_link_url(url)})"
        return message

    async def deliver(
        self,
        recipient_id: int,
        text: str,
        url: Optional[str] = None,
        notification_type: Optional[AlertType] = None,
    ) -> bool:
        """Send an alert; falls back to plain text if Telegram rejects the markup.

        Returns:
            True if one of the attempts was accepted.
        """
        payload = {
            "chat_id": recipient_id,
            "text": self.format_message(text, url, notification_type),
            "parse_mode": "MarkdownV2",
            "disable_web_page_preview": True,
        }
        try:
            await self._call("sendMessage", payload)
            return True
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Telegram rejected MarkdownV2 message for chat %s (%s), retrying as plain text",
                recipient_id,
                e.response.status_code,
            )
        except httpx.HTTPError as e:
            logger.warning("Failed to send alert to chat %s: %s", recipient_id, e)
            return False

        plain = f"{text}\n\n{url}" if url else text
        if notification_type:
            emoji, label = type_header(notification_type)
            plain = f"{emoji} {label}\n\n{plain}"
        return await self.send_text(recipient_id, plain)

    async def send_text(self, chat_id: int, text: str) -> bool:
        """Send an unformatted message, used for command replies."""
        payload = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": True,
        }
        try:
            await self._call("sendMessage", payload)
            return True
        except httpx.HTTPError as e:
            logger.warning("Failed to send message to chat %s: %s", chat_id, e)
            return False

    async def get_updates(self, offset: Optional[int], timeout: int) -> list[dict]:
        """Long-poll for bot updates. Raises httpx.HTTPError on failure."""
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        data = await self._call("getUpdates", payload, request_timeout=timeout + self.timeout)
        return data.get("result", [])

    async def _call(
        self, method: str, payload: dict[str, Any], request_timeout: Optional[float] = None
    ) -> dict:
        async with httpx.AsyncClient(timeout=request_timeout or self.timeout) as client:
            response = await client.post(self._endpoint(method), json=payload)
            response.raise_for_status()
            return response.json()
