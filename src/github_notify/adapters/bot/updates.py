"""Long-poll Telegram for chat commands."""

import asyncio
import logging
from typing import Optional

from github_notify.adapters.bot.commands import CommandHandler
from github_notify.adapters.notifications import TelegramNotifier

logger = logging.getLogger(__name__)


class UpdateListener:
    """Feed ``getUpdates`` results to the command handler until shutdown."""

    def __init__(
        self,
        bot: TelegramNotifier,
        handler: CommandHandler,
        polling_timeout: int = 60,
        error_backoff: float = 5.0,
    ) -> None:
        self.bot = bot
        self.handler = handler
        self.polling_timeout = polling_timeout
        self.error_backoff = error_backoff
        self._offset: Optional[int] = None

    async def run(self, shutdown: asyncio.Event) -> None:
        logger.info("Listening for chat commands")
        while not shutdown.is_set():
            updates = await self._next_batch(shutdown)
            if updates is None:
                continue
            for update in updates:
                await self.process(update)
        logger.info("Command listener stopped")

    async def process(self, update: dict) -> None:
        """Handle a single update and acknowledge it by advancing the offset."""
        try:
            self._offset = int(update["update_id"]) + 1
            result = await self.handler.handle_update(update)
            if result is not None:
                chat_id, reply = result
                await self.bot.send_text(chat_id, reply)
        except Exception:
            logger.exception("Failed to handle update %s", update.get("update_id"))

    async def _next_batch(self, shutdown: asyncio.Event) -> Optional[list[dict]]:
        """Wait for updates or shutdown, whichever comes first."""
        fetch = asyncio.ensure_future(self.bot.get_updates(self._offset, self.polling_timeout))
        stop = asyncio.ensure_future(shutdown.wait())
        done, _ = await asyncio.wait({fetch, stop}, return_when=asyncio.FIRST_COMPLETED)

        if fetch not in done:
            fetch.cancel()
            return None
        stop.cancel()

        try:
            return fetch.result()
        except Exception as e:
            logger.warning("getUpdates failed: %r; retrying in %.0fs", e, self.error_backoff)
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=self.error_backoff)
            except asyncio.TimeoutError:
                pass
            return None
