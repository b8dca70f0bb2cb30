"""Chat commands for managing monitored GitHub accounts."""

import logging
from typing import Awaitable, Callable, Optional

from github_notify.adapters.github import GitHubClient
from github_notify.core import AccountRegistry, same_login
from github_notify.core.errors import AccountNotFoundError, NotifyError

logger = logging.getLogger(__name__)

TokenValidator = Callable[[str], Awaitable[str]]

HELP_TEXT = (
    "Available commands:\n"
    "/start - Get started with the bot\n"
    "/add <token> <username> - Add a GitHub account\n"
    "/remove <username> - Remove a GitHub account\n"
    "/toggle <username> - Enable/disable notifications for an account\n"
    "/status - List your GitHub accounts\n"
    "/help - Show this help message"
)

WELCOME_TEXT = (
    "Welcome to GitHub Notification Bot! 🚀\n\n"
    "I forward review requests and mentions from your GitHub accounts.\n\n"
    + HELP_TEXT
)


async def github_login_for(token: str) -> str:
    """Resolve the login a token belongs to; raises if the token is rejected."""
    async with GitHubClient(token, max_retries=1) as client:
        return await client.get_authenticated_user()


class CommandHandler:
    """Map chat commands onto the account registry and produce reply text."""

    def __init__(self, registry: AccountRegistry, validate_token: TokenValidator = github_login_for) -> None:
        self.registry = registry
        self.validate_token = validate_token

    async def handle_update(self, update: dict) -> Optional[tuple[int, str]]:
        """Handle one Bot API update; returns (chat_id, reply) or None."""
        message = update.get("message") or {}
        text = message.get("text") or ""
        chat_id = (message.get("chat") or {}).get("id")
        if chat_id is None or not text.startswith("/"):
            return None
        reply = await self.handle(int(chat_id), text)
        return int(chat_id), reply

    async def handle(self, chat_id: int, text: str) -> str:
        parts = text.split()
        # "/add@MyBot" addresses the bot explicitly in group chats.
        command = parts[0][1:].split("@", 1)[0].lower()
        args = parts[1:]
        logger.info("Received command /%s from chat %d", command, chat_id)

        if command == "start":
            return WELCOME_TEXT
        if command == "help":
            return HELP_TEXT
        if command == "add":
            return await self._add(chat_id, args)
        if command == "remove":
            return self._remove(chat_id, args)
        if command == "toggle":
            return self._toggle(chat_id, args)
        if command in ("status", "list"):
            return self._status(chat_id)
        return "Unknown command. Type /help for available commands."

    async def _add(self, chat_id: int, args: list[str]) -> str:
        if len(args) != 2:
            return "Please provide both GitHub token and username.\nUsage: /add <github_token> <github_username>"

        token, username = args
        try:
            login = await self.validate_token(token)
        except NotifyError as e:
            logger.info("Token validation failed for %s: %s", username, e)
            return "Invalid GitHub token. Please check it and try again."

        if not same_login(login, username):
            return f"That token belongs to {login}, not {username}."

        self.registry.add(chat_id, username, token)
        logger.info("Added GitHub account %s for chat %d", username, chat_id)
        return f"Successfully added GitHub account: {username}!"

    def _remove(self, chat_id: int, args: list[str]) -> str:
        if len(args) != 1:
            return "Please provide the GitHub username.\nUsage: /remove <github_username>"
        username = args[0]
        if not self.registry.remove(chat_id, username):
            return f"No GitHub account named {username} is registered."
        return f"Successfully removed GitHub account: {username}"

    def _toggle(self, chat_id: int, args: list[str]) -> str:
        if len(args) != 1:
            return "Please provide the GitHub username.\nUsage: /toggle <github_username>"
        username = args[0]
        try:
            active = self.registry.toggle(chat_id, username)
        except AccountNotFoundError:
            return f"No GitHub account named {username} is registered."
        status = "enabled" if active else "disabled"
        return f"Successfully {status} notifications for account: {username}"

    def _status(self, chat_id: int) -> str:
        accounts = self.registry.accounts_for(chat_id)
        if not accounts:
            return "You have no GitHub accounts registered. Use /add to add an account."
        lines = [f"{'🟢' if account.is_active else '🔴'} {account.username}" for account in accounts]
        return "Your GitHub accounts:\n" + "\n".join(lines)
