"""Tests for chat command handling."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from github_notify.adapters.bot import CommandHandler
from github_notify.adapters.bot.commands import HELP_TEXT
from github_notify.adapters.storage import SQLiteAccountRegistry
from github_notify.core.errors import TransientError


def _handler(tmp_path: Path, login: str = "alice") -> CommandHandler:
    registry = SQLiteAccountRegistry(tmp_path / "bot.db")
    registry.init_db()
    return CommandHandler(registry, validate_token=AsyncMock(return_value=login))


@pytest.mark.asyncio
async def test_start_and_help(tmp_path: Path) -> None:
    handler = _handler(tmp_path)

    assert "Welcome" in await handler.handle(1, "/start")
    assert await handler.handle(1, "/help@GitHubNotifyBot") == HELP_TEXT


@pytest.mark.asyncio
async def test_add_validates_token(tmp_path: Path) -> None:
    handler = _handler(tmp_path)

    reply = await handler.handle(1, "/add ghp_token alice")

    assert reply == "Successfully added GitHub account: alice!"
    handler.validate_token.assert_awaited_once_with("ghp_token")
    [account] = handler.registry.accounts_for(1)
    assert account.token == "ghp_token"


@pytest.mark.asyncio
async def test_add_rejects_mismatched_login(tmp_path: Path) -> None:
    handler = _handler(tmp_path, login="mallory")

    reply = await handler.handle(1, "/add ghp_token alice")

    assert reply == "That token belongs to mallory, not alice."
    assert handler.registry.accounts_for(1) == []


@pytest.mark.asyncio
async def test_add_rejects_invalid_token(tmp_path: Path) -> None:
    handler = _handler(tmp_path)
    handler.validate_token.side_effect = TransientError("401")

    reply = await handler.handle(1, "/add bad alice")

    assert reply.startswith("Invalid GitHub token")
    assert handler.registry.accounts_for(1) == []


@pytest.mark.asyncio
async def test_add_usage(tmp_path: Path) -> None:
    reply = await _handler(tmp_path).handle(1, "/add onlytoken")
    assert "Usage: /add" in reply


@pytest.mark.asyncio
async def test_toggle_remove_and_status(tmp_path: Path) -> None:
    handler = _handler(tmp_path)
    await handler.handle(1, "/add tok alice")

    assert await handler.handle(1, "/toggle alice") == "Successfully disabled notifications for account: alice"
    assert "🔴 alice" in await handler.handle(1, "/status")
    assert await handler.handle(1, "/toggle alice") == "Successfully enabled notifications for account: alice"
    assert "🟢 alice" in await handler.handle(1, "/list")

    assert await handler.handle(1, "/remove alice") == "Successfully removed GitHub account: alice"
    assert "no GitHub accounts" in await handler.handle(1, "/status")


@pytest.mark.asyncio
async def test_unknown_account(tmp_path: Path) -> None:
    handler = _handler(tmp_path)

    assert await handler.handle(1, "/toggle ghost") == "No GitHub account named ghost is registered."
    assert await handler.handle(1, "/remove ghost") == "No GitHub account named ghost is registered."


@pytest.mark.asyncio
async def test_accounts_scoped_to_chat(tmp_path: Path) -> None:
    handler = _handler(tmp_path)
    await handler.handle(1, "/add tok alice")

    assert await handler.handle(2, "/toggle alice") == "No GitHub account named alice is registered."


@pytest.mark.asyncio
async def test_handle_update(tmp_path: Path) -> None:
    handler = _handler(tmp_path)

    result = await handler.handle_update({"update_id": 1, "message": {"chat": {"id": 99}, "text": "/nope"}})
    assert result == (99, "Unknown command. Type /help for available commands.")

    assert await handler.handle_update({"update_id": 2, "message": {"chat": {"id": 99}, "text": "hi"}}) is None
    assert await handler.handle_update({"update_id": 3, "edited_message": {}}) is None
