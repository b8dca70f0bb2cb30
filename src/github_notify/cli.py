"""CLI entry point for github notify."""

import asyncio
import logging
import signal
from contextlib import suppress
from pathlib import Path
from typing import Optional

import typer

from github_notify.adapters.bot import CommandHandler, UpdateListener
from github_notify.adapters.bot.commands import github_login_for
from github_notify.adapters.github import GitHubClient
from github_notify.adapters.notifications import TelegramNotifier
from github_notify.adapters.storage import SQLiteAccountRegistry, SQLiteLedger
from github_notify.config import Settings, get_settings
from github_notify.core import MonitoredAccount, same_login, sweep
from github_notify.core.errors import AccountNotFoundError, ConfigError, NotifyError
from github_notify.use_cases import CycleReport, NotificationCycle, NotificationPoller

logger = logging.getLogger(__name__)

app = typer.Typer(help="Forward GitHub review requests and mentions to Telegram.")
accounts_app = typer.Typer(help="Manage monitored GitHub accounts.")
app.add_typer(accounts_app, name="accounts")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@app.callback()
def main(
    ctx: typer.Context,
    config: Path = typer.Option(Path("config.yaml"), "--config", "-c", help="Path to YAML config"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)
    # Telegram request URLs carry the bot token.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    ctx.obj = config


def _load(ctx: typer.Context, require_bot_token: bool) -> Settings:
    try:
        settings = get_settings(ctx.obj)
        settings.validate(require_bot_token=require_bot_token)
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)
    return settings


def _ledger(settings: Settings) -> SQLiteLedger:
    ledger = SQLiteLedger(settings.database_path)
    ledger.init_db()
    return ledger


def _registry(settings: Settings) -> SQLiteAccountRegistry:
    registry = SQLiteAccountRegistry(settings.database_path)
    registry.init_db()
    return registry


def build_cycle(settings: Settings, sink: TelegramNotifier) -> NotificationCycle:
    """Wire storage, the GitHub client factory and the sink into a cycle."""
    github = settings.github

    def client_factory(account: MonitoredAccount) -> GitHubClient:
        return GitHubClient(
            account.token,
            api_base=github.api_base,
            timeout=github.timeout,
            max_retries=github.max_retries,
            initial_retry_delay=github.initial_retry_delay,
            per_page=github.per_page,
            max_pages=github.max_pages,
        )

    return NotificationCycle(
        registry=_registry(settings),
        client_factory=client_factory,
        ledger=_ledger(settings),
        sink=sink,
        cool_down=settings.cool_down,
        max_body_length=settings.polling.max_body_length,
        max_concurrent_accounts=settings.polling.max_concurrent_accounts,
    )


def _notifier(settings: Settings) -> TelegramNotifier:
    return TelegramNotifier(
        settings.telegram_bot_token,
        api_base=settings.telegram.api_base,
        timeout=settings.telegram.timeout,
    )


@app.command()
def run(ctx: typer.Context) -> None:
    """Poll GitHub and listen for chat commands until interrupted."""
    settings = _load(ctx, require_bot_token=True)
    asyncio.run(async_run(settings))


async def async_run(settings: Settings) -> None:
    """Run the poller and the command listener side by side."""
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _handle_signal() -> None:
        logger.info("Received shutdown signal")
        shutdown.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, _handle_signal)

    notifier = _notifier(settings)
    cycle = build_cycle(settings, notifier)
    poller = NotificationPoller(cycle, settings.poll_interval)
    listener = UpdateListener(
        notifier,
        CommandHandler(cycle.registry),
        polling_timeout=settings.telegram.polling_timeout,
    )

    logger.info("Starting github notify (database: %s)", settings.database_path)
    await asyncio.gather(poller.run(shutdown), listener.run(shutdown))
    logger.info("Shutdown complete")


@app.command()
def once(ctx: typer.Context) -> None:
    """Run a single poll cycle and print its summary."""
    settings = _load(ctx, require_bot_token=True)
    report: CycleReport = asyncio.run(build_cycle(settings, _notifier(settings)).run())

    typer.echo(f"Accounts checked: {report.accounts} ({report.failed_accounts} failed)")
    typer.echo(f"Ledger entries swept: {report.swept}")
    for outcome, count in sorted(report.outcomes.items()):
        typer.echo(f"  {outcome.value}: {count}")
    if not report.outcomes:
        typer.echo("  No notifications to process")


@app.command("sweep")
def sweep_command(ctx: typer.Context) -> None:
    """Delete ledger entries older than the renotify interval."""
    settings = _load(ctx, require_bot_token=False)
    removed = sweep(_ledger(settings), settings.cool_down)
    typer.echo(f"Removed {removed} ledger entries")


@accounts_app.command("add")
def accounts_add(
    ctx: typer.Context,
    chat_id: int = typer.Argument(..., help="Telegram chat to notify"),
    username: str = typer.Argument(..., help="GitHub username"),
    token: str = typer.Option(..., prompt=True, hide_input=True, help="GitHub personal access token"),
    skip_validation: bool = typer.Option(False, "--skip-validation", help="Store without calling GET /user"),
) -> None:
    """Register a GitHub account for a chat."""
    settings = _load(ctx, require_bot_token=False)
    if not skip_validation:
        try:
            login = asyncio.run(github_login_for(token))
        except NotifyError as e:
            typer.echo(f"Invalid GitHub token: {e}", err=True)
            raise typer.Exit(code=1)
        if not same_login(login, username):
            typer.echo(f"That token belongs to {login}, not {username}.", err=True)
            raise typer.Exit(code=1)

    _registry(settings).add(chat_id, username, token)
    typer.echo(f"Added {username} for chat {chat_id}")


@accounts_app.command("remove")
def accounts_remove(ctx: typer.Context, chat_id: int, username: str) -> None:
    """Remove a GitHub account from a chat."""
    settings = _load(ctx, require_bot_token=False)
    if not _registry(settings).remove(chat_id, username):
        typer.echo(f"No account {username} for chat {chat_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Removed {username} from chat {chat_id}")


@accounts_app.command("toggle")
def accounts_toggle(ctx: typer.Context, chat_id: int, username: str) -> None:
    """Enable or disable notifications for an account."""
    settings = _load(ctx, require_bot_token=False)
    try:
        active = _registry(settings).toggle(chat_id, username)
    except AccountNotFoundError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{username}: {'enabled' if active else 'disabled'}")


@accounts_app.command("list")
def accounts_list(ctx: typer.Context, chat_id: Optional[int] = typer.Argument(None)) -> None:
    """List accounts, for one chat or every active one."""
    settings = _load(ctx, require_bot_token=False)
    registry = _registry(settings)
    accounts = registry.accounts_for(chat_id) if chat_id is not None else registry.list_active()
    if not accounts:
        typer.echo("No accounts registered")
        return
    for account in accounts:
        status = "active" if account.is_active else "paused"
        typer.echo(f"{account.recipient_id}\t{account.username}\t{status}")


if __name__ == "__main__":
    app()
