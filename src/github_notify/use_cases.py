"""Business logic use cases."""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta
from typing import AsyncContextManager, Callable, Optional

from github_notify.core import (
    AccountRegistry,
    Alert,
    GitHubAdapter,
    Ledger,
    MessageSink,
    MonitoredAccount,
    NotificationClassifier,
    Outcome,
    RawEvent,
    RelevanceResolver,
    RenotifyGate,
    Verdict,
    sweep,
)
from github_notify.core.classifier import DEFAULT_MAX_BODY_LENGTH
from github_notify.core.errors import MalformedReferenceError
from github_notify.core.gate import Clock, utc_now

logger = logging.getLogger(__name__)

ClientFactory = Callable[[MonitoredAccount], AsyncContextManager[GitHubAdapter]]

_VERDICT_OUTCOMES = {
    Verdict.STALE: Outcome.STALE,
    Verdict.SELF_AUTHORED: Outcome.SELF,
}


@dataclass
class CycleReport:
    """Counts collected over one poll cycle."""

    accounts: int = 0
    failed_accounts: int = 0
    skipped_accounts: int = 0
    swept: int = 0
    outcomes: Counter = field(default_factory=Counter)

    @property
    def delivered(self) -> int:
        return self.outcomes[Outcome.DELIVERED]

    def merge(self, other: "CycleReport") -> None:
        self.accounts += other.accounts
        self.failed_accounts += other.failed_accounts
        self.skipped_accounts += other.skipped_accounts
        self.swept += other.swept
        self.outcomes.update(other.outcomes)

    def summary(self) -> str:
        parts = [f"{outcome.value}={count}" for outcome, count in sorted(self.outcomes.items())]
        return (
            f"accounts={self.accounts} failed_accounts={self.failed_accounts} "
            f"skipped_accounts={self.skipped_accounts} swept={self.swept} "
            + " ".join(parts)
        ).strip()


class NotificationCycle:
    """Run one poll cycle over every active account.

    Order per cycle: sweep the ledger, then for each account list unread
    events, resolve, classify, gate and deliver. Accounts run concurrently
    up to ``max_concurrent_accounts``; a failure in one event or one
    account is logged and never stops the rest of the cycle.
    """

    def __init__(
        self,
        registry: AccountRegistry,
        client_factory: ClientFactory,
        ledger: Ledger,
        sink: MessageSink,
        cool_down: timedelta,
        max_body_length: int = DEFAULT_MAX_BODY_LENGTH,
        max_concurrent_accounts: int = 4,
        clock: Clock = utc_now,
    ) -> None:
        self.registry = registry
        self.client_factory = client_factory
        self.ledger = ledger
        self.sink = sink
        self.cool_down = cool_down
        self.max_body_length = max_body_length
        self.max_concurrent_accounts = max_concurrent_accounts
        self.clock = clock
        self.gate = RenotifyGate(ledger, cool_down, clock)

    async def run(self, shutdown: Optional[asyncio.Event] = None) -> CycleReport:
        report = CycleReport()
        logger.info("Starting notification check cycle")

        # Sweep must run before any gating in the cycle.
        try:
            report.swept = sweep(self.ledger, self.cool_down, self.clock())
        except Exception as e:
            logger.error("Error cleaning old notifications: %s", e)

        try:
            accounts = self.registry.list_active()
        except Exception as e:
            logger.error("Error listing monitored accounts: %s", e)
            return report

        semaphore = asyncio.Semaphore(self.max_concurrent_accounts)

        async def guarded(account: MonitoredAccount) -> Optional[CycleReport]:
            async with semaphore:
                if shutdown is not None and shutdown.is_set():
                    return None
                return await self.process_account(account)

        results = await asyncio.gather(*(guarded(account) for account in accounts), return_exceptions=True)

        for account, result in zip(accounts, results):
            if result is None:
                report.skipped_accounts += 1
            elif isinstance(result, BaseException):
                logger.error(
                    "Unexpected error for chat %d (account %s): %r",
                    account.recipient_id,
                    account.username,
                    result,
                )
                report.accounts += 1
                report.failed_accounts += 1
            else:
                report.merge(result)

        logger.info("Notification check cycle completed: %s", report.summary())
        return report

    async def process_account(self, account: MonitoredAccount) -> CycleReport:
        """Process one account's unread events and review-request search."""
        report = CycleReport(accounts=1)
        logger.info("Checking GitHub notifications for %s", account.username)

        try:
            async with self.client_factory(account) as github:
                events = await github.list_unread_events()
                logger.info("Found %d unread notifications for %s", len(events), account.username)

                resolver = RelevanceResolver(github)
                classifier = NotificationClassifier(github, self.max_body_length)

                for event in events:
                    outcome = await self.process_event(account, github, resolver, classifier, event)
                    report.outcomes[outcome] += 1

                for outcome in await self.process_review_requests(account, github, classifier):
                    report.outcomes[outcome] += 1
        except Exception as e:
            logger.warning(
                "Error checking notifications for chat %d (account %s): %s",
                account.recipient_id,
                account.username,
                e,
            )
            report.failed_accounts = 1

        logger.info("Sent %d new notifications for %s", report.delivered, account.username)
        return report

    async def process_event(
        self,
        account: MonitoredAccount,
        github: GitHubAdapter,
        resolver: RelevanceResolver,
        classifier: NotificationClassifier,
        event: RawEvent,
    ) -> Outcome:
        """Drive one event to a terminal outcome."""
        if not classifier.handles(event):
            return Outcome.UNHANDLED

        try:
            resolution = await resolver.resolve(event, account.username)
            if resolution.verdict is not Verdict.ACTIONABLE:
                if resolution.mark_consumed:
                    await self._mark_consumed(github, event)
                return _VERDICT_OUTCOMES[resolution.verdict]

            classification = await classifier.classify(event, resolution.detail, account.username)
            if classification.alert is None:
                if classification.mark_consumed:
                    await self._mark_consumed(github, event)
                return classification.outcome or Outcome.UNHANDLED
        except MalformedReferenceError as e:
            logger.warning("Skipping notification %s for %s: %s", event.id, account.username, e)
            return Outcome.FAILED
        except Exception as e:
            logger.warning(
                "Error processing notification %s for %s, will retry next cycle: %s",
                event.id,
                account.username,
                e,
            )
            return Outcome.FAILED

        return await self.deliver(account, classification.alert)

    async def process_review_requests(
        self, account: MonitoredAccount, github: GitHubAdapter, classifier: NotificationClassifier
    ) -> list[Outcome]:
        """Review requests found by search, including ones never raised as notifications."""
        try:
            results = await github.search_review_requests(account.username)
        except Exception as e:
            logger.warning("Review request search failed for %s: %s", account.username, e)
            return [Outcome.FAILED]

        outcomes = []
        for alert in classifier.review_request_alerts(results, account.username):
            outcomes.append(await self.deliver(account, alert))
        return outcomes

    async def deliver(self, account: MonitoredAccount, alert: Alert) -> Outcome:
        """Gate, send and record one alert; any error fails only this alert."""
        try:
            return await self._deliver(account, alert)
        except Exception as e:
            logger.warning(
                "Error delivering %s notification to chat %d (account %s), will retry next cycle: %s",
                alert.type.value,
                account.recipient_id,
                account.username,
                e,
            )
            return Outcome.FAILED

    async def _deliver(self, account: MonitoredAccount, alert: Alert) -> Outcome:
        if not self.gate.allows(account.recipient_id, alert):
            logger.debug(
                "Skipping notification for chat %d (account %s): %s - too recent",
                account.recipient_id,
                account.username,
                alert.url,
            )
            return Outcome.SUPPRESSED

        if not await self.sink.deliver(account.recipient_id, alert.message, alert.url, alert.type):
            logger.warning("Delivery to chat %d failed for %s", account.recipient_id, alert.url)
            return Outcome.FAILED

        try:
            self.gate.record(account.recipient_id, alert)
        except Exception as e:
            logger.error("Error recording notification for %s: %s", alert.url, e)
        logger.info(
            "Sent %s notification to chat %d (account %s): %s",
            alert.type.value,
            account.recipient_id,
            account.username,
            alert.url,
        )
        return Outcome.DELIVERED

    async def _mark_consumed(self, github: GitHubAdapter, event: RawEvent) -> None:
        try:
            await github.mark_consumed(event.id)
        except Exception as e:
            logger.warning("Failed to mark notification %s as read: %s", event.id, e)


class NotificationPoller:
    """Repeat cycles on a fixed interval until shutdown.

    Cycles never overlap: the wait for the next tick starts only after the
    current cycle returns.
    """

    def __init__(self, cycle: NotificationCycle, poll_interval: float) -> None:
        self.cycle = cycle
        self.poll_interval = poll_interval

    async def run(self, shutdown: asyncio.Event) -> None:
        logger.info("Notification poller started with %s seconds interval", self.poll_interval)
        while not shutdown.is_set():
            try:
                await self.cycle.run(shutdown)
            except Exception:
                logger.exception("Error processing notifications")
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Notification poller shutting down")
