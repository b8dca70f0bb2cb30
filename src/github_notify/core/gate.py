"""Renotify gating and ledger retention."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from github_notify.core.entities import Alert, AlertType
from github_notify.core.interfaces import Ledger

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RenotifyGate:
    """Decide whether an alert may be sent again, and record deliveries.

    ``should_deliver`` is read-only. ``record`` must be called only after
    the sink confirmed delivery, so a failed send is retried next cycle.
    """

    def __init__(self, ledger: Ledger, cool_down: timedelta, clock: Clock = utc_now) -> None:
        self.ledger = ledger
        self.cool_down = cool_down
        self.clock = clock

    def should_deliver(
        self,
        recipient_id: int,
        item_url: str,
        notification_type: AlertType,
        fingerprint: str,
        now: Optional[datetime] = None,
    ) -> bool:
        last = self.ledger.latest_delivery(recipient_id, item_url, notification_type, fingerprint)
        if last is None:
            return True
        now = now or self.clock()
        return now - last > self.cool_down

    def allows(self, recipient_id: int, alert: Alert) -> bool:
        return self.should_deliver(recipient_id, alert.url, alert.type, alert.fingerprint)

    def record(self, recipient_id: int, alert: Alert) -> None:
        self.ledger.record_delivery(
            recipient_id, alert.url, alert.type, alert.fingerprint, self.clock()
        )


def sweep(ledger: Ledger, cool_down: timedelta, now: Optional[datetime] = None) -> int:
    """Purge ledger rows older than the cool-down; returns the number removed."""
    cutoff = (now or utc_now()) - cool_down
    removed = ledger.purge_older_than(cutoff)
    if removed:
        logger.info("Swept %d ledger entries delivered before %s", removed, cutoff.isoformat())
    return removed
