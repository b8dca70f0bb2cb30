"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from github_notify.core.entities import (
    AlertType,
    Comment,
    CommentReference,
    ItemDetail,
    MonitoredAccount,
    RawEvent,
    SubjectReference,
)


class GitHubAdapter(ABC):
    """Interface for the remote event source, bound to one account's token."""

    @abstractmethod
    async def list_unread_events(self) -> list[RawEvent]:
        """List unread notification threads, all pages."""
        pass

    @abstractmethod
    async def get_issue(self, subject: SubjectReference) -> ItemDetail:
        """Fetch an issue. Raises NotFoundError if it is gone."""
        pass

    @abstractmethod
    async def get_pull_request(self, subject: SubjectReference) -> ItemDetail:
        """Fetch a pull request. Raises NotFoundError if it is gone."""
        pass

    @abstractmethod
    async def list_comments(
        self, subject: SubjectReference, since: Optional[datetime] = None
    ) -> list[Comment]:
        """List conversation comments on an item, optionally since a timestamp."""
        pass

    @abstractmethod
    async def get_comment(self, reference: CommentReference) -> Comment:
        """Fetch a single issue or review comment."""
        pass

    @abstractmethod
    async def search_review_requests(self, username: str) -> list[ItemDetail]:
        """Find open pull requests where username is a requested reviewer."""
        pass

    @abstractmethod
    async def mark_consumed(self, event_id: str) -> None:
        """Mark a notification thread as read."""
        pass


class Ledger(ABC):
    """Interface for the durable record of delivered alerts."""

    @abstractmethod
    def latest_delivery(
        self,
        recipient_id: int,
        item_url: str,
        notification_type: AlertType,
        fingerprint: str,
    ) -> Optional[datetime]:
        """Return the most recent delivery time for the key, if any."""
        pass

    @abstractmethod
    def record_delivery(
        self,
        recipient_id: int,
        item_url: str,
        notification_type: AlertType,
        fingerprint: str,
        delivered_at: datetime,
    ) -> None:
        """Append one delivery row."""
        pass

    @abstractmethod
    def purge_older_than(self, cutoff: datetime) -> int:
        """Delete rows delivered before cutoff and return how many."""
        pass


class MessageSink(ABC):
    """Interface for delivering rendered alerts to a chat."""

    @abstractmethod
    async def deliver(
        self,
        recipient_id: int,
        text: str,
        url: Optional[str] = None,
        notification_type: Optional[AlertType] = None,
    ) -> bool:
        """Send text to the recipient, headed by its type if given. Returns False if delivery failed."""
        pass


class AccountRegistry(ABC):
    """Interface for the chat -> GitHub account mapping."""

    @abstractmethod
    def list_active(self) -> list[MonitoredAccount]:
        """All active (recipient, account) pairs."""
        pass

    @abstractmethod
    def accounts_for(self, recipient_id: int) -> list[MonitoredAccount]:
        """All accounts registered by a recipient, active or not."""
        pass

    @abstractmethod
    def add(self, recipient_id: int, username: str, token: str) -> None:
        """Register or re-activate an account."""
        pass

    @abstractmethod
    def remove(self, recipient_id: int, username: str) -> bool:
        """Delete an account. Returns False if it was not registered."""
        pass

    @abstractmethod
    def toggle(self, recipient_id: int, username: str) -> bool:
        """Flip an account's active flag and return the new value."""
        pass
