"""Core domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from github_notify.core.fingerprints import fingerprint as content_fingerprint


class EventReason(str, Enum):
    """Why GitHub raised a notification thread."""

    MENTION = "mention"
    REVIEW_REQUESTED = "review_requested"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "EventReason":
        for member in cls:
            if member.value == value:
                return member
        return cls.OTHER


class SubjectType(str, Enum):
    """Kind of item a notification thread points at."""

    ISSUE = "Issue"
    PULL_REQUEST = "PullRequest"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubjectType":
        for member in cls:
            if member.value == value:
                return member
        return cls.OTHER

    @property
    def label(self) -> str:
        """Human wording used in rendered alerts."""
        if self is SubjectType.PULL_REQUEST:
            return "pull request"
        if self is SubjectType.ISSUE:
            return "issue"
        return "item"


class AlertType(str, Enum):
    """Notification types this system delivers."""

    MENTION = "mention"
    REVIEW_REQUESTED = "review_requested"


class Verdict(str, Enum):
    """Relevance of a referenced item for the recipient."""

    STALE = "stale"
    SELF_AUTHORED = "self_authored"
    ACTIONABLE = "actionable"


class Outcome(str, Enum):
    """Terminal state of one candidate alert within a cycle."""

    DELIVERED = "delivered"
    STALE = "stale"
    SELF = "self"
    REPLIED = "replied"
    SUPPRESSED = "suppressed"
    UNHANDLED = "unhandled_type"
    FAILED = "failed"


class CommentKind(str, Enum):
    """Endpoint family a comment lives under."""

    ISSUE = "issue"
    REVIEW = "review"


@dataclass(frozen=True)
class SubjectReference:
    """Location of an issue or pull request."""

    owner: str
    repo: str
    number: int

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class CommentReference:
    """Location of a single comment."""

    owner: str
    repo: str
    comment_id: int
    kind: CommentKind


@dataclass(frozen=True)
class RawEvent:
    """An unread notification thread, before classification."""

    id: str
    reason: EventReason
    subject_type: SubjectType
    subject: SubjectReference
    title: str
    latest_comment_url: Optional[str] = None


@dataclass(frozen=True)
class ItemDetail:
    """Current state of an issue or pull request."""

    subject: SubjectReference
    subject_type: SubjectType
    title: str
    state: str
    author: str
    body: str
    html_url: str
    merged: bool = False

    @property
    def is_closed(self) -> bool:
        return self.state == "closed" or self.merged


@dataclass(frozen=True)
class Comment:
    """A comment on an issue or pull request."""

    id: int
    author: str
    body: str
    created_at: datetime


@dataclass(frozen=True)
class Alert:
    """A classified, rendered notification ready for gating."""

    type: AlertType
    message: str
    url: str

    @property
    def fingerprint(self) -> str:
        return content_fingerprint(self.message)


@dataclass(frozen=True)
class Classification:
    """Classifier result: an alert, or the reason there is none.

    ``mark_consumed`` asks the caller to mark the upstream thread as read
    because it will never produce an alert.
    """

    alert: Optional[Alert] = None
    outcome: Optional[Outcome] = None
    mark_consumed: bool = False

    @classmethod
    def drop(cls, outcome: Outcome, mark_consumed: bool = False) -> "Classification":
        return cls(alert=None, outcome=outcome, mark_consumed=mark_consumed)


@dataclass(frozen=True)
class MonitoredAccount:
    """A GitHub account watched on behalf of a chat."""

    recipient_id: int
    username: str
    token: str = field(repr=False)
    is_active: bool = True


def same_login(left: str, right: str) -> bool:
    """Compare GitHub logins, which are case-insensitive."""
    return bool(left) and left.lower() == right.lower()
