"""Core domain layer."""

from github_notify.core.classifier import NotificationClassifier
from github_notify.core.entities import (
    Alert,
    AlertType,
    Classification,
    Comment,
    CommentKind,
    CommentReference,
    EventReason,
    ItemDetail,
    MonitoredAccount,
    Outcome,
    RawEvent,
    SubjectReference,
    SubjectType,
    Verdict,
    same_login,
)
from github_notify.core.fingerprints import fingerprint
from github_notify.core.gate import RenotifyGate, sweep
from github_notify.core.interfaces import AccountRegistry, GitHubAdapter, Ledger, MessageSink
from github_notify.core.resolver import RelevanceResolver, Resolution

__all__ = [
    "Alert",
    "AlertType",
    "Classification",
    "Comment",
    "CommentKind",
    "CommentReference",
    "EventReason",
    "ItemDetail",
    "MonitoredAccount",
    "Outcome",
    "RawEvent",
    "SubjectReference",
    "SubjectType",
    "Verdict",
    "same_login",
    "fingerprint",
    "RenotifyGate",
    "sweep",
    "AccountRegistry",
    "GitHubAdapter",
    "Ledger",
    "MessageSink",
    "NotificationClassifier",
    "RelevanceResolver",
    "Resolution",
]
