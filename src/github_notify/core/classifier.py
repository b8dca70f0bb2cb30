"""Turn resolved GitHub events into rendered alerts.

Message construction lives here, not in the sink: the exact text decides
the fingerprint, so truncation, field order and emoji prefixes must be
stable across cycles. Escaping for the chat's markup is left to the sink.
"""

import logging
import re
from datetime import datetime
from typing import Optional

from github_notify.core.entities import (
    Alert,
    AlertType,
    Classification,
    Comment,
    CommentKind,
    CommentReference,
    EventReason,
    ItemDetail,
    Outcome,
    RawEvent,
    SubjectReference,
    SubjectType,
    same_login,
)
from github_notify.core.errors import MalformedReferenceError, NotFoundError
from github_notify.core.interfaces import GitHubAdapter

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_LENGTH = 300
ELLIPSIS = "..."

_COMMENT_URL = re.compile(
    r"/repos/(?P<owner>[^/]+)/(?P<repo>[^/]+)/(?P<family>issues|pulls)/comments/(?P<id>\d+)/?$"
)


def parse_comment_url(url: str) -> CommentReference:
    """Parse an API comment URL into a reference.

    ``.../issues/comments/{id}`` maps to an issue comment and
    ``.../pulls/comments/{id}`` to a pull request review comment.
    """
    match = _COMMENT_URL.search(url)
    if not match:
        raise MalformedReferenceError(f"Unrecognised comment URL: {url}")
    kind = CommentKind.ISSUE if match.group("family") == "issues" else CommentKind.REVIEW
    return CommentReference(
        owner=match.group("owner"),
        repo=match.group("repo"),
        comment_id=int(match.group("id")),
        kind=kind,
    )


def is_comment_url(url: Optional[str]) -> bool:
    """True when the URL points at a comment rather than the item itself."""
    return bool(url) and "/comments/" in url


def truncate(text: str, max_length: int = DEFAULT_MAX_BODY_LENGTH) -> str:
    """Clip text to max_length characters, ellipsis included."""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(ELLIPSIS)] + ELLIPSIS


def _header(detail: ItemDetail) -> str:
    return f"📁 {detail.subject.full_name}\n📝 {detail.title}"


class NotificationClassifier:
    """Classify events for a single account.

    One instance is used per account pass: comment lists fetched for an
    item are cached on the instance so several mentions on the same item
    cost one listing.
    """

    def __init__(self, github: GitHubAdapter, max_body_length: int = DEFAULT_MAX_BODY_LENGTH) -> None:
        self.github = github
        self.max_body_length = max_body_length
        self._comments: dict[SubjectReference, list[Comment]] = {}

    @staticmethod
    def handles(event: RawEvent) -> bool:
        """Whether the event's reason and subject are types we alert on."""
        if event.subject_type is SubjectType.OTHER:
            return False
        return event.reason in (EventReason.MENTION, EventReason.REVIEW_REQUESTED)

    async def classify(
        self, event: RawEvent, detail: ItemDetail, recipient_username: str
    ) -> Classification:
        """Build the alert for an actionable event, or explain why there is none."""
        if event.reason is EventReason.REVIEW_REQUESTED:
            return Classification(alert=self.review_request_alert(detail))
        if event.reason is EventReason.MENTION:
            return await self._classify_mention(event, detail, recipient_username)
        return Classification.drop(Outcome.UNHANDLED)

    def review_request_alert(self, detail: ItemDetail) -> Alert:
        """Render a review request; the PR author is named as the requester."""
        if detail.subject_type is SubjectType.PULL_REQUEST and detail.author:
            line = f"👀 {detail.author} requested your review on this pull request"
        else:
            line = "👀 Your review was requested on this pull request"
        return Alert(
            type=AlertType.REVIEW_REQUESTED,
            message=f"{_header(detail)}\n\n{line}",
            url=detail.html_url,
        )

    def review_request_alerts(self, results: list[ItemDetail], recipient_username: str) -> list[Alert]:
        """Alerts for pull requests found by the review-request search."""
        alerts = []
        for detail in results:
            if detail.is_closed or same_login(detail.author, recipient_username):
                continue
            alerts.append(self.review_request_alert(detail))
        return alerts

    async def _classify_mention(
        self, event: RawEvent, detail: ItemDetail, recipient_username: str
    ) -> Classification:
        if not is_comment_url(event.latest_comment_url):
            return await self._classify_description_mention(detail, recipient_username)

        reference = parse_comment_url(event.latest_comment_url)
        try:
            comment = await self.github.get_comment(reference)
        except NotFoundError:
            logger.info("Comment %d on %s is gone", reference.comment_id, detail.html_url)
            return Classification.drop(Outcome.STALE, mark_consumed=True)

        if await self._has_replied(detail.subject, recipient_username, after=comment.created_at):
            return Classification.drop(Outcome.REPLIED, mark_consumed=True)

        if same_login(comment.author, recipient_username):
            return Classification.drop(Outcome.SELF, mark_consumed=True)

        message = (
            f"{_header(detail)}\n\n"
            f"👤 {comment.author} mentioned you in a comment:\n\n"
            f"{truncate(comment.body, self.max_body_length)}"
        )
        return Classification(alert=Alert(type=AlertType.MENTION, message=message, url=detail.html_url))

    async def _classify_description_mention(
        self, detail: ItemDetail, recipient_username: str
    ) -> Classification:
        if await self._has_replied(detail.subject, recipient_username):
            return Classification.drop(Outcome.REPLIED, mark_consumed=True)

        if same_login(detail.author, recipient_username):
            return Classification.drop(Outcome.SELF, mark_consumed=True)

        message = (
            f"{_header(detail)}\n\n"
            f"👤 {detail.author} mentioned you in the {detail.subject_type.label} description:\n\n"
            f"{truncate(detail.body, self.max_body_length)}"
        )
        return Classification(alert=Alert(type=AlertType.MENTION, message=message, url=detail.html_url))

    async def _has_replied(
        self, subject: SubjectReference, username: str, after: Optional[datetime] = None
    ) -> bool:
        comments = self._comments.get(subject)
        if comments is None:
            comments = await self.github.list_comments(subject)
            self._comments[subject] = comments

        for comment in comments:
            if not same_login(comment.author, username):
                continue
            if after is None or comment.created_at > after:
                return True
        return False
