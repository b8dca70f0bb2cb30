"""Relevance resolution: is the item behind an event still worth a ping?"""

import logging
from dataclasses import dataclass
from typing import Optional

from github_notify.core.entities import ItemDetail, RawEvent, SubjectType, Verdict, same_login
from github_notify.core.errors import MalformedReferenceError, NotFoundError
from github_notify.core.interfaces import GitHubAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one event against current item state."""

    verdict: Verdict
    detail: Optional[ItemDetail] = None
    mark_consumed: bool = False


class RelevanceResolver:
    """Fetch the referenced issue or pull request and judge it.

    Anything other than NotFoundError raised by the adapter propagates, so
    the caller skips the event for this cycle without marking it read.
    """

    def __init__(self, github: GitHubAdapter) -> None:
        self.github = github

    async def resolve(self, event: RawEvent, recipient_username: str) -> Resolution:
        try:
            detail = await self._fetch(event)
        except NotFoundError:
            logger.info(
                "%s %s#%d not found (deleted or private), treating as stale",
                event.subject_type.label,
                event.subject.full_name,
                event.subject.number,
            )
            return Resolution(verdict=Verdict.STALE, mark_consumed=True)

        if detail.is_closed:
            return Resolution(verdict=Verdict.STALE, detail=detail, mark_consumed=True)

        if same_login(detail.author, recipient_username):
            return Resolution(verdict=Verdict.SELF_AUTHORED, detail=detail, mark_consumed=True)

        return Resolution(verdict=Verdict.ACTIONABLE, detail=detail)

    async def _fetch(self, event: RawEvent) -> ItemDetail:
        if event.subject_type is SubjectType.PULL_REQUEST:
            return await self.github.get_pull_request(event.subject)
        if event.subject_type is SubjectType.ISSUE:
            return await self.github.get_issue(event.subject)
        raise MalformedReferenceError(f"Unsupported subject type for event {event.id}")
