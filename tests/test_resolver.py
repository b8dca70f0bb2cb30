"""Tests for relevance resolution."""

from unittest.mock import AsyncMock

import pytest

from github_notify.core import (
    EventReason,
    ItemDetail,
    RawEvent,
    RelevanceResolver,
    SubjectReference,
    SubjectType,
    Verdict,
)
from github_notify.core.errors import MalformedReferenceError, NotFoundError, TransientError

SUBJECT = SubjectReference("acme", "api", 42)


def _event(subject_type: SubjectType = SubjectType.PULL_REQUEST) -> RawEvent:
    return RawEvent(
        id="100",
        reason=EventReason.REVIEW_REQUESTED,
        subject_type=subject_type,
        subject=SUBJECT,
        title="Add retries",
    )


def _detail(state: str = "open", merged: bool = False, author: str = "alice") -> ItemDetail:
    return ItemDetail(
        subject=SUBJECT,
        subject_type=SubjectType.PULL_REQUEST,
        title="Add retries",
        state=state,
        author=author,
        body="",
        html_url="https://github.com/acme/api/pull/42",
        merged=merged,
    )


@pytest.mark.asyncio
async def test_open_item_by_someone_else_is_actionable() -> None:
    github = AsyncMock()
    github.get_pull_request.return_value = _detail()

    resolution = await RelevanceResolver(github).resolve(_event(), "bob")

    assert resolution.verdict is Verdict.ACTIONABLE
    assert resolution.detail.author == "alice"
    assert not resolution.mark_consumed
    github.get_pull_request.assert_awaited_once_with(SUBJECT)
    github.get_issue.assert_not_called()


@pytest.mark.asyncio
async def test_issue_uses_issue_endpoint() -> None:
    github = AsyncMock()
    github.get_issue.return_value = _detail()

    await RelevanceResolver(github).resolve(_event(SubjectType.ISSUE), "bob")

    github.get_issue.assert_awaited_once_with(SUBJECT)
    github.get_pull_request.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("detail", [_detail(state="closed"), _detail(merged=True)])
async def test_closed_or_merged_is_stale(detail: ItemDetail) -> None:
    github = AsyncMock()
    github.get_pull_request.return_value = detail

    resolution = await RelevanceResolver(github).resolve(_event(), "bob")

    assert resolution.verdict is Verdict.STALE
    assert resolution.mark_consumed


@pytest.mark.asyncio
async def test_missing_item_is_stale() -> None:
    """A 404 means deleted or no longer visible, not an error."""
    github = AsyncMock()
    github.get_pull_request.side_effect = NotFoundError("gone")

    resolution = await RelevanceResolver(github).resolve(_event(), "bob")

    assert resolution.verdict is Verdict.STALE
    assert resolution.detail is None
    assert resolution.mark_consumed


@pytest.mark.asyncio
async def test_own_item_is_self_authored() -> None:
    github = AsyncMock()
    github.get_pull_request.return_value = _detail(author="Bob")

    resolution = await RelevanceResolver(github).resolve(_event(), "bob")

    assert resolution.verdict is Verdict.SELF_AUTHORED
    assert resolution.mark_consumed


@pytest.mark.asyncio
async def test_transient_errors_propagate() -> None:
    github = AsyncMock()
    github.get_pull_request.side_effect = TransientError("503")

    with pytest.raises(TransientError):
        await RelevanceResolver(github).resolve(_event(), "bob")


@pytest.mark.asyncio
async def test_unsupported_subject_type_is_malformed() -> None:
    github = AsyncMock()

    with pytest.raises(MalformedReferenceError):
        await RelevanceResolver(github).resolve(_event(SubjectType.OTHER), "bob")
