"""GitHub REST API adapter."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from github_notify.core import (
    Comment,
    CommentKind,
    CommentReference,
    EventReason,
    GitHubAdapter,
    ItemDetail,
    RawEvent,
    SubjectReference,
    SubjectType,
)
from github_notify.core.errors import MalformedReferenceError, NotFoundError, TransientError

logger = logging.getLogger(__name__)

API_BASE = "https://api.github.com"


def parse_timestamp(value: str) -> datetime:
    """Parse GitHub's ISO-8601 timestamps (``Z`` suffix) into aware datetimes."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def parse_subject_url(url: Optional[str]) -> tuple[str, str, int]:
    """Split ``.../repos/{owner}/{repo}/{issues|pulls}/{number}`` into parts."""
    if not url:
        raise MalformedReferenceError("Notification subject has no URL")
    parts = url.rstrip("/").split("/")
    try:
        repos_index = parts.index("repos")
        owner, repo = parts[repos_index + 1], parts[repos_index + 2]
        number = int(parts[-1])
    except (ValueError, IndexError) as e:
        raise MalformedReferenceError(f"Unrecognised subject URL: {url}") from e
    return owner, repo, number


class GitHubClient(GitHubAdapter):
    """GitHub API client for a single account.

    Each monitored account gets its own client, since each carries its own
    token. Use as an async context manager so the connection pool closes.
    """

    def __init__(
        self,
        token: str,
        api_base: str = API_BASE,
        timeout: float = 30.0,
        max_retries: int = 3,
        initial_retry_delay: float = 1.0,
        per_page: int = 50,
        max_pages: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.max_retries = max(1, max_retries)
        self.initial_retry_delay = initial_retry_delay
        self.per_page = per_page
        self.max_pages = max_pages
        self._client = httpx.AsyncClient(
            base_url=self.api_base,
            headers=self._get_headers(token),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_unread_events(self) -> list[RawEvent]:
        threads = await self._paginate("/notifications", params={"all": "false"})
        events = []
        for thread in threads:
            try:
                events.append(self._parse_event(thread))
            except MalformedReferenceError as e:
                logger.warning("Skipping notification %s: %s", thread.get("id"), e)
        return events

    async def get_issue(self, subject: SubjectReference) -> ItemDetail:
        response = await self._request(
            "GET", f"/repos/{subject.owner}/{subject.repo}/issues/{subject.number}"
        )
        return self._parse_item(response.json(), subject, SubjectType.ISSUE)

    async def get_pull_request(self, subject: SubjectReference) -> ItemDetail:
        response = await self._request(
            "GET", f"/repos/{subject.owner}/{subject.repo}/pulls/{subject.number}"
        )
        return self._parse_item(response.json(), subject, SubjectType.PULL_REQUEST)

    async def list_comments(
        self, subject: SubjectReference, since: Optional[datetime] = None
    ) -> list[Comment]:
        params = {"since": since.isoformat()} if since else None
        data = await self._paginate(
            f"/repos/{subject.owner}/{subject.repo}/issues/{subject.number}/comments",
            params=params,
        )
        return [self._parse_comment(item) for item in data]

    async def get_comment(self, reference: CommentReference) -> Comment:
        family = "issues" if reference.kind is CommentKind.ISSUE else "pulls"
        response = await self._request(
            "GET",
            f"/repos/{reference.owner}/{reference.repo}/{family}/comments/{reference.comment_id}",
        )
        return self._parse_comment(response.json())

    async def search_review_requests(self, username: str) -> list[ItemDetail]:
        query = f"review-requested:{username} is:open is:pr"
        try:
            response = await self._request(
                "GET", "/search/issues", params={"q": query, "per_page": self.per_page}
            )
        except NotFoundError:
            # Search answers 404 for revoked tokens and some rate-limit states.
            logger.warning("Review request search returned 404 for query %r", query)
            return []

        results = []
        for item in response.json().get("items", []):
            try:
                results.append(self._parse_search_result(item))
            except MalformedReferenceError as e:
                logger.warning("Skipping search result %s: %s", item.get("html_url"), e)
        return results

    async def mark_consumed(self, event_id: str) -> None:
        await self._request("PATCH", f"/notifications/threads/{event_id}")

    async def get_authenticated_user(self) -> str:
        """Return the login the token belongs to."""
        response = await self._request("GET", "/user")
        return response.json()["login"]

    async def _paginate(self, path: str, params: Optional[dict[str, Any]] = None) -> list[dict]:
        """Follow ``Link: rel="next"`` headers and collect every page."""
        items: list[dict] = []
        url: Optional[str] = path
        request_params = {**(params or {}), "per_page": self.per_page}

        for _ in range(self.max_pages):
            if url is None:
                break
            response = await self._request("GET", url, params=request_params)
            items.extend(response.json())
            url = response.links.get("next", {}).get("url")
            # The next link already carries the query string.
            request_params = None

        return items

    async def _request(
        self, method: str, url: str, params: Optional[dict[str, Any]] = None
    ) -> httpx.Response:
        """Send a request with retry on rate limits, server errors and network errors."""
        for attempt in range(self.max_retries):
            is_last = attempt == self.max_retries - 1
            try:
                response = await self._client.request(method, url, params=params)
            except httpx.RequestError as e:
                if is_last:
                    raise TransientError(f"Network error calling GitHub {url}: {e}") from e
                retry_delay = self.initial_retry_delay * (2 ** attempt)
                logger.warning("Network error on %s, retrying after %.1fs", url, retry_delay)
                await asyncio.sleep(retry_delay)
                continue

            if response.status_code == 404:
                raise NotFoundError(f"GitHub {url} not found")

            if self._is_retryable(response):
                if is_last:
                    raise TransientError(f"GitHub API error {response.status_code} for {url}")
                retry_delay = self._get_retry_delay(response, attempt)
                logger.warning(
                    "GitHub API %d on %s, retrying after %.1fs (attempt %d/%d)",
                    response.status_code,
                    url,
                    retry_delay,
                    attempt + 1,
                    self.max_retries,
                )
                await asyncio.sleep(retry_delay)
                continue

            if response.status_code >= 400:
                raise TransientError(f"GitHub API error {response.status_code} for {url}")

            return response

        raise TransientError(f"GitHub request {url} failed after {self.max_retries} attempts")

    @staticmethod
    def _is_retryable(response: httpx.Response) -> bool:
        if response.status_code == 429 or response.status_code >= 500:
            return True
        # Primary rate limit is reported as 403 with no remaining quota.
        return response.status_code == 403 and response.headers.get("x-ratelimit-remaining") == "0"

    def _get_retry_delay(self, response: httpx.Response, attempt: int) -> float:
        """Calculate retry delay from response headers or use exponential backoff."""
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass
        return self.initial_retry_delay * (2 ** attempt)

    def _parse_event(self, thread: dict) -> RawEvent:
        subject = thread.get("subject") or {}
        repository = thread.get("repository") or {}
        url_owner, url_repo, number = parse_subject_url(subject.get("url"))
        owner = (repository.get("owner") or {}).get("login") or url_owner
        repo = repository.get("name") or url_repo

        return RawEvent(
            id=str(thread["id"]),
            reason=EventReason.parse(thread.get("reason")),
            subject_type=SubjectType.parse(subject.get("type")),
            subject=SubjectReference(owner=owner, repo=repo, number=number),
            title=subject.get("title") or "",
            latest_comment_url=subject.get("latest_comment_url"),
        )

    def _parse_item(self, data: dict, subject: SubjectReference, subject_type: SubjectType) -> ItemDetail:
        return ItemDetail(
            subject=subject,
            subject_type=subject_type,
            title=data.get("title") or "",
            state=data.get("state") or "open",
            author=(data.get("user") or {}).get("login", ""),
            body=data.get("body") or "",
            html_url=data.get("html_url") or "",
            merged=bool(data.get("merged", False)),
        )

    def _parse_search_result(self, item: dict) -> ItemDetail:
        repository_url = item.get("repository_url") or ""
        parts = repository_url.rstrip("/").split("/")
        if len(parts) < 3 or parts[-3] != "repos" or "number" not in item:
            raise MalformedReferenceError(f"Unrecognised search result for {repository_url}")
        subject = SubjectReference(owner=parts[-2], repo=parts[-1], number=int(item["number"]))
        return self._parse_item(item, subject, SubjectType.PULL_REQUEST)

    def _parse_comment(self, data: dict) -> Comment:
        return Comment(
            id=int(data["id"]),
            author=(data.get("user") or {}).get("login", ""),
            body=data.get("body") or "",
            created_at=parse_timestamp(data["created_at"]),
        )

    def _get_headers(self, token: str) -> dict[str, str]:
        """Get headers for GitHub API requests."""
        return {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "Authorization": f"Bearer {token}",
        }
