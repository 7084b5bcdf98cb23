"""GitHub REST API client for DORA metrics data retrieval."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, List, Optional

import requests

from .errors import UpstreamAPIError
from .models import (
    Commit,
    Contributor,
    IssueEvent,
    PullRequestEvent,
    Release,
    RepositoryRecord,
    Tag,
)

logger = logging.getLogger(__name__)


def parse_github_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub ISO8601 timestamps into timezone-aware UTC datetimes."""
    if not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        logger.debug("Skipping unparsable GitHub timestamp", extra={"value": value})
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_github_datetime(value: datetime) -> str:
    """Format a datetime as UTC ISO8601 suitable for GitHub query params."""
    utc_value = value.astimezone(timezone.utc).replace(microsecond=0)
    return utc_value.isoformat().replace("+00:00", "Z")


class GitHubClient:
    """Small, typed client for the GitHub repository REST APIs.

    All list/get methods are ``async``. ``requests`` is blocking, so each call
    is offloaded to the default thread-pool executor and the event loop is
    only suspended while the HTTP request is in flight.

    There is deliberately no retry or backoff here: 403/429 responses surface
    as :class:`UpstreamAPIError` and the caller decides whether to try again.
    """

    _API_VERSION = "2022-11-28"

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        timeout_seconds: int = 30,
        page_size: int = 100,
        max_pages: int = 10,
    ) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            token: GitHub personal access token.
            api_url: REST API root (override for GitHub Enterprise Server).
            timeout_seconds: Per-request timeout in seconds.
            page_size: ``per_page`` used for list endpoints (max 100).
            max_pages: Upper bound on pages fetched by a single list call.
        """
        self._api_url = api_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._page_size = page_size
        self._max_pages = max_pages

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": self._API_VERSION,
            }
        )

    def close(self) -> None:
        """Release the pooled HTTP connections held by the session."""
        self._session.close()

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below the API root."""
        return f"{self._api_url}/{path.lstrip('/')}"

    async def _run(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a blocking callable in the default thread-pool executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    def _raise_for_status(self, response: requests.Response, url: str) -> None:
        status_code = response.status_code
        if status_code < 400:
            return

        if status_code == 401:
            raise UpstreamAPIError(
                f"GitHub API authentication failed (Bad credentials): GET {url}",
                status_code=status_code,
            )

        remaining = response.headers.get("X-RateLimit-Remaining")
        body = response.text or ""
        if status_code == 429 or (status_code == 403 and (remaining == "0" or "rate limit" in body.lower())):
            raise UpstreamAPIError(
                f"GitHub API rate limit exceeded: GET {url} returned {status_code}",
                status_code=status_code,
            )

        if status_code == 403:
            raise UpstreamAPIError(
                f"GitHub API access denied: GET {url} returned 403 - {body}",
                status_code=status_code,
            )

        if status_code == 404:
            raise UpstreamAPIError(f"GitHub API resource Not Found: GET {url}", status_code=status_code)

        raise UpstreamAPIError(
            f"GitHub API request failed: GET {url} returned {status_code} - {body}",
            status_code=status_code,
        )

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Execute a single GET request and return the decoded JSON payload.

        Raises:
            UpstreamAPIError: If the request fails, returns HTTP >= 400,
                or does not return valid JSON.
        """
        url = self._build_url(path)

        try:
            response = self._session.get(url, params=params, timeout=self._timeout_seconds)
        except requests.RequestException as exc:
            raise UpstreamAPIError(f"GitHub API request failed: GET {url} - {exc}") from exc

        remaining = response.headers.get("X-RateLimit-Remaining")
        limit = response.headers.get("X-RateLimit-Limit")
        if remaining and limit:
            logger.debug("GitHub API rate limit status", extra={"remaining": remaining, "limit": limit})

        self._raise_for_status(response, url)

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamAPIError(f"GitHub API returned invalid JSON: GET {url}") from exc

    def _paginate(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        stop: Optional[Callable[[Dict[str, Any]], bool]] = None,
    ) -> List[Dict[str, Any]]:
        """Collect items across ``page``/``per_page`` pages.

        Stops on a short page, after ``max_pages`` pages, or when ``stop``
        returns true for the last item of a page (used for newest-first
        listings that have passed the start of the analysis window).
        """
        items: List[Dict[str, Any]] = []
        page = 1

        while page <= self._max_pages:
            query: Dict[str, Any] = dict(params or {})
            query["per_page"] = self._page_size
            query["page"] = page

            payload = self._get_json(path, params=query)
            if not isinstance(payload, list):
                raise UpstreamAPIError(f"GitHub API returned unexpected payload shape: GET {self._build_url(path)}")

            items.extend(payload)

            if len(payload) < self._page_size:
                break
            if stop is not None and payload and stop(payload[-1]):
                break

            page += 1

        return items

    # ------------------------------------------------------------------
    # Repository metadata
    # ------------------------------------------------------------------

    async def get_repository(self, owner: str, repo: str) -> RepositoryRecord:
        """Fetch the repository record."""
        payload = await self._run(self._get_json, f"repos/{owner}/{repo}")
        if not isinstance(payload, dict):
            raise UpstreamAPIError(f"GitHub API returned unexpected payload shape for repository {owner}/{repo}")

        license_payload = payload.get("license")
        return RepositoryRecord(
            name=str(payload.get("name") or repo),
            full_name=str(payload.get("full_name") or f"{owner}/{repo}"),
            description=payload.get("description"),
            language=payload.get("language"),
            stars=int(payload.get("stargazers_count") or 0),
            forks=int(payload.get("forks_count") or 0),
            watchers=int(payload.get("subscribers_count") or 0),
            open_issues=int(payload.get("open_issues_count") or 0),
            default_branch=payload.get("default_branch"),
            html_url=payload.get("html_url"),
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
            topics=list(payload.get("topics") or []),
            license=(
                {
                    "name": license_payload.get("name"),
                    "key": license_payload.get("key"),
                    "url": license_payload.get("url"),
                }
                if isinstance(license_payload, dict)
                else None
            ),
        )

    async def list_contributors(self, owner: str, repo: str, limit: int = 10) -> List[Contributor]:
        """List the top ``limit`` contributors by commit count."""
        payload = await self._run(self._get_json, f"repos/{owner}/{repo}/contributors", {"per_page": limit})
        contributors: List[Contributor] = []

        for item in payload or []:
            login = item.get("login")
            if not login:
                continue
            contributors.append(
                Contributor(
                    username=str(login),
                    contributions=int(item.get("contributions") or 0),
                    avatar_url=item.get("avatar_url"),
                    profile_url=item.get("html_url"),
                    account_type=item.get("type"),
                )
            )

        return contributors

    async def list_languages(self, owner: str, repo: str) -> Dict[str, int]:
        """Return the language breakdown in bytes."""
        payload = await self._run(self._get_json, f"repos/{owner}/{repo}/languages")
        if not isinstance(payload, dict):
            return {}
        return {str(language): int(size) for language, size in payload.items()}

    async def list_org_repositories(self, org: str, limit: int = 50) -> List[str]:
        """List up to ``limit`` repository names of ``org``, most recently updated first."""
        payload = await self._run(
            self._get_json,
            f"orgs/{org}/repos",
            {"per_page": min(limit, 100), "sort": "updated", "direction": "desc"},
        )
        if not isinstance(payload, list):
            raise UpstreamAPIError(f"GitHub API returned unexpected payload shape for organization {org}")
        names = [str(item["name"]) for item in payload if isinstance(item, dict) and item.get("name")]
        return names[:limit]

    # ------------------------------------------------------------------
    # Event sources
    # ------------------------------------------------------------------

    async def list_releases(self, owner: str, repo: str) -> List[Release]:
        """List releases, newest first."""
        payload = await self._run(self._paginate, f"repos/{owner}/{repo}/releases")
        return [
            Release(
                tag_name=str(item.get("tag_name") or ""),
                name=str(item.get("name") or item.get("tag_name") or ""),
                draft=bool(item.get("draft")),
                prerelease=bool(item.get("prerelease")),
                created_at=parse_github_datetime(item.get("created_at")),
                published_at=parse_github_datetime(item.get("published_at")),
            )
            for item in payload
        ]

    async def list_tags(self, owner: str, repo: str) -> List[Tag]:
        """List tags with the SHA of the commit each one points at."""
        payload = await self._run(self._paginate, f"repos/{owner}/{repo}/tags")
        tags: List[Tag] = []

        for item in payload:
            sha = (item.get("commit") or {}).get("sha")
            name = item.get("name")
            if not sha or not name:
                continue
            tags.append(Tag(name=str(name), sha=str(sha)))

        return tags

    async def get_commit(self, owner: str, repo: str, sha: str) -> Commit:
        """Fetch a single commit."""
        payload = await self._run(self._get_json, f"repos/{owner}/{repo}/commits/{sha}")
        if not isinstance(payload, dict):
            raise UpstreamAPIError(f"GitHub API returned unexpected payload shape for commit {sha}")
        return _normalize_commit(payload)

    async def list_commits(
        self,
        owner: str,
        repo: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        author: Optional[str] = None,
    ) -> List[Commit]:
        """List commits on the default branch, most recent first."""
        params: Dict[str, Any] = {}
        if since is not None:
            params["since"] = format_github_datetime(since)
        if until is not None:
            params["until"] = format_github_datetime(until)
        if author:
            params["author"] = author

        payload = await self._run(self._paginate, f"repos/{owner}/{repo}/commits", params)
        return [_normalize_commit(item) for item in payload]

    async def list_pull_requests(
        self,
        owner: str,
        repo: str,
        state: str = "all",
        created_after: Optional[datetime] = None,
    ) -> List[PullRequestEvent]:
        """List pull requests newest first.

        When ``created_after`` is given, pagination stops once a page ends
        with a pull request created before it.
        """
        stop: Optional[Callable[[Dict[str, Any]], bool]] = None
        if created_after is not None:
            cutoff = created_after

            def _created_before_cutoff(item: Dict[str, Any]) -> bool:
                created = parse_github_datetime(item.get("created_at"))
                return created is not None and created < cutoff

            stop = _created_before_cutoff

        params = {"state": state, "sort": "created", "direction": "desc"}
        payload = await self._run(self._paginate, f"repos/{owner}/{repo}/pulls", params, stop)
        pull_requests: List[PullRequestEvent] = []

        for item in payload:
            created_at = parse_github_datetime(item.get("created_at"))
            if item.get("number") is None or created_at is None:
                logger.debug("Skipping pull request without number or created_at", extra={"payload_id": item.get("id")})
                continue
            pull_requests.append(
                PullRequestEvent(
                    number=int(item["number"]),
                    created_at=created_at,
                    merged_at=parse_github_datetime(item.get("merged_at")),
                    closed_at=parse_github_datetime(item.get("closed_at")),
                    state=str(item.get("state") or ""),
                    author=(item.get("user") or {}).get("login"),
                )
            )

        return pull_requests

    async def list_issues(
        self,
        owner: str,
        repo: str,
        state: str = "all",
        since: Optional[datetime] = None,
    ) -> List[IssueEvent]:
        """List issue-shaped items; pull requests are kept but flagged."""
        params: Dict[str, Any] = {"state": state}
        if since is not None:
            params["since"] = format_github_datetime(since)

        payload = await self._run(self._paginate, f"repos/{owner}/{repo}/issues", params)
        issues: List[IssueEvent] = []

        for item in payload:
            created_at = parse_github_datetime(item.get("created_at"))
            if item.get("number") is None or created_at is None:
                continue
            labels = tuple(
                str(label.get("name") if isinstance(label, dict) else label).lower()
                for label in item.get("labels") or []
            )
            issues.append(
                IssueEvent(
                    number=int(item["number"]),
                    created_at=created_at,
                    closed_at=parse_github_datetime(item.get("closed_at")),
                    state=str(item.get("state") or ""),
                    is_pull_request="pull_request" in item,
                    author=(item.get("user") or {}).get("login"),
                    title=str(item.get("title") or ""),
                    body=str(item.get("body") or ""),
                    labels=labels,
                )
            )

        return issues


def _normalize_commit(item: Dict[str, Any]) -> Commit:
    details = item.get("commit") or {}
    return Commit(
        sha=str(item.get("sha") or ""),
        message=str(details.get("message") or ""),
        author_login=(item.get("author") or {}).get("login"),
        authored_at=parse_github_datetime((details.get("author") or {}).get("date")),
    )
