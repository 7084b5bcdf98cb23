"""Repository metadata and per-member activity statistics."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .concurrency import concurrent_map
from .credentials import CredentialPool
from .errors import UpstreamAPIError
from .models import Contributor, MemberActivityStats, RepositoryRef
from .urls import parse_repository_url

logger = logging.getLogger(__name__)

TOP_CONTRIBUTORS_LIMIT = 10
RECENT_ACTIVITY_DAYS = 30

COMMIT_WEIGHT = 1
PULL_REQUEST_WEIGHT = 3
ISSUE_WEIGHT = 2


def analyze_languages(languages: Dict[str, int]) -> List[Dict[str, Any]]:
    """Return languages sorted by size with their share of the codebase."""
    total_bytes = sum(languages.values())
    breakdown = [
        {
            "language": language,
            "bytes": size,
            "percentage": f"{size / total_bytes * 100:.2f}%" if total_bytes else "0%",
        }
        for language, size in languages.items()
    ]
    return sorted(breakdown, key=lambda entry: entry["bytes"], reverse=True)


async def _fetch_contributors(client, ref: RepositoryRef) -> List[Contributor]:
    try:
        return await client.list_contributors(ref.owner, ref.repo, limit=TOP_CONTRIBUTORS_LIMIT)
    except UpstreamAPIError as exc:
        logger.warning(
            "Could not fetch contributors; continuing without them",
            extra={"repository": ref.full_name, "error": str(exc)},
        )
        return []


async def get_repository_info(url: str, pool: CredentialPool) -> Dict[str, Any]:
    """Fetch descriptive metadata for the repository at ``url``.

    The repository record, top contributors and language breakdown are read
    in parallel. A failed contributor listing degrades to an empty list;
    any other upstream failure propagates.

    Raises:
        ValidationError: If ``url`` is not a GitHub repository URL.
        UpstreamAPIError: If the repository record or languages cannot be read.
    """
    ref = parse_repository_url(url)
    client = pool.get_client()

    record, contributors, languages = await asyncio.gather(
        client.get_repository(ref.owner, ref.repo),
        _fetch_contributors(client, ref),
        client.list_languages(ref.owner, ref.repo),
    )

    breakdown = analyze_languages(languages)
    primary_language = breakdown[0]["language"] if breakdown else record.language

    logger.info(
        "Fetched repository information",
        extra={"repository": ref.full_name, "contributors": len(contributors), "languages": len(languages)},
    )

    return {
        "name": record.name,
        "full_name": record.full_name,
        "description": record.description,
        "url": record.html_url or ref.url,
        "default_branch": record.default_branch,
        "primary_language": primary_language,
        "stars": record.stars,
        "forks": record.forks,
        "watchers": record.watchers,
        "open_issues": record.open_issues,
        "contributors": [
            {
                "username": contributor.username,
                "contributions": contributor.contributions,
                "avatar_url": contributor.avatar_url,
                "profile_url": contributor.profile_url,
                "account_type": contributor.account_type,
            }
            for contributor in contributors
        ],
        "total_contributors": len(contributors),
        "languages": languages,
        "language_breakdown": breakdown,
        "topics": record.topics,
        "license": record.license,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "fetched_at": datetime.now(timezone.utc).isoformat(),
    }


def calculate_activity_score(commits: int, pull_requests: int, issues: int) -> int:
    """Weighted activity score: commits x1, pull requests x3, issues x2."""
    return commits * COMMIT_WEIGHT + pull_requests * PULL_REQUEST_WEIGHT + issues * ISSUE_WEIGHT


def _empty_activity(error: str, collected_at: datetime) -> MemberActivityStats:
    return {
        "commits": {"total": 0, "recent": 0},
        "pullRequests": {"total": 0, "merged": 0, "open": 0, "closed": 0},
        "issues": {"total": 0, "open": 0, "closed": 0},
        "activityScore": 0,
        "lastActivity": None,
        "collectedAt": collected_at.isoformat(),
        "error": error,
    }


async def collect_member_activity(
    owner: str,
    repo: str,
    username: str,
    pool: CredentialPool,
    now: Optional[datetime] = None,
) -> MemberActivityStats:
    """Roll up one member's commits, pull requests and issues in a repository.

    Never raises: any failure is logged and returned as zeroed counts with an
    ``error`` message, so one member cannot abort a team-wide collection.
    """
    collected_at = now or datetime.now(timezone.utc)

    try:
        client = pool.get_client()
        commits = await client.list_commits(owner, repo, author=username)
        pull_requests = await client.list_pull_requests(owner, repo, state="all")
        issues = await client.list_issues(owner, repo, state="all")
    except Exception as exc:  # noqa: BLE001 - member stats must never fail the caller
        logger.warning(
            "Could not collect member activity",
            extra={"repository": f"{owner}/{repo}", "username": username, "error": str(exc)},
        )
        return _empty_activity(str(exc), collected_at)

    recent_cutoff = collected_at - timedelta(days=RECENT_ACTIVITY_DAYS)
    user_prs = [pr for pr in pull_requests if pr.author == username]
    user_issues = [issue for issue in issues if issue.author == username and not issue.is_pull_request]
    commit_dates = [commit.authored_at for commit in commits if commit.authored_at is not None]

    stats: MemberActivityStats = {
        "commits": {
            "total": len(commits),
            "recent": sum(1 for date in commit_dates if date >= recent_cutoff),
        },
        "pullRequests": {
            "total": len(user_prs),
            "merged": sum(1 for pr in user_prs if pr.merged_at is not None),
            "open": sum(1 for pr in user_prs if pr.state == "open"),
            "closed": sum(1 for pr in user_prs if pr.state == "closed" and pr.merged_at is None),
        },
        "issues": {
            "total": len(user_issues),
            "open": sum(1 for issue in user_issues if issue.state == "open"),
            "closed": sum(1 for issue in user_issues if issue.state == "closed"),
        },
        "activityScore": calculate_activity_score(len(commits), len(user_prs), len(user_issues)),
        "lastActivity": max(commit_dates).isoformat() if commit_dates else None,
        "collectedAt": collected_at.isoformat(),
    }

    logger.info(
        "Collected member activity",
        extra={"repository": f"{owner}/{repo}", "username": username, "activity_score": stats["activityScore"]},
    )
    return stats


async def collect_team_activity(
    owner: str,
    repo: str,
    usernames: Sequence[str],
    pool: CredentialPool,
    concurrency: int = 3,
) -> Dict[str, MemberActivityStats]:
    """Collect activity for several members with bounded concurrency.

    Results come back in completion order, so they are keyed by username.
    """

    async def _collect(username: str) -> Tuple[str, MemberActivityStats]:
        return username, await collect_member_activity(owner, repo, username, pool)

    pairs = await concurrent_map(list(dict.fromkeys(usernames)), concurrency, _collect)
    return dict(pairs)
