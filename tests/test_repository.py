"""Tests for repository metadata and member activity collection."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dorametrics.errors import UpstreamAPIError, ValidationError
from dorametrics.models import Contributor, RepositoryRecord
from dorametrics.repository import (
    analyze_languages,
    calculate_activity_score,
    collect_member_activity,
    collect_team_activity,
    get_repository_info,
)
from fakes import NOW, FakeGitHubClient, FakePool, days_ago, make_commit, make_issue, make_pr


def _record() -> RepositoryRecord:
    return RepositoryRecord(
        name="repo",
        full_name="owner/repo",
        description="A repository",
        language="Go",
        stars=42,
        forks=7,
        watchers=3,
        open_issues=5,
        default_branch="main",
        html_url="https://github.com/owner/repo",
        created_at="2020-01-01T00:00:00Z",
        updated_at="2026-03-01T00:00:00Z",
        topics=["dora"],
    )


def _activity_client() -> FakeGitHubClient:
    return FakeGitHubClient(
        commits=[
            make_commit("c1", "recent work", days_ago(2), author="alice"),
            make_commit("c2", "older work", days_ago(45), author="alice"),
            make_commit("c3", "someone else", days_ago(1), author="bob"),
        ],
        pull_requests=[
            make_pr(1, days_ago(10), merged=days_ago(9), author="alice"),
            make_pr(2, days_ago(8), merged=None, state="open", author="alice"),
            make_pr(3, days_ago(7), merged=None, state="closed", author="alice"),
            make_pr(4, days_ago(6), merged=days_ago(5), author="bob"),
        ],
        issues=[
            make_issue(10, days_ago(20), closed=days_ago(19), author="alice"),
            make_issue(11, days_ago(3), author="alice"),
            make_issue(12, days_ago(3), author="alice", is_pull_request=True),
            make_issue(13, days_ago(3), author="bob"),
        ],
    )


@pytest.mark.asyncio
async def test_collect_member_activity_counts_only_the_members_items():
    """Verify PRs/issues are filtered to the author and PR-marked issues are excluded."""
    pool = FakePool(_activity_client())

    stats = await collect_member_activity("owner", "repo", "alice", pool, now=NOW)

    assert stats["commits"] == {"total": 2, "recent": 1}
    assert stats["pullRequests"] == {"total": 3, "merged": 1, "open": 1, "closed": 1}
    assert stats["issues"] == {"total": 2, "open": 1, "closed": 1}
    assert stats["activityScore"] == 2 * 1 + 3 * 3 + 2 * 2
    assert stats["lastActivity"] == days_ago(2).isoformat()
    assert "error" not in stats


@pytest.mark.asyncio
async def test_collect_member_activity_returns_zeroed_stats_on_failure():
    """Verify an upstream failure yields zeroed stats with an error instead of raising."""
    client = FakeGitHubClient(failures={"list_commits": UpstreamAPIError("GitHub API rate limit exceeded", 403)})

    stats = await collect_member_activity("owner", "repo", "alice", FakePool(client), now=NOW)

    assert stats["commits"] == {"total": 0, "recent": 0}
    assert stats["pullRequests"] == {"total": 0, "merged": 0, "open": 0, "closed": 0}
    assert stats["issues"] == {"total": 0, "open": 0, "closed": 0}
    assert stats["activityScore"] == 0
    assert stats["lastActivity"] is None
    assert "rate limit" in stats["error"]


@pytest.mark.asyncio
async def test_collect_member_activity_absorbs_unexpected_errors():
    """Verify even non-API exceptions are converted into the error result."""
    client = FakeGitHubClient(failures={"list_issues": KeyError("user")})

    stats = await collect_member_activity("owner", "repo", "alice", FakePool(client), now=NOW)

    assert stats["activityScore"] == 0
    assert stats["error"]


@pytest.mark.asyncio
async def test_collect_team_activity_keys_results_by_username():
    """Verify team collection returns one entry per unique member."""
    pool = FakePool(_activity_client())

    team = await collect_team_activity("owner", "repo", ["alice", "bob", "alice"], pool, concurrency=2)

    assert set(team) == {"alice", "bob"}
    assert team["bob"]["commits"]["total"] == 1
    assert team["bob"]["pullRequests"]["merged"] == 1


def test_calculate_activity_score_uses_fixed_weights():
    """Verify commits weigh 1, pull requests 3 and issues 2."""
    assert calculate_activity_score(4, 2, 3) == 4 + 6 + 6


@pytest.mark.asyncio
async def test_get_repository_info_merges_record_contributors_and_languages():
    """Verify the metadata payload combines the three parallel reads."""
    client = FakeGitHubClient(
        repository=_record(),
        contributors=[Contributor(username="alice", contributions=120, profile_url="https://github.com/alice")],
        languages={"Python": 3000, "Go": 1000},
    )

    info = await get_repository_info("https://github.com/owner/repo", FakePool(client))

    assert info["full_name"] == "owner/repo"
    assert info["stars"] == 42
    assert info["forks"] == 7
    assert info["open_issues"] == 5
    assert info["primary_language"] == "Python"
    assert info["languages"] == {"Python": 3000, "Go": 1000}
    assert info["language_breakdown"][0] == {"language": "Python", "bytes": 3000, "percentage": "75.00%"}
    assert info["contributors"][0]["username"] == "alice"
    assert info["total_contributors"] == 1


@pytest.mark.asyncio
async def test_get_repository_info_survives_contributor_failure():
    """Verify a failed contributor listing degrades to an empty list."""
    client = FakeGitHubClient(
        repository=_record(),
        failures={"list_contributors": UpstreamAPIError("GitHub API access denied", 403)},
    )

    info = await get_repository_info("https://github.com/owner/repo", FakePool(client))

    assert info["contributors"] == []
    assert info["primary_language"] == "Go"


@pytest.mark.asyncio
async def test_get_repository_info_propagates_missing_repository():
    """Verify a 404 on the repository record reaches the caller."""
    client = FakeGitHubClient(failures={"get_repository": UpstreamAPIError("GitHub API resource Not Found", 404)})

    with pytest.raises(UpstreamAPIError, match="Not Found"):
        await get_repository_info("https://github.com/owner/repo", FakePool(client))


@pytest.mark.asyncio
async def test_get_repository_info_validates_url_before_fetching():
    """Verify malformed URLs fail fast without touching the API."""
    client = FakeGitHubClient()
    pool = FakePool(client)

    with pytest.raises(ValidationError):
        await get_repository_info("https://gitlab.com/owner/repo", pool)

    assert pool.clients_issued == 0


def test_analyze_languages_handles_empty_input():
    """Verify an empty language map produces an empty breakdown."""
    assert analyze_languages({}) == []
