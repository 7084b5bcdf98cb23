"""Event collectors: fetch GitHub history and normalize it into window-scoped events.

Each collector takes its own client so the facade can run all four
concurrently, each on a different credential.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from .classifiers import TextPredicate, is_deploy_commit
from .concurrency import concurrent_map
from .models import (
    AnalysisWindow,
    Commit,
    DeploymentEvent,
    IssueEvent,
    PullRequestEvent,
    RepositoryRef,
    Tag,
)

logger = logging.getLogger(__name__)

TAG_LOOKUP_CONCURRENCY = 4
DEFAULT_MAX_TAG_LOOKUPS = 30


async def collect_release_tag_deployments(
    client,
    ref: RepositoryRef,
    window: AnalysisWindow,
    max_tag_lookups: int = DEFAULT_MAX_TAG_LOOKUPS,
) -> List[DeploymentEvent]:
    """Collect release and tag deployment events inside ``window``.

    Draft and pre-releases are ignored. A tag that backs any release (counted
    or not) is never counted as a tag of its own. The tag listing carries no
    dates, so each remaining tag (up to ``max_tag_lookups``) is dated by
    fetching its commit; a failed lookup drops only that tag.
    """
    releases, tags = await asyncio.gather(
        client.list_releases(ref.owner, ref.repo),
        client.list_tags(ref.owner, ref.repo),
    )

    events: List[DeploymentEvent] = []
    release_tags = {release.tag_name for release in releases}
    for release in releases:
        if release.draft or release.prerelease:
            continue
        released_at = release.published_at or release.created_at
        if window.contains(released_at):
            events.append(DeploymentEvent(date=released_at, kind="release", label=release.name or release.tag_name))

    candidates = [tag for tag in tags if tag.name not in release_tags][:max_tag_lookups]

    async def _date_tag(tag: Tag) -> Optional[DeploymentEvent]:
        commit = await client.get_commit(ref.owner, ref.repo, tag.sha)
        if not window.contains(commit.authored_at):
            return None
        return DeploymentEvent(date=commit.authored_at, kind="tag", label=tag.name)

    tag_events = await concurrent_map(candidates, TAG_LOOKUP_CONCURRENCY, _date_tag)
    events.extend(tag_events)

    logger.info(
        "Collected release and tag deployments",
        extra={
            "repository": ref.full_name,
            "releases_fetched": len(releases),
            "tags_fetched": len(tags),
            "release_events": len(events) - len(tag_events),
            "tag_events": len(tag_events),
        },
    )
    return sorted(events, key=lambda event: event.date)


async def collect_commits(client, ref: RepositoryRef, window: AnalysisWindow) -> List[Commit]:
    """Collect default-branch commits authored inside ``window``."""
    commits = await client.list_commits(ref.owner, ref.repo, since=window.start, until=window.end)
    in_window = [commit for commit in commits if window.contains(commit.authored_at)]
    logger.info(
        "Collected commits",
        extra={"repository": ref.full_name, "fetched": len(commits), "in_window": len(in_window)},
    )
    return in_window


async def collect_pull_requests(client, ref: RepositoryRef, window: AnalysisWindow) -> List[PullRequestEvent]:
    """Collect open and closed pull requests created inside ``window``."""
    pull_requests = await client.list_pull_requests(ref.owner, ref.repo, state="all", created_after=window.start)
    in_window = [pr for pr in pull_requests if window.contains(pr.created_at)]
    logger.info(
        "Collected pull requests",
        extra={
            "repository": ref.full_name,
            "fetched": len(pull_requests),
            "in_window": len(in_window),
            "merged": sum(1 for pr in in_window if pr.merged_at is not None),
        },
    )
    return in_window


async def collect_issues(client, ref: RepositoryRef, window: AnalysisWindow) -> List[IssueEvent]:
    """Collect issues (not pull requests) created inside ``window``."""
    items = await client.list_issues(ref.owner, ref.repo, state="all", since=window.start)
    issues = [item for item in items if not item.is_pull_request and window.contains(item.created_at)]
    logger.info(
        "Collected issues",
        extra={"repository": ref.full_name, "fetched": len(items), "in_window": len(issues)},
    )
    return issues


def merge_deploy_commits(
    release_tag_events: Sequence[DeploymentEvent],
    commits: Sequence[Commit],
    deploy_commit: TextPredicate = is_deploy_commit,
) -> List[DeploymentEvent]:
    """Add deploy-commit events for UTC days that have no release or tag.

    Commit messages are only a fallback signal: on a day that already has a
    release or tag, matching commits add nothing. Coverage is decided per UTC
    calendar day, not per ``perDay`` bucket of the frequency reducer (those
    start at the window start, which is rarely midnight), so a commit can be
    suppressed by a release earlier or later on the same UTC date even when
    the two fall into neighbouring buckets.
    """
    covered_days = {event.date.date() for event in release_tag_events}
    merged = list(release_tag_events)

    for commit in commits:
        if commit.authored_at is None or not deploy_commit(commit.message):
            continue
        if commit.authored_at.date() in covered_days:
            continue
        headline = commit.message.splitlines()[0] if commit.message else commit.sha[:7]
        merged.append(DeploymentEvent(date=commit.authored_at, kind="deploy-commit", label=headline))

    return sorted(merged, key=lambda event: event.date)
