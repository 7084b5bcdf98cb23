"""Aggregation facade: fetch repository history and reduce it into DORA metrics."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from .classifiers import (
    IssuePredicate,
    TextPredicate,
    incident_label_predicate,
    is_deploy_commit,
    is_failure_issue,
    is_failure_marker,
)
from .collectors import (
    DEFAULT_MAX_TAG_LOOKUPS,
    collect_commits,
    collect_issues,
    collect_pull_requests,
    collect_release_tag_deployments,
    merge_deploy_commits,
)
from .concurrency import concurrent_map
from .config import DEFAULT_FAILURE_WINDOW_HOURS, Config
from .credentials import CredentialPool
from .models import (
    AnalysisWindow,
    Commit,
    DeploymentEvent,
    IssueEvent,
    MetricsResult,
    PullRequestEvent,
    RepositoryRef,
)
from .reducers import (
    calculate_change_failure_rate,
    calculate_deployment_frequency,
    calculate_lead_time,
    calculate_mttr,
)
from .repository import get_repository_info
from .urls import parse_repository_url

logger = logging.getLogger(__name__)

DEFAULT_PERIODS = (7, 30, 90)


@dataclass
class MetricsPolicy:
    """Classification heuristics and thresholds applied during reduction."""

    is_deploy_commit: TextPredicate = is_deploy_commit
    is_failure_marker: TextPredicate = is_failure_marker
    is_failure_issue: IssuePredicate = is_failure_issue
    is_incident: IssuePredicate = field(default_factory=lambda: incident_label_predicate(()))
    failure_window_hours: float = DEFAULT_FAILURE_WINDOW_HOURS
    max_tag_lookups: int = DEFAULT_MAX_TAG_LOOKUPS

    @classmethod
    def from_config(cls, config: Config) -> "MetricsPolicy":
        return cls(
            is_incident=incident_label_predicate(config.incident_labels),
            failure_window_hours=config.failure_window_hours,
        )


@dataclass
class CollectedEvents:
    """Normalized events fetched for one repository and window."""

    release_tag_events: List[DeploymentEvent]
    commits: List[Commit]
    pull_requests: List[PullRequestEvent]
    issues: List[IssueEvent]

    def restrict(self, window: AnalysisWindow) -> "CollectedEvents":
        """Return only the events that fall inside ``window``."""
        return CollectedEvents(
            release_tag_events=[event for event in self.release_tag_events if window.contains(event.date)],
            commits=[commit for commit in self.commits if window.contains(commit.authored_at)],
            pull_requests=[pr for pr in self.pull_requests if window.contains(pr.created_at)],
            issues=[issue for issue in self.issues if window.contains(issue.created_at)],
        )


async def collect_events(
    ref: RepositoryRef,
    window: AnalysisWindow,
    pool: CredentialPool,
    policy: MetricsPolicy,
) -> CollectedEvents:
    """Run the four collectors concurrently, each on its own credential."""
    release_tag_events, commits, pull_requests, issues = await asyncio.gather(
        collect_release_tag_deployments(pool.get_client(), ref, window, max_tag_lookups=policy.max_tag_lookups),
        collect_commits(pool.get_client(), ref, window),
        collect_pull_requests(pool.get_client(), ref, window),
        collect_issues(pool.get_client(), ref, window),
    )
    return CollectedEvents(
        release_tag_events=release_tag_events,
        commits=commits,
        pull_requests=pull_requests,
        issues=issues,
    )


def build_metrics_result(
    ref: RepositoryRef,
    window: AnalysisWindow,
    collected: CollectedEvents,
    policy: MetricsPolicy,
    fetched_at: Optional[datetime] = None,
) -> MetricsResult:
    """Reduce collected events into the aggregate metrics result for ``window``."""
    events = collected.restrict(window)
    deployments = merge_deploy_commits(events.release_tag_events, events.commits, policy.is_deploy_commit)
    incidents = [issue for issue in events.issues if policy.is_incident(issue)]

    return {
        "repository": {
            "name": ref.repo,
            "owner": ref.owner,
            "full_name": ref.full_name,
            "url": ref.url,
        },
        "analysis_period": {
            "days_back": window.days_back,
            "start_date": window.start.isoformat(),
            "end_date": window.end.isoformat(),
        },
        "deployment_frequency": calculate_deployment_frequency(deployments, window),
        "lead_time": calculate_lead_time(events.pull_requests),
        "mttr": calculate_mttr(incidents),
        "change_failure_rate": calculate_change_failure_rate(
            deployments,
            events.issues,
            failure_window_hours=policy.failure_window_hours,
            failure_marker=policy.is_failure_marker,
            failure_issue=policy.is_failure_issue,
        ),
        "data_summary": {
            "releases_count": sum(1 for event in deployments if event.kind == "release"),
            "tags_count": sum(1 for event in deployments if event.kind == "tag"),
            "deploy_commits_count": sum(1 for event in deployments if event.kind == "deploy-commit"),
            "commits_count": len(events.commits),
            "pull_requests_count": len(events.pull_requests),
            "issues_count": len(events.issues),
            "incidents_count": len(incidents),
            "open_incidents_count": sum(1 for incident in incidents if incident.closed_at is None),
            "analysis_period_days": window.days_back,
            "fetched_at": (fetched_at or datetime.now(timezone.utc)).isoformat(),
        },
    }


async def get_dora_metrics(
    url: str,
    pool: CredentialPool,
    days_back: int = 30,
    policy: Optional[MetricsPolicy] = None,
    end: Optional[datetime] = None,
) -> MetricsResult:
    """Compute the four DORA metrics for the repository at ``url``.

    Raises:
        ValidationError: If ``url`` is not a GitHub repository URL.
        ConfigurationError: If ``days_back`` is less than 1.
        UpstreamAPIError: If any collector fails; no partial result is returned.
    """
    ref = parse_repository_url(url)
    window = AnalysisWindow.ending_now(days_back, end)
    active_policy = policy or MetricsPolicy()

    logger.info("Computing DORA metrics", extra={"repository": ref.full_name, "days_back": days_back})
    try:
        collected = await collect_events(ref, window, pool, active_policy)
    except Exception as exc:
        logger.error("DORA metrics collection failed", extra={"repository": ref.full_name, "error": str(exc)})
        raise

    return build_metrics_result(ref, window, collected, active_policy)


async def get_dora_metrics_by_period(
    url: str,
    pool: CredentialPool,
    periods: Sequence[int] = DEFAULT_PERIODS,
    policy: Optional[MetricsPolicy] = None,
    end: Optional[datetime] = None,
) -> Dict[str, MetricsResult]:
    """Compute metrics for several look-back periods from a single fetch.

    History is fetched once for the longest period and each shorter period
    is reduced from the matching sub-window. Keys look like ``"30d"``.
    """
    ref = parse_repository_url(url)
    active_policy = policy or MetricsPolicy()
    end_at = end or datetime.now(timezone.utc)
    windows = [AnalysisWindow.ending_now(days, end_at) for days in periods]
    if not windows:
        return {}
    widest = max(windows, key=lambda window: window.days_back)

    collected = await collect_events(ref, widest, pool, active_policy)
    fetched_at = datetime.now(timezone.utc)
    return {
        f"{window.days_back}d": build_metrics_result(ref, window, collected, active_policy, fetched_at)
        for window in windows
    }


async def get_dora_metrics_batch(
    urls: Sequence[str],
    pool: CredentialPool,
    days_back: int = 30,
    concurrency: int = 2,
    policy: Optional[MetricsPolicy] = None,
) -> Dict[str, Any]:
    """Compute metrics for many repositories; one failure does not stop the rest."""
    position = {url: index for index, url in enumerate(urls)}

    async def _analyze(url: str) -> Dict[str, Any]:
        try:
            data = await get_dora_metrics(url, pool, days_back=days_back, policy=policy)
        except Exception as exc:  # noqa: BLE001 - recorded per repository
            return {"url": url, "success": False, "error": str(exc)}
        return {"url": url, "success": True, "data": data}

    outcomes = await concurrent_map(list(position), concurrency, _analyze)
    outcomes.sort(key=lambda outcome: position[outcome["url"]])

    results = [outcome for outcome in outcomes if outcome["success"]]
    errors = [outcome for outcome in outcomes if not outcome["success"]]
    total = len(position)

    return {
        "summary": {
            "total": total,
            "successful": len(results),
            "failed": len(errors),
            "success_rate": f"{len(results) / total * 100:.2f}%" if total else "0.00%",
        },
        "results": results,
        "errors": errors,
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }


async def get_organization_dora_metrics(
    org: str,
    pool: CredentialPool,
    max_repos: int = 50,
    days_back: int = 30,
    concurrency: int = 2,
    policy: Optional[MetricsPolicy] = None,
) -> Dict[str, Any]:
    """Compute metrics for up to ``max_repos`` of an organization's repositories.

    Repositories are taken most recently updated first and analyzed through
    :func:`get_dora_metrics_batch`.

    Raises:
        UpstreamAPIError: If the organization's repositories cannot be listed.
    """
    client = pool.get_client()
    try:
        names = await client.list_org_repositories(org, limit=max_repos)
    except Exception as exc:
        logger.error("Could not list organization repositories", extra={"organization": org, "error": str(exc)})
        raise

    logger.info("Computing organization DORA metrics", extra={"organization": org, "repositories": len(names)})
    urls = [f"https://github.com/{org}/{name}" for name in names]
    return await get_dora_metrics_batch(urls, pool, days_back=days_back, concurrency=concurrency, policy=policy)


async def analyze_repository(
    url: str,
    pool: CredentialPool,
    days_back: int = 30,
    policy: Optional[MetricsPolicy] = None,
) -> Dict[str, Any]:
    """Fetch repository metadata and DORA metrics concurrently."""
    metadata, metrics = await asyncio.gather(
        get_repository_info(url, pool),
        get_dora_metrics(url, pool, days_back=days_back, policy=policy),
    )
    return {"metadata": metadata, "metrics": metrics}
