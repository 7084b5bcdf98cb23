"""Plain-text formatting of computed metrics for terminals and chat clients."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .models import MemberActivityStats, MetricsResult
from .reducers import calculate_trend


def _join(values: Any) -> str:
    return ", ".join(str(value) for value in values or [])


def format_metrics_report(metrics: MetricsResult, repo_info: Optional[Dict[str, Any]] = None) -> str:
    """Generate a human-readable DORA report.

    The deployment frequency line has the stable shape
    ``Freq: <d>/day | <w>/week | <m>/month`` so downstream consumers can
    parse it back out.
    """
    repository = metrics.get("repository", {})
    deployment = metrics.get("deployment_frequency", {})
    lead_time = metrics.get("lead_time", {})
    mttr = metrics.get("mttr", {})
    cfr = metrics.get("change_failure_rate", {})
    period = metrics.get("analysis_period", {})

    title = (repo_info or {}).get("full_name") or repository.get("full_name", "unknown")

    lines = [
        f"Repository: {title}",
        f"DORA Report ({period.get('days_back', 0)} days)",
        "",
        "1) Deployment Frequency",
        f"   Total: {deployment.get('total_deployments', 0)} deployments",
        f"   Freq: {deployment.get('frequency_per_day', '0.000')}/day"
        f" | {deployment.get('frequency_per_week', '0.000')}/week"
        f" | {deployment.get('frequency_per_month', '0.000')}/month",
        f"   Per Week: [{_join(deployment.get('perWeek'))}]",
        f"   Weekly Trend: {calculate_trend(deployment.get('perWeek') or [])}",
        "",
        "2) Lead Time for Changes",
        f"   Average: {lead_time.get('average_days', '0.00')} days"
        f" (min {lead_time.get('min_days', '0.00')}, max {lead_time.get('max_days', '0.00')})",
        f"   PRs Analyzed: {lead_time.get('total_prs_analyzed', 0)}",
        "",
        "3) Mean Time to Recovery",
        f"   Average: {mttr.get('average_days', '0.00')} days"
        f" (min {mttr.get('min_days', '0.00')}, max {mttr.get('max_days', '0.00')})",
        f"   Incidents: {mttr.get('total_incidents_analyzed', 0)}",
        "",
        "4) Change Failure Rate",
        f"   Rate: {cfr.get('failure_rate', '0.000')}",
        f"   Confidence: {cfr.get('confidence', 'low')}",
        f"   Failures: {cfr.get('deployment_failures', 0)}/{cfr.get('total_deployments', 0)}",
    ]

    if repo_info:
        lines.extend(
            [
                "",
                "Repository Stats",
                f"   Language: {repo_info.get('primary_language')}",
                f"   Stars: {repo_info.get('stars', 0)}",
                f"   Contributors: {repo_info.get('total_contributors', 0)}",
            ]
        )

    return "\n".join(lines)


def format_member_activity(username: str, stats: MemberActivityStats) -> str:
    """One-line activity summary for a repository member."""
    if stats.get("error"):
        return f"{username}: unavailable ({stats['error']})"

    commits = stats["commits"]
    pull_requests = stats["pullRequests"]
    issues = stats["issues"]
    return (
        f"{username}: score={stats['activityScore']}"
        f" | commits={commits['total']} (recent {commits['recent']})"
        f" | PRs={pull_requests['total']} (merged {pull_requests['merged']})"
        f" | issues={issues['total']}"
    )
