"""Reducers turning collected events into the four DORA indicators.

Every function here is pure: it depends only on its arguments and returns
a plain dict ready to be serialized. Empty input produces zeroed output
rather than an error.
"""

from __future__ import annotations

import bisect
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .classifiers import IssuePredicate, TextPredicate, is_failure_issue, is_failure_marker
from .errors import ComputationError
from .models import AnalysisWindow, DeploymentEvent, IssueEvent, PullRequestEvent

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


def _month_axis(start: datetime, end: datetime) -> List[Tuple[int, int]]:
    months: List[Tuple[int, int]] = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append((year, month))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def _frequency_status(total: int) -> str:
    if total == 0:
        return "No deployments found in analysis period"
    if total == 1:
        return "Single deployment in analysis period"
    return "Multiple deployments in analysis period"


def calculate_deployment_frequency(events: Sequence[DeploymentEvent], window: AnalysisWindow) -> Dict[str, Any]:
    """Compute deployment frequency scalars and calendar-aligned series.

    ``perDay`` has one bucket per day from the window start (an event exactly
    at the window end lands in the last bucket), ``perWeek`` groups those
    days into 7-day buckets, and ``perMonth`` counts per calendar month with
    ``months`` holding the ``YYYY-MM`` labels.
    """
    days = window.days_back
    if days <= 0:
        return {
            "total_deployments": 0,
            "analysis_period_days": 0,
            "total_frequency": 0.0,
            "frequency_per_day": "0.000",
            "frequency_per_week": "0.000",
            "frequency_per_month": "0.000",
            "perDay": [],
            "perWeek": [],
            "perMonth": [],
            "months": [],
            "status": _frequency_status(0),
        }

    in_window = [event for event in events if window.contains(event.date)]
    months = _month_axis(window.start, window.end)
    month_index = {key: position for position, key in enumerate(months)}

    per_day = [0] * days
    per_week = [0] * math.ceil(days / 7)
    per_month = [0] * len(months)

    for event in in_window:
        day_index = int((event.date - window.start).total_seconds() // SECONDS_PER_DAY)
        day_index = min(day_index, days - 1)
        per_day[day_index] += 1
        per_week[day_index // 7] += 1
        per_month[month_index[(event.date.year, event.date.month)]] += 1

    total = len(in_window)
    return {
        "total_deployments": total,
        "analysis_period_days": days,
        "total_frequency": total / days,
        "frequency_per_day": f"{total / days:.3f}",
        "frequency_per_week": f"{total / len(per_week):.3f}",
        "frequency_per_month": f"{total / len(per_month):.3f}" if per_month else "0.000",
        "perDay": per_day,
        "perWeek": per_week,
        "perMonth": per_month,
        "months": [f"{year}-{month:02d}" for year, month in months],
        "status": _frequency_status(total),
    }


def _summarize_days(samples: List[float]) -> Dict[str, str]:
    if not samples:
        return {"average_days": "0.00", "min_days": "0.00", "max_days": "0.00"}
    return {
        "average_days": f"{sum(samples) / len(samples):.2f}",
        "min_days": f"{min(samples):.2f}",
        "max_days": f"{max(samples):.2f}",
    }


def _elapsed_days(start: datetime, end: datetime, **context: Any) -> Optional[float]:
    duration = (end - start).total_seconds() / SECONDS_PER_DAY
    if duration < 0:
        logger.debug("Skipping negative duration", extra={**context, "duration_days": duration})
        return None
    return duration


def calculate_lead_time(pull_requests: Sequence[PullRequestEvent]) -> Dict[str, Any]:
    """Compute created-to-merged lead time in days over merged pull requests.

    Pull requests without ``merged_at`` are left out entirely.
    """
    samples: List[float] = []
    for pr in pull_requests:
        if pr.merged_at is None:
            continue
        lead_days = _elapsed_days(pr.created_at, pr.merged_at, pr_number=pr.number)
        if lead_days is not None:
            samples.append(lead_days)

    result: Dict[str, Any] = _summarize_days(samples)
    result["total_prs_analyzed"] = len(samples)
    result["status"] = "Valid lead times calculated" if samples else "No merged pull requests found"
    return result


def calculate_mttr(incidents: Sequence[IssueEvent]) -> Dict[str, Any]:
    """Compute mean time to recovery in days over resolved incidents."""
    samples: List[float] = []
    for incident in incidents:
        if incident.closed_at is None:
            continue
        recovery_days = _elapsed_days(incident.created_at, incident.closed_at, issue_number=incident.number)
        if recovery_days is not None:
            samples.append(recovery_days)

    result: Dict[str, Any] = _summarize_days(samples)
    result["total_incidents_analyzed"] = len(samples)
    result["status"] = "Valid MTTR calculated" if samples else "No resolved incidents found"
    return result


def _failure_confidence(total_deployments: int) -> str:
    if total_deployments >= 5:
        return "high"
    if total_deployments >= 2:
        return "medium"
    return "low"


def calculate_change_failure_rate(
    deployments: Sequence[DeploymentEvent],
    issues: Sequence[IssueEvent],
    failure_window_hours: float = 72,
    failure_marker: TextPredicate = is_failure_marker,
    failure_issue: IssuePredicate = is_failure_issue,
) -> Dict[str, Any]:
    """Compute the share of deployments that led to a failure.

    A deployment fails when its label carries a failure marker (hotfix,
    revert, rollback) or when a failure-like issue is opened within
    ``failure_window_hours`` after it. Each deployment counts at most once.
    """
    if failure_window_hours < 0:
        raise ComputationError("Failure window must not be negative.")

    failure_times = sorted(
        issue.created_at for issue in issues if not issue.is_pull_request and failure_issue(issue)
    )
    window = timedelta(hours=failure_window_hours)

    marker_failures = 0
    incident_failures = 0
    for deployment in deployments:
        if failure_marker(deployment.label):
            marker_failures += 1
            continue
        position = bisect.bisect_left(failure_times, deployment.date)
        if position < len(failure_times) and failure_times[position] <= deployment.date + window:
            incident_failures += 1

    total = len(deployments)
    failures = marker_failures + incident_failures
    return {
        "failure_rate": f"{failures / total:.3f}" if total else "0.000",
        "confidence": _failure_confidence(total),
        "total_deployments": total,
        "deployment_failures": failures,
        "failure_sources": {"markers": marker_failures, "incidents": incident_failures},
        "failure_issues_considered": len(failure_times),
        "failure_window_hours": failure_window_hours,
        "status": "Change failure rate calculated" if total else "No deployments found in analysis period",
    }


def calculate_trend(series: Sequence[float]) -> str:
    """Compare the last three values of a series with the three before them."""
    if len(series) < 2:
        return "insufficient data"

    recent = sum(series[-3:])
    previous = sum(series[-6:-3])

    if recent > previous * 1.2:
        return "increasing"
    if recent < previous * 0.8:
        return "decreasing"
    return "stable"
