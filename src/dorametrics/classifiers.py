"""Heuristic predicates for classifying deployments, failures and incidents.

Every heuristic is a plain callable so the reducers can be handed a
different policy without code changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, List

from .models import IssueEvent

TextPredicate = Callable[[str], bool]
IssuePredicate = Callable[[IssueEvent], bool]

DEPLOY_COMMIT_KEYWORDS = ("deploy", "release", "production", "hotfix", "emergency")
FAILURE_MARKER_KEYWORDS = ("hotfix", "revert", "rollback")

PRIMARY_FAILURE_INDICATORS = (
    "bug", "incident", "error", "exception", "crash", "failure", "outage",
    "downtime", "broken", "fix", "hotfix", "patch", "rollback", "revert",
)
SECONDARY_FAILURE_INDICATORS = (
    "auth", "secure", "permission", "access", "sanitiz", "validate", "input",
    "csrf", "xss", "injection", "overflow", "race", "deadlock", "memory leak",
)
DEPLOYMENT_CONTEXT = (
    "deploy", "release", "production", "rollback", "hotfix", "emergency deploy",
    "after deploy", "in production", "caused by deploy", "deployment issue",
)
EXCLUDED_ISSUE_PATTERNS = (
    "documentation", "docs", "enhancement", "feature", "request", "question",
    "discussion", "proposal", "idea", "suggestion", "help wanted", "good first issue",
)

FAILURE_ISSUE_MIN_SCORE = 8


def keyword_predicate(keywords: Iterable[str]) -> TextPredicate:
    """Build a case-insensitive substring predicate over ``keywords``."""
    lowered = tuple(keyword.lower() for keyword in keywords if keyword)

    def _matches(text: str) -> bool:
        content = (text or "").lower()
        return any(keyword in content for keyword in lowered)

    return _matches


is_deploy_commit = keyword_predicate(DEPLOY_COMMIT_KEYWORDS)
is_failure_marker = keyword_predicate(FAILURE_MARKER_KEYWORDS)


@dataclass(slots=True)
class IssueClassification:
    """Failure-likelihood score of an issue."""

    score: int
    confidence: str
    excluded: bool = False
    matched: List[str] = field(default_factory=list)


def classify_issue(issue: IssueEvent) -> IssueClassification:
    """Score how likely an issue is to describe a production failure.

    Explicit failure labels weigh most (+15), then primary keywords in the
    title/body (+8 each), partial label matches (+5 each), deployment
    context (+5) and secondary keywords (+3 each). Issues that look like
    docs, feature requests or questions are excluded outright.
    """
    content = f"{issue.title} {issue.body}".lower()
    labels = [label.lower() for label in issue.labels]

    if any(pattern in content or any(pattern in label for label in labels) for pattern in EXCLUDED_ISSUE_PATTERNS):
        return IssueClassification(score=0, confidence="excluded", excluded=True, matched=["excluded"])

    score = 0
    matched: List[str] = []

    if any(label in PRIMARY_FAILURE_INDICATORS or label in SECONDARY_FAILURE_INDICATORS for label in labels):
        score += 15
        matched.append("explicit_label")

    for indicator in PRIMARY_FAILURE_INDICATORS:
        if indicator in content:
            score += 8
            matched.append(f"primary_{indicator}")

    for indicator in SECONDARY_FAILURE_INDICATORS:
        if indicator in content:
            score += 3
            matched.append(f"secondary_{indicator}")

    for label in labels:
        for indicator in PRIMARY_FAILURE_INDICATORS:
            if label and (label in indicator or indicator in label):
                score += 5
                matched.append(f"label_match_{label}")

    if any(context in content for context in DEPLOYMENT_CONTEXT):
        score += 5
        matched.append("deployment_context")

    if score >= 15:
        confidence = "high"
    elif score >= 8:
        confidence = "medium"
    elif score >= 3:
        confidence = "low"
    else:
        confidence = "very_low"

    return IssueClassification(score=score, confidence=confidence, matched=matched)


def is_failure_issue(issue: IssueEvent) -> bool:
    """Return whether an issue scores as a likely production failure."""
    classification = classify_issue(issue)
    return not classification.excluded and classification.score >= FAILURE_ISSUE_MIN_SCORE


def incident_label_predicate(labels: Iterable[str]) -> IssuePredicate:
    """Build the MTTR incident proxy.

    With no labels every issue counts as an incident; otherwise an issue
    qualifies when it carries at least one of ``labels``.
    """
    wanted = frozenset(label.strip().lower() for label in labels if label.strip())

    def _is_incident(issue: IssueEvent) -> bool:
        if issue.is_pull_request:
            return False
        if not wanted:
            return True
        return any(label.lower() in wanted for label in issue.labels)

    return _is_incident
