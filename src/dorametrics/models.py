"""Domain models for GitHub DORA metrics processing.

These dataclasses intentionally model only the subset of GitHub API payload
fields that the collectors and reducers need. They are built immediately
after each API call so nothing downstream touches raw payload dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigurationError

# Aggregate outputs are plain dicts so callers can persist or serialize them verbatim.
MetricsResult = Dict[str, Any]
MemberActivityStats = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class RepositoryRef:
    """Canonical ``owner/repo`` identifier of a GitHub repository."""

    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}"


@dataclass(frozen=True, slots=True)
class AnalysisWindow:
    """Inclusive time window ``[start, end]`` covering ``days_back`` days."""

    days_back: int
    start: datetime
    end: datetime

    @classmethod
    def ending_now(cls, days_back: int, end: Optional[datetime] = None) -> "AnalysisWindow":
        """Build a window of ``days_back`` days ending at ``end`` (default: now).

        The window is always expressed in UTC: a naive ``end`` is read as UTC
        and an aware one is converted.
        """
        if days_back < 1:
            raise ConfigurationError("Invalid value for 'days_back': expected an integer greater than 0.")
        if end is None:
            end_at = datetime.now(timezone.utc)
        elif end.tzinfo is None:
            end_at = end.replace(tzinfo=timezone.utc)
        else:
            end_at = end.astimezone(timezone.utc)
        return cls(days_back=days_back, start=end_at - timedelta(days=days_back), end=end_at)

    def contains(self, value: Optional[datetime]) -> bool:
        return value is not None and self.start <= value <= self.end


@dataclass(slots=True)
class Release:
    """Published GitHub release."""

    tag_name: str
    name: str
    draft: bool
    prerelease: bool
    created_at: Optional[datetime]
    published_at: Optional[datetime]


@dataclass(slots=True)
class Tag:
    """Git tag and the commit it points at."""

    name: str
    sha: str


@dataclass(slots=True)
class Commit:
    """Commit as returned by the commit listing API."""

    sha: str
    message: str
    author_login: Optional[str]
    authored_at: Optional[datetime]


@dataclass(slots=True)
class PullRequestEvent:
    """Pull request data required for lead time and activity stats."""

    number: int
    created_at: datetime
    merged_at: Optional[datetime]
    closed_at: Optional[datetime]
    state: str
    author: Optional[str]


@dataclass(slots=True)
class IssueEvent:
    """Issue-shaped item; ``is_pull_request`` marks PRs returned by the issues API."""

    number: int
    created_at: datetime
    closed_at: Optional[datetime]
    state: str
    is_pull_request: bool
    author: Optional[str] = None
    title: str = ""
    body: str = ""
    labels: Tuple[str, ...] = ()


@dataclass(slots=True)
class DeploymentEvent:
    """Evidence of a production deployment."""

    date: datetime
    kind: str
    label: str


@dataclass(slots=True)
class Contributor:
    """Repository contributor with commit count."""

    username: str
    contributions: int
    avatar_url: Optional[str] = None
    profile_url: Optional[str] = None
    account_type: Optional[str] = None


@dataclass(slots=True)
class RepositoryRecord:
    """Descriptive repository metadata."""

    name: str
    full_name: str
    description: Optional[str]
    language: Optional[str]
    stars: int
    forks: int
    watchers: int
    open_issues: int
    default_branch: Optional[str]
    html_url: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]
    topics: List[str] = field(default_factory=list)
    license: Optional[Dict[str, Any]] = None
