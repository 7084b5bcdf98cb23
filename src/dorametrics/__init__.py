"""DORA metrics for GitHub repositories."""

from .concurrency import concurrent_map
from .credentials import CredentialPool
from .errors import (
    AuthenticationError,
    ComputationError,
    ConfigurationError,
    DoraMetricsError,
    UpstreamAPIError,
    ValidationError,
)
from .metrics import (
    MetricsPolicy,
    analyze_repository,
    get_dora_metrics,
    get_dora_metrics_batch,
    get_dora_metrics_by_period,
    get_organization_dora_metrics,
)
from .repository import collect_member_activity, collect_team_activity, get_repository_info
from .urls import parse_repository_url

__all__ = [
    "AuthenticationError",
    "ComputationError",
    "ConfigurationError",
    "CredentialPool",
    "DoraMetricsError",
    "MetricsPolicy",
    "UpstreamAPIError",
    "ValidationError",
    "analyze_repository",
    "collect_member_activity",
    "collect_team_activity",
    "concurrent_map",
    "get_dora_metrics",
    "get_dora_metrics_batch",
    "get_dora_metrics_by_period",
    "get_organization_dora_metrics",
    "get_repository_info",
    "parse_repository_url",
]
