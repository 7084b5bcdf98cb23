"""Custom exception types for the GitHub DORA metrics engine."""

from __future__ import annotations

from typing import Optional


class DoraMetricsError(Exception):
    """Base exception for all recoverable DORA metrics errors."""


class ConfigurationError(DoraMetricsError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(DoraMetricsError):
    """Raised when no GitHub credentials are available in the environment."""


class ValidationError(DoraMetricsError):
    """Raised when a repository URL is malformed or points at the wrong host."""


class UpstreamAPIError(DoraMetricsError):
    """Raised when a GitHub API request fails or returns an unexpected response.

    ``status_code`` is ``None`` when the request never produced a response
    (DNS failure, connection reset, timeout).
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ComputationError(DoraMetricsError):
    """Raised when collected event data cannot be reduced into a metric."""
