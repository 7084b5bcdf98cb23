"""Configuration parsing and validation for the GitHub DORA metrics engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from .errors import AuthenticationError, ConfigurationError

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_DAYS_BACK = 30
DEFAULT_MEMBER_CONCURRENCY = 3
DEFAULT_FAILURE_WINDOW_HOURS = 72


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the metrics engine."""

    tokens: Tuple[str, ...]
    days_back: int = DEFAULT_DAYS_BACK
    api_url: str = DEFAULT_API_URL
    timeout_seconds: int = 30
    page_size: int = 100
    max_pages: int = 10
    member_concurrency: int = DEFAULT_MEMBER_CONCURRENCY
    failure_window_hours: float = DEFAULT_FAILURE_WINDOW_HOURS
    incident_labels: Tuple[str, ...] = ()


def load_tokens(environ: Mapping[str, str]) -> Tuple[str, ...]:
    """Read ``GITHUB_TOKEN_1..GITHUB_TOKEN_N`` in order, stopping at the first gap.

    Falls back to a single ``GITHUB_TOKEN`` when no numbered token is set.
    """
    tokens = []
    index = 1
    while True:
        token = environ.get(f"GITHUB_TOKEN_{index}", "").strip()
        if not token:
            break
        tokens.append(token)
        index += 1

    if not tokens:
        fallback = environ.get("GITHUB_TOKEN", "").strip()
        if fallback:
            tokens.append(fallback)

    return tuple(tokens)


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for '{name}': expected an integer, got {raw!r}.") from exc


def _float_setting(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for '{name}': expected a number, got {raw!r}.") from exc


def load_config(days: int = DEFAULT_DAYS_BACK, environ: Optional[Mapping[str, str]] = None) -> Config:
    """Build and validate application configuration.

    Args:
        days: Positive number of days of history to analyze.
        environ: Environment mapping to read from; defaults to ``os.environ``.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If ``days`` or any tuning variable is invalid.
        AuthenticationError: If no GitHub token is configured.
    """
    env = os.environ if environ is None else environ

    if days <= 0:
        raise ConfigurationError("Invalid value for 'days': expected an integer greater than 0.")

    tokens = load_tokens(env)
    if not tokens:
        raise AuthenticationError(
            "Missing GitHub token. "
            "Set 'GITHUB_TOKEN_1' (and optionally GITHUB_TOKEN_2, ...) or 'GITHUB_TOKEN' before running."
        )

    member_concurrency = _int_setting(env, "DORA_MEMBER_CONCURRENCY", DEFAULT_MEMBER_CONCURRENCY)
    if member_concurrency < 1:
        raise ConfigurationError("Invalid value for 'DORA_MEMBER_CONCURRENCY': expected at least 1.")

    failure_window_hours = _float_setting(env, "DORA_FAILURE_WINDOW_HOURS", DEFAULT_FAILURE_WINDOW_HOURS)
    if failure_window_hours <= 0:
        raise ConfigurationError("Invalid value for 'DORA_FAILURE_WINDOW_HOURS': expected a positive number.")

    incident_labels = tuple(
        label.strip().lower()
        for label in env.get("DORA_INCIDENT_LABELS", "").split(",")
        if label.strip()
    )

    return Config(
        tokens=tokens,
        days_back=days,
        api_url=env.get("GITHUB_API_URL", "").strip() or DEFAULT_API_URL,
        member_concurrency=member_concurrency,
        failure_window_hours=failure_window_hours,
        incident_labels=incident_labels,
    )
