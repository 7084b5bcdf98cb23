"""Command-line argument parsing for the GitHub DORA metrics tool."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for DORA metric generation."""
    parser = argparse.ArgumentParser(
        prog="github-dora-metrics",
        description=(
            "Compute DORA metrics (deployment frequency, lead time, MTTR, "
            "change failure rate) for a GitHub repository."
        ),
    )

    parser.add_argument(
        "--repo-url",
        required=True,
        help="GitHub repository URL, e.g. https://github.com/owner/repo.",
    )
    parser.add_argument(
        "--days",
        type=_positive_int,
        default=30,
        help="Number of days of history to analyze (default: 30).",
    )
    parser.add_argument(
        "--periods",
        action="store_true",
        help="Report 7, 30 and 90 day periods from a single fetch instead of --days.",
    )
    parser.add_argument(
        "--member",
        action="append",
        default=[],
        help="GitHub username to collect activity stats for (repeatable).",
    )
    parser.add_argument(
        "--with-metadata",
        action="store_true",
        help="Also fetch repository metadata and add a Repository Stats section.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print raw JSON instead of the text report.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser.parse_args(argv)
