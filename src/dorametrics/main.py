"""Application entry point for the GitHub DORA metrics tool."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional, Sequence

from .cli import parse_args
from .config import load_config
from .credentials import CredentialPool
from .errors import AuthenticationError, ConfigurationError, UpstreamAPIError, ValidationError
from .metrics import MetricsPolicy, analyze_repository, get_dora_metrics, get_dora_metrics_by_period
from .report import format_member_activity, format_metrics_report
from .repository import collect_team_activity, get_repository_info
from .urls import parse_repository_url

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_INVALID_INPUT = 2
EXIT_AUTHENTICATION = 3
EXIT_UPSTREAM = 4


async def _run(args, pool: CredentialPool, policy: MetricsPolicy, member_concurrency: int) -> Dict[str, Any]:
    output: Dict[str, Any] = {}
    if args.periods:
        output["periods"] = await get_dora_metrics_by_period(args.repo_url, pool, policy=policy)
        if args.with_metadata:
            output["metadata"] = await get_repository_info(args.repo_url, pool)
    elif args.with_metadata:
        analysis = await analyze_repository(args.repo_url, pool, days_back=args.days, policy=policy)
        output["metrics"] = analysis["metrics"]
        output["metadata"] = analysis["metadata"]
    else:
        output["metrics"] = await get_dora_metrics(args.repo_url, pool, days_back=args.days, policy=policy)

    if args.member:
        ref = parse_repository_url(args.repo_url)
        output["members"] = await collect_team_activity(
            ref.owner, ref.repo, args.member, pool, concurrency=member_concurrency
        )
    return output


def _render(output: Dict[str, Any], as_json: bool) -> str:
    if as_json:
        return json.dumps(output, indent=2, sort_keys=True)

    sections = []
    metadata = output.get("metadata")
    if "metrics" in output:
        sections.append(format_metrics_report(output["metrics"], repo_info=metadata))
    for metrics in output.get("periods", {}).values():
        sections.append(format_metrics_report(metrics, repo_info=metadata))
    members = output.get("members", {})
    if members:
        sections.append("Member Activity\n" + "\n".join(
            f"   {format_member_activity(username, stats)}" for username, stats in sorted(members.items())
        ))
    return "\n\n".join(sections)


def orchestrate(argv: Optional[Sequence[str]] = None) -> int:
    """Run the full fetch, reduce and report flow and return a process exit code."""
    try:
        args = parse_args(argv)
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        config = load_config(days=args.days)
        pool = CredentialPool.from_config(config)
        policy = MetricsPolicy.from_config(config)

        try:
            output = asyncio.run(_run(args, pool, policy, config.member_concurrency))
        finally:
            pool.close()
        print(_render(output, args.json))
        return EXIT_OK
    except (ValidationError, ConfigurationError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    except AuthenticationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_AUTHENTICATION
    except UpstreamAPIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_UPSTREAM
    except Exception as exc:  # noqa: BLE001 - last-resort guard for the CLI
        logger.exception("Unexpected failure")
        print(f"ERROR: Unexpected failure: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED


def main() -> None:
    raise SystemExit(orchestrate())


if __name__ == "__main__":
    main()
