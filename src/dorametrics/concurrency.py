"""Bounded-concurrency async map."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, Optional, TypeVar

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def concurrent_map(
    items: Iterable[T],
    concurrency: int,
    worker: Callable[[T], Awaitable[Optional[R]]],
) -> List[R]:
    """Run ``worker`` over ``items`` with at most ``concurrency`` calls in flight.

    ``min(concurrency, len(items))`` workers pull from a shared queue until it
    is empty. A worker call that raises is logged and its item is skipped; a
    call that returns ``None`` contributes nothing. Results are collected in
    completion order, not input order.

    Raises:
        ConfigurationError: If ``concurrency`` is less than 1.
    """
    if concurrency < 1:
        raise ConfigurationError("Invalid value for 'concurrency': expected an integer of at least 1.")

    pending = list(items)
    if not pending:
        return []

    queue = iter(pending)
    results: List[R] = []

    async def _drain() -> None:
        # next() on the shared iterator never awaits, so each item is claimed once.
        for item in queue:
            try:
                result = await worker(item)
            except Exception as exc:  # noqa: BLE001 - one failing item must not stop the others
                logger.warning("Concurrent worker failed; skipping item", extra={"item": repr(item), "error": str(exc)})
                continue
            if result is not None:
                results.append(result)

    await asyncio.gather(*(_drain() for _ in range(min(concurrency, len(pending)))))
    return results
