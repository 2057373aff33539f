"""Bounded parallel dispatch with index-stable result slots."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from enkai.config import resolve_concurrency

T = TypeVar("T")
R = TypeVar("R")


def run_bounded(
    items: Sequence[T],
    unit: Callable[[int, T], R],
    *,
    max_concurrent: int | None,
    thread_name_prefix: str = "enkai-unit",
) -> list[R]:
    """Run ``unit(index, item)`` for every item, at most ``max_concurrent`` at a time.

    Each unit receives its index and item as arguments and its return value is
    stored at that index, so the returned list follows input order regardless
    of completion order. Blocks until every unit has finished. An exception
    raised by a unit propagates after all units are done; callers that isolate
    failures return them as values instead of raising.
    """

    if not items:
        return []

    limit = resolve_concurrency(max_concurrent)
    slots = threading.BoundedSemaphore(limit)
    results: list[R | None] = [None] * len(items)

    def _gated(index: int, item: T) -> None:
        with slots:
            results[index] = unit(index, item)

    with ThreadPoolExecutor(
        max_workers=min(limit, len(items)),
        thread_name_prefix=thread_name_prefix,
    ) as pool:
        futures = [pool.submit(_gated, index, item) for index, item in enumerate(items)]

    for future in futures:
        future.result()
    return results  # type: ignore[return-value]


def run_all(
    items: Sequence[T],
    unit: Callable[[int, T], R],
    *,
    thread_name_prefix: str = "enkai-variant",
) -> list[R]:
    """Run one unit per item with no concurrency cap (small, fixed fan-out)."""

    return run_bounded(
        items,
        unit,
        max_concurrent=max(1, len(items)),
        thread_name_prefix=thread_name_prefix,
    )
