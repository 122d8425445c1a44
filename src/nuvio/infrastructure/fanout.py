"""Deadline-bounded concurrent execution of independent fetches.

``run_all`` starts every task at once and returns when all of them have
finished or the shared deadline (plus a short grace window) has passed,
whichever comes first. Tasks never fail the batch: errors, per-task
timeouts and unfinished work all contribute an empty list.

Unfinished tasks are not cancelled. They keep running so that their
results still reach the stream cache, and a strong reference is held
until they complete.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import TypeVar

import structlog

from nuvio.domain.ports.metrics import MetricsRecorderPort

log = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_GRACE_SECONDS = 0.1

# Abandoned tasks, referenced until done so the loop cannot drop them.
_abandoned: set[asyncio.Task] = set()


def abandoned_task_count() -> int:
    return len(_abandoned)


async def _guarded(
    name: str,
    factory: Callable[[], Awaitable[list[T]]],
    task_timeout: float | None,
    metrics: MetricsRecorderPort | None,
    late: set[str],
) -> list[T]:
    start = time.perf_counter_ns()
    success = False
    result: list[T] = []
    try:
        if task_timeout is not None:
            value = await asyncio.wait_for(factory(), timeout=task_timeout)
        else:
            value = await factory()
        if isinstance(value, list):
            result = value
            success = True
        else:
            log.warning(
                "fanout_task_bad_result", task=name, result_type=type(value).__name__
            )
    except TimeoutError:
        log.warning("fanout_task_timeout", task=name, timeout=task_timeout)
    except Exception:
        log.warning("fanout_task_failed", task=name, exc_info=True)

    duration_ns = time.perf_counter_ns() - start
    log.info(
        "fanout_task_done",
        task=name,
        success=success,
        count=len(result),
        elapsed_ms=round(duration_ns / 1_000_000, 1),
    )
    # Already counted as a timeout when the snapshot abandoned it.
    if metrics is not None and name not in late:
        metrics.record_provider_fetch(name, duration_ns, len(result), success=success)
    return result


async def run_all(
    tasks: Mapping[str, Callable[[], Awaitable[list[T]]]],
    deadline: float,
    *,
    grace: float = DEFAULT_GRACE_SECONDS,
    task_timeout: float | None = None,
    metrics: MetricsRecorderPort | None = None,
    on_abandoned: Callable[[asyncio.Task], None] | None = None,
) -> dict[str, list[T]]:
    """Run *tasks* concurrently and collect what finishes in time.

    Args:
        tasks: Name -> zero-argument coroutine factory returning a list.
        deadline: Seconds to wait for all tasks together.
        grace: Extra seconds granted after the deadline before the
            snapshot is taken.
        task_timeout: Optional per-task limit; a task exceeding it
            resolves to ``[]``.
        metrics: Receives per-task duration, count and outcome. A task
            still running at the snapshot is recorded once, as a timeout.
        on_abandoned: Called with every task still running at the
            snapshot (e.g. to let shutdown wait for it).

    Returns:
        Name -> result for every task; ``[]`` for those not finished.
    """
    if not tasks:
        return {}

    late: set[str] = set()
    running = {
        name: asyncio.create_task(
            _guarded(name, factory, task_timeout, metrics, late),
            name=f"fanout:{name}",
        )
        for name, factory in tasks.items()
    }

    _, pending = await asyncio.wait(running.values(), timeout=max(deadline, 0))
    if pending:
        log.warning(
            "fanout_deadline_exceeded",
            deadline=deadline,
            pending=sorted(n for n, t in running.items() if t in pending),
        )
        _, pending = await asyncio.wait(pending, timeout=max(grace, 0))

    results: dict[str, list[T]] = {}
    for name, task in running.items():
        if task.done() and not task.cancelled():
            results[name] = task.result()
            continue
        results[name] = []
        if task.done():
            continue
        log.info("fanout_task_abandoned", task=name)
        late.add(name)
        if metrics is not None:
            metrics.record_provider_timeout(name)
        _abandoned.add(task)
        task.add_done_callback(_abandoned.discard)
        if on_abandoned is not None:
            on_abandoned(task)
    return results
