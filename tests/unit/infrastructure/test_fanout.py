"""Tests for the deadline-bounded fan-out executor."""

from __future__ import annotations

import asyncio
import time

import pytest

from nuvio.infrastructure.fanout import abandoned_task_count, run_all
from nuvio.infrastructure.metrics import MetricsCollector


def _returning(value: list, delay: float = 0.0):
    async def factory() -> list:
        if delay:
            await asyncio.sleep(delay)
        return value

    return factory


def _raising(exc: Exception):
    async def factory() -> list:
        raise exc

    return factory


def _never(event: asyncio.Event):
    async def factory() -> list:
        await event.wait()
        return ["late"]

    return factory


@pytest.fixture()
def abandoned():
    """Collect abandoned tasks and cancel them after the test."""
    tasks: list[asyncio.Task] = []
    yield tasks
    for task in tasks:
        task.cancel()


class TestRunAll:
    async def test_all_complete(self) -> None:
        results = await run_all(
            {"a": _returning([1, 2]), "b": _returning([3], delay=0.01)}, deadline=1.0
        )
        assert results == {"a": [1, 2], "b": [3]}

    async def test_empty_tasks(self) -> None:
        assert await run_all({}, deadline=1.0) == {}

    async def test_failure_becomes_empty_list(self) -> None:
        results = await run_all(
            {"ok": _returning(["x"]), "bad": _raising(RuntimeError("boom"))},
            deadline=1.0,
        )
        assert results == {"ok": ["x"], "bad": []}

    async def test_non_list_result_becomes_empty_list(self) -> None:
        async def factory() -> list:
            return "oops"  # type: ignore[return-value]

        assert await run_all({"a": factory}, deadline=1.0) == {"a": []}

    async def test_deadline_returns_early_without_cancelling(
        self, abandoned: list[asyncio.Task]
    ) -> None:
        event = asyncio.Event()
        start = time.perf_counter()
        results = await run_all(
            {"fast": _returning(["x"], delay=0.01), "slow": _never(event)},
            deadline=0.05,
            grace=0.01,
            on_abandoned=abandoned.append,
        )
        elapsed = time.perf_counter() - start

        assert results == {"fast": ["x"], "slow": []}
        assert 0.04 <= elapsed < 0.5
        assert len(abandoned) == 1
        assert not abandoned[0].done()
        assert abandoned_task_count() >= 1

        # The abandoned task still completes on its own.
        event.set()
        await asyncio.wait_for(abandoned[0], timeout=1.0)
        assert abandoned[0].result() == ["late"]

    async def test_grace_window_admits_near_deadline_result(self) -> None:
        results = await run_all(
            {"a": _returning(["x"], delay=0.06)}, deadline=0.05, grace=0.2
        )
        assert results == {"a": ["x"]}

    async def test_per_task_timeout(self) -> None:
        start = time.perf_counter()
        results = await run_all(
            {"slow": _returning(["x"], delay=1.0), "fast": _returning(["y"])},
            deadline=2.0,
            task_timeout=0.05,
        )
        assert results == {"slow": [], "fast": ["y"]}
        assert time.perf_counter() - start < 1.0

    async def test_metrics_recorded(self, abandoned: list[asyncio.Task]) -> None:
        metrics = MetricsCollector()
        event = asyncio.Event()
        await run_all(
            {
                "ok": _returning([1, 2, 3]),
                "bad": _raising(ValueError("x")),
                "slow": _never(event),
            },
            deadline=0.05,
            grace=0.0,
            metrics=metrics,
            on_abandoned=abandoned.append,
        )
        providers = metrics.snapshot()["providers"]
        assert providers["ok"]["successes"] == 1
        assert providers["ok"]["total_streams"] == 3
        assert providers["bad"]["failures"] == 1
        assert providers["slow"]["timeouts"] == 1

    async def test_abandoned_task_counted_once(
        self, abandoned: list[asyncio.Task]
    ) -> None:
        metrics = MetricsCollector()
        results = await run_all(
            {"slow": _returning(["x"], delay=0.1)},
            deadline=0.01,
            grace=0.0,
            metrics=metrics,
            on_abandoned=abandoned.append,
        )
        assert results == {"slow": []}

        await asyncio.wait_for(abandoned[0], timeout=1.0)
        assert abandoned[0].result() == ["x"]

        slow = metrics.snapshot()["providers"]["slow"]
        assert slow["timeouts"] == 1
        assert slow["fetches"] == 0
        assert slow["successes"] == 0
