"""Graceful shutdown helper: track in-flight work and drain on stop."""

from __future__ import annotations

import asyncio

import structlog

log = structlog.get_logger(__name__)


class GracefulShutdown:
    """Track active requests and abandoned provider tasks.

    Provider fetches still running when a response deadline passes are
    not cancelled; they finish in the background and populate the stream
    cache. They are registered here so that shutdown can wait for them.

    Usage::

        gs = GracefulShutdown()

        # In middleware:
        gs.request_started()
        try:
            ...
        finally:
            gs.request_finished()

        # For work that outlives its request:
        gs.track_task(task)

        # In lifespan finally:
        await gs.wait_for_drain(timeout=10.0)
        await gs.wait_for_background(timeout=10.0)
    """

    def __init__(self) -> None:
        self._active = 0
        self._shutting_down = False
        self._drained = asyncio.Event()
        self._drained.set()  # starts drained (0 active)
        self._ready = False
        self._background: set[asyncio.Task] = set()

    @property
    def active_requests(self) -> int:
        return self._active

    @property
    def background_tasks(self) -> int:
        return len(self._background)

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def is_ready(self) -> bool:
        """True once the application has finished startup."""
        return self._ready and not self._shutting_down

    def mark_ready(self) -> None:
        self._ready = True

    def request_started(self) -> None:
        self._active += 1
        self._drained.clear()

    def request_finished(self) -> None:
        self._active -= 1
        if self._active <= 0:
            self._active = 0
            self._drained.set()

    def track_task(self, task: asyncio.Task) -> None:
        """Hold a strong reference to *task* until it completes."""
        if task.done():
            return
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_drain(self, *, timeout: float = 10.0) -> None:
        """Wait for all active requests to finish, up to *timeout* seconds."""
        self._shutting_down = True
        if self._active == 0:
            return
        log.info("graceful_shutdown_draining", active_requests=self._active)
        try:
            await asyncio.wait_for(self._drained.wait(), timeout=timeout)
            log.info("graceful_shutdown_drained")
        except TimeoutError:
            log.warning(
                "graceful_shutdown_timeout",
                remaining_requests=self._active,
                timeout=timeout,
            )

    async def wait_for_background(self, *, timeout: float = 10.0) -> None:
        """Wait for tracked tasks, cancelling whatever is left at *timeout*."""
        self._shutting_down = True
        pending = set(self._background)
        if not pending:
            return
        log.info("graceful_shutdown_background_waiting", tasks=len(pending))
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        if not still_running:
            log.info("graceful_shutdown_background_done")
            return
        log.warning(
            "graceful_shutdown_background_timeout",
            remaining_tasks=len(still_running),
            timeout=timeout,
        )
        for task in still_running:
            task.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)
