"""Periodic trigger for the enrichment worker.

Runs :meth:`EnrichmentWorker.run_once` every ``interval_minutes`` as an
asyncio background task inside the API process, and exposes
:meth:`trigger` for manual runs (API endpoint, CLI).

# ─── RUN GUARANTEES ────────────────────────────────────────────────────
#
#   - At most one run at a time: scheduled ticks and manual triggers share
#     one asyncio.Lock, so a trigger during a scheduled run waits for it.
#   - Every run has a hard wall-clock cap (``run_timeout_seconds``).  A run
#     that hits it is cancelled; the entry it was working on may stay
#     PROCESSING and is picked up again by the lookup staleness check.
#   - A failing run is logged and the loop keeps ticking.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import structlog

from src.services.enrichment_worker import EnrichmentWorker, WorkerRunSummary
from src.utils.logging import get_logger

_DEFAULT_INTERVAL_MINUTES = 5
_DEFAULT_RUN_TIMEOUT_SECONDS = 120
_DEFAULT_INITIAL_DELAY_SECONDS = 5.0


class EnrichmentScheduler:
    """Background loop that drains the photo queue on a fixed interval.

    Call :meth:`start` once the event loop is running (e.g. from the
    FastAPI lifespan) and :meth:`stop` on shutdown.
    """

    def __init__(
        self,
        worker: EnrichmentWorker,
        interval_minutes: float = _DEFAULT_INTERVAL_MINUTES,
        run_timeout_seconds: float = _DEFAULT_RUN_TIMEOUT_SECONDS,
        initial_delay_seconds: float = _DEFAULT_INITIAL_DELAY_SECONDS,
    ) -> None:
        self._worker = worker
        self._interval_seconds = interval_minutes * 60
        self._run_timeout = run_timeout_seconds
        self._initial_delay = initial_delay_seconds
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._last_summary: WorkerRunSummary | None = None
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_summary(self) -> WorkerRunSummary | None:
        return self._last_summary

    # -- Lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Start the background loop (no-op if already running)."""
        if self._running:
            self._logger.info("scheduler_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop(), name="photo-enrichment-scheduler")
        self._logger.info(
            "scheduler_started",
            interval_seconds=self._interval_seconds,
            run_timeout_seconds=self._run_timeout,
        )

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._logger.info("scheduler_stopped")

    # -- Runs ----------------------------------------------------------------

    async def trigger(self) -> WorkerRunSummary:
        """Run the worker once now, waiting for any run already in progress."""
        async with self._lock:
            started_at = datetime.now(tz=timezone.utc)  # noqa: UP017
            try:
                summary = await asyncio.wait_for(self._worker.run_once(), timeout=self._run_timeout)
            except asyncio.TimeoutError:
                self._logger.error("scheduler_run_timed_out", timeout_seconds=self._run_timeout)
                summary = WorkerRunSummary(
                    started_at=started_at,
                    finished_at=datetime.now(tz=timezone.utc),  # noqa: UP017
                    aborted=True,
                    error=f"run exceeded {self._run_timeout:g}s",
                )
            self._last_summary = summary
            return summary

    async def _run_loop(self) -> None:
        await asyncio.sleep(self._initial_delay)
        while self._running:
            try:
                await self.trigger()
            except Exception as exc:
                self._logger.error("scheduler_run_failed", error=str(exc))
            await asyncio.sleep(self._interval_seconds)
