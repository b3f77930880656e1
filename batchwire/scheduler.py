"""
APScheduler-based polling for trigger flows.

Every TriggerFlow gets its own fixed-rate interval job. A flow's ticks never
overlap (``max_instances=1``; a tick that is still running when the next one
is due is skipped, and missed ticks are coalesced). Different flows tick
concurrently on the scheduler's thread pool.

Lifecycle
----------
Build a PollingScheduler, add flows, call ``start()``. ``shutdown()`` stops
scheduling new polls and waits for running ticks to return.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from batchwire.flow import TriggerFlow

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_MS = 5000
DEFAULT_INITIAL_DELAY_MS = 2000


class PollingScheduler:
    """Runs TriggerFlow ticks on fixed-rate timers."""

    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self._scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self._flows: dict[str, TriggerFlow] = {}
        self._timing: dict[str, tuple[int, int]] = {}

    @property
    def flows(self) -> list[TriggerFlow]:
        return list(self._flows.values())

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def add_flow(
        self,
        flow: TriggerFlow,
        period_ms: int = DEFAULT_PERIOD_MS,
        initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS,
    ) -> None:
        """
        Schedule a flow.

        Args:
            flow: The flow to tick
            period_ms: Fixed rate between tick starts
            initial_delay_ms: Delay before the first tick
        """
        if period_ms <= 0:
            raise ValueError(f"period_ms must be positive, got {period_ms}")
        if initial_delay_ms < 0:
            raise ValueError(f"initial_delay_ms must not be negative, got {initial_delay_ms}")

        self._scheduler.add_job(
            flow.tick,
            trigger=self._trigger(period_ms, initial_delay_ms),
            id=flow.name,
            name=f"Poll {flow.name}",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=max(1, period_ms // 1000),
        )
        self._flows[flow.name] = flow
        self._timing[flow.name] = (period_ms, initial_delay_ms)
        logger.info(
            f"Scheduled {flow.name}: every {period_ms}ms after {initial_delay_ms}ms"
        )

    @staticmethod
    def _trigger(period_ms: int, initial_delay_ms: int) -> IntervalTrigger:
        start_date = datetime.now(timezone.utc) + timedelta(milliseconds=initial_delay_ms)
        return IntervalTrigger(seconds=period_ms / 1000, start_date=start_date, timezone="UTC")

    def start(self) -> None:
        """Start polling; each flow's initial delay counts from now."""
        for name, (period_ms, initial_delay_ms) in self._timing.items():
            self._scheduler.reschedule_job(name, trigger=self._trigger(period_ms, initial_delay_ms))
        self._scheduler.start()

    def shutdown(self, wait: bool = True) -> None:
        """Stop scheduling new polls."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
