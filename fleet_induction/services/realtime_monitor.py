# fleet_induction/services/realtime_monitor.py
import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from fleet_induction.models.allocation import AllocationPlan, TrainReadiness
from fleet_induction.models.schedule import ScheduleResult
from fleet_induction.services.stabling_optimizer import BayAllocator

logger = logging.getLogger(__name__)

ReadinessResult = Union[List[TrainReadiness], Awaitable[List[TrainReadiness]]]
ReadinessSource = Callable[[AllocationPlan, Sequence[ScheduleResult]], ReadinessResult]

MONITOR_JOB_ID = "realtime_reallocation"


class RealTimeMonitor:
    """Periodic reallocation job that owns the current allocation plan.

    Each tick reads readiness, computes the next plan off to the side and
    commits it with a single reference swap. Readers only ever see the
    pre-tick or post-tick plan. Cancelling a tick while it is waiting
    on its readiness source leaves the plan untouched.
    """

    def __init__(
        self,
        allocator: BayAllocator,
        schedule_results: Sequence[ScheduleResult],
        plan: AllocationPlan,
        readiness_source: ReadinessSource,
        interval_seconds: float = 5.0,
    ) -> None:
        self.allocator = allocator
        self.schedule_results = list(schedule_results)
        self.readiness_source = readiness_source
        self.interval_seconds = interval_seconds
        self._plan = plan
        self._last_readiness: List[TrainReadiness] = []
        self._lock = asyncio.Lock()
        self._scheduler: Optional[AsyncIOScheduler] = None
        self.tick_count = 0

    @property
    def current_plan(self) -> AllocationPlan:
        return self._plan

    @property
    def last_readiness(self) -> List[TrainReadiness]:
        return list(self._last_readiness)

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def tick(self) -> AllocationPlan:
        async with self._lock:
            plan = self._plan
            readiness = self.readiness_source(plan, self.schedule_results)
            if inspect.isawaitable(readiness):
                readiness = await readiness
            readiness = list(readiness)

            next_plan = self.allocator.update_real_time_allocation(plan, readiness, self.schedule_results)

            # Commit point
            self._plan = next_plan
            self._last_readiness = readiness
            self.tick_count += 1

        added = len(next_plan.changes) - len(plan.changes)
        if added:
            logger.info(f"Monitor tick {self.tick_count}: {added} reallocation(s)")
        return next_plan

    async def _scheduled_tick(self) -> None:
        try:
            await self.tick()
        except Exception as e:
            logger.error(f"Monitor tick failed: {e}")

    def start(self) -> None:
        """Register the reallocation job on an interval scheduler bound to the running loop"""
        if self.is_running:
            return
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._scheduled_tick,
            "interval",
            seconds=self.interval_seconds,
            id=MONITOR_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(f"Real-time monitor started (interval={self.interval_seconds}s)")

    async def stop(self) -> None:
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return
        if scheduler.get_job(MONITOR_JOB_ID):
            scheduler.remove_job(MONITOR_JOB_ID)
        scheduler.shutdown(wait=False)
        # Wait out a tick that was already in flight
        async with self._lock:
            pass
        logger.info(f"Real-time monitor stopped after {self.tick_count} tick(s)")
