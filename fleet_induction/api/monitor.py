# fleet_induction/api/monitor.py
from fastapi import APIRouter, HTTPException
from typing import List, Optional
import logging

from fleet_induction.api.schedule import build_scorer, resolve_config
from fleet_induction.config import get_bay_configuration, get_forecast_parameters, settings
from fleet_induction.models.allocation import AllocationPlan, MonitorStartRequest, TrainReadiness
from fleet_induction.models.schedule import ScoringStrategy
from fleet_induction.services.mock_data_generator import ReadinessSimulator, sample_trains
from fleet_induction.services.optimizer import schedule_trains
from fleet_induction.services.realtime_monitor import RealTimeMonitor
from fleet_induction.services.stabling_optimizer import BayAllocator

logger = logging.getLogger(__name__)
router = APIRouter()

_monitor: Optional[RealTimeMonitor] = None


def get_monitor() -> Optional[RealTimeMonitor]:
    return _monitor


async def shutdown_monitor() -> None:
    global _monitor
    if _monitor is not None:
        await _monitor.stop()
        _monitor = None


@router.post("/start", response_model=AllocationPlan)
async def start_monitor(request: MonitorStartRequest):
    """Schedule the fleet, build the daily forecast and start real-time monitoring.

    Any running monitor is stopped first.
    """
    global _monitor
    try:
        trains = request.trains or sample_trains()
        config = resolve_config(request.config)
        schedule = schedule_trains(trains, config, build_scorer(ScoringStrategy.WEIGHTED))

        parameters = get_forecast_parameters()
        allocator = BayAllocator(get_bay_configuration(), parameters)
        plan = allocator.generate_daily_forecast(schedule.results)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await shutdown_monitor()
    _monitor = RealTimeMonitor(
        allocator,
        schedule.results,
        plan,
        ReadinessSimulator(parameters, seed=settings.dev_mock_seed),
        interval_seconds=request.interval_seconds or settings.monitor_interval_seconds,
    )
    _monitor.start()
    return plan


@router.post("/stop")
async def stop_monitor():
    if _monitor is None:
        raise HTTPException(status_code=404, detail="Monitor is not running")
    ticks = _monitor.tick_count
    await shutdown_monitor()
    return {"status": "stopped", "ticks": ticks}


@router.post("/tick", response_model=AllocationPlan)
async def tick_monitor():
    """Run one reallocation tick immediately"""
    if _monitor is None:
        raise HTTPException(status_code=409, detail="Start the monitor before ticking it")
    try:
        return await _monitor.tick()
    except Exception as e:
        logger.error(f"Manual monitor tick failed: {e}")
        raise HTTPException(status_code=500, detail=f"Monitor tick failed: {str(e)}")


@router.get("/plan", response_model=AllocationPlan)
async def current_plan():
    if _monitor is None:
        raise HTTPException(status_code=404, detail="No active allocation plan")
    return _monitor.current_plan


@router.get("/readiness", response_model=List[TrainReadiness])
async def current_readiness():
    if _monitor is None:
        raise HTTPException(status_code=404, detail="No active allocation plan")
    return _monitor.last_readiness
