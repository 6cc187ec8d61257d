# fleet_induction/api/allocation.py
from fastapi import APIRouter, HTTPException
from typing import List
import logging

from fleet_induction.config import get_bay_configuration, get_forecast_parameters
from fleet_induction.models.allocation import (
    AllocationPlan,
    ForecastRequest,
    ReadinessRequest,
    RealTimeRequest,
    TrainReadiness,
)
from fleet_induction.services.readiness import build_readiness
from fleet_induction.services.stabling_optimizer import BayAllocator

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/forecast", response_model=AllocationPlan)
async def generate_forecast(request: ForecastRequest):
    """Build the nightly DAILY_FORECAST bay plan from schedule results"""
    try:
        allocator = BayAllocator(
            request.bay_configuration or get_bay_configuration(),
            request.parameters or get_forecast_parameters(),
        )
        return allocator.generate_daily_forecast(request.results)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Daily forecast failed: {e}")
        raise HTTPException(status_code=500, detail=f"Daily forecast failed: {str(e)}")


@router.post("/realtime", response_model=AllocationPlan)
async def update_realtime(request: RealTimeRequest):
    """Run one reallocation pass over a plan with the supplied readiness"""
    try:
        allocator = BayAllocator(
            request.bay_configuration or get_bay_configuration(),
            request.parameters or get_forecast_parameters(),
        )
        return allocator.update_real_time_allocation(request.plan, request.readiness, request.results)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Real-time reallocation failed: {e}")
        raise HTTPException(status_code=500, detail=f"Real-time reallocation failed: {str(e)}")


@router.post("/readiness", response_model=List[TrainReadiness])
async def compute_readiness(request: ReadinessRequest):
    try:
        overrides = {r.id: r for r in request.overrides}
        return build_readiness(request.results, request.parameters or get_forecast_parameters(), overrides)
    except Exception as e:
        logger.error(f"Readiness computation failed: {e}")
        raise HTTPException(status_code=500, detail=f"Readiness computation failed: {str(e)}")
