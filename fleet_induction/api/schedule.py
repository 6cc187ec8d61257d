# fleet_induction/api/schedule.py
from fastapi import APIRouter, HTTPException
from typing import Any, Dict, Optional
import logging

from fleet_induction.config import get_scheduling_config, settings
from fleet_induction.core.scoring_config import generate_shunt_costs
from fleet_induction.models.schedule import (
    ScheduleRequest,
    ScheduleResponse,
    SchedulingConfig,
    ScoringStrategy,
)
from fleet_induction.services.mock_data_generator import sample_trains
from fleet_induction.services.optimizer import schedule_trains
from fleet_induction.services.scoring import CandidatePoolScorer, Scorer, WeightedCostScorer

logger = logging.getLogger(__name__)
router = APIRouter()


def resolve_config(overrides: Optional[Dict[str, Any]] = None) -> SchedulingConfig:
    """Defaults + overrides; positions without a shunt cost table get a seeded one"""
    config = get_scheduling_config(overrides)
    if not config.shunt_cost_by_pos:
        config = config.model_copy(
            update={
                "shunt_cost_by_pos": generate_shunt_costs(config.num_stabling_slots, seed=settings.dev_mock_seed)
            }
        )
    return config


def build_scorer(strategy: ScoringStrategy) -> Scorer:
    base = WeightedCostScorer(default_shunt_cost=settings.default_shunt_cost)
    if strategy == ScoringStrategy.CANDIDATE_POOL:
        return CandidatePoolScorer(base=base)
    return base


@router.post("/run", response_model=ScheduleResponse)
async def run_schedule(request: ScheduleRequest):
    """Assign roles to the submitted fleet"""
    try:
        config = resolve_config(request.config)
        return schedule_trains(request.trains, config, build_scorer(request.strategy))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid scheduling config: {e}")
    except Exception as e:
        logger.error(f"Scheduling failed: {e}")
        raise HTTPException(status_code=500, detail=f"Scheduling failed: {str(e)}")


@router.get("/sample", response_model=ScheduleResponse)
async def run_sample_schedule(strategy: ScoringStrategy = ScoringStrategy.WEIGHTED):
    """Schedule the built-in ten-train sample fleet with default settings"""
    try:
        return schedule_trains(sample_trains(), resolve_config(), build_scorer(strategy))
    except Exception as e:
        logger.error(f"Sample scheduling failed: {e}")
        raise HTTPException(status_code=500, detail=f"Sample scheduling failed: {str(e)}")


@router.get("/config")
async def get_default_config():
    """Default scheduling config (uppercase keys)"""
    return get_scheduling_config().model_dump(by_alias=True)
