from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fleet_induction.models.train import Train


class Assignment(str, Enum):
    IN_SERVICE = "IN_SERVICE"
    STANDBY = "STANDBY"
    IBL = "IBL"
    WORKSHOP = "WORKSHOP"


# Lower value sorts first in the final result list
ASSIGNMENT_PRIORITY = {
    Assignment.IN_SERVICE: 0,
    Assignment.STANDBY: 1,
    Assignment.IBL: 2,
    Assignment.WORKSHOP: 3,
}


class SchedulingConfig(BaseModel):
    """Thresholds, capacities, quotas and cost weights for one scheduling run"""
    model_config = ConfigDict(populate_by_name=True)

    # Thresholds (km)
    a_threshold_km: float = Field(5000, ge=0, alias="A_THRESHOLD_KM")
    b_threshold_km: float = Field(15000, ge=0, alias="B_THRESHOLD_KM")
    ioh_threshold_km: float = Field(420000, ge=0, alias="IOH_THRESHOLD_KM")
    poh_threshold_km: float = Field(840000, ge=0, alias="POH_THRESHOLD_KM")

    # Capacities
    num_inspection_bays: int = Field(3, ge=0, alias="NUM_INSPECTION_BAYS")
    num_workshop_bays: int = Field(2, ge=0, alias="NUM_WORKSHOP_BAYS")
    num_stabling_slots: int = Field(25, ge=0, alias="NUM_STABLING_SLOTS")

    # Quotas
    required_in_service: int = Field(10, ge=0, alias="REQUIRED_IN_SERVICE")
    min_reserve: int = Field(2, ge=0, alias="MIN_RESERVE")
    candidate_pool_size: int = Field(15, ge=0, alias="CANDIDATE_POOL_SIZE")

    # Weights (negative values allowed)
    w_shunt: float = Field(1.0, alias="W_SHUNT")
    w_mileage: float = Field(0.0001, alias="W_MILEAGE")
    w_expected_failure: float = Field(0.00001, alias="W_EXPECTED_FAILURE")
    w_over_ibl: float = Field(200000, alias="W_OVER_IBL")
    w_over_workshop: float = Field(250000, alias="W_OVER_WORKSHOP")
    w_short_in_service: float = Field(500000, alias="W_SHORT_IN_SERVICE")
    w_cleaning_miss: float = Field(20000, alias="W_CLEANING_MISS")
    w_branding: float = Field(-1000, alias="W_BRANDING")
    unscheduled_withdrawal_cost: float = Field(100000, alias="UNSCHEDULED_WITHDRAWAL_COST")

    shunt_cost_by_pos: Dict[int, float] = Field(
        default_factory=dict,
        description="Discrete shunt cost per stabling position; unmapped positions use the default cost",
    )


class ScheduleResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    assignment: Assignment
    reason: str
    score: Optional[float] = None
    slot: Optional[int] = Field(default=None, description="Planned departure order for IN_SERVICE trains")
    train: Train


class ScheduleSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    in_service: int = Field(0, alias="inService")
    standby: int = 0
    ibl: int = 0
    workshop: int = 0


class ScheduleResponse(BaseModel):
    results: List[ScheduleResult] = Field(default_factory=list)
    summary: ScheduleSummary = Field(default_factory=ScheduleSummary)
    warnings: List[str] = Field(default_factory=list)
    objective: float = Field(0.0, description="Total plan cost including shortfall and over-capacity penalties")


class ScoringStrategy(str, Enum):
    WEIGHTED = "weighted"
    CANDIDATE_POOL = "candidate_pool"


class ScheduleRequest(BaseModel):
    trains: List[Train]
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="SchedulingConfig overrides, e.g. {\"REQUIRED_IN_SERVICE\": 8}",
    )
    strategy: ScoringStrategy = ScoringStrategy.WEIGHTED
