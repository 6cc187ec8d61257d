from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fleet_induction.models.schedule import ScheduleResult
from fleet_induction.models.train import Train


class BayType(str, Enum):
    PRIMARY = "PRIMARY"
    STANDBY = "STANDBY"
    OVERFLOW = "OVERFLOW"


class PlanMode(str, Enum):
    DAILY_FORECAST = "DAILY_FORECAST"
    REAL_TIME = "REAL_TIME"


class ChangeType(str, Enum):
    ASSIGNMENT = "ASSIGNMENT"
    REPLACEMENT = "REPLACEMENT"
    SWAP = "SWAP"


class CleaningStatus(str, Enum):
    CLEAN = "CLEAN"
    NEEDS_CLEANING = "NEEDS_CLEANING"
    IN_PROGRESS = "IN_PROGRESS"


class JobCardStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    CLOSED = "CLOSED"


def _default_bay_positions() -> Dict[str, int]:
    # Row-major grid: A1..A3 -> 1..3, B1..B3 -> 4..6, C1..C3 -> 7..9
    return {f"{row}{col}": r * 3 + col for r, row in enumerate("ABC") for col in (1, 2, 3)}


class BayConfiguration(BaseModel):
    """Physical stabling layout, ordered per tier"""
    model_config = ConfigDict(populate_by_name=True)

    primary_bays: List[str] = Field(default_factory=lambda: ["A1", "B1", "C1"], alias="primaryBays")
    standby_bays: List[str] = Field(default_factory=lambda: ["A2", "B2", "C2"], alias="standbyBays")
    overflow_bays: List[str] = Field(default_factory=lambda: ["A3", "B3", "C3"], alias="overflowBays")
    max_shunting_distance: int = Field(5, ge=0, alias="maxShuntingDistance")
    bay_positions: Dict[str, int] = Field(default_factory=_default_bay_positions, alias="bayPositions")

    @model_validator(mode="after")
    def _check_unique_bays(self) -> "BayConfiguration":
        all_bays = self.primary_bays + self.standby_bays + self.overflow_bays
        if len(all_bays) != len(set(all_bays)):
            raise ValueError("Bay identifiers must be unique across primary, standby and overflow tiers")
        return self


class ForecastParameters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cleaning_threshold_days: int = Field(30, ge=0, alias="cleaningThresholdDays")
    min_branding_hours: float = Field(8, ge=0, alias="minBrandingHours")
    runtime_balance_weight: float = Field(0.1, alias="runtimeBalanceWeight")
    job_card_weight: float = Field(0.3, alias="jobCardWeight")
    shunting_penalty: float = Field(10, ge=0, alias="shuntingPenalty")
    readiness_threshold: float = Field(70, ge=0, le=100, alias="readinessThreshold")
    average_mileage: float = Field(250000, ge=0, alias="averageMileage")
    departure_base_hour: int = Field(6, ge=0, le=23, alias="departureBaseHour")
    overflow_base_hour: int = Field(10, ge=0, le=23, alias="overflowBaseHour")
    departure_interval_minutes: int = Field(30, ge=0, alias="departureIntervalMinutes")


class TrainReadiness(BaseModel):
    """Latest readiness signal for one train; no history is kept"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    is_ready: bool = Field(True, alias="isReady")
    readiness_score: float = Field(100.0, ge=0, le=100, alias="readinessScore")
    cleaning_status: Optional[CleaningStatus] = Field(default=None, alias="cleaningStatus")
    branding_hours: float = Field(0.0, ge=0, alias="brandingHours")
    runtime_balance: float = Field(0.0, alias="runtimeBalance")
    job_card_status: Optional[JobCardStatus] = Field(default=None, alias="jobCardStatus")
    last_updated: datetime = Field(default_factory=datetime.now, alias="lastUpdated")
    issues: List[str] = Field(default_factory=list)


class BayAssignment(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bay_id: str = Field(..., alias="bayId")
    train_id: Optional[str] = Field(default=None, alias="trainId")
    bay_type: BayType = Field(..., alias="bayType")
    assigned_at: datetime = Field(..., alias="assignedAt")
    departure_time: Optional[datetime] = Field(default=None, alias="departureTime")
    reason: str = ""


class AllocationChange(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: datetime
    type: ChangeType
    from_bay: Optional[str] = Field(default=None, alias="fromBay")
    to_bay: str = Field(..., alias="toBay")
    train_id: str = Field(..., alias="trainId")
    replaced_train_id: Optional[str] = Field(default=None, alias="replacedTrainId")
    reason: str = ""
    shunting_steps: int = Field(0, ge=0, alias="shuntingSteps")


class PlanSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    primary_bays_occupied: int = Field(0, alias="primaryBaysOccupied")
    standby_bays_occupied: int = Field(0, alias="standbyBaysOccupied")
    overflow_bays_occupied: int = Field(0, alias="overflowBaysOccupied")
    total_shunting_steps: int = Field(0, ge=0, alias="totalShuntingSteps")


class AllocationPlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: str = Field(..., alias="planId")
    created_at: datetime = Field(..., alias="createdAt")
    mode: PlanMode = PlanMode.DAILY_FORECAST
    bays: List[BayAssignment] = Field(default_factory=list)
    changes: List[AllocationChange] = Field(default_factory=list)
    summary: PlanSummary = Field(default_factory=PlanSummary)

    @model_validator(mode="after")
    def _check_bay_uniqueness(self) -> "AllocationPlan":
        seen = set()
        for bay in self.bays:
            if bay.train_id is None:
                continue
            if bay.train_id in seen:
                raise ValueError(f"Train {bay.train_id} is assigned to more than one bay")
            seen.add(bay.train_id)
        return self

    def bay(self, bay_id: str) -> Optional[BayAssignment]:
        return next((b for b in self.bays if b.bay_id == bay_id), None)

    def bay_of(self, train_id: str) -> Optional[BayAssignment]:
        return next((b for b in self.bays if b.train_id == train_id), None)


class ForecastRequest(BaseModel):
    """Request body pairing schedule results with optional layout overrides"""
    model_config = ConfigDict(populate_by_name=True)

    results: List[ScheduleResult]
    bay_configuration: Optional[BayConfiguration] = Field(default=None, alias="bayConfiguration")
    parameters: Optional[ForecastParameters] = None


class RealTimeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan: AllocationPlan
    readiness: List[TrainReadiness] = Field(default_factory=list)
    results: List[ScheduleResult]
    bay_configuration: Optional[BayConfiguration] = Field(default=None, alias="bayConfiguration")
    parameters: Optional[ForecastParameters] = None



class ReadinessRequest(BaseModel):
    results: List[ScheduleResult]
    overrides: List[TrainReadiness] = Field(default_factory=list)
    parameters: Optional[ForecastParameters] = None


class MonitorStartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    trains: List[Train] = Field(default_factory=list, description="Fleet to plan; the sample fleet is used when empty")
    config: Dict[str, Any] = Field(default_factory=dict)
    interval_seconds: Optional[float] = Field(default=None, gt=0, alias="intervalSeconds")
