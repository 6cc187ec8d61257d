# fleet_induction/services/readiness.py
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from fleet_induction.core.scoring_config import READINESS_BRANDING_BONUS, READINESS_PENALTIES
from fleet_induction.models.allocation import (
    CleaningStatus,
    ForecastParameters,
    JobCardStatus,
    TrainReadiness,
)
from fleet_induction.models.schedule import ScheduleResult
from fleet_induction.models.train import Train

logger = logging.getLogger(__name__)


def calculate_readiness_score(
    train: Train,
    readiness: Optional[TrainReadiness] = None,
    parameters: Optional[ForecastParameters] = None,
) -> float:
    """
    Compute a 0-100 readiness score.

    Starts at 100 and subtracts for failing certificates, cleaning, open job
    cards (scaled by jobCardWeight) and deviation from the average fleet mileage; adds a bonus when the
    branding exposure target is met. A NEEDS_CLEANING or IN_PROGRESS cleaning
    status replaces the days-based cleaning penalty.
    """
    params = parameters or ForecastParameters()
    score = 100.0

    if not train.fitness.all_valid:
        score -= READINESS_PENALTIES["FITNESS_FAILURE"]

    cleaning_status = readiness.cleaning_status if readiness else None
    if cleaning_status == CleaningStatus.NEEDS_CLEANING:
        score -= READINESS_PENALTIES["NEEDS_CLEANING"]
    elif cleaning_status == CleaningStatus.IN_PROGRESS:
        score -= READINESS_PENALTIES["CLEANING_IN_PROGRESS"]
    elif train.days_since_clean > params.cleaning_threshold_days:
        score -= READINESS_PENALTIES["CLEANING_OVERDUE"]

    job_card_status = readiness.job_card_status if readiness else None
    if job_card_status == JobCardStatus.OPEN:
        score -= READINESS_PENALTIES["JOB_CARD_OPEN"] * params.job_card_weight
    elif job_card_status == JobCardStatus.IN_PROGRESS:
        score -= READINESS_PENALTIES["JOB_CARD_IN_PROGRESS"] * params.job_card_weight

    mileage_diff = abs(train.mileage_total - params.average_mileage)
    score -= (mileage_diff / READINESS_PENALTIES["MILEAGE_DEVIATION_UNIT_KM"]) * params.runtime_balance_weight

    if train.branding_hours >= params.min_branding_hours:
        score += READINESS_BRANDING_BONUS

    return max(0.0, min(100.0, score))


def _issues_for(train: Train, job_card_status: Optional[JobCardStatus], params: ForecastParameters) -> List[str]:
    issues = [f"{name} certificate expired" for name in train.fitness.failing()]
    if train.days_since_clean > params.cleaning_threshold_days:
        issues.append("Overdue for cleaning")
    if job_card_status == JobCardStatus.OPEN:
        issues.append("Open job card")
    elif job_card_status == JobCardStatus.IN_PROGRESS:
        issues.append("Job card in progress")
    return issues


def build_readiness(
    results: Sequence[ScheduleResult],
    parameters: Optional[ForecastParameters] = None,
    overrides: Optional[Dict[str, TrainReadiness]] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> List[TrainReadiness]:
    """Derive a readiness record for every scheduled train.

    Overrides carry externally reported cleaning/job-card status and, when
    explicitly set, the isReady flag. Without an explicit flag a train is
    ready when its score reaches the readiness threshold.
    """
    params = parameters or ForecastParameters()
    overrides = overrides or {}
    now = clock()
    readiness_list: List[TrainReadiness] = []

    for result in results:
        train = result.train
        override = overrides.get(result.id)
        score = calculate_readiness_score(train, override, params)

        if override is not None and "is_ready" in override.model_fields_set:
            is_ready = override.is_ready
        else:
            is_ready = score >= params.readiness_threshold

        if override is not None and override.cleaning_status is not None:
            cleaning_status = override.cleaning_status
        elif train.days_since_clean > params.cleaning_threshold_days:
            cleaning_status = CleaningStatus.NEEDS_CLEANING
        else:
            cleaning_status = CleaningStatus.CLEAN

        job_card_status = override.job_card_status if override and override.job_card_status else JobCardStatus.CLOSED

        readiness_list.append(
            TrainReadiness(
                id=result.id,
                is_ready=is_ready,
                readiness_score=score,
                cleaning_status=cleaning_status,
                branding_hours=train.branding_hours,
                runtime_balance=train.mileage_total,
                job_card_status=job_card_status,
                last_updated=now,
                issues=_issues_for(train, job_card_status, params),
            )
        )

    not_ready = sum(1 for r in readiness_list if not r.is_ready)
    logger.debug(f"Readiness computed for {len(readiness_list)} trains, {not_ready} not ready")
    return readiness_list
