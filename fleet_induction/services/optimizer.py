# fleet_induction/services/optimizer.py
import logging
from typing import List, Optional, Sequence

from fleet_induction.models.schedule import (
    ASSIGNMENT_PRIORITY,
    Assignment,
    ScheduleResponse,
    ScheduleResult,
    ScheduleSummary,
    SchedulingConfig,
)
from fleet_induction.models.train import Train
from fleet_induction.services.rule_engine import Classifier
from fleet_induction.services.scoring import ScoredTrain, Scorer, WeightedCostScorer

logger = logging.getLogger(__name__)


class RoleAllocator:
    """Fills the in-service quota from the ranked eligible trains; the rest go to standby."""

    def allocate(self, ranked: List[ScoredTrain], required_in_service: int) -> List[ScheduleResult]:
        k = min(required_in_service, len(ranked))
        results: List[ScheduleResult] = []
        for index, item in enumerate(ranked):
            if index < k:
                results.append(
                    ScheduleResult(
                        id=item.id,
                        assignment=Assignment.IN_SERVICE,
                        reason=f"Selected for service - Score: {item.score:.1f}",
                        score=item.score,
                        slot=index + 1,
                        train=item.train,
                    )
                )
            else:
                results.append(
                    ScheduleResult(
                        id=item.id,
                        assignment=Assignment.STANDBY,
                        reason=f"Reserve candidate - Score: {item.score:.1f}",
                        score=item.score,
                        train=item.train,
                    )
                )
        return results


def sort_results(results: List[ScheduleResult]) -> List[ScheduleResult]:
    """Priority IN_SERVICE < STANDBY < IBL < WORKSHOP, then slot (in service) or
    score descending (unscored last), then train id."""

    def sort_key(r: ScheduleResult):
        status_priority = ASSIGNMENT_PRIORITY[r.assignment]
        slot = r.slot if r.assignment == Assignment.IN_SERVICE and r.slot is not None else 0
        if r.score is None:
            score_key = (1, 0.0)
        else:
            score_key = (0, -r.score)
        return (status_priority, slot, score_key, r.id)

    return sorted(results, key=sort_key)


def summarize(results: Sequence[ScheduleResult]) -> ScheduleSummary:
    counts = {a: 0 for a in Assignment}
    for r in results:
        counts[r.assignment] += 1
    return ScheduleSummary(
        in_service=counts[Assignment.IN_SERVICE],
        standby=counts[Assignment.STANDBY],
        ibl=counts[Assignment.IBL],
        workshop=counts[Assignment.WORKSHOP],
    )


def compute_objective(
    results: Sequence[ScheduleResult], summary: ScheduleSummary, config: SchedulingConfig
) -> float:
    service_cost = sum(-r.score for r in results if r.assignment == Assignment.IN_SERVICE and r.score is not None)
    shortfall = max(0, config.required_in_service - summary.in_service)
    over_workshop = max(0, summary.workshop - config.num_workshop_bays)
    over_ibl = max(0, summary.ibl - config.num_inspection_bays)
    return (
        service_cost
        + config.w_short_in_service * shortfall
        + config.w_over_workshop * over_workshop
        + config.w_over_ibl * over_ibl
    )


def _generate_warnings(
    results: Sequence[ScheduleResult], summary: ScheduleSummary, config: SchedulingConfig
) -> List[str]:
    warnings: List[str] = []
    if not results:
        return warnings

    if summary.in_service < config.required_in_service:
        warnings.append(
            f"In-service shortfall: {summary.in_service} of {config.required_in_service} required trains available"
        )
    if summary.standby < config.min_reserve:
        warnings.append(f"Reserve shortfall: {summary.standby} standby trains, minimum reserve is {config.min_reserve}")
    stabled = summary.in_service + summary.standby
    if stabled > config.num_stabling_slots:
        warnings.append(f"Stabling capacity exceeded: {stabled} trains for {config.num_stabling_slots} slots")

    for r in results:
        if r.assignment == Assignment.WORKSHOP:
            continue
        mileage = r.train.mileage_total
        if mileage >= config.poh_threshold_km:
            warnings.append(f"Train {r.id} is due for POH ({mileage:.0f} km)")
        elif mileage >= config.ioh_threshold_km:
            warnings.append(f"Train {r.id} is due for IOH ({mileage:.0f} km)")
    return warnings


def schedule_trains(
    trains: Sequence[Train],
    config: Optional[SchedulingConfig] = None,
    scorer: Optional[Scorer] = None,
) -> ScheduleResponse:
    """
    Assign every train exactly one role for the coming service day.

    Pure and deterministic: hard constraints first, then scoring of the
    eligible trains, then the in-service quota. Ties are broken by train id.
    """
    config = config or SchedulingConfig()
    scorer = scorer or WeightedCostScorer()
    trains = list(trains)

    if not trains:
        logger.info("Scheduling skipped: empty fleet")
        return ScheduleResponse()

    classification = Classifier().classify(trains, config)
    ranked = scorer.score(classification.eligible, trains, config)
    allocated = RoleAllocator().allocate(ranked, config.required_in_service)

    results = sort_results(classification.hard_assigned + allocated)
    summary = summarize(results)
    warnings = _generate_warnings(results, summary, config)
    for w in warnings:
        logger.warning(w)

    logger.info(
        f"Schedule: in_service={summary.in_service} standby={summary.standby} "
        f"ibl={summary.ibl} workshop={summary.workshop}"
    )
    return ScheduleResponse(
        results=results,
        summary=summary,
        warnings=warnings,
        objective=compute_objective(results, summary, config),
    )
