# fleet_induction/services/rule_engine.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

from fleet_induction.models.schedule import Assignment, ScheduleResult, SchedulingConfig
from fleet_induction.models.train import Train

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationTally:
    """Running WORKSHOP/IBL counts for one classification pass"""
    workshop: int = 0
    ibl: int = 0

    def record(self, assignment: Assignment) -> "ClassificationTally":
        if assignment == Assignment.WORKSHOP:
            return replace(self, workshop=self.workshop + 1)
        if assignment == Assignment.IBL:
            return replace(self, ibl=self.ibl + 1)
        return self


@dataclass(frozen=True)
class Classification:
    hard_assigned: List[ScheduleResult] = field(default_factory=list)
    eligible: List[Train] = field(default_factory=list)
    tally: ClassificationTally = field(default_factory=ClassificationTally)


Decision = Tuple[Assignment, str]
Rule = Callable[[Train, SchedulingConfig, ClassificationTally], Optional[Decision]]


def _maintenance_rule(train: Train, config: SchedulingConfig, tally: ClassificationTally) -> Optional[Decision]:
    if train.requires_maintenance:
        return Assignment.WORKSHOP, f"Required maintenance: {train.state.value}"
    return None


def _inspection_rule(train: Train, config: SchedulingConfig, tally: ClassificationTally) -> Optional[Decision]:
    if train.since_a >= config.a_threshold_km or train.since_b >= config.b_threshold_km:
        return (
            Assignment.IBL,
            f"Overdue inspection - A: {_km(train.since_a)}km, B: {_km(train.since_b)}km",
        )
    return None


def _fitness_rule(train: Train, config: SchedulingConfig, tally: ClassificationTally) -> Optional[Decision]:
    issues = train.fitness.failing()
    if not issues:
        return None
    cited = ", ".join(issues)
    if tally.workshop < config.num_workshop_bays:
        return Assignment.WORKSHOP, f"Fitness certificate issues: {cited}"
    if tally.ibl < config.num_inspection_bays:
        return Assignment.IBL, f"Fitness certificate issues: {cited} - Workshop full"
    return Assignment.STANDBY, "Fitness issues but no bays available"


def _km(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class Classifier:
    """Hard-constraint classification applied before any scoring.

    Rules are evaluated in strict priority order; the first rule that returns
    a decision wins. Capacity for fitness failures is enforced through the
    tally, which also counts maintenance and inspection assignments made
    earlier in the same pass.
    """

    def __init__(self) -> None:
        self.constraint_rules: Dict[str, Rule] = {
            "mandatory_maintenance": _maintenance_rule,
            "overdue_inspection": _inspection_rule,
            "fitness_certificates": _fitness_rule,
        }

    def classify_train(
        self, train: Train, config: SchedulingConfig, tally: ClassificationTally
    ) -> Tuple[Optional[ScheduleResult], ClassificationTally]:
        for rule_name, rule in self.constraint_rules.items():
            decision = rule(train, config, tally)
            if decision is None:
                continue
            assignment, reason = decision
            logger.debug(f"Train {train.id} -> {assignment.value} ({rule_name})")
            result = ScheduleResult(id=train.id, assignment=assignment, reason=reason, train=train)
            return result, tally.record(assignment)
        return None, tally

    def classify(self, trains: List[Train], config: SchedulingConfig) -> Classification:
        hard_assigned: List[ScheduleResult] = []
        eligible: List[Train] = []
        tally = ClassificationTally()

        for train in trains:
            result, tally = self.classify_train(train, config, tally)
            if result is None:
                eligible.append(train)
            else:
                hard_assigned.append(result)

        logger.info(
            f"Classification: {len(hard_assigned)} hard-assigned "
            f"(workshop={tally.workshop}, ibl={tally.ibl}), {len(eligible)} eligible"
        )
        return Classification(hard_assigned=hard_assigned, eligible=eligible, tally=tally)
