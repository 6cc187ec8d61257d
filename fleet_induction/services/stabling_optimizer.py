# fleet_induction/services/stabling_optimizer.py
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from fleet_induction.models.allocation import (
    AllocationChange,
    AllocationPlan,
    BayAssignment,
    BayConfiguration,
    BayType,
    ChangeType,
    ForecastParameters,
    PlanMode,
    PlanSummary,
    TrainReadiness,
)
from fleet_induction.models.schedule import Assignment, ScheduleResult
from fleet_induction.services.readiness import calculate_readiness_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    train_id: str
    from_bay: str
    readiness_score: float
    shunting_steps: int
    total_score: float


class BayAllocator:
    """
    Stabling bay planner and real-time reallocation engine.
    - Daily forecast: IN_SERVICE trains fill primary bays in slot order, the
      surplus goes to overflow bays, STANDBY trains fill standby bays by score.
    - Real-time: unready primary occupants are swapped with the best ready
      train from any other occupied bay, penalised by shunting distance.
    Both operations are pure; the caller owns the current plan.
    """

    def __init__(
        self,
        config: Optional[BayConfiguration] = None,
        parameters: Optional[ForecastParameters] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config or BayConfiguration()
        self.parameters = parameters or ForecastParameters()
        self.clock = clock

    # ------------------------------------------------------------------
    # Daily forecast
    # ------------------------------------------------------------------
    def generate_daily_forecast(self, schedule_results: Sequence[ScheduleResult]) -> AllocationPlan:
        now = self.clock()

        in_service = sorted(
            (r for r in schedule_results if r.assignment == Assignment.IN_SERVICE),
            key=lambda r: (r.slot if r.slot is not None else 0, r.id),
        )
        standby = sorted(
            (r for r in schedule_results if r.assignment == Assignment.STANDBY),
            key=lambda r: (-(r.score if r.score is not None else 0.0), r.id),
        )

        service_start = self._next_occurrence(now, self.parameters.departure_base_hour)
        overflow_start = service_start.replace(hour=self.parameters.overflow_base_hour)
        interval = timedelta(minutes=self.parameters.departure_interval_minutes)

        bays: List[BayAssignment] = []
        changes: List[AllocationChange] = []

        def _fill(
            bay_ids: List[str],
            trains: List[ScheduleResult],
            bay_type: BayType,
            departure_start: Optional[datetime],
            reason_for: Callable[[ScheduleResult], str],
        ) -> None:
            label = bay_type.value.lower()
            for index, bay_id in enumerate(bay_ids):
                if index >= len(trains):
                    bays.append(self._empty_bay(bay_id, bay_type, now))
                    continue
                result = trains[index]
                departure = departure_start + index * interval if departure_start else None
                bays.append(
                    BayAssignment(
                        bay_id=bay_id,
                        train_id=result.id,
                        bay_type=bay_type,
                        assigned_at=now,
                        departure_time=departure,
                        reason=reason_for(result),
                    )
                )
                changes.append(
                    AllocationChange(
                        timestamp=now,
                        type=ChangeType.ASSIGNMENT,
                        to_bay=bay_id,
                        train_id=result.id,
                        reason=f"Daily forecast: {label.capitalize()} bay assignment",
                        shunting_steps=0,
                    )
                )

        primary_count = len(self.config.primary_bays)
        _fill(
            self.config.primary_bays,
            in_service[:primary_count],
            BayType.PRIMARY,
            service_start,
            lambda r: f"Primary bay assignment for slot {r.slot} departure",
        )
        _fill(
            self.config.standby_bays,
            standby,
            BayType.STANDBY,
            None,
            lambda r: f"Standby backup with score {(r.score or 0.0):.1f}",
        )
        surplus = in_service[primary_count:]
        _fill(
            self.config.overflow_bays,
            surplus,
            BayType.OVERFLOW,
            overflow_start,
            lambda r: "Overflow assignment for later departure",
        )

        placed = {b.train_id for b in bays if b.train_id}
        unplaced = [r.id for r in in_service + standby if r.id not in placed]
        if unplaced:
            logger.warning(f"No stabling bay available for trains: {', '.join(unplaced)}")

        plan = AllocationPlan(
            plan_id=f"DAILY_{now.date().isoformat()}",
            created_at=now,
            mode=PlanMode.DAILY_FORECAST,
            bays=bays,
            changes=changes,
            summary=self._compute_counts(bays, 0),
        )
        logger.info(
            f"Daily forecast {plan.plan_id}: primary={plan.summary.primary_bays_occupied} "
            f"standby={plan.summary.standby_bays_occupied} overflow={plan.summary.overflow_bays_occupied}"
        )
        return plan

    # ------------------------------------------------------------------
    # Real-time reallocation
    # ------------------------------------------------------------------
    def update_real_time_allocation(
        self,
        current_plan: AllocationPlan,
        train_readiness: Sequence[TrainReadiness],
        schedule_results: Sequence[ScheduleResult],
    ) -> AllocationPlan:
        now = self.clock()
        readiness_by_id = {r.id: r for r in train_readiness}
        results_by_id = {r.id: r for r in schedule_results}

        bays: Dict[str, BayAssignment] = {b.bay_id: b for b in current_plan.bays}
        new_changes: List[AllocationChange] = []
        total_steps = current_plan.summary.total_shunting_steps
        threshold = self.parameters.readiness_threshold

        primary_ids = sorted(
            b.bay_id for b in current_plan.bays if b.bay_type == BayType.PRIMARY and b.train_id
        )
        for bay_id in primary_ids:
            bay = bays[bay_id]
            if not bay.train_id:
                continue
            status = self._readiness_of(bay.train_id, readiness_by_id, results_by_id)
            if status is None:
                continue
            score, is_ready = status
            if score >= threshold and is_ready:
                continue

            history = list(current_plan.changes) + new_changes
            best = self._find_best_replacement(bay, bays.values(), readiness_by_id, results_by_id, history)
            if best is None:
                logger.warning(
                    f"Train {bay.train_id} in {bay_id} not ready (score {score:.1f}) and no replacement available"
                )
                continue

            reason = (
                f"Train {bay.train_id} not ready: replaced by Train {best.train_id} "
                f"from {best.from_bay} with {best.shunting_steps} shunting step(s)"
            )
            if best.shunting_steps > self.config.max_shunting_distance:
                logger.warning(
                    f"Replacement for {bay_id} needs {best.shunting_steps} shunting steps "
                    f"(max {self.config.max_shunting_distance})"
                )

            source = bays[best.from_bay]
            bays[bay_id] = bay.model_copy(
                update={"train_id": best.train_id, "assigned_at": now, "reason": f"Real-time replacement: {reason}"}
            )
            bays[best.from_bay] = source.model_copy(
                update={
                    "train_id": bay.train_id,
                    "assigned_at": now,
                    "reason": f"Moved from {bay_id} due to readiness issues",
                }
            )
            total_steps += best.shunting_steps
            new_changes.append(
                AllocationChange(
                    timestamp=now,
                    type=ChangeType.REPLACEMENT,
                    from_bay=best.from_bay,
                    to_bay=bay_id,
                    train_id=best.train_id,
                    replaced_train_id=bay.train_id,
                    reason=reason,
                    shunting_steps=best.shunting_steps,
                )
            )
            logger.info(reason)

        updated_bays = [bays[b.bay_id] for b in current_plan.bays]
        return AllocationPlan(
            plan_id=current_plan.plan_id,
            created_at=current_plan.created_at,
            mode=PlanMode.REAL_TIME,
            bays=updated_bays,
            changes=list(current_plan.changes) + new_changes,
            summary=self._compute_counts(updated_bays, total_steps),
        )

    def calculate_shunting_steps(self, from_bay: str, to_bay: str) -> int:
        positions = self.config.bay_positions
        return abs(positions.get(to_bay, 0) - positions.get(from_bay, 0))

    def _readiness_of(
        self,
        train_id: str,
        readiness_by_id: Dict[str, TrainReadiness],
        results_by_id: Dict[str, ScheduleResult],
    ) -> Optional[Tuple[float, bool]]:
        """Score and ready flag; missing readiness means ready with a computed score."""
        result = results_by_id.get(train_id)
        if result is None:
            return None
        readiness = readiness_by_id.get(train_id)
        if readiness is not None:
            return readiness.readiness_score, readiness.is_ready
        return calculate_readiness_score(result.train, None, self.parameters), True

    def _find_best_replacement(
        self,
        target: BayAssignment,
        bays,
        readiness_by_id: Dict[str, TrainReadiness],
        results_by_id: Dict[str, ScheduleResult],
        history: Sequence[AllocationChange] = (),
    ) -> Optional[_Candidate]:
        candidates: List[_Candidate] = []
        for bay in bays:
            if not bay.train_id or bay.bay_id == target.bay_id:
                continue
            if bay.bay_type == BayType.PRIMARY and self._reverses_replacement(target, bay, history):
                continue
            status = self._readiness_of(bay.train_id, readiness_by_id, results_by_id)
            if status is None:
                continue
            score, is_ready = status
            if not is_ready or score < self.parameters.readiness_threshold:
                continue
            steps = self.calculate_shunting_steps(bay.bay_id, target.bay_id)
            candidates.append(
                _Candidate(
                    train_id=bay.train_id,
                    from_bay=bay.bay_id,
                    readiness_score=score,
                    shunting_steps=steps,
                    total_score=score - steps * self.parameters.shunting_penalty,
                )
            )
        if not candidates:
            return None
        candidates.sort(key=lambda c: (-c.total_score, c.from_bay))
        return candidates[0]

    @staticmethod
    def _reverses_replacement(
        target: BayAssignment, source: BayAssignment, history: Sequence[AllocationChange]
    ) -> bool:
        """True when moving the source train into target would undo an earlier primary-to-primary swap"""
        return any(
            change.type == ChangeType.REPLACEMENT
            and change.from_bay == target.bay_id
            and change.to_bay == source.bay_id
            and change.train_id == source.train_id
            and change.replaced_train_id == target.train_id
            for change in history
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _compute_counts(self, bays: Sequence[BayAssignment], total_shunting_steps: int) -> PlanSummary:
        def _occupied(bay_type: BayType) -> int:
            return sum(1 for b in bays if b.bay_type == bay_type and b.train_id)

        return PlanSummary(
            primary_bays_occupied=_occupied(BayType.PRIMARY),
            standby_bays_occupied=_occupied(BayType.STANDBY),
            overflow_bays_occupied=_occupied(BayType.OVERFLOW),
            total_shunting_steps=total_shunting_steps,
        )

    def _empty_bay(self, bay_id: str, bay_type: BayType, now: datetime) -> BayAssignment:
        return BayAssignment(
            bay_id=bay_id,
            train_id=None,
            bay_type=bay_type,
            assigned_at=now,
            reason=f"Available {bay_type.value.lower()} bay",
        )

    @staticmethod
    def _next_occurrence(now: datetime, hour: int) -> datetime:
        candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate
