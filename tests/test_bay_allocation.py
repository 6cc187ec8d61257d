"""Unit tests for the daily bay forecast and real-time reallocation"""
from datetime import datetime

import pytest
from pydantic import ValidationError

from fleet_induction.models.allocation import (
    AllocationPlan,
    BayAssignment,
    BayType,
    ChangeType,
    PlanMode,
    TrainReadiness,
)
from fleet_induction.models.schedule import Assignment, ScheduleResult
from fleet_induction.models.train import Train
from fleet_induction.services.stabling_optimizer import BayAllocator

NOW = datetime(2025, 1, 15, 22, 0)


def make_train(train_id, **overrides):
    data = {
        "id": train_id,
        "mileage_total": 250000,
        "since_A": 1000,
        "since_B": 5000,
        "days_since_clean": 5,
        "branding_hours": 8,
    }
    data.update(overrides)
    return Train(**data)


def service(train_id, slot, **train_overrides):
    return ScheduleResult(
        id=train_id,
        assignment=Assignment.IN_SERVICE,
        reason="Selected for service",
        score=-100.0 * slot,
        slot=slot,
        train=make_train(train_id, **train_overrides),
    )


def standby(train_id, score, **train_overrides):
    return ScheduleResult(
        id=train_id,
        assignment=Assignment.STANDBY,
        reason="Reserve candidate",
        score=score,
        train=make_train(train_id, **train_overrides),
    )


def ready(train_id, score, is_ready=True):
    return TrainReadiness(id=train_id, readiness_score=score, is_ready=is_ready)


@pytest.fixture
def allocator():
    return BayAllocator(clock=lambda: NOW)


@pytest.fixture
def results():
    return [
        service("P", 1),
        service("Q", 2),
        service("R", 3),
        standby("S", -50.0),
    ]


def test_daily_forecast_layout(allocator):
    results = [service(f"T{i}", i) for i in range(1, 6)] + [standby("S1", -100.0), standby("S2", -50.0)]
    plan = allocator.generate_daily_forecast(results)

    assert plan.plan_id == "DAILY_2025-01-15"
    assert plan.mode == PlanMode.DAILY_FORECAST
    assert [(b.bay_id, b.train_id) for b in plan.bays] == [
        ("A1", "T1"), ("B1", "T2"), ("C1", "T3"),
        ("A2", "S2"), ("B2", "S1"), ("C2", None),
        ("A3", "T4"), ("B3", "T5"), ("C3", None),
    ]

    a1 = plan.bay("A1")
    assert a1.departure_time == datetime(2025, 1, 16, 6, 0)
    assert a1.reason == "Primary bay assignment for slot 1 departure"
    assert plan.bay("C1").departure_time == datetime(2025, 1, 16, 7, 0)
    assert plan.bay("A3").departure_time == datetime(2025, 1, 16, 10, 0)
    assert plan.bay("B3").departure_time == datetime(2025, 1, 16, 10, 30)
    assert plan.bay("A2").departure_time is None
    assert plan.bay("A2").reason == "Standby backup with score -50.0"
    assert plan.bay("C2").reason == "Available standby bay"

    assert plan.summary.primary_bays_occupied == 3
    assert plan.summary.standby_bays_occupied == 2
    assert plan.summary.overflow_bays_occupied == 2
    assert plan.summary.total_shunting_steps == 0

    assert len(plan.changes) == 7
    assert all(c.type == ChangeType.ASSIGNMENT and c.shunting_steps == 0 for c in plan.changes)
    assert plan.changes[0].reason == "Daily forecast: Primary bay assignment"


def test_forecast_marks_unfilled_primary_bays_available(allocator):
    plan = allocator.generate_daily_forecast([service("Only", 1)])

    assert plan.bay("B1").train_id is None
    assert plan.bay("B1").reason == "Available primary bay"
    assert plan.summary.primary_bays_occupied == 1


def test_forecast_ignores_maintenance_roles(allocator):
    workshop = ScheduleResult(id="W", assignment=Assignment.WORKSHOP, reason="x", train=make_train("W"))
    plan = allocator.generate_daily_forecast([service("A", 1), workshop])

    assert plan.bay_of("W") is None


def test_unready_primary_swaps_with_standby(allocator, results):
    """Primary occupant at 40 is replaced by the ready standby train at 85"""
    plan = allocator.generate_daily_forecast(results)
    readiness = [ready("P", 40), ready("Q", 90), ready("R", 90), ready("S", 85)]

    updated = allocator.update_real_time_allocation(plan, readiness, results)

    assert updated.mode == PlanMode.REAL_TIME
    assert updated.bay("A1").train_id == "S"
    assert updated.bay("A2").train_id == "P"
    assert updated.bay("A2").reason == "Moved from A1 due to readiness issues"
    assert updated.bay("A1").reason.startswith("Real-time replacement: Train P not ready")

    replacements = [c for c in updated.changes if c.type == ChangeType.REPLACEMENT]
    assert len(replacements) == 1
    change = replacements[0]
    assert (change.from_bay, change.to_bay, change.train_id, change.replaced_train_id) == ("A2", "A1", "S", "P")
    assert change.shunting_steps == 1
    assert change.reason == "Train P not ready: replaced by Train S from A2 with 1 shunting step(s)"
    assert updated.summary.total_shunting_steps == 1

    # input plan untouched
    assert plan.bay("A1").train_id == "P"
    assert plan.mode == PlanMode.DAILY_FORECAST


def test_replacement_prefers_fewer_shunting_steps(allocator):
    results = [service("P", 1), standby("Near", -10.0), standby("Mid", -20.0), standby("Far", -30.0)]
    plan = allocator.generate_daily_forecast(results)
    # Near in A2 (pos 2), Mid in B2 (pos 5), Far in C2 (pos 8); target A1 is pos 1
    readiness = [ready("P", 10), ready("Near", 75), ready("Mid", 100), ready("Far", 95)]

    updated = allocator.update_real_time_allocation(plan, readiness, results)

    assert updated.bay("A1").train_id == "Near"
    assert updated.summary.total_shunting_steps == 1


def test_not_ready_flag_triggers_replacement(allocator, results):
    plan = allocator.generate_daily_forecast(results)
    readiness = [ready("P", 95, is_ready=False), ready("S", 85)]

    updated = allocator.update_real_time_allocation(plan, readiness, results)

    assert updated.bay("A1").train_id == "S"


def test_no_candidate_keeps_unready_occupant(allocator):
    results = [service("P", 1), standby("S", -50.0)]
    plan = allocator.generate_daily_forecast(results)
    readiness = [ready("P", 40), ready("S", 85, is_ready=False)]

    updated = allocator.update_real_time_allocation(plan, readiness, results)

    assert updated.bay("A1").train_id == "P"
    assert updated.changes == plan.changes
    assert updated.summary.total_shunting_steps == 0
    assert updated.mode == PlanMode.REAL_TIME


def test_candidate_below_threshold_is_rejected(allocator):
    results = [service("P", 1), standby("S", -50.0)]
    plan = allocator.generate_daily_forecast(results)
    readiness = [ready("P", 40), ready("S", 69)]

    updated = allocator.update_real_time_allocation(plan, readiness, results)

    assert updated.bay("A1").train_id == "P"

def test_ready_primary_can_supply_replacement(allocator):
    """With no standby trains the ready occupant of another primary bay takes over"""
    results = [service("P1", 1), service("P2", 2)]
    plan = allocator.generate_daily_forecast(results)
    readiness = [ready("P1", 40), ready("P2", 95)]

    updated = allocator.update_real_time_allocation(plan, readiness, results)

    assert updated.bay("A1").train_id == "P2"
    assert updated.bay("B1").train_id == "P1"
    replacements = [c for c in updated.changes if c.type == ChangeType.REPLACEMENT]
    assert [(c.from_bay, c.to_bay, c.train_id, c.shunting_steps) for c in replacements] == [("B1", "A1", "P2", 3)]
    assert updated.summary.total_shunting_steps == 3


def test_primary_swap_is_not_reversed_on_later_ticks(allocator):
    results = [service("P1", 1), service("P2", 2)]
    plan = allocator.generate_daily_forecast(results)
    readiness = [ready("P1", 40), ready("P2", 95)]

    for _ in range(3):
        plan = allocator.update_real_time_allocation(plan, readiness, results)

    assert plan.bay("A1").train_id == "P2"
    assert plan.bay("B1").train_id == "P1"
    assert plan.summary.total_shunting_steps == 3


def test_nearby_standby_beats_distant_primary(allocator):
    results = [service("P1", 1), service("P2", 2), standby("S", -10.0)]
    plan = allocator.generate_daily_forecast(results)
    # S in A2 nets 80 - 10 = 70 for A1, P2 in B1 nets 95 - 30 = 65
    readiness = [ready("P1", 40), ready("P2", 95), ready("S", 80)]

    updated = allocator.update_real_time_allocation(plan, readiness, results)

    assert updated.bay("A1").train_id == "S"
    assert updated.bay("A2").train_id == "P1"
    assert updated.bay("B1").train_id == "P2"


def test_missing_readiness_is_treated_as_ready(allocator, results):
    plan = allocator.generate_daily_forecast(results)

    updated = allocator.update_real_time_allocation(plan, [], results)

    assert [b.train_id for b in updated.bays] == [b.train_id for b in plan.bays]
    assert len(updated.changes) == len(plan.changes)


def test_missing_readiness_uses_computed_score(allocator):
    # certificate failure and overdue cleaning compute to 40
    results = [
        service("P", 1, fitness={"RS": False, "SIG": True, "TEL": True}, days_since_clean=40),
        standby("S", -10.0),
    ]
    plan = allocator.generate_daily_forecast(results)

    updated = allocator.update_real_time_allocation(plan, [], results)

    assert updated.bay("A1").train_id == "S"


def test_overflow_bays_are_sources_not_targets(allocator):
    results = [service(f"T{i}", i) for i in range(1, 5)]
    plan = allocator.generate_daily_forecast(results)
    readiness = [ready("T1", 90), ready("T2", 90), ready("T3", 90), ready("T4", 20)]

    updated = allocator.update_real_time_allocation(plan, readiness, results)

    # T4 sits in overflow A3 and is never a reallocation target
    assert updated.bay("A3").train_id == "T4"
    assert len(updated.changes) == len(plan.changes)


def test_shunting_steps_never_decrease_across_ticks(allocator):
    results = [service("P", 1), service("Q", 2), standby("S1", -10.0), standby("S2", -20.0)]
    plan = allocator.generate_daily_forecast(results)

    ticks = [
        [ready("P", 30), ready("Q", 90), ready("S1", 90), ready("S2", 90)],
        [ready("P", 30), ready("Q", 20), ready("S1", 90), ready("S2", 88)],
        [ready("P", 90), ready("Q", 90), ready("S1", 90), ready("S2", 90)],
    ]
    totals = [plan.summary.total_shunting_steps]
    for readiness in ticks:
        plan = allocator.update_real_time_allocation(plan, readiness, results)
        totals.append(plan.summary.total_shunting_steps)
        occupied = [b.train_id for b in plan.bays if b.train_id]
        assert len(occupied) == len(set(occupied))

    assert totals == sorted(totals)
    assert totals[-1] > 0


def test_calculate_shunting_steps(allocator):
    assert allocator.calculate_shunting_steps("A1", "C2") == 7
    assert allocator.calculate_shunting_steps("B3", "B1") == 2
    assert allocator.calculate_shunting_steps("Z9", "A2") == 2


def test_plan_rejects_duplicate_train_assignment():
    bays = [
        BayAssignment(bay_id="A1", train_id="T1", bay_type=BayType.PRIMARY, assigned_at=NOW),
        BayAssignment(bay_id="A2", train_id="T1", bay_type=BayType.STANDBY, assigned_at=NOW),
    ]
    with pytest.raises(ValidationError):
        AllocationPlan(plan_id="X", created_at=NOW, bays=bays)
