"""Tests for the scheduled real-time monitoring job"""
import asyncio
from datetime import datetime

import pytest

from fleet_induction.models.allocation import JobCardStatus, PlanMode, TrainReadiness
from fleet_induction.models.schedule import Assignment, ScheduleResult
from fleet_induction.models.train import Train
from fleet_induction.services.mock_data_generator import ReadinessSimulator
from fleet_induction.services.realtime_monitor import MONITOR_JOB_ID, RealTimeMonitor
from fleet_induction.services.stabling_optimizer import BayAllocator


def _result(train_id, assignment, slot=None, score=0.0):
    train = Train(id=train_id, mileage_total=250000, since_A=1000, since_B=5000, branding_hours=8)
    return ScheduleResult(id=train_id, assignment=assignment, reason="", score=score, slot=slot, train=train)


@pytest.fixture
def results():
    return [_result("P", Assignment.IN_SERVICE, slot=1), _result("S", Assignment.STANDBY, score=-10.0)]


@pytest.fixture
def allocator():
    return BayAllocator(clock=lambda: datetime(2025, 1, 15, 22, 0))


def unready_primary(plan, schedule_results):
    return [
        TrainReadiness(id="P", readinessScore=40, isReady=True),
        TrainReadiness(id="S", readinessScore=85, isReady=True),
    ]


@pytest.mark.asyncio
async def test_tick_commits_new_plan(allocator, results):
    plan = allocator.generate_daily_forecast(results)
    monitor = RealTimeMonitor(allocator, results, plan, unready_primary, interval_seconds=60)

    updated = await monitor.tick()

    assert monitor.current_plan is updated
    assert updated.mode == PlanMode.REAL_TIME
    assert updated.bay("A1").train_id == "S"
    assert monitor.tick_count == 1
    assert [r.id for r in monitor.last_readiness] == ["P", "S"]


@pytest.mark.asyncio
async def test_async_readiness_source(allocator, results):
    plan = allocator.generate_daily_forecast(results)

    async def source(current, schedule_results):
        await asyncio.sleep(0)
        return unready_primary(current, schedule_results)

    monitor = RealTimeMonitor(allocator, results, plan, source)
    updated = await monitor.tick()

    assert updated.summary.total_shunting_steps == 1


@pytest.mark.asyncio
async def test_start_and_stop(allocator, results):
    plan = allocator.generate_daily_forecast(results)
    monitor = RealTimeMonitor(allocator, results, plan, unready_primary, interval_seconds=0.02)

    monitor.start()
    assert monitor.is_running
    await asyncio.sleep(0.3)
    await monitor.stop()

    assert not monitor.is_running
    assert monitor.tick_count >= 1
    ticks = monitor.tick_count
    await asyncio.sleep(0.1)
    assert monitor.tick_count == ticks


@pytest.mark.asyncio
async def test_start_registers_single_interval_job(allocator, results):
    plan = allocator.generate_daily_forecast(results)
    monitor = RealTimeMonitor(allocator, results, plan, unready_primary, interval_seconds=60)

    monitor.start()
    monitor.start()
    try:
        jobs = monitor._scheduler.get_jobs()
        assert [job.id for job in jobs] == [MONITOR_JOB_ID]
        assert jobs[0].max_instances == 1
        assert jobs[0].coalesce is True
        assert jobs[0].trigger.interval.total_seconds() == 60
    finally:
        await monitor.stop()

    assert monitor._scheduler is None
    await monitor.stop()


@pytest.mark.asyncio
async def test_cancelled_tick_leaves_plan_untouched(allocator, results):
    plan = allocator.generate_daily_forecast(results)
    release = asyncio.Event()

    async def slow_source(current, schedule_results):
        await release.wait()
        return unready_primary(current, schedule_results)

    monitor = RealTimeMonitor(allocator, results, plan, slow_source)
    task = asyncio.create_task(monitor.tick())
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert monitor.current_plan is plan
    assert monitor.tick_count == 0


@pytest.mark.asyncio
async def test_failing_tick_does_not_stop_job(allocator, results):
    plan = allocator.generate_daily_forecast(results)
    calls = {"n": 0}

    def flaky_source(current, schedule_results):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("feed unavailable")
        return unready_primary(current, schedule_results)

    monitor = RealTimeMonitor(allocator, results, plan, flaky_source, interval_seconds=0.02)
    monitor.start()
    await asyncio.sleep(0.3)
    await monitor.stop()

    assert calls["n"] >= 2
    assert monitor.tick_count >= 1


@pytest.mark.asyncio
async def test_monitor_with_simulated_readiness(allocator, results):
    plan = allocator.generate_daily_forecast(results)
    monitor = RealTimeMonitor(allocator, results, plan, ReadinessSimulator(seed=3))

    steps = []
    for _ in range(5):
        updated = await monitor.tick()
        steps.append(updated.summary.total_shunting_steps)
        occupied = [b.train_id for b in updated.bays if b.train_id]
        assert len(occupied) == len(set(occupied))

    assert steps == sorted(steps)


def test_readiness_simulator_is_seeded(results, allocator):
    plan = allocator.generate_daily_forecast(results)
    first, second = ReadinessSimulator(seed=11), ReadinessSimulator(seed=11)

    for _ in range(3):
        a = first(plan, results)
        b = second(plan, results)
        assert [(r.readiness_score, r.is_ready) for r in a] == [(r.readiness_score, r.is_ready) for r in b]


def test_readiness_simulator_opens_job_cards(results, allocator):
    plan = allocator.generate_daily_forecast(results)

    all_open = ReadinessSimulator(seed=5, open_job_card_rate=1.0)(plan, results)
    none_open = ReadinessSimulator(seed=5, open_job_card_rate=0.0)(plan, results)

    assert all(r.job_card_status == JobCardStatus.OPEN for r in all_open)
    assert all("Open job card" in r.issues for r in all_open)
    assert all(r.job_card_status == JobCardStatus.CLOSED for r in none_open)
    # 100 - 30 for the open card + 10 branding bonus
    assert [r.readiness_score for r in all_open] == [pytest.approx(80.0)] * 2
    assert [r.readiness_score for r in none_open] == [100.0, 100.0]
