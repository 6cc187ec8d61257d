# fleet_induction/services/mock_data_generator.py
import logging
import random
from datetime import datetime
from typing import List, Optional, Sequence

from fleet_induction.models.allocation import AllocationPlan, ForecastParameters, JobCardStatus, TrainReadiness
from fleet_induction.models.schedule import ScheduleResult
from fleet_induction.models.train import Train
from fleet_induction.services.readiness import build_readiness

logger = logging.getLogger(__name__)

_SAMPLE_ROWS = [
    # id, mileage, since_A, since_B, state, p_fail, days_since_clean, (RS, SIG, TEL), branding_hours
    ("T01", 120000, 4000, 12000, "OK", 0.01, 15, (True, True, True), 8),
    ("T02", 150000, 3000, 14000, "OK", 0.02, 32, (True, True, False), 10),
    ("T03", 180000, 6000, 10000, "OK", 0.03, 20, (True, True, True), 6),
    ("T04", 220000, 2000, 12000, "IOH", 0.05, 40, (True, True, True), 12),
    ("T05", 250000, 7000, 15000, "OK", 0.01, 10, (True, True, True), 7),
    ("T06", 300000, 1000, 5000, "POH", 0.06, 5, (True, True, True), 9),
    ("T07", 320000, 4000, 16000, "OK", 0.02, 35, (True, True, True), 8),
    ("T08", 350000, 3000, 8000, "OK", 0.01, 25, (True, False, True), 11),
    ("T09", 400000, 5000, 10000, "HEAVY_REPAIR", 0.07, 45, (True, True, True), 5),
    ("T10", 420000, 2500, 12000, "OK", 0.015, 12, (True, True, True), 10),
]


def sample_trains() -> List[Train]:
    """Ten-train sample fleet covering every classification path"""
    trains = []
    for pos, (train_id, mileage, since_a, since_b, state, p_fail, days, (rs, sig, tel), branding) in enumerate(
        _SAMPLE_ROWS
    ):
        trains.append(
            Train(
                id=train_id,
                mileage_total=mileage,
                since_A=since_a,
                since_B=since_b,
                state=state,
                p_fail=p_fail,
                pos=pos,
                days_since_clean=days,
                fitness={"RS": rs, "SIG": sig, "TEL": tel},
                branding_hours=branding,
            )
        )
    return trains


class ReadinessSimulator:
    """Seeded stand-in for live depot readiness feeds.

    The first call derives readiness from the fleet with roughly one train in
    five carrying an open job card; each later call jitters every score by up
    to +/-5 points and marks roughly one train in ten as not ready.
    """

    def __init__(
        self,
        parameters: Optional[ForecastParameters] = None,
        seed: Optional[int] = None,
        jitter: float = 5.0,
        not_ready_rate: float = 0.1,
        open_job_card_rate: float = 0.2,
    ) -> None:
        self.parameters = parameters or ForecastParameters()
        self.rng = random.Random(seed)
        self.jitter = jitter
        self.not_ready_rate = not_ready_rate
        self.open_job_card_rate = open_job_card_rate
        self._current: List[TrainReadiness] = []

    def __call__(self, plan: AllocationPlan, schedule_results: Sequence[ScheduleResult]) -> List[TrainReadiness]:
        if not self._current:
            overrides = {
                r.id: TrainReadiness(id=r.id, jobCardStatus=JobCardStatus.OPEN)
                for r in schedule_results
                if self.rng.random() < self.open_job_card_rate
            }
            self._current = build_readiness(schedule_results, self.parameters, overrides)
            return list(self._current)

        now = datetime.now()
        perturbed = []
        for r in self._current:
            delta = (self.rng.random() - 0.5) * 2 * self.jitter
            perturbed.append(
                r.model_copy(
                    update={
                        "readiness_score": max(0.0, min(100.0, r.readiness_score + delta)),
                        "is_ready": self.rng.random() >= self.not_ready_rate,
                        "last_updated": now,
                    }
                )
            )
        self._current = perturbed
        return list(perturbed)
