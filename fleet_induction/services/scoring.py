# fleet_induction/services/scoring.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

import numpy as np

from fleet_induction.core.scoring_config import CLEANING_MISS_DAYS, DEFAULT_SHUNT_COST
from fleet_induction.models.schedule import SchedulingConfig
from fleet_induction.models.train import Train

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredTrain:
    train: Train
    score: float

    @property
    def id(self) -> str:
        return self.train.id

    @property
    def cost(self) -> float:
        return -self.score


class Scorer(Protocol):
    """Ranks eligible trains; higher score is preferred."""

    def score(
        self, eligible: Sequence[Train], fleet: Sequence[Train], config: SchedulingConfig
    ) -> List[ScoredTrain]:
        ...


def _rank_key(item: ScoredTrain):
    return (-item.score, item.id)


class WeightedCostScorer:
    """Linear weighted-sum cost model.

    cost = W_SHUNT * shunt + W_MILEAGE * (mileage - mean)^2
           + W_EXPECTED_FAILURE * p_fail * UNSCHEDULED_WITHDRAWAL_COST
           + cleaning penalty - branding_hours * W_BRANDING

    The fleet mean mileage is taken over every train passed in, not only the
    eligible ones.
    """

    def __init__(self, default_shunt_cost: float = DEFAULT_SHUNT_COST) -> None:
        self.default_shunt_cost = default_shunt_cost

    def shunt_cost(self, train: Train, config: SchedulingConfig) -> float:
        return float(config.shunt_cost_by_pos.get(train.pos, self.default_shunt_cost))

    def train_cost(self, train: Train, mean_mileage: float, config: SchedulingConfig) -> float:
        mileage_var = (train.mileage_total - mean_mileage) ** 2
        expected_fail = train.p_fail * config.unscheduled_withdrawal_cost
        cleaning_penalty = config.w_cleaning_miss if train.days_since_clean >= CLEANING_MISS_DAYS else 0.0
        branding_reward = train.branding_hours * config.w_branding
        return (
            config.w_shunt * self.shunt_cost(train, config)
            + config.w_mileage * mileage_var
            + config.w_expected_failure * expected_fail
            + cleaning_penalty
            - branding_reward
        )

    def score(
        self, eligible: Sequence[Train], fleet: Sequence[Train], config: SchedulingConfig
    ) -> List[ScoredTrain]:
        if not eligible or not fleet:
            return []

        mean_mileage = float(np.mean([t.mileage_total for t in fleet]))
        scored = [ScoredTrain(train=t, score=-self.train_cost(t, mean_mileage, config)) for t in eligible]
        scored.sort(key=_rank_key)
        return scored


class CandidatePoolScorer:
    """Pre-filters eligible trains to a fixed-size candidate pool.

    The pool is chosen by a reliability pre-score (expected failure cost plus
    cleaning penalty, lower first). Every train is then scored with the
    weighted cost model; pool members rank ahead of the rest.
    """

    def __init__(self, pool_size: Optional[int] = None, base: Optional[WeightedCostScorer] = None) -> None:
        self.pool_size = pool_size
        self.base = base or WeightedCostScorer()

    def pre_score(self, train: Train, config: SchedulingConfig) -> float:
        expected_fail = train.p_fail * config.unscheduled_withdrawal_cost
        cleaning_penalty = config.w_cleaning_miss if train.days_since_clean >= CLEANING_MISS_DAYS else 0.0
        return expected_fail + cleaning_penalty

    def score(
        self, eligible: Sequence[Train], fleet: Sequence[Train], config: SchedulingConfig
    ) -> List[ScoredTrain]:
        scored = self.base.score(eligible, fleet, config)
        pool_size = self.pool_size if self.pool_size is not None else config.candidate_pool_size
        if not scored or pool_size <= 0 or pool_size >= len(scored):
            return scored

        by_reliability = sorted(eligible, key=lambda t: (self.pre_score(t, config), t.id))
        pool_ids = {t.id for t in by_reliability[:pool_size]}

        pool = [s for s in scored if s.id in pool_ids]
        rest = [s for s in scored if s.id not in pool_ids]
        logger.info(f"Candidate pool: {len(pool)} of {len(scored)} eligible trains")
        return pool + rest
