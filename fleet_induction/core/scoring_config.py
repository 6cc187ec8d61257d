# fleet_induction/core/scoring_config.py
import random
from typing import Dict, Optional

# Centralized cost constants shared by the scorer, the allocator and the readiness monitor.

# Shunt cost used when a stabling position has no entry in shunt_cost_by_pos
DEFAULT_SHUNT_COST = 300.0

# Trains not cleaned for this many days incur W_CLEANING_MISS
CLEANING_MISS_DAYS = 30

# Discrete shunt cost levels (seconds of shunting effort) a stabling position can carry
SHUNT_COST_LEVELS = (120, 180, 240, 300, 420, 600, 900)

READINESS_PENALTIES = {
    "FITNESS_FAILURE": 50.0,
    "CLEANING_OVERDUE": 20.0,
    "NEEDS_CLEANING": 25.0,
    "CLEANING_IN_PROGRESS": 10.0,
    # Job card penalties are multiplied by jobCardWeight
    "JOB_CARD_OPEN": 100.0,
    "JOB_CARD_IN_PROGRESS": 50.0,
    "MILEAGE_DEVIATION_UNIT_KM": 10000.0,
}

READINESS_BRANDING_BONUS = 10.0


def generate_shunt_costs(num_slots: int, seed: Optional[int] = None) -> Dict[int, float]:
    """Assign one shunt cost level to each stabling position 0..num_slots-1.

    A seed makes the table reproducible between runs.
    """
    rng = random.Random(seed)
    return {pos: float(rng.choice(SHUNT_COST_LEVELS)) for pos in range(num_slots)}
