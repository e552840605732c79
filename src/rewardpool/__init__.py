"""Proportional reward-distribution ledger.

Stakers earn a share of a continuously emitted, funded reward budget in
proportion to stake and time, tracked with a lazy reward-per-share
accumulator and a per-account debt offset.
"""

from .engine import (
    SCALE,
    InMemoryToken,
    ManualClock,
    RewardLedger,
    StakingPool,
)

__version__ = "1.0.0"

__all__ = [
    "SCALE",
    "InMemoryToken",
    "ManualClock",
    "RewardLedger",
    "StakingPool",
    "__version__",
]
