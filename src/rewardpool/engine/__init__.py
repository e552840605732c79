"""Core reward accrual engine."""

from .accumulator import (
    BUDGET_BALANCE,
    BUDGET_TRACKED,
    SCALE,
    Accrual,
    PoolState,
    catch_up,
    compute_accrual,
    preview_accumulator,
)
from .clock import Clock, ManualClock, SystemClock
from .errors import (
    AccountingInvariantViolation,
    ClockRegression,
    InsufficientExternalBalance,
    InsufficientStake,
    InvalidAmount,
    PoolAlreadyExists,
    PoolNotFound,
    RewardPoolError,
    TransferRejected,
)
from .events import AccountStateChanged, EventLog, PoolStateChanged
from .ledger import AccountState, PoolResources, RewardLedger, compute_pending
from .pool import StakingPool
from .tokens import InMemoryToken, ValueTransferResource

__all__ = [
    # Accumulator
    "SCALE",
    "BUDGET_TRACKED",
    "BUDGET_BALANCE",
    "Accrual",
    "PoolState",
    "catch_up",
    "compute_accrual",
    "preview_accumulator",
    # Ledger
    "AccountState",
    "PoolResources",
    "RewardLedger",
    "StakingPool",
    "compute_pending",
    # Collaborators
    "Clock",
    "ManualClock",
    "SystemClock",
    "InMemoryToken",
    "ValueTransferResource",
    # Events
    "AccountStateChanged",
    "EventLog",
    "PoolStateChanged",
    # Errors
    "RewardPoolError",
    "AccountingInvariantViolation",
    "ClockRegression",
    "InsufficientExternalBalance",
    "InsufficientStake",
    "InvalidAmount",
    "PoolAlreadyExists",
    "PoolNotFound",
    "TransferRejected",
]
