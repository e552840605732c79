"""Exception hierarchy for the reward ledger."""

from typing import Any, Hashable


class RewardPoolError(Exception):
    """Base class for every ledger error."""


class InvalidAmount(RewardPoolError, ValueError):
    """Amount or rate outside the accepted range (non-positive stake, negative rate, ...)."""


class PoolAlreadyExists(RewardPoolError):
    """A pool with this identifier has already been created."""

    def __init__(self, pool_id: Hashable):
        self.pool_id = pool_id
        super().__init__(f"Pool {pool_id!r} already exists")


class PoolNotFound(RewardPoolError, KeyError):
    """Operation referenced a pool that was never created."""

    def __init__(self, pool_id: Hashable):
        self.pool_id = pool_id
        super().__init__(f"Pool {pool_id!r} not found")

    def __str__(self) -> str:
        return self.args[0]


class InsufficientStake(RewardPoolError, ValueError):
    """Unstake amount exceeds the account's current shares."""

    def __init__(self, account: Any, requested: int, staked: int):
        self.account = account
        self.requested = requested
        self.staked = staked
        super().__init__(
            f"Account {account!r} requested {requested} but only {staked} is staked"
        )


class TransferRejected(RewardPoolError):
    """The value-transfer resource refused to move value."""


class InsufficientExternalBalance(TransferRejected):
    """Source holder lacks the balance (or allowance) for a transfer."""

    def __init__(self, holder: Any, requested: int, available: int, resource: str = ""):
        self.holder = holder
        self.requested = requested
        self.available = available
        self.resource = resource
        label = f" of {resource}" if resource else ""
        super().__init__(
            f"{holder!r} cannot move {requested}{label}: only {available} available"
        )


class AccountingInvariantViolation(RewardPoolError):
    """Pending reward computed as negative. Indicates a ledger bug, never clamped."""


class ClockRegression(RewardPoolError, ValueError):
    """Catch-up requested at a timestamp earlier than the pool's last update."""

    def __init__(self, pool_id: Hashable, now: int, last_updated: int):
        self.pool_id = pool_id
        self.now = now
        self.last_updated = last_updated
        super().__init__(
            f"Pool {pool_id!r}: timestamp {now} is earlier than last update {last_updated}"
        )
