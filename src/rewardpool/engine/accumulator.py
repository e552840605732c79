"""Module A: Pool Accumulator - Lazy reward-per-share accrual.

Key Concepts:
- acc_per_share is the cumulative reward owed per unit of stake since pool inception,
  stored as a fixed-point integer scaled by SCALE (1e18)
- The accumulator is advanced lazily ("caught up") whenever the pool is touched:
  acc_per_share += min(elapsed * emission_rate, available_budget) * SCALE // total_shares
- Accrual never exceeds the funded budget, so reward is never manufactured
- While total_shares == 0 the elapsed emission is not accrued and last_updated
  still advances, so that period's emission is skipped rather than deferred
"""

from dataclasses import dataclass, replace
from typing import Hashable, Optional

from .errors import ClockRegression

SCALE = 10 ** 18

BUDGET_TRACKED = "tracked"  # Budget is an internal counter fed by fund_reward
BUDGET_BALANCE = "balance"  # Budget is the live reward balance held in custody


@dataclass
class PoolState:
    """Accumulator state of one reward-distribution pool.

    Accrual fields:
    - emission_rate: reward units emitted per unit time
    - acc_per_share: cumulative reward per share (x SCALE), non-decreasing
    - total_shares: sum of all accounts' shares
    - remaining_budget: funded but not yet accrued reward (tracked mode)
    - last_updated: timestamp of the last catch-up, non-decreasing

    Audit counters (never read by the accrual math):
    - total_funded / total_accrued / total_claimed: reward flows
    - total_forfeited: reward abandoned through emergency exits
    - total_undistributed: emission that elapsed while nobody was staked

    Conservation Identity:
    total_accrued <= total_funded, and claims + outstanding pending <= total_accrued
    """
    pool_id: Hashable
    emission_rate: int = 0
    acc_per_share: int = 0
    total_shares: int = 0
    remaining_budget: int = 0
    last_updated: int = 0
    budget_mode: str = BUDGET_TRACKED
    total_funded: int = 0
    total_accrued: int = 0
    total_claimed: int = 0
    total_forfeited: int = 0
    total_undistributed: int = 0

    @property
    def tracks_budget(self) -> bool:
        return self.budget_mode == BUDGET_TRACKED

    def snapshot(self) -> "PoolState":
        """Return a detached copy of this state."""
        return replace(self)

    def validate_non_negative(self) -> tuple[bool, Optional[str]]:
        """Validate all counters are non-negative."""
        fields = [
            ('emission_rate', self.emission_rate),
            ('acc_per_share', self.acc_per_share),
            ('total_shares', self.total_shares),
            ('remaining_budget', self.remaining_budget),
            ('total_funded', self.total_funded),
            ('total_accrued', self.total_accrued),
            ('total_claimed', self.total_claimed),
        ]
        for name, value in fields:
            if value < 0:
                return False, f"Negative field on pool {self.pool_id!r}: {name}={value}"
        return True, None


@dataclass
class Accrual:
    """Result of advancing an accumulator over an interval."""
    elapsed: int
    raw_emission: int  # elapsed * emission_rate, before the budget cap
    emission: int  # Emission actually attributable to the interval
    acc_increment: int  # Added to acc_per_share (0 when nobody is staked)


def compute_accrual(pool: PoolState, now: int, available_budget: Optional[int] = None) -> Accrual:
    """
    Compute the accrual for advancing `pool` to `now` without mutating it.

    Args:
        pool: Pool accumulator state
        now: Current timestamp
        available_budget: Reward available for accrual; defaults to the pool's
            tracked remaining_budget

    Returns:
        Accrual for the interval (all zeros when now == last_updated)

    Raises:
        ClockRegression: If now is earlier than pool.last_updated
    """
    if now < pool.last_updated:
        raise ClockRegression(pool.pool_id, now, pool.last_updated)

    elapsed = now - pool.last_updated
    if elapsed == 0:
        return Accrual(elapsed=0, raw_emission=0, emission=0, acc_increment=0)

    if available_budget is None:
        available_budget = pool.remaining_budget

    raw_emission = elapsed * pool.emission_rate
    emission = max(0, min(raw_emission, available_budget))

    # Nobody to pay: no increment (this would otherwise divide by zero)
    if pool.total_shares == 0:
        return Accrual(elapsed=elapsed, raw_emission=raw_emission, emission=emission, acc_increment=0)

    acc_increment = emission * SCALE // pool.total_shares
    return Accrual(
        elapsed=elapsed,
        raw_emission=raw_emission,
        emission=emission,
        acc_increment=acc_increment
    )


def catch_up(pool: PoolState, now: int, available_budget: Optional[int] = None) -> Accrual:
    """
    Advance the pool accumulator to `now`.

    Idempotent within the same instant: a second call at the same timestamp
    changes nothing. Must run before anything reads or writes acc_per_share,
    total_shares, or an account's shares/debt.

    Args:
        pool: Pool accumulator state (mutated in place)
        now: Current timestamp
        available_budget: Reward available for accrual (see compute_accrual)

    Returns:
        The applied accrual
    """
    accrual = compute_accrual(pool, now, available_budget)
    if accrual.elapsed == 0:
        return accrual

    if pool.total_shares == 0:
        pool.total_undistributed += accrual.emission
    else:
        pool.acc_per_share += accrual.acc_increment
        pool.total_accrued += accrual.emission
        if pool.tracks_budget:
            pool.remaining_budget -= accrual.emission

    pool.last_updated = now
    return accrual


def preview_accumulator(pool: PoolState, now: int, available_budget: Optional[int] = None) -> int:
    """Return the acc_per_share the pool would have at `now`, without side effects."""
    return pool.acc_per_share + compute_accrual(pool, now, available_budget).acc_increment
