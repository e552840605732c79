"""Module B: Account Ledger - Stake, unstake, claim and pool lifecycle.

Key Concepts:
- Each account holds (shares, debt); debt is a signed fixed-point offset (x SCALE)
- pending(account) = (shares * acc_per_share - debt) // SCALE
- Staking adds amount * acc_per_share to debt and unstaking subtracts it, so a
  share change never alters reward already earned
- Every mutating operation catches the pool up first, is all-or-nothing, and
  publishes pool/account events only after it commits
- No operation iterates over accounts; each one is O(1)
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Dict, Hashable, Iterator, List, Optional, Tuple

from .accumulator import (
    BUDGET_BALANCE,
    BUDGET_TRACKED,
    SCALE,
    PoolState,
    catch_up,
    preview_accumulator,
)
from .clock import Clock, SystemClock
from .errors import (
    AccountingInvariantViolation,
    InsufficientStake,
    InvalidAmount,
    PoolAlreadyExists,
    PoolNotFound,
)
from .events import AccountStateChanged, EventLog, LedgerEvent, PoolStateChanged
from .tokens import ValueTransferResource

logger = logging.getLogger(__name__)


@dataclass
class AccountState:
    """Per-account, per-pool ledger entry."""
    shares: int = 0
    debt: int = 0  # Signed, scaled by SCALE

    def pending(self, acc_per_share: int) -> int:
        """Pending reward at the given accumulator value."""
        return compute_pending(self.shares, self.debt, acc_per_share)


@dataclass
class PoolResources:
    """External collaborators bound to a pool."""
    stake_token: ValueTransferResource
    reward_token: ValueTransferResource
    custody: Hashable  # Holder identity of the pool's custody account


def compute_pending(shares: int, debt: int, acc_per_share: int) -> int:
    """
    Compute pending reward in whole reward units.

    Raises:
        AccountingInvariantViolation: If shares * acc_per_share < debt
    """
    scaled = shares * acc_per_share - debt
    if scaled < 0:
        raise AccountingInvariantViolation(
            f"Negative pending reward: shares={shares}, debt={debt}, "
            f"acc_per_share={acc_per_share}, scaled_pending={scaled}"
        )
    return scaled // SCALE


def _check_amount(amount: int, what: str) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmount(f"{what} must be an integer, got {amount!r}")
    if amount <= 0:
        raise InvalidAmount(f"{what} must be positive, got {amount}")


class RewardLedger:
    """Multi-pool reward ledger keyed by pool identifier."""

    def __init__(self, clock: Optional[Clock] = None, event_log: Optional[EventLog] = None):
        """
        Initialize ledger.

        Args:
            clock: Time source (defaults to wall-clock seconds)
            event_log: Sink for state-change events (a private one is created if omitted)
        """
        self.clock = clock if clock is not None else SystemClock()
        self.event_log = event_log if event_log is not None else EventLog()
        self._pools: Dict[Hashable, PoolState] = {}
        self._resources: Dict[Hashable, PoolResources] = {}
        self._accounts: Dict[Hashable, Dict[Hashable, AccountState]] = {}

    # ------------------------------------------------------------------
    # Pool lifecycle
    # ------------------------------------------------------------------

    def create_pool(
        self,
        pool_id: Hashable,
        stake_token: ValueTransferResource,
        reward_token: ValueTransferResource,
        emission_rate: int = 0,
        budget_mode: str = BUDGET_TRACKED,
        custody: Optional[Hashable] = None
    ) -> PoolState:
        """
        Create a new pool.

        Args:
            pool_id: Unique pool identifier
            stake_token: Resource that is staked
            reward_token: Resource that is distributed
            emission_rate: Reward units emitted per unit time
            budget_mode: "tracked" (internal budget counter) or "balance"
                (available reward is the custody's live reward balance)
            custody: Holder identity for pool custody (defaults to ("pool", pool_id))

        Returns:
            Snapshot of the new pool state

        Raises:
            PoolAlreadyExists: If pool_id is already in use
        """
        if pool_id in self._pools:
            raise PoolAlreadyExists(pool_id)
        if emission_rate < 0:
            raise InvalidAmount(f"Emission rate must be non-negative, got {emission_rate}")
        if budget_mode not in (BUDGET_TRACKED, BUDGET_BALANCE):
            raise ValueError(f"Unknown budget mode {budget_mode!r}")

        now = self.clock.now()
        pool = PoolState(
            pool_id=pool_id,
            emission_rate=emission_rate,
            last_updated=now,
            budget_mode=budget_mode
        )
        self._pools[pool_id] = pool
        self._resources[pool_id] = PoolResources(
            stake_token=stake_token,
            reward_token=reward_token,
            custody=custody if custody is not None else ("pool", pool_id)
        )
        self._accounts[pool_id] = {}

        logger.info(
            "Created pool %r (rate=%d, budget_mode=%s) at t=%d",
            pool_id, emission_rate, budget_mode, now
        )
        self.event_log.publish([self._pool_event("create_pool", now, pool)])
        return pool.snapshot()

    def set_emission_rate(self, pool_id: Hashable, new_rate: int) -> None:
        """Change the emission rate; time before the change accrues at the old rate."""
        if new_rate < 0:
            raise InvalidAmount(f"Emission rate must be non-negative, got {new_rate}")

        with self._transaction(pool_id) as (pool, now, events):
            old_rate = pool.emission_rate
            pool.emission_rate = new_rate
            events.append(self._pool_event("set_emission_rate", now, pool))

        logger.info("Pool %r emission rate %d -> %d at t=%d", pool_id, old_rate, new_rate, now)

    def fund_reward(self, pool_id: Hashable, funder: Hashable, amount: int) -> None:
        """
        Move reward into pool custody.

        In tracked mode the pool's remaining budget grows by `amount`. The
        accumulator is not touched.
        """
        _check_amount(amount, "Funding amount")
        resources = self._require_resources(pool_id)

        with self._transaction(pool_id, catch_up_first=False) as (pool, now, events):
            resources.reward_token.transfer_into(funder, resources.custody, amount)
            if pool.tracks_budget:
                pool.remaining_budget += amount
            pool.total_funded += amount
            events.append(self._pool_event("fund_reward", now, pool))

        logger.debug("Pool %r funded %d by %r", pool_id, amount, funder)

    # ------------------------------------------------------------------
    # Account operations
    # ------------------------------------------------------------------

    def stake(self, pool_id: Hashable, account: Hashable, amount: int) -> None:
        """Deposit `amount` of the stake resource for `account`."""
        _check_amount(amount, "Stake amount")
        resources = self._require_resources(pool_id)

        with self._transaction(pool_id, account) as (pool, now, events):
            resources.stake_token.transfer_into(account, resources.custody, amount)

            entry = self._accounts[pool_id].setdefault(account, AccountState())
            entry.debt += amount * pool.acc_per_share
            entry.shares += amount
            pool.total_shares += amount

            events.append(self._pool_event("stake", now, pool))
            events.append(self._account_event("stake", now, pool_id, account, entry))

        logger.debug("Pool %r: %r staked %d", pool_id, account, amount)

    def unstake(self, pool_id: Hashable, account: Hashable, amount: int) -> None:
        """Withdraw `amount` of stake; pending reward stays claimable."""
        _check_amount(amount, "Unstake amount")
        resources = self._require_resources(pool_id)

        with self._transaction(pool_id, account) as (pool, now, events):
            entry = self._accounts[pool_id].get(account)
            staked = entry.shares if entry is not None else 0
            if amount > staked:
                raise InsufficientStake(account, amount, staked)

            entry.debt -= amount * pool.acc_per_share
            entry.shares -= amount
            pool.total_shares -= amount

            resources.stake_token.transfer_out_of(resources.custody, account, amount)

            events.append(self._pool_event("unstake", now, pool))
            events.append(self._account_event("unstake", now, pool_id, account, entry))

        logger.debug("Pool %r: %r unstaked %d", pool_id, account, amount)

    def claim(self, pool_id: Hashable, account: Hashable) -> int:
        """
        Pay out the account's full pending reward.

        The fractional remainder below one reward unit stays in the account's
        debt so it is not lost on the next claim.

        Returns:
            Amount of reward transferred (0 is a valid result)
        """
        resources = self._require_resources(pool_id)

        with self._transaction(pool_id, account) as (pool, now, events):
            entry = self._accounts[pool_id].get(account, AccountState())
            pending = entry.pending(pool.acc_per_share)

            entry.debt += pending * SCALE
            pool.total_claimed += pending

            if pending:
                resources.reward_token.transfer_out_of(resources.custody, account, pending)

            events.append(self._pool_event("claim", now, pool))
            events.append(self._account_event("claim", now, pool_id, account, entry))

        logger.debug("Pool %r: %r claimed %d", pool_id, account, pending)
        return pending

    def emergency_unstake(self, pool_id: Hashable, account: Hashable) -> int:
        """
        Return the account's full stake and FORFEIT its unclaimed reward.

        No reward is computed or paid. The entry is reset to zero shares and
        zero debt; the forfeited reward stays in custody.

        Returns:
            Amount of stake returned
        """
        resources = self._require_resources(pool_id)

        with self._transaction(pool_id, account) as (pool, now, events):
            entry = self._accounts[pool_id].get(account, AccountState())
            shares = entry.shares

            scaled = shares * pool.acc_per_share - entry.debt
            if scaled < 0:
                logger.error(
                    "Pool %r: %r had negative pending (%d) at emergency exit",
                    pool_id, account, scaled
                )
            else:
                pool.total_forfeited += scaled // SCALE

            if shares > pool.total_shares:
                logger.warning(
                    "Pool %r: account shares %d exceed total_shares %d; clamping total",
                    pool_id, shares, pool.total_shares
                )
                pool.total_shares = 0
            else:
                pool.total_shares -= shares

            entry.shares = 0
            entry.debt = 0

            resources.stake_token.transfer_out_of(resources.custody, account, shares)

            events.append(self._pool_event("emergency_unstake", now, pool))
            events.append(self._account_event("emergency_unstake", now, pool_id, account, entry))

        logger.warning(
            "Pool %r: %r emergency-unstaked %d, unclaimed reward forfeited", pool_id, account, shares
        )
        return shares

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def pending_reward(self, pool_id: Hashable, account: Hashable, now: Optional[int] = None) -> int:
        """
        Pending reward of `account` at `now` (defaults to the clock), without side effects.

        A `now` earlier than the pool's last update is read at the last update.
        """
        acc_per_share = self._preview(pool_id, now)
        entry = self._accounts[pool_id].get(account)
        if entry is None:
            return 0
        return entry.pending(acc_per_share)

    def preview_accumulator(self, pool_id: Hashable, now: Optional[int] = None) -> int:
        """acc_per_share the pool would have at `now`, without side effects."""
        return self._preview(pool_id, now)

    def staked_balance(self, pool_id: Hashable, account: Hashable) -> int:
        self._require_pool(pool_id)
        entry = self._accounts[pool_id].get(account)
        return entry.shares if entry is not None else 0

    def get_pool(self, pool_id: Hashable) -> PoolState:
        """Detached snapshot of a pool's state."""
        return self._require_pool(pool_id).snapshot()

    def get_account(self, pool_id: Hashable, account: Hashable) -> AccountState:
        """Detached snapshot of an account entry (zero entry if never staked)."""
        self._require_pool(pool_id)
        entry = self._accounts[pool_id].get(account)
        return replace(entry) if entry is not None else AccountState()

    def get_resources(self, pool_id: Hashable) -> PoolResources:
        return self._require_resources(pool_id)

    def accounts(self, pool_id: Hashable) -> Dict[Hashable, AccountState]:
        """Copies of every account entry in a pool. For audits and reporting only."""
        self._require_pool(pool_id)
        return {account: replace(entry) for account, entry in self._accounts[pool_id].items()}

    def has_pool(self, pool_id: Hashable) -> bool:
        return pool_id in self._pools

    def pool_ids(self) -> List[Hashable]:
        return list(self._pools)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_pool(self, pool_id: Hashable) -> PoolState:
        try:
            return self._pools[pool_id]
        except KeyError:
            raise PoolNotFound(pool_id) from None

    def _require_resources(self, pool_id: Hashable) -> PoolResources:
        self._require_pool(pool_id)
        return self._resources[pool_id]

    def _available_budget(self, pool_id: Hashable, pool: PoolState) -> Optional[int]:
        """
        Reward a catch-up may still distribute in balance mode.

        Accrued reward not yet claimed or forfeited is owed to stakers and is
        excluded from the custody balance.
        """
        if pool.tracks_budget:
            return None
        resources = self._resources[pool_id]
        owed = pool.total_accrued - pool.total_claimed - pool.total_forfeited
        return max(0, resources.reward_token.balance_of(resources.custody) - owed)

    def _preview(self, pool_id: Hashable, now: Optional[int]) -> int:
        pool = self._require_pool(pool_id)
        if now is None:
            now = self.clock.now()
        return preview_accumulator(pool, max(now, pool.last_updated), self._available_budget(pool_id, pool))

    @contextmanager
    def _transaction(
        self,
        pool_id: Hashable,
        account: Optional[Hashable] = None,
        catch_up_first: bool = True
    ) -> Iterator[Tuple[PoolState, int, List[LedgerEvent]]]:
        """
        Run one operation all-or-nothing.

        Snapshots the pool and the touched account entry, catches the pool up
        to the clock, and yields (pool, now, events). If the body raises, both
        records are restored and no event is published.
        """
        pool = self._require_pool(pool_id)
        accounts = self._accounts[pool_id]
        pool_before = pool.snapshot()
        account_before = None
        if account is not None and account in accounts:
            account_before = replace(accounts[account])

        now = self.clock.now()
        events: List[LedgerEvent] = []
        try:
            if catch_up_first:
                catch_up(pool, now, self._available_budget(pool_id, pool))
            yield pool, now, events
        except Exception:
            self._pools[pool_id] = pool_before
            if account is not None:
                if account_before is None:
                    accounts.pop(account, None)
                else:
                    accounts[account] = account_before
            raise

        self.event_log.publish(events)

    @staticmethod
    def _pool_event(operation: str, now: int, pool: PoolState) -> PoolStateChanged:
        return PoolStateChanged(
            operation=operation,
            timestamp=now,
            pool_id=pool.pool_id,
            emission_rate=pool.emission_rate,
            acc_per_share=pool.acc_per_share,
            total_shares=pool.total_shares,
            remaining_budget=pool.remaining_budget
        )

    @staticmethod
    def _account_event(
        operation: str,
        now: int,
        pool_id: Hashable,
        account: Hashable,
        entry: AccountState
    ) -> AccountStateChanged:
        return AccountStateChanged(
            operation=operation,
            timestamp=now,
            pool_id=pool_id,
            account=account,
            shares=entry.shares,
            debt=entry.debt
        )
