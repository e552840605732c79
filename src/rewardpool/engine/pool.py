"""Single-pool shape: one staking pool per instance over the shared ledger code."""

from typing import Hashable, Optional

from .accumulator import BUDGET_TRACKED, PoolState
from .clock import Clock
from .events import EventLog
from .ledger import AccountState, RewardLedger
from .tokens import ValueTransferResource


class StakingPool:
    """A dedicated pool whose identity is implicit.

    Every call delegates to a private RewardLedger holding exactly one pool,
    so the accrual math is identical to the multi-pool shape.
    """

    def __init__(
        self,
        stake_token: ValueTransferResource,
        reward_token: ValueTransferResource,
        clock: Optional[Clock] = None,
        emission_rate: int = 0,
        budget_mode: str = BUDGET_TRACKED,
        pool_id: Hashable = "default",
        custody: Optional[Hashable] = None,
        event_log: Optional[EventLog] = None
    ):
        self.pool_id = pool_id
        self.ledger = RewardLedger(clock=clock, event_log=event_log)
        self.ledger.create_pool(
            pool_id,
            stake_token=stake_token,
            reward_token=reward_token,
            emission_rate=emission_rate,
            budget_mode=budget_mode,
            custody=custody
        )

    @property
    def custody(self) -> Hashable:
        return self.ledger.get_resources(self.pool_id).custody

    @property
    def state(self) -> PoolState:
        return self.ledger.get_pool(self.pool_id)

    def stake(self, account: Hashable, amount: int) -> None:
        self.ledger.stake(self.pool_id, account, amount)

    def unstake(self, account: Hashable, amount: int) -> None:
        self.ledger.unstake(self.pool_id, account, amount)

    def claim(self, account: Hashable) -> int:
        return self.ledger.claim(self.pool_id, account)

    def emergency_unstake(self, account: Hashable) -> int:
        """Withdraw all stake and forfeit unclaimed reward."""
        return self.ledger.emergency_unstake(self.pool_id, account)

    def set_emission_rate(self, new_rate: int) -> None:
        self.ledger.set_emission_rate(self.pool_id, new_rate)

    def fund_reward(self, funder: Hashable, amount: int) -> None:
        self.ledger.fund_reward(self.pool_id, funder, amount)

    def pending_reward(self, account: Hashable, now: Optional[int] = None) -> int:
        return self.ledger.pending_reward(self.pool_id, account, now)

    def preview_accumulator(self, now: Optional[int] = None) -> int:
        return self.ledger.preview_accumulator(self.pool_id, now)

    def staked_balance(self, account: Hashable) -> int:
        return self.ledger.staked_balance(self.pool_id, account)

    def account(self, account: Hashable) -> AccountState:
        return self.ledger.get_account(self.pool_id, account)
