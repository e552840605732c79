"""Scenario runner - Replay a scripted sequence of ledger operations.

Key Features:
- Drives a RewardLedger with a ManualClock from a validated Config
- Records a snapshot row after every step (accumulator, shares, pending per account)
- Checks configured expectations on pending and claimed rewards
- Audits the pool for conservation once the script finishes
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..config.schema import Config, Expectation, ScenarioStep
from ..engine.clock import ManualClock
from ..engine.errors import RewardPoolError
from ..engine.events import LedgerEvent
from ..engine.ledger import RewardLedger
from ..engine.tokens import InMemoryToken
from ..validation.audit import LedgerAuditor, ValidationWarning

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Complete scenario result."""
    config: Config
    snapshots: List[Dict[str, Any]]
    payouts: Dict[str, int]
    final_pending: Dict[str, int]
    expectation_failures: List[str] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    events: List[LedgerEvent] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return (
            not self.expectation_failures
            and not self.errors
            and not any(w.severity == "error" for w in self.warnings)
        )


class SimulationRunner:
    """Run a scripted scenario against a fresh ledger."""

    def __init__(self, config: Config):
        """
        Initialize scenario runner.

        Args:
            config: Scenario configuration
        """
        self.config = config
        self.clock = ManualClock(0)
        self.ledger = RewardLedger(clock=self.clock)
        self.stake_token = InMemoryToken("STAKE")
        self.reward_token = InMemoryToken("REWARD")
        self.pool_id = config.pool.pool_id

        self._payouts: Dict[str, int] = {}
        self._snapshots: List[Dict[str, Any]] = []
        self._expectation_failures: List[str] = []
        self._errors: List[str] = []

    @property
    def account_names(self) -> List[str]:
        """Accounts that may hold stake (the funder is excluded unless it stakes)."""
        names = [a.name for a in self.config.accounts if a.name != self.config.pool.funder]
        for step in self.config.steps:
            if step.account is not None and step.account not in names:
                names.append(step.account)
        return names

    def run(self, strict: bool = True) -> SimulationResult:
        """
        Run the scenario.

        Args:
            strict: If True, the first failing step raises; otherwise failures
                are recorded in SimulationResult.errors and the run continues

        Returns:
            SimulationResult
        """
        self._setup()

        scheduled = sorted(
            (e for e in self.config.expectations if e.after_step is None),
            key=lambda e: e.at
        )
        by_step: Dict[int, List[Expectation]] = {}
        for expectation in self.config.expectations:
            if expectation.after_step is not None:
                by_step.setdefault(expectation.after_step, []).append(expectation)

        for index, step in enumerate(self.config.steps):
            while scheduled and scheduled[0].at < step.at:
                self._check_expectation(scheduled.pop(0))

            self.clock.set(max(self.clock.now(), step.at))
            self._execute(index, step, strict)
            self._record_snapshot(index, step)

            for expectation in by_step.get(index, []):
                self._check_expectation(expectation)

        for expectation in scheduled:
            self._check_expectation(expectation)

        audit = LedgerAuditor(self.ledger).audit_pool(self.pool_id)
        final_pending = {
            name: self.ledger.pending_reward(self.pool_id, name) for name in self.account_names
        }

        return SimulationResult(
            config=self.config,
            snapshots=self._snapshots,
            payouts=dict(self._payouts),
            final_pending=final_pending,
            expectation_failures=self._expectation_failures,
            warnings=audit.warnings,
            errors=self._errors,
            events=list(self.ledger.event_log.history)
        )

    def _setup(self) -> None:
        pool = self.config.pool
        for account in self.config.accounts:
            self.stake_token.mint(account.name, account.stake_balance)
            self.reward_token.mint(account.name, account.reward_balance)

        self.ledger.create_pool(
            self.pool_id,
            stake_token=self.stake_token,
            reward_token=self.reward_token,
            emission_rate=pool.emission_rate,
            budget_mode=pool.budget_mode
        )

        if pool.initial_funding:
            shortfall = pool.initial_funding - self.reward_token.balance_of(pool.funder)
            if shortfall > 0:
                logger.info("Minting %d reward to funder %r for initial funding", shortfall, pool.funder)
                self.reward_token.mint(pool.funder, shortfall)
            self.ledger.fund_reward(self.pool_id, pool.funder, pool.initial_funding)

    def _execute(self, index: int, step: ScenarioStep, strict: bool) -> None:
        try:
            if step.action == "stake":
                self.ledger.stake(self.pool_id, step.account, step.amount)
            elif step.action == "unstake":
                self.ledger.unstake(self.pool_id, step.account, step.amount)
            elif step.action == "claim":
                paid = self.ledger.claim(self.pool_id, step.account)
                self._payouts[step.account] = self._payouts.get(step.account, 0) + paid
            elif step.action == "set_rate":
                self.ledger.set_emission_rate(self.pool_id, step.rate)
            elif step.action == "fund":
                funder = step.account or self.config.pool.funder
                self.ledger.fund_reward(self.pool_id, funder, step.amount)
            elif step.action == "emergency_unstake":
                self.ledger.emergency_unstake(self.pool_id, step.account)
            else:
                raise ValueError(f"Unknown action {step.action!r}")
        except RewardPoolError as e:
            if strict:
                raise
            message = f"Step {index} ({step.action} at t={step.at}): {e}"
            logger.warning(message)
            self._errors.append(message)

    def _record_snapshot(self, index: int, step: ScenarioStep) -> None:
        pool = self.ledger.get_pool(self.pool_id)
        row: Dict[str, Any] = {
            'step': index,
            't': self.clock.now(),
            'action': step.action,
            'account': step.account,
            'amount': step.amount if step.amount is not None else step.rate,
            'emission_rate': pool.emission_rate,
            'acc_per_share': pool.acc_per_share,
            'total_shares': pool.total_shares,
            'remaining_budget': pool.remaining_budget,
            'total_claimed': pool.total_claimed,
        }
        for name in self.account_names:
            row[f'shares.{name}'] = self.ledger.staked_balance(self.pool_id, name)
            row[f'pending.{name}'] = self.ledger.pending_reward(self.pool_id, name)
        self._snapshots.append(row)

    def _check_expectation(self, expectation: Expectation) -> None:
        label = f"t={expectation.at}"
        if expectation.after_step is not None:
            label += f" after step {expectation.after_step}"

        for name, expected in expectation.pending.items():
            try:
                actual = self.ledger.pending_reward(self.pool_id, name, now=expectation.at)
            except RewardPoolError as e:
                self._expectation_failures.append(f"{label}: pending[{name}] could not be computed: {e}")
                continue
            if actual != expected:
                self._expectation_failures.append(
                    f"{label}: pending[{name}] expected {expected}, got {actual}"
                )

        for name, expected in expectation.claimed.items():
            actual = self._payouts.get(name, 0)
            if actual != expected:
                self._expectation_failures.append(
                    f"{label}: claimed[{name}] expected {expected}, got {actual}"
                )


def run_scenario(config: Config, strict: bool = True) -> SimulationResult:
    """Build a runner for `config` and run it."""
    return SimulationRunner(config).run(strict=strict)
