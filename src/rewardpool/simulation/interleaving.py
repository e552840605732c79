"""Randomized interleavings of ledger operations with invariant checks.

Each run drives a fresh tracked-budget pool through a random sequence of
stake / unstake / claim / rate-change / fund / emergency-exit operations at
random time steps, and after every operation checks:
- stake and unstake leave the acting account's pending reward unchanged
- claim pays exactly the pre-claim pending reward and leaves zero pending
- the pool audit (conservation and bookkeeping) reports no errors
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np

from ..config.schema import SimulationSettings
from ..engine.clock import ManualClock
from ..engine.errors import RewardPoolError
from ..engine.ledger import RewardLedger
from ..engine.tokens import InMemoryToken
from ..validation.audit import LedgerAuditor

logger = logging.getLogger(__name__)

POOL_ID = "random"
FUNDER = "funder"

# Relative operation weights
OPERATION_WEIGHTS = {
    'stake': 0.35,
    'unstake': 0.20,
    'claim': 0.20,
    'set_rate': 0.08,
    'fund': 0.10,
    'emergency_unstake': 0.07,
}


@dataclass
class InterleavingResult:
    """Outcome of one randomized run."""
    seed: int
    operations: Dict[str, int]
    violations: List[str]
    total_funded: int
    total_claimed: int
    total_forfeited: int
    total_undistributed: int
    final_pending: int
    history: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations


class RandomInterleavingRunner:
    """Run randomized operation sequences against the ledger."""

    def __init__(self, settings: SimulationSettings = None):
        """
        Initialize runner.

        Args:
            settings: Randomization parameters (defaults to SimulationSettings())
        """
        self.settings = settings or SimulationSettings()

    def run(self, seed: int = None) -> InterleavingResult:
        """
        Execute one randomized run.

        Args:
            seed: Random seed (defaults to settings.random_seed)

        Returns:
            InterleavingResult with any invariant violations found
        """
        if seed is None:
            seed = self.settings.random_seed
        rng = np.random.RandomState(seed)
        settings = self.settings

        clock = ManualClock(0)
        ledger = RewardLedger(clock=clock)
        stake_token = InMemoryToken("STAKE")
        reward_token = InMemoryToken("REWARD")
        auditor = LedgerAuditor(ledger)

        accounts = [f"acct{i}" for i in range(settings.num_accounts)]
        for account in accounts:
            stake_token.mint(account, settings.max_amount * 10)
        reward_token.mint(FUNDER, settings.initial_funding * 2)

        initial_rate = int(rng.randint(0, settings.max_emission_rate + 1))
        ledger.create_pool(POOL_ID, stake_token, reward_token, emission_rate=initial_rate)
        if settings.initial_funding:
            ledger.fund_reward(POOL_ID, FUNDER, settings.initial_funding)

        names = list(OPERATION_WEIGHTS)
        weights = np.array([OPERATION_WEIGHTS[n] for n in names])
        weights = weights / weights.sum()

        operations = {name: 0 for name in names}
        violations: List[str] = []
        history: List[Dict[str, Any]] = []

        for step in range(settings.num_steps):
            clock.advance(int(rng.randint(0, settings.max_time_step + 1)))
            now = clock.now()
            op = names[int(rng.choice(len(names), p=weights))]
            account = accounts[int(rng.randint(0, len(accounts)))]

            try:
                executed = self._apply(ledger, rng, op, account, stake_token, reward_token, violations, step)
            except RewardPoolError as e:
                violations.append(f"step {step} t={now} {op} {account}: unexpected {type(e).__name__}: {e}")
                continue

            if not executed:
                continue
            operations[op] += 1

            audit = auditor.audit_pool(POOL_ID, now)
            for warning in audit.warnings:
                if warning.severity == "error":
                    violations.append(f"step {step} t={now} {op}: {warning.message} ({warning.details})")

            pool = ledger.get_pool(POOL_ID)
            history.append({
                'step': step,
                't': now,
                'operation': op,
                'account': account,
                'emission_rate': pool.emission_rate,
                'acc_per_share': pool.acc_per_share,
                'total_shares': pool.total_shares,
                'remaining_budget': pool.remaining_budget,
                'total_pending': audit.total_pending,
                'total_claimed': pool.total_claimed,
            })

        pool = ledger.get_pool(POOL_ID)
        final_audit = auditor.audit_pool(POOL_ID)
        if violations:
            logger.warning("Seed %d produced %d invariant violations", seed, len(violations))

        return InterleavingResult(
            seed=seed,
            operations=operations,
            violations=violations,
            total_funded=pool.total_funded,
            total_claimed=pool.total_claimed,
            total_forfeited=pool.total_forfeited,
            total_undistributed=pool.total_undistributed,
            final_pending=final_audit.total_pending,
            history=history
        )

    def run_many(self, runs: int = None, random_seed: int = None) -> List[InterleavingResult]:
        """Run `runs` randomized sequences with consecutive seeds."""
        if runs is None:
            runs = self.settings.runs
        if random_seed is None:
            random_seed = self.settings.random_seed
        return [self.run(seed=random_seed + i) for i in range(runs)]

    def _apply(
        self,
        ledger: RewardLedger,
        rng: np.random.RandomState,
        op: str,
        account: str,
        stake_token: InMemoryToken,
        reward_token: InMemoryToken,
        violations: List[str],
        step: int
    ) -> bool:
        """Apply one operation; returns False when it was not applicable."""
        settings = self.settings

        if op == 'stake':
            balance = stake_token.balance_of(account)
            if balance <= 0:
                return False
            amount = int(rng.randint(1, min(balance, settings.max_amount) + 1))
            before = ledger.pending_reward(POOL_ID, account)
            ledger.stake(POOL_ID, account, amount)
            after = ledger.pending_reward(POOL_ID, account)
            if after != before:
                violations.append(f"step {step}: stake changed pending of {account} from {before} to {after}")

        elif op == 'unstake':
            shares = ledger.staked_balance(POOL_ID, account)
            if shares <= 0:
                return False
            amount = int(rng.randint(1, shares + 1))
            before = ledger.pending_reward(POOL_ID, account)
            ledger.unstake(POOL_ID, account, amount)
            after = ledger.pending_reward(POOL_ID, account)
            if after != before:
                violations.append(f"step {step}: unstake changed pending of {account} from {before} to {after}")

        elif op == 'claim':
            before = ledger.pending_reward(POOL_ID, account)
            balance_before = reward_token.balance_of(account)
            paid = ledger.claim(POOL_ID, account)
            received = reward_token.balance_of(account) - balance_before
            if paid != before or received != before:
                violations.append(
                    f"step {step}: claim for {account} paid {paid} (received {received}), expected {before}"
                )
            if ledger.pending_reward(POOL_ID, account) != 0:
                violations.append(f"step {step}: pending of {account} not zero after claim")

        elif op == 'set_rate':
            ledger.set_emission_rate(POOL_ID, int(rng.randint(0, settings.max_emission_rate + 1)))

        elif op == 'fund':
            available = reward_token.balance_of(FUNDER)
            if available <= 0:
                return False
            ledger.fund_reward(POOL_ID, FUNDER, int(rng.randint(1, min(available, settings.max_amount * 10) + 1)))

        elif op == 'emergency_unstake':
            if ledger.staked_balance(POOL_ID, account) <= 0:
                return False
            ledger.emergency_unstake(POOL_ID, account)

        return True


def summarize_runs(results: List[InterleavingResult]) -> Dict[str, Any]:
    """
    Summarize randomized runs.

    Args:
        results: Results from run_many

    Returns:
        Dictionary with violation counts and payout statistics
    """
    if not results:
        return {'num_runs': 0, 'violations': 0, 'failed_seeds': []}

    claimed = np.array([r.total_claimed for r in results], dtype=float)
    funded = np.array([r.total_funded for r in results], dtype=float)
    payout_ratio = np.divide(claimed, funded, out=np.zeros_like(claimed), where=funded > 0)

    return {
        'num_runs': len(results),
        'violations': sum(len(r.violations) for r in results),
        'failed_seeds': [r.seed for r in results if not r.ok],
        'total_claimed': {
            'mean': float(np.mean(claimed)),
            'min': float(np.min(claimed)),
            'max': float(np.max(claimed)),
        },
        'payout_ratio': {
            'mean': float(np.mean(payout_ratio)),
            'p5': float(np.percentile(payout_ratio, 5)),
            'p95': float(np.percentile(payout_ratio, 95)),
        },
        'total_forfeited': int(sum(r.total_forfeited for r in results)),
        'total_undistributed': int(sum(r.total_undistributed for r in results)),
    }
