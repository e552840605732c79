"""Ledger audits: conservation and bookkeeping checks.

Audits iterate over every account of a pool, so they are diagnostics for
tests, simulations and reporting. Ledger operations never call them.
"""

from dataclasses import dataclass
from typing import Hashable, List, Optional

from ..engine.accumulator import BUDGET_TRACKED
from ..engine.errors import AccountingInvariantViolation
from ..engine.ledger import RewardLedger


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "conservation", "bookkeeping", "invariant"
    message: str
    details: Optional[str] = None


@dataclass
class PoolAudit:
    """Aggregates computed while auditing one pool."""
    pool_id: Hashable
    timestamp: int
    total_pending: int
    sum_shares: int
    outstanding_budget: int  # total_funded - total_claimed
    custody_reward_balance: int
    custody_stake_balance: int
    warnings: List[ValidationWarning]

    @property
    def ok(self) -> bool:
        return not any(w.severity == "error" for w in self.warnings)


class LedgerAuditor:
    """Run conservation checks against a RewardLedger."""

    def __init__(self, ledger: RewardLedger):
        """Initialize with the ledger to audit."""
        self.ledger = ledger

    def audit_pool(self, pool_id: Hashable, now: Optional[int] = None) -> PoolAudit:
        """
        Audit one pool at `now` (defaults to the ledger clock).

        Checks:
        - Every account's pending reward is non-negative
        - Sum of pending rewards <= funded - claimed
        - Accrued <= funded (tracked budget mode)
        - Custody holds enough reward for all pending claims
        - Sum of account shares == total_shares, backed by custody stake

        Returns:
            PoolAudit with aggregates and warnings
        """
        if now is None:
            now = self.ledger.clock.now()

        pool = self.ledger.get_pool(pool_id)
        resources = self.ledger.get_resources(pool_id)
        accounts = self.ledger.accounts(pool_id)
        acc_per_share = self.ledger.preview_accumulator(pool_id, now)
        warnings: List[ValidationWarning] = []

        is_valid, error_msg = pool.validate_non_negative()
        if not is_valid:
            warnings.append(ValidationWarning(
                severity="error",
                category="bookkeeping",
                message=error_msg
            ))

        total_pending = 0
        sum_shares = 0
        for account, entry in accounts.items():
            sum_shares += entry.shares
            try:
                total_pending += entry.pending(acc_per_share)
            except AccountingInvariantViolation as e:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="invariant",
                    message=f"Negative pending reward for {account!r} in pool {pool_id!r}",
                    details=str(e)
                ))

        outstanding = pool.total_funded - pool.total_claimed
        if total_pending > outstanding:
            warnings.append(ValidationWarning(
                severity="error",
                category="conservation",
                message=f"Pending rewards exceed funded minus claimed at t={now}",
                details=(
                    f"Pending={total_pending:,}, Funded={pool.total_funded:,}, "
                    f"Claimed={pool.total_claimed:,}"
                )
            ))

        if pool.budget_mode == BUDGET_TRACKED:
            if pool.total_accrued > pool.total_funded:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="conservation",
                    message="Accrued emission exceeds funded reward",
                    details=f"Accrued={pool.total_accrued:,}, Funded={pool.total_funded:,}"
                ))
            if pool.remaining_budget + pool.total_accrued != pool.total_funded:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bookkeeping",
                    message="Remaining budget does not reconcile with funded and accrued totals",
                    details=(
                        f"Remaining={pool.remaining_budget:,}, Accrued={pool.total_accrued:,}, "
                        f"Funded={pool.total_funded:,}"
                    )
                ))

        custody_reward = resources.reward_token.balance_of(resources.custody)
        if custody_reward < total_pending:
            warnings.append(ValidationWarning(
                severity="error",
                category="conservation",
                message="Custody reward balance cannot cover pending claims",
                details=f"Custody={custody_reward:,}, Pending={total_pending:,}"
            ))

        if sum_shares != pool.total_shares:
            warnings.append(ValidationWarning(
                severity="error",
                category="bookkeeping",
                message=f"Account shares sum to {sum_shares:,} but total_shares is {pool.total_shares:,}"
            ))

        custody_stake = resources.stake_token.balance_of(resources.custody)
        if custody_stake < pool.total_shares:
            warnings.append(ValidationWarning(
                severity="error",
                category="bookkeeping",
                message="Custody stake balance is below total_shares",
                details=f"Custody={custody_stake:,}, Total shares={pool.total_shares:,}"
            ))

        if pool.total_undistributed > 0:
            warnings.append(ValidationWarning(
                severity="warning",
                category="emission",
                message="Emission elapsed while no shares were staked and was skipped",
                details=f"Skipped emission: {pool.total_undistributed:,}"
            ))

        if pool.total_forfeited > 0:
            warnings.append(ValidationWarning(
                severity="warning",
                category="emission",
                message="Reward was forfeited through emergency exits",
                details=f"Forfeited: {pool.total_forfeited:,}"
            ))

        return PoolAudit(
            pool_id=pool_id,
            timestamp=now,
            total_pending=total_pending,
            sum_shares=sum_shares,
            outstanding_budget=outstanding,
            custody_reward_balance=custody_reward,
            custody_stake_balance=custody_stake,
            warnings=warnings
        )


def validate_ledger(ledger: RewardLedger, now: Optional[int] = None) -> List[ValidationWarning]:
    """
    Audit every pool of a ledger.

    Args:
        ledger: Ledger to audit
        now: Audit timestamp (defaults to the ledger clock)

    Returns:
        List of all validation warnings
    """
    auditor = LedgerAuditor(ledger)
    warnings = []
    for pool_id in ledger.pool_ids():
        warnings.extend(auditor.audit_pool(pool_id, now).warnings)
    return warnings
