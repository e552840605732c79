"""Tests for ledger audits (conservation and bookkeeping checks)."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from rewardpool.engine import InMemoryToken, ManualClock, RewardLedger
from rewardpool.validation import LedgerAuditor, validate_ledger


def _funded_ledger():
    clock = ManualClock(0)
    ledger = RewardLedger(clock=clock)
    stake_token = InMemoryToken("STAKE")
    reward_token = InMemoryToken("REWARD")
    stake_token.mint("alice", 100)
    stake_token.mint("bob", 100)
    reward_token.mint("treasury", 5_000)
    ledger.create_pool("main", stake_token, reward_token, emission_rate=100)
    ledger.fund_reward("main", "treasury", 5_000)
    return ledger, clock, reward_token


def _errors(audit):
    return [w for w in audit.warnings if w.severity == "error"]


class TestLedgerAuditor:
    """Audit results for healthy and corrupted ledgers."""

    def test_healthy_pool_passes(self):
        ledger, clock, _ = _funded_ledger()
        ledger.stake("main", "alice", 30)
        ledger.stake("main", "bob", 70)
        clock.advance(20)
        ledger.claim("main", "alice")
        clock.advance(5)

        audit = LedgerAuditor(ledger).audit_pool("main")

        assert audit.ok
        assert audit.sum_shares == 100
        # alice: 30 * 25 - 600 claimed, bob: 70 * 25
        assert audit.total_pending == 150 + 1_750
        assert audit.outstanding_budget == 5_000 - 600

    def test_pending_never_exceeds_funding(self):
        """Long after the budget is exhausted, pending is still covered."""
        ledger, clock, _ = _funded_ledger()
        ledger.stake("main", "alice", 1)
        ledger.stake("main", "bob", 2)
        clock.advance(10_000)

        audit = LedgerAuditor(ledger).audit_pool("main")
        assert audit.ok
        assert audit.total_pending <= 5_000

    def test_detects_share_mismatch(self):
        ledger, _, _ = _funded_ledger()
        ledger.stake("main", "alice", 10)
        ledger._pools["main"].total_shares = 11

        audit = LedgerAuditor(ledger).audit_pool("main")
        messages = [w.message for w in _errors(audit)]
        assert any("total_shares" in m for m in messages)

    def test_detects_overpromised_rewards(self):
        ledger, clock, reward_token = _funded_ledger()
        ledger.stake("main", "alice", 10)
        clock.advance(10)
        # Reward leaks out of custody behind the ledger's back
        custody = ledger.get_resources("main").custody
        reward_token.transfer(custody, "thief", 4_500)

        audit = LedgerAuditor(ledger).audit_pool("main")
        assert any(w.category == "conservation" for w in _errors(audit))

    def test_detects_negative_pending(self):
        ledger, clock, _ = _funded_ledger()
        ledger.stake("main", "alice", 10)
        ledger._accounts["main"]["alice"].debt = 10 ** 30

        audit = LedgerAuditor(ledger).audit_pool("main")
        assert any(w.category == "invariant" for w in _errors(audit))

    def test_skipped_and_forfeited_emission_are_warnings(self):
        ledger, clock, _ = _funded_ledger()
        clock.advance(5)
        ledger.stake("main", "alice", 10)
        clock.advance(5)
        ledger.emergency_unstake("main", "alice")

        audit = LedgerAuditor(ledger).audit_pool("main")
        categories = [(w.severity, w.category) for w in audit.warnings]
        assert ("warning", "emission") in categories
        assert audit.ok

    def test_validate_ledger_covers_all_pools(self):
        ledger, _, _ = _funded_ledger()
        ledger.create_pool("empty", InMemoryToken("S"), InMemoryToken("R"))
        ledger._pools["empty"].total_shares = 3

        warnings = validate_ledger(ledger)
        assert any("total_shares" in w.message for w in warnings)
