"""Tests for the scenario runner and randomized interleavings.

The randomized runs are the conservation property check: any sequence of
stake / unstake / claim / rate-change / fund / emergency-exit operations must
keep pending rewards covered by funded-minus-claimed reward.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from rewardpool.config.loader import config_from_dict, load_config
from rewardpool.config.schema import SimulationSettings
from rewardpool.engine.errors import InsufficientStake
from rewardpool.simulation import (
    RandomInterleavingRunner,
    SimulationRunner,
    run_scenario,
    summarize_runs,
)


def _small_scenario(steps, expectations=None):
    return config_from_dict({
        'pool': {'emission_rate': 10, 'initial_funding': 1_000},
        'accounts': [
            {'name': 'treasury', 'reward_balance': 1_050},
            {'name': 'alice', 'stake_balance': 100},
            {'name': 'bob', 'stake_balance': 100},
        ],
        'steps': steps,
        'expectations': expectations or [],
    })


class TestScenarioRunner:
    """Scripted scenario replay."""

    def test_default_scenario_passes(self):
        """The bundled three-staker scenario meets every expectation."""
        result = run_scenario(load_config())

        assert result.expectation_failures == []
        assert result.errors == []
        assert result.passed
        assert result.payouts == {'alice': 900, 'bob': 225, 'carol': 875}
        assert result.final_pending == {'alice': 0, 'bob': 0, 'carol': 0}

    def test_snapshot_per_step(self):
        result = run_scenario(load_config())

        assert len(result.snapshots) == len(result.config.steps)
        last = result.snapshots[-1]
        assert last['t'] == 20
        assert last['total_shares'] == 8
        assert last['shares.carol'] == 3
        assert last['pending.alice'] == 0

    def test_events_recorded(self):
        result = run_scenario(load_config())
        operations = {event.operation for event in result.events}
        assert {'create_pool', 'fund_reward', 'stake', 'unstake', 'claim'} <= operations

    def test_failed_expectation_reported(self):
        config = _small_scenario(
            steps=[{'at': 0, 'action': 'stake', 'account': 'alice', 'amount': 1}],
            expectations=[{'at': 5, 'pending': {'alice': 49}}],
        )
        result = SimulationRunner(config).run()

        assert not result.passed
        assert result.expectation_failures == ["t=5: pending[alice] expected 49, got 50"]

    def test_strict_mode_raises(self):
        config = _small_scenario(steps=[{'at': 0, 'action': 'unstake', 'account': 'alice', 'amount': 1}])
        with pytest.raises(InsufficientStake):
            SimulationRunner(config).run(strict=True)

    def test_lenient_mode_records_errors(self):
        config = _small_scenario(steps=[
            {'at': 0, 'action': 'unstake', 'account': 'alice', 'amount': 1},
            {'at': 0, 'action': 'stake', 'account': 'alice', 'amount': 2},
        ])
        result = SimulationRunner(config).run(strict=False)

        assert len(result.errors) == 1
        assert "unstake" in result.errors[0]
        assert result.snapshots[-1]['shares.alice'] == 2

    def test_rate_change_and_funding_steps(self):
        config = _small_scenario(
            steps=[
                {'at': 0, 'action': 'stake', 'account': 'alice', 'amount': 1},
                {'at': 10, 'action': 'set_rate', 'rate': 0},
                {'at': 20, 'action': 'fund', 'amount': 50},
                {'at': 30, 'action': 'claim', 'account': 'alice'},
            ],
            expectations=[{'at': 30, 'claimed': {'alice': 100}}],
        )
        result = run_scenario(config)

        assert result.passed
        assert result.snapshots[-1]['remaining_budget'] == 950

    def test_emergency_step(self):
        config = _small_scenario(
            steps=[
                {'at': 0, 'action': 'stake', 'account': 'bob', 'amount': 5},
                {'at': 10, 'action': 'emergency_unstake', 'account': 'bob'},
            ],
            expectations=[{'at': 10, 'pending': {'bob': 0}}],
        )
        result = run_scenario(config)

        assert result.passed
        assert result.snapshots[-1]['total_shares'] == 0
        assert any(w.category == 'emission' for w in result.warnings)


class TestRandomInterleavings:
    """Conservation and neutrality under random operation orderings."""

    def test_random_runs_hold_invariants(self):
        settings = SimulationSettings(num_accounts=4, num_steps=150, runs=5, random_seed=7)
        results = RandomInterleavingRunner(settings).run_many()

        assert len(results) == 5
        for result in results:
            assert result.violations == [], result.violations[:3]
            assert result.total_claimed + result.final_pending <= result.total_funded

    def test_budget_starved_runs_hold_invariants(self):
        """Emission far above funding exhausts the budget without overpaying."""
        settings = SimulationSettings(
            num_accounts=3, num_steps=120, max_emission_rate=5_000, initial_funding=2_000, random_seed=3
        )
        result = RandomInterleavingRunner(settings).run()
        assert result.ok

    def test_runs_are_deterministic(self):
        settings = SimulationSettings(num_accounts=3, num_steps=80)
        first = RandomInterleavingRunner(settings).run(seed=11)
        second = RandomInterleavingRunner(settings).run(seed=11)

        assert first.operations == second.operations
        assert first.total_claimed == second.total_claimed
        assert first.history == second.history

    def test_operations_are_exercised(self):
        settings = SimulationSettings(num_accounts=3, num_steps=300)
        result = RandomInterleavingRunner(settings).run(seed=1)
        assert result.operations['stake'] > 0
        assert result.operations['claim'] > 0
        assert sum(result.operations.values()) == len(result.history)

    def test_summarize_runs(self):
        settings = SimulationSettings(num_accounts=2, num_steps=50, runs=3)
        summary = summarize_runs(RandomInterleavingRunner(settings).run_many())

        assert summary['num_runs'] == 3
        assert summary['violations'] == 0
        assert summary['failed_seeds'] == []
        assert 0.0 <= summary['payout_ratio']['mean'] <= 1.0

    def test_summarize_empty(self):
        assert summarize_runs([])['num_runs'] == 0
