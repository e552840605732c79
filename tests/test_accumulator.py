"""Unit tests for the pool accumulator.

These tests verify:
- Catch-up arithmetic and fixed-point scaling
- Idempotent catch-up within one instant
- Budget capping (no reward manufactured)
- Zero-share intervals are skipped, not deferred
- Preview has no side effects
"""

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from rewardpool.engine.accumulator import (
    BUDGET_BALANCE,
    SCALE,
    PoolState,
    catch_up,
    compute_accrual,
    preview_accumulator,
)
from rewardpool.engine.errors import ClockRegression


def _pool(**overrides) -> PoolState:
    fields = dict(pool_id="p", emission_rate=100, total_shares=10, remaining_budget=10_000)
    fields.update(overrides)
    return PoolState(**fields)


class TestCatchUp:
    """Tests for catch_up."""

    def test_accrues_emission_per_share(self):
        """Ten units at rate 100 over 10 shares adds 100 reward per share."""
        pool = _pool()
        accrual = catch_up(pool, 10)

        assert accrual.emission == 1_000
        assert pool.acc_per_share == 100 * SCALE
        assert pool.remaining_budget == 9_000
        assert pool.total_accrued == 1_000
        assert pool.last_updated == 10

    def test_catch_up_is_idempotent_at_same_timestamp(self):
        """A second catch-up at the same instant changes nothing."""
        pool = _pool()
        catch_up(pool, 10)
        after_first = pool.snapshot()

        accrual = catch_up(pool, 10)

        assert accrual.elapsed == 0
        assert accrual.emission == 0
        assert pool == after_first

    def test_emission_capped_by_budget(self):
        """Accrual never exceeds the remaining budget."""
        pool = _pool(remaining_budget=250)
        accrual = catch_up(pool, 10)

        assert accrual.raw_emission == 1_000
        assert accrual.emission == 250
        assert pool.remaining_budget == 0
        assert pool.acc_per_share == 25 * SCALE

        # Budget exhausted: time passes, nothing accrues
        catch_up(pool, 20)
        assert pool.acc_per_share == 25 * SCALE
        assert pool.last_updated == 20

    def test_explicit_available_budget_overrides_tracked(self):
        """Balance-mode pools pass the live balance as the budget."""
        pool = _pool(budget_mode=BUDGET_BALANCE, remaining_budget=0)
        catch_up(pool, 10, available_budget=500)

        assert pool.acc_per_share == 50 * SCALE
        # Balance mode does not decrement an internal counter
        assert pool.remaining_budget == 0
        assert pool.total_accrued == 500

    def test_zero_shares_skips_emission(self):
        """With nobody staked the interval's emission is skipped and time still advances."""
        pool = _pool(total_shares=0)
        accrual = catch_up(pool, 10)

        assert accrual.acc_increment == 0
        assert pool.acc_per_share == 0
        assert pool.remaining_budget == 10_000
        assert pool.total_undistributed == 1_000
        assert pool.last_updated == 10

    def test_zero_rate_only_moves_time(self):
        pool = _pool(emission_rate=0)
        catch_up(pool, 50)
        assert pool.acc_per_share == 0
        assert pool.last_updated == 50

    def test_increment_is_floored(self):
        """Integer division rounds the per-share increment down."""
        pool = _pool(emission_rate=1, total_shares=3)
        catch_up(pool, 1)
        assert pool.acc_per_share == SCALE // 3
        # Distributable reward never exceeds emission
        assert pool.acc_per_share * pool.total_shares <= 1 * SCALE

    def test_clock_regression_rejected(self):
        """Catch-up to an earlier timestamp raises and leaves the pool unchanged."""
        pool = _pool(last_updated=20)
        before = pool.snapshot()

        with pytest.raises(ClockRegression):
            catch_up(pool, 19)

        assert pool == before

    def test_accumulator_monotonic_over_steps(self):
        pool = _pool(remaining_budget=5_000)
        previous = pool.acc_per_share
        for t in range(1, 100, 7):
            catch_up(pool, t)
            assert pool.acc_per_share >= previous
            previous = pool.acc_per_share


class TestPreview:
    """Tests for the side-effect-free accumulator view."""

    def test_preview_matches_catch_up(self):
        pool = _pool()
        expected = preview_accumulator(pool, 37)
        catch_up(pool, 37)
        assert pool.acc_per_share == expected

    def test_preview_does_not_mutate(self):
        pool = _pool()
        before = pool.snapshot()
        preview_accumulator(pool, 1_000)
        compute_accrual(pool, 1_000)
        assert pool == before


class TestPoolStateValidation:
    """Tests for PoolState sanity checks."""

    def test_fresh_pool_is_valid(self):
        is_valid, error = PoolState(pool_id="p").validate_non_negative()
        assert is_valid is True
        assert error is None

    def test_negative_field_detected(self):
        is_valid, error = _pool(total_shares=-1).validate_non_negative()
        assert is_valid is False
        assert "total_shares" in error
