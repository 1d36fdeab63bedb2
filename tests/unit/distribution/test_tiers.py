# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the tier evaluator and its allocation primitives.
"""

from dataclasses import replace

import numpy as np
import pytest

from fundflow.core.primitives import TierTypeEnum, WaterfallAlgorithmEnum
from fundflow.distribution import (
    CapitalAccount,
    WaterfallTierSpec,
    evaluate_tier,
    pro_rata_allocate,
    residual_weights,
    waterline_allocate,
)
from fundflow.distribution.tiers import TierOutcome, WaterfallState

from ...conftest import INCEPTION, ONE_YEAR_LATER, create_accounts


def _open_state(accounts, algorithm="american", **kwargs) -> WaterfallState:
    return WaterfallState.open(
        accounts=accounts,
        algorithm=WaterfallAlgorithmEnum(algorithm),
        inception_date=INCEPTION,
        distribution_date=ONE_YEAR_LATER,
        **kwargs,
    )


class TestWaterlineAllocate:
    """Tests for capped pro-rata allocation."""

    def test_uncapped_split(self):
        allocation = waterline_allocate(100.0, [1, 3], [1000.0, 1000.0])
        np.testing.assert_allclose(allocation, [25.0, 75.0])

    def test_capped_investor_redistributes(self):
        allocation = waterline_allocate(100.0, [1, 1], [10.0, 1000.0])
        np.testing.assert_allclose(allocation, [10.0, 90.0])

    def test_excess_left_unallocated(self):
        allocation = waterline_allocate(500.0, [1, 1, 1], [100.0, 100.0, 100.0])
        np.testing.assert_allclose(allocation, [100.0, 100.0, 100.0])

    def test_zero_weight_receives_nothing(self):
        allocation = waterline_allocate(100.0, [0, 1], [1000.0, 1000.0])
        np.testing.assert_allclose(allocation, [0.0, 100.0])

    def test_cascading_caps(self):
        """Each pass caps at least one more investor."""
        allocation = waterline_allocate(90.0, [1, 1, 1], [5.0, 20.0, 1000.0])
        np.testing.assert_allclose(allocation, [5.0, 20.0, 65.0])
        assert allocation.sum() == pytest.approx(90.0)


class TestProRataAllocate:
    """Tests for normalized pro-rata splits."""

    def test_weights_normalized(self):
        allocation = pro_rata_allocate(1_200_000, [40, 40, 40])
        np.testing.assert_allclose(allocation, [400_000, 400_000, 400_000])

    def test_parts_sum_exactly(self):
        """Ownership summing to 99.98 is scaled up to the full amount."""
        allocation = pro_rata_allocate(100.0, [33.33, 33.33, 33.32])

        assert allocation.sum() == pytest.approx(100.0, abs=1e-12)
        np.testing.assert_allclose(
            allocation,
            [100.0 * 33.33 / 99.98, 100.0 * 33.33 / 99.98, 100.0 * 33.32 / 99.98],
            atol=1e-9,
        )

    def test_zero_weights_split_equally(self):
        allocation = pro_rata_allocate(90.0, [0, 0, 0])
        np.testing.assert_allclose(allocation, [30.0, 30.0, 30.0])

    def test_empty(self):
        assert len(pro_rata_allocate(100.0, [])) == 0


class TestResidualWeights:
    """Tests for the residual-split weights."""

    def test_explicit_ownership(self):
        accounts = [
            CapitalAccount(investor_id="a", capital_contributed=1, ownership_percent=70),
            CapitalAccount(investor_id="b", capital_contributed=1),
        ]
        np.testing.assert_allclose(residual_weights(accounts), [70.0, 0.0])

    def test_falls_back_to_capital_contributed(self):
        accounts = [
            CapitalAccount(investor_id="a", capital_contributed=3_000_000),
            CapitalAccount(investor_id="b", capital_contributed=1_000_000),
        ]
        np.testing.assert_allclose(residual_weights(accounts), [3_000_000, 1_000_000])

    def test_zero_ownership_falls_back_to_capital(self):
        accounts = [
            CapitalAccount(investor_id="a", capital_contributed=3, ownership_percent=0),
            CapitalAccount(investor_id="b", capital_contributed=1, ownership_percent=0),
        ]
        np.testing.assert_allclose(residual_weights(accounts), [3.0, 1.0])


class TestEvaluateTier:
    """Tests for individual tier evaluation."""

    def test_return_of_capital_capped(self):
        accounts = create_accounts(2, 1_000_000)
        tier = WaterfallTierSpec(tier_type="RETURN_OF_CAPITAL", order=1)

        outcome = evaluate_tier(tier, 3_000_000, _open_state(accounts))

        assert outcome.result.amount_distributed == pytest.approx(2_000_000)
        assert outcome.remaining == pytest.approx(1_000_000)
        assert outcome.deltas == pytest.approx({"inv-1": 1_000_000, "inv-2": 1_000_000})
        assert all(a.outstanding_capital == pytest.approx(0) for a in outcome.state.accounts)

    def test_preferred_accrues_then_pays(self):
        accounts = create_accounts(2, 1_000_000)
        tier = WaterfallTierSpec(tier_type="PREFERRED_RETURN", order=2, hurdle_rate=8)

        outcome = evaluate_tier(tier, 100_000, _open_state(accounts))

        # 80k each accrued, 100k available pays 50k each
        assert outcome.result.lp_amount == pytest.approx(100_000)
        assert outcome.remaining == pytest.approx(0.0)
        for account in outcome.state.accounts:
            assert account.preferred_return_accrued == pytest.approx(80_000)
            assert account.preferred_return_paid == pytest.approx(50_000)
        assert outcome.state.lp_profit_paid == pytest.approx(100_000)

    def test_preferred_accrues_when_skipped(self):
        accounts = create_accounts(1, 1_000_000)
        tier = WaterfallTierSpec(tier_type="PREFERRED_RETURN", order=2, hurdle_rate=8)

        outcome = evaluate_tier(tier, 0.0, _open_state(accounts))

        assert outcome.result.amount_distributed == 0.0
        assert outcome.state.accounts[0].preferred_return_accrued == pytest.approx(80_000)
        assert outcome.state.accounts[0].last_accrual_date == ONE_YEAR_LATER

    def test_catch_up_targets_share_of_profit(self):
        accounts = create_accounts(1, 1_000_000)
        tier = WaterfallTierSpec(tier_type="CATCH_UP", order=3, catch_up_target=20)
        state = replace(_open_state(accounts), lp_profit_paid=800_000)

        outcome = evaluate_tier(tier, 1_000_000, state)

        assert outcome.gp_amount == pytest.approx(200_000)
        assert outcome.result.gp_amount == pytest.approx(200_000)
        assert outcome.result.lp_amount == 0.0
        assert outcome.remaining == pytest.approx(800_000)

    def test_catch_up_limited_by_remaining(self):
        accounts = create_accounts(1, 1_000_000)
        tier = WaterfallTierSpec(tier_type="CATCH_UP", order=3, catch_up_target=20)
        state = replace(_open_state(accounts), lp_profit_paid=800_000)

        outcome = evaluate_tier(tier, 50_000, state)

        assert outcome.gp_amount == pytest.approx(50_000)
        assert outcome.remaining == pytest.approx(0.0)

    def test_residual_split(self):
        accounts = create_accounts(2, 1_000_000)
        tier = WaterfallTierSpec(
            tier_type="CARRIED_INTEREST", order=4, lp_split=80, gp_split=20
        )

        outcome = evaluate_tier(tier, 1_000_000, _open_state(accounts))

        assert outcome.result.tier_type == TierTypeEnum.RESIDUAL_SPLIT
        assert outcome.result.lp_amount == pytest.approx(800_000)
        assert outcome.gp_amount == pytest.approx(200_000)
        assert outcome.deltas["inv-1"] == pytest.approx(400_000)
        assert outcome.remaining == 0.0

    def test_residual_split_without_investors(self):
        tier = WaterfallTierSpec(
            tier_type="CARRIED_INTEREST", order=4, lp_split=80, gp_split=20
        )

        outcome = evaluate_tier(tier, 1_000, _open_state([]))

        assert outcome.gp_amount == pytest.approx(1_000)
        assert outcome.result.lp_amount == 0.0

    def test_european_state_carries_history(self):
        accounts = create_accounts(
            2,
            1_000_000,
            capital_returned=1_000_000,
            distributions_received=1_100_000,
        )

        state = _open_state(accounts, algorithm="european", gp_carry_paid_to_date=10_000)

        assert state.cumulative_lp_profit == pytest.approx(200_000)
        assert state.cumulative_gp_paid == pytest.approx(10_000)

    def test_american_state_ignores_history(self):
        accounts = create_accounts(
            2,
            1_000_000,
            capital_returned=1_000_000,
            distributions_received=1_100_000,
        )

        state = _open_state(accounts, gp_carry_paid_to_date=10_000)

        assert state.cumulative_lp_profit == 0.0
        assert state.cumulative_gp_paid == 0.0

    def test_outcome_requires_state(self):
        tier = WaterfallTierSpec(tier_type="RETURN_OF_CAPITAL", order=1)
        result = evaluate_tier(tier, 0.0, _open_state([])).result

        with pytest.raises(TypeError):
            TierOutcome(result=result)
