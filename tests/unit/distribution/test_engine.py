# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the Waterfall Engine

Covers full tier sequencing, American and European catch-up context,
reconciliation of results and the audit table.
"""

from datetime import date

import pytest

from fundflow.core.errors import ConfigurationError, InvalidRequest
from fundflow.core.primitives import (
    InvestorTypeEnum,
    TierTypeEnum,
    WaterfallAlgorithmEnum,
)
from fundflow.distribution import (
    AMERICAN_WATERFALL,
    CapitalAccount,
    WaterfallEngine,
    WaterfallStructure,
    evaluate_waterfall,
)

from ...conftest import INCEPTION, ONE_YEAR_LATER, create_accounts, create_waterfall


def _prior_event_accounts():
    """Five investors whose capital and preferred return were fully paid a year ago."""
    return create_accounts(
        5,
        2_000_000,
        capital_returned=2_000_000,
        preferred_return_accrued=160_000,
        preferred_return_paid=160_000,
        distributions_received=2_160_000,
        last_accrual_date=ONE_YEAR_LATER,
    )


class TestWaterfallEngine:
    """Tests for WaterfallEngine.evaluate."""

    def test_full_waterfall(self, five_accounts, standard_waterfall):
        """$12M through ROC, 8% pref, 20% catch-up and an 80/20 split."""
        result = WaterfallEngine().evaluate(
            standard_waterfall, 12_000_000, five_accounts, INCEPTION, ONE_YEAR_LATER
        )

        assert result.tier(TierTypeEnum.RETURN_OF_CAPITAL).amount_distributed == pytest.approx(10_000_000)
        assert result.tier(TierTypeEnum.PREFERRED_RETURN).amount_distributed == pytest.approx(800_000)
        assert result.tier(TierTypeEnum.GP_CATCH_UP).gp_amount == pytest.approx(200_000)
        split = result.tier(TierTypeEnum.RESIDUAL_SPLIT)
        assert split.lp_amount == pytest.approx(800_000)
        assert split.gp_amount == pytest.approx(200_000)

        assert result.gp_carry == pytest.approx(400_000)
        assert result.total_lp_amount == pytest.approx(11_600_000)
        assert result.total_distributed == pytest.approx(12_000_000)

        for allocation in result.investor_allocations:
            assert allocation.final_allocation == pytest.approx(2_320_000)
            assert allocation.ownership_percent == pytest.approx(20.0)
            assert allocation.amount_for_tier_type(TierTypeEnum.PREFERRED_RETURN) == pytest.approx(160_000)

    def test_capital_only(self, five_accounts, standard_waterfall):
        """$1.5M stays in return of capital; later tiers distribute nothing."""
        result = WaterfallEngine().evaluate(
            standard_waterfall, 1_500_000, five_accounts, INCEPTION, ONE_YEAR_LATER
        )

        for allocation in result.investor_allocations:
            assert allocation.final_allocation == pytest.approx(300_000)
        for tier in result.tier_distributions[1:]:
            assert tier.amount_distributed == 0.0
        assert result.gp_carry == 0.0

    def test_preferred_accrues_when_not_reached(self, five_accounts, standard_waterfall):
        result = WaterfallEngine().evaluate(
            standard_waterfall, 5_000_000, five_accounts, INCEPTION, ONE_YEAR_LATER
        )

        for account in result.closing_accounts:
            assert account.capital_returned == pytest.approx(1_000_000)
            assert account.preferred_return_accrued == pytest.approx(160_000)
            assert account.preferred_return_paid == 0.0

    def test_without_catch_up(self, five_accounts):
        result = WaterfallEngine().evaluate(
            AMERICAN_WATERFALL, 12_000_000, five_accounts, INCEPTION, ONE_YEAR_LATER
        )

        assert result.gp_carry == pytest.approx(240_000)
        assert result.total_lp_amount == pytest.approx(11_760_000)

    def test_explicit_ownership_drives_residual(self):
        accounts = [
            CapitalAccount(investor_id="a", capital_contributed=1_000_000, ownership_percent=70),
            CapitalAccount(investor_id="b", capital_contributed=1_000_000, ownership_percent=30),
        ]

        result = WaterfallEngine().evaluate(
            AMERICAN_WATERFALL, 3_160_000, accounts, INCEPTION, ONE_YEAR_LATER
        )

        split = result.tier(TierTypeEnum.RESIDUAL_SPLIT)
        assert split.investor_amounts["a"] == pytest.approx(560_000)
        assert split.investor_amounts["b"] == pytest.approx(240_000)
        assert result.investor_allocations[0].ownership_percent == 70

    def test_no_accounts_gp_takes_residual(self):
        result = WaterfallEngine().evaluate(
            AMERICAN_WATERFALL, 1_000, [], INCEPTION, ONE_YEAR_LATER
        )

        assert result.gp_carry == pytest.approx(1_000)
        assert result.investor_allocations == []

    def test_zero_amount(self, five_accounts, standard_waterfall):
        result = WaterfallEngine().evaluate(
            standard_waterfall, 0.0, five_accounts, INCEPTION, ONE_YEAR_LATER
        )
        assert result.total_distributed == 0.0
        assert all(a.final_allocation == 0.0 for a in result.investor_allocations)

    def test_inputs_not_modified(self, five_accounts, standard_waterfall):
        before = [a.model_copy() for a in five_accounts]

        WaterfallEngine().evaluate(
            standard_waterfall, 12_000_000, five_accounts, INCEPTION, ONE_YEAR_LATER
        )

        assert five_accounts == before

    def test_deterministic(self, five_accounts, standard_waterfall):
        engine = WaterfallEngine()
        first = engine.evaluate(
            standard_waterfall, 12_000_000, five_accounts, INCEPTION, ONE_YEAR_LATER
        )
        second = engine.evaluate(
            standard_waterfall, 12_000_000, five_accounts, INCEPTION, ONE_YEAR_LATER
        )
        assert first == second

    def test_to_dataframe(self, five_accounts, standard_waterfall):
        result = WaterfallEngine().evaluate(
            standard_waterfall, 12_000_000, five_accounts, INCEPTION, ONE_YEAR_LATER
        )

        df = result.to_dataframe()

        assert len(df) == 4
        assert list(df["tier_id"]) == ["roc", "pref", "catch-up", "split"]
        assert df["amount_distributed"].sum() == pytest.approx(12_000_000)
        assert df.loc[df["tier_type"] == "CATCH_UP", "gp_amount"].iloc[0] == pytest.approx(200_000)

    def test_gp_allocation_record(self, five_accounts, standard_waterfall):
        engine = WaterfallEngine()
        result = engine.evaluate(
            standard_waterfall, 12_000_000, five_accounts, INCEPTION, ONE_YEAR_LATER
        )

        record = engine.gp_allocation_record(standard_waterfall, result, hierarchy_level=2)

        assert record.is_general_partner
        assert record.investor_type == InvestorTypeEnum.GENERAL_PARTNER
        assert record.final_allocation == pytest.approx(400_000)
        assert record.hierarchy_level == 2
        assert record.ownership_percent == pytest.approx(400_000 / 12_000_000 * 100)


class TestCatchUpContext:
    """American versus European catch-up on a follow-on distribution."""

    def test_european_catches_up_on_history(self):
        structure = create_waterfall(algorithm="european")

        result = evaluate_waterfall(
            structure, 1_000_000, _prior_event_accounts(), INCEPTION, date(2025, 1, 1)
        )

        assert result.algorithm == WaterfallAlgorithmEnum.EUROPEAN
        assert result.tier(TierTypeEnum.GP_CATCH_UP).gp_amount == pytest.approx(200_000)
        assert result.total_lp_amount == pytest.approx(640_000)
        assert result.tier(TierTypeEnum.RESIDUAL_SPLIT).gp_amount == pytest.approx(160_000)
        assert result.gp_carry == pytest.approx(360_000)

    def test_european_respects_carry_paid_to_date(self):
        structure = create_waterfall(algorithm="european")

        result = evaluate_waterfall(
            structure,
            1_000_000,
            _prior_event_accounts(),
            INCEPTION,
            date(2025, 1, 1),
            gp_carry_paid_to_date=200_000,
        )

        assert result.tier(TierTypeEnum.GP_CATCH_UP).gp_amount == pytest.approx(0.0)
        assert result.total_lp_amount == pytest.approx(800_000)

    def test_american_uses_current_event_only(self):
        structure = create_waterfall(algorithm="american")

        result = evaluate_waterfall(
            structure, 1_000_000, _prior_event_accounts(), INCEPTION, date(2025, 1, 1)
        )

        assert result.tier(TierTypeEnum.GP_CATCH_UP).gp_amount == pytest.approx(0.0)
        assert result.total_lp_amount == pytest.approx(800_000)
        assert result.gp_carry == pytest.approx(200_000)


class TestEngineValidation:
    """Tests for rejected inputs."""

    def test_negative_amount(self, five_accounts, standard_waterfall):
        with pytest.raises(InvalidRequest, match="non-negative"):
            WaterfallEngine().evaluate(
                standard_waterfall, -1.0, five_accounts, INCEPTION, ONE_YEAR_LATER
            )

    def test_duplicate_accounts(self, standard_waterfall):
        accounts = create_accounts(1) * 2
        with pytest.raises(InvalidRequest, match="duplicate"):
            WaterfallEngine().evaluate(
                standard_waterfall, 100.0, accounts, INCEPTION, ONE_YEAR_LATER
            )

    def test_dates_out_of_order(self, five_accounts, standard_waterfall):
        with pytest.raises(InvalidRequest, match="precedes"):
            WaterfallEngine().evaluate(
                standard_waterfall, 100.0, five_accounts, ONE_YEAR_LATER, INCEPTION
            )

    def test_malformed_structure(self, five_accounts):
        with pytest.raises(ConfigurationError):
            WaterfallEngine().evaluate(
                WaterfallStructure(name="Empty"),
                100.0,
                five_accounts,
                INCEPTION,
                ONE_YEAR_LATER,
            )
