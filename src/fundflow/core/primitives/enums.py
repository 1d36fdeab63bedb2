# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from enum import Enum


class TierTypeEnum(str, Enum):
    """
    Waterfall tier types, evaluated in the configured order.

    RETURN_OF_CAPITAL: returns outstanding contributed capital to investors
    PREFERRED_RETURN: pays the accrued hurdle on outstanding capital
    GP_CATCH_UP: pays the GP until it holds its target share of profit
    RESIDUAL_SPLIT: splits whatever is left between LPs and the GP
    """

    RETURN_OF_CAPITAL = "RETURN_OF_CAPITAL"
    PREFERRED_RETURN = "PREFERRED_RETURN"
    GP_CATCH_UP = "CATCH_UP"
    RESIDUAL_SPLIT = "CARRIED_INTEREST"


class WaterfallAlgorithmEnum(str, Enum):
    """
    Which prior-event context feeds the catch-up calculation.

    AMERICAN is deal-by-deal: only the current distribution counts.
    EUROPEAN is whole-fund: cumulative history across all distributions.
    """

    AMERICAN = "american"
    EUROPEAN = "european"


class DistributionSourceEnum(str, Enum):
    """Where the distributed cash came from. Drives default tax classification."""

    OPERATING_INCOME = "Operating Income"
    EXIT_PROCEEDS = "Exit Proceeds"
    REFINANCING = "Refinancing"
    RETURN_OF_CAPITAL = "Return of Capital"
    OTHER = "Other"


class InvestorTypeEnum(str, Enum):
    """Investor categories carried through to allocation records."""

    INDIVIDUAL = "individual"
    INSTITUTION = "institution"
    FAMILY_OFFICE = "family-office"
    FUND_OF_FUNDS = "fund-of-funds"
    GENERAL_PARTNER = "general-partner"


class AllocationMethodEnum(str, Enum):
    """How a hierarchy level's sub-total was distributed."""

    PRO_RATA = "pro_rata"
    WATERFALL = "waterfall"
