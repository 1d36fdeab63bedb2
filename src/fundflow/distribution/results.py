# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Distribution result records.

Everything the engine hands back to its caller: tier summaries, per-investor
allocations, the GP carry breakdown and the cascade envelope. Records are
immutable; the `to_dataframe()` helpers produce audit tables for display.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import pandas as pd
from pydantic import Field

from ..core.primitives import (
    AllocationMethodEnum,
    InvestorTypeEnum,
    Model,
    PositiveFloat,
    PositiveInt,
    TierTypeEnum,
    WaterfallAlgorithmEnum,
)
from .accounts import CapitalAccount


class TierAllocation(Model):
    """Amount one recipient received from one tier."""

    tier_id: str
    tier_name: str
    tier_type: TierTypeEnum
    amount: float


class TierDistributionResult(Model):
    """Outcome of a single waterfall tier."""

    tier_id: str
    tier_name: str
    tier_type: TierTypeEnum
    amount_distributed: float = 0.0
    remaining_after_tier: float = 0.0
    lp_amount: float = 0.0
    gp_amount: float = 0.0
    investor_amounts: Dict[str, float] = Field(
        default_factory=dict, description="LP amount by investor id"
    )


class GPAllocation(Model):
    """Carry received by the general partner, broken down by tier."""

    gp_id: str
    gp_name: str
    tier_allocations: List[TierAllocation] = Field(default_factory=list)
    total_amount: float = 0.0


class InvestorAllocation(Model):
    """
    Final allocation for one recipient of a distribution event.

    The tax category fields are None when the request did not flag that
    category; otherwise they hold this recipient's share of it.
    """

    investor_id: str
    investor_name: str = ""
    investor_type: InvestorTypeEnum = InvestorTypeEnum.INDIVIDUAL
    ownership_percent: float = 0.0
    base_allocation: float = 0.0
    final_allocation: float = 0.0
    return_of_capital_amount: Optional[float] = None
    income_amount: Optional[float] = None
    capital_gain_amount: Optional[float] = None
    hierarchy_level: PositiveInt = 1
    structure_name: str = ""
    tier_allocations: List[TierAllocation] = Field(default_factory=list)
    is_general_partner: bool = False

    def amount_for_tier_type(self, tier_type: TierTypeEnum) -> float:
        """Sum of this recipient's allocations from tiers of the given type."""
        return sum(t.amount for t in self.tier_allocations if t.tier_type == tier_type)


class WaterfallResult(Model):
    """
    Tier-by-tier outcome of one waterfall evaluation.

    `closing_accounts` are the working account snapshots after the event:
    accrual applied and the event's ROC and preferred payments folded in.
    The caller may persist them as the next ledger state once the event is
    final.
    """

    structure_name: str
    algorithm: WaterfallAlgorithmEnum
    total_distributable: PositiveFloat
    tier_distributions: List[TierDistributionResult] = Field(default_factory=list)
    investor_allocations: List[InvestorAllocation] = Field(default_factory=list)
    gp_allocation: GPAllocation
    closing_accounts: List[CapitalAccount] = Field(default_factory=list)

    @property
    def total_distributed(self) -> float:
        return sum(t.amount_distributed for t in self.tier_distributions)

    @property
    def total_lp_amount(self) -> float:
        return sum(t.lp_amount for t in self.tier_distributions)

    @property
    def gp_carry(self) -> float:
        return self.gp_allocation.total_amount

    def tier(self, tier_type: TierTypeEnum) -> Optional[TierDistributionResult]:
        """First tier result of the given type, if the structure has one."""
        for t in self.tier_distributions:
            if t.tier_type == tier_type:
                return t
        return None

    def to_dataframe(self) -> pd.DataFrame:
        """
        Tier summary for display.

        Returns:
            DataFrame with one row per tier: tier_id, tier_name, tier_type,
            amount_distributed, lp_amount, gp_amount, remaining_after_tier
        """
        return pd.DataFrame(
            [
                {
                    "tier_id": t.tier_id,
                    "tier_name": t.tier_name,
                    "tier_type": t.tier_type.value,
                    "amount_distributed": t.amount_distributed,
                    "lp_amount": t.lp_amount,
                    "gp_amount": t.gp_amount,
                    "remaining_after_tier": t.remaining_after_tier,
                }
                for t in self.tier_distributions
            ],
            columns=[
                "tier_id",
                "tier_name",
                "tier_type",
                "amount_distributed",
                "lp_amount",
                "gp_amount",
                "remaining_after_tier",
            ],
        )


class LevelSummary(Model):
    """Sub-total retained and distributed at one hierarchy level."""

    level: PositiveInt
    structure_name: str
    sub_total: float
    method: AllocationMethodEnum
    investor_count: PositiveInt = 0
    gp_amount: float = 0.0


class CascadeResult(Model):
    """
    Complete result of a distribution request.

    Allocations are ordered deepest level first, then upward, matching the
    order in which levels are funded.
    """

    total_amount: PositiveFloat
    currency: str = "USD"
    allocations: List[InvestorAllocation] = Field(default_factory=list)
    levels: List[LevelSummary] = Field(default_factory=list)
    waterfall: Optional[WaterfallResult] = Field(
        default=None, description="Waterfall applied at the top level, for audit display"
    )
    level_waterfalls: Dict[int, WaterfallResult] = Field(
        default_factory=dict, description="Every waterfall evaluated, keyed by level"
    )

    @property
    def total_allocated(self) -> float:
        return sum(a.final_allocation for a in self.allocations)

    @property
    def investor_allocations(self) -> List[InvestorAllocation]:
        """Allocations excluding GP carry records."""
        return [a for a in self.allocations if not a.is_general_partner]

    def allocations_for_level(self, level: int) -> List[InvestorAllocation]:
        return [a for a in self.allocations if a.hierarchy_level == level]

    def level_summary(self, level: int) -> Optional[LevelSummary]:
        for summary in self.levels:
            if summary.level == level:
                return summary
        return None

    def get_allocation(self, investor_id: str, level: Optional[int] = None) -> Optional[InvestorAllocation]:
        """Find an investor's allocation, optionally restricted to one level."""
        for a in self.allocations:
            if a.investor_id == investor_id and (level is None or a.hierarchy_level == level):
                return a
        return None

    def to_dataframe(self) -> pd.DataFrame:
        """
        Allocation table for display and persistence.

        Returns:
            DataFrame with one row per allocation in cascade order
        """
        columns = [
            "hierarchy_level",
            "structure_name",
            "investor_id",
            "investor_name",
            "investor_type",
            "ownership_percent",
            "base_allocation",
            "final_allocation",
            "return_of_capital_amount",
            "income_amount",
            "capital_gain_amount",
            "is_general_partner",
        ]
        rows = [
            {
                **a.model_dump(include=set(columns)),
                "investor_type": a.investor_type.value,
            }
            for a in self.allocations
        ]
        return pd.DataFrame(rows, columns=columns)


__all__ = [
    "CascadeResult",
    "GPAllocation",
    "InvestorAllocation",
    "LevelSummary",
    "TierAllocation",
    "TierDistributionResult",
    "WaterfallResult",
]
