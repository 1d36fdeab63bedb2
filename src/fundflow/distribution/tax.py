# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tax-Category Allocator

A distribution is declared as some mix of return of capital, income and
capital gain. Each recipient receives the same mix in proportion to what
they actually received, computed level by level so that rounding at one
level does not leak into another:

    category_i = category_total * (level_sub_total / total_amount)
                                * (base_allocation_i / level_sub_total)

Summed over every recipient at every level, each category reproduces its
declared total.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import Field

from ..core.primitives import DistributionSourceEnum, Model, PositiveFloat
from .results import InvestorAllocation

logger = logging.getLogger(__name__)


class TaxClassification(Model):
    """
    Declared tax breakdown of a distribution.

    A category set to None is not part of this distribution; allocations then
    carry None for it as well. A category set to 0.0 is declared but empty.
    """

    return_of_capital_amount: Optional[PositiveFloat] = Field(
        default=None, description="Portion classified as return of capital"
    )
    income_amount: Optional[PositiveFloat] = Field(
        default=None, description="Portion classified as ordinary income"
    )
    capital_gain_amount: Optional[PositiveFloat] = Field(
        default=None, description="Portion classified as capital gain"
    )

    @property
    def is_return_of_capital(self) -> bool:
        return self.return_of_capital_amount is not None

    @property
    def is_income(self) -> bool:
        return self.income_amount is not None

    @property
    def is_capital_gain(self) -> bool:
        return self.capital_gain_amount is not None

    @property
    def total(self) -> float:
        """Sum of all declared categories."""
        return sum(
            amount or 0.0
            for amount in (
                self.return_of_capital_amount,
                self.income_amount,
                self.capital_gain_amount,
            )
        )

    @classmethod
    def from_source(
        cls, source: DistributionSourceEnum, total_amount: float
    ) -> "TaxClassification":
        """
        Default classification for a distribution source.

        - Operating Income: all income
        - Exit Proceeds: half return of capital, half capital gain
        - Refinancing / Return of Capital: all return of capital
        - Other: every category declared at zero, to be filled in by hand

        Example:
            >>> TaxClassification.from_source("Exit Proceeds", 1_000_000).capital_gain_amount
            500000.0
        """
        source = DistributionSourceEnum(source)
        if source == DistributionSourceEnum.OPERATING_INCOME:
            return cls(income_amount=total_amount)
        if source == DistributionSourceEnum.EXIT_PROCEEDS:
            return cls(
                return_of_capital_amount=total_amount * 0.5,
                capital_gain_amount=total_amount * 0.5,
            )
        if source in (
            DistributionSourceEnum.REFINANCING,
            DistributionSourceEnum.RETURN_OF_CAPITAL,
        ):
            return cls(return_of_capital_amount=total_amount)
        return cls(
            return_of_capital_amount=0.0, income_amount=0.0, capital_gain_amount=0.0
        )


def allocate_tax_categories(
    allocations: List[InvestorAllocation],
    level_sub_total: float,
    total_amount: float,
    tax: Optional[TaxClassification],
) -> List[InvestorAllocation]:
    """
    Apportion the declared tax categories across one level's allocations.

    Args:
        allocations: Allocations of one hierarchy level (GP record included)
        level_sub_total: Amount distributed at that level
        total_amount: Total amount of the distribution
        tax: Declared classification, or None when no breakdown was given

    Returns:
        New allocation records with the tax category fields filled in
    """
    if tax is None or total_amount <= 0:
        return list(allocations)

    level_share = level_sub_total / total_amount

    def _portion(category: Optional[float], fraction: float) -> Optional[float]:
        if category is None:
            return None
        return category * level_share * fraction

    result = []
    for allocation in allocations:
        fraction = (
            allocation.base_allocation / level_sub_total if level_sub_total > 0 else 0.0
        )
        result.append(
            allocation.model_copy(
                update={
                    "return_of_capital_amount": _portion(
                        tax.return_of_capital_amount, fraction
                    ),
                    "income_amount": _portion(tax.income_amount, fraction),
                    "capital_gain_amount": _portion(tax.capital_gain_amount, fraction),
                }
            )
        )

    logger.debug(
        f"Apportioned tax categories over {len(result)} allocation(s) "
        f"({level_share:.4%} of the distribution)"
    )
    return result


__all__ = ["TaxClassification", "allocate_tax_categories"]
