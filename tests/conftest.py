# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Test utilities and fixtures for Fundflow testing.

This module provides convenient utilities for creating capital accounts,
waterfall structures and distribution requests without repeating the
boilerplate in every test.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

import pytest

from fundflow.distribution import (
    CapitalAccount,
    HierarchyNode,
    LevelInvestor,
    WaterfallStructure,
    WaterfallTierSpec,
)

# One non-leap year: 365 days of accrual
INCEPTION = date(2023, 1, 1)
ONE_YEAR_LATER = date(2024, 1, 1)


# Capital Account Utilities
def create_accounts(
    count: int = 5, contributed: float = 2_000_000, **kwargs
) -> List[CapitalAccount]:
    """
    Create identical capital accounts for testing.

    Args:
        count: Number of investors
        contributed: Capital contributed by each investor
        **kwargs: Additional CapitalAccount fields applied to every account

    Returns:
        List of CapitalAccount named inv-1 .. inv-N

    Example:
        >>> accounts = create_accounts(2, 1_000_000)
        >>> accounts[1].investor_id
        'inv-2'
    """
    return [
        CapitalAccount(
            investor_id=f"inv-{i}",
            investor_name=f"Investor {i}",
            capital_contributed=contributed,
            **kwargs,
        )
        for i in range(1, count + 1)
    ]


# Waterfall Utilities
def create_waterfall(
    hurdle_rate: float = 8,
    catch_up_target: Optional[float] = 20,
    lp_split: float = 80,
    gp_split: float = 20,
    algorithm: str = "american",
) -> WaterfallStructure:
    """
    Create a standard ROC / pref / catch-up / split waterfall for testing.

    Pass catch_up_target=None to leave out the catch-up tier.
    """
    tiers = [
        WaterfallTierSpec(tier_id="roc", tier_type="RETURN_OF_CAPITAL", order=1),
        WaterfallTierSpec(
            tier_id="pref", tier_type="PREFERRED_RETURN", order=2, hurdle_rate=hurdle_rate
        ),
    ]
    if catch_up_target is not None:
        tiers.append(
            WaterfallTierSpec(
                tier_id="catch-up",
                tier_type="CATCH_UP",
                order=3,
                catch_up_target=catch_up_target,
            )
        )
    tiers.append(
        WaterfallTierSpec(
            tier_id="split",
            tier_type="CARRIED_INTEREST",
            order=4,
            lp_split=lp_split,
            gp_split=gp_split,
        )
    )
    return WaterfallStructure(name="Test Waterfall", algorithm=algorithm, tiers=tiers)


# Hierarchy Utilities
def create_level(
    level: int,
    ownership: dict,
    structure_name: Optional[str] = None,
    ownership_of_parent: Optional[dict] = None,
    **kwargs,
) -> HierarchyNode:
    """
    Create a hierarchy node from an {investor_id: ownership_percent} mapping.

    Args:
        level: Hierarchy level (1 = master)
        ownership: Ownership percent by investor id
        structure_name: Defaults to "Level N"
        ownership_of_parent: Ownership of parent by investor id (levels > 1)
        **kwargs: Additional HierarchyNode fields
    """
    ownership_of_parent = ownership_of_parent or {}
    return HierarchyNode(
        level=level,
        structure_name=structure_name or f"Level {level}",
        investors=[
            LevelInvestor(
                investor_id=investor_id,
                investor_name=investor_id.title(),
                ownership_percent=percent,
                ownership_of_parent=ownership_of_parent.get(investor_id),
            )
            for investor_id, percent in ownership.items()
        ],
        **kwargs,
    )


@pytest.fixture
def five_accounts() -> List[CapitalAccount]:
    """Five investors with $2M contributed each ($10M total)."""
    return create_accounts(5, 2_000_000)


@pytest.fixture
def standard_waterfall() -> WaterfallStructure:
    """ROC, 8% pref, 20% catch-up, 80/20 split (American)."""
    return create_waterfall()
