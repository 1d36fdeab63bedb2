# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pydantic import Field

from .model import Model
from .types import PositiveFloat, PositiveInt


class EngineSettings(Model):
    """
    Tolerances and conventions for the distribution engine.

    The defaults match what fund administrators expect: reconciliation to a
    millionth of a currency unit, Actual/365 preferred return accrual and a
    one-cent allowance when checking the declared tax breakdown.

    Usage Examples:
        # Default settings
        settings = EngineSettings()

        # Looser tax check for amounts entered in whole dollars
        settings = EngineSettings(tax_tolerance=1.0)
    """

    tolerance: PositiveFloat = Field(
        default=1e-6,
        description="Absolute tolerance used when reconciling allocations to totals.",
    )
    relative_tolerance: PositiveFloat = Field(
        default=1e-6,
        description="Relative tolerance for reconciling level sub-totals to the request total.",
    )
    tax_tolerance: PositiveFloat = Field(
        default=0.01,
        description="Allowed gap between the declared tax categories and the total amount.",
    )
    days_in_year: PositiveInt = Field(
        default=365,
        gt=0,
        description="Day-count denominator for preferred return accrual.",
    )
    ownership_drift_warning: PositiveFloat = Field(
        default=0.5,
        description=(
            "Ownership percentages within a level that miss 100 by more than this many "
            "percentage points are logged as a warning before being normalized."
        ),
    )
    check_invariants: bool = Field(
        default=True,
        description="If True, reconcile every level and tier after computation.",
    )

    def reconciles(self, expected: float, actual: float) -> bool:
        """Check whether two amounts agree within the configured tolerances."""
        return abs(actual - expected) <= max(
            self.tolerance, self.relative_tolerance * abs(expected)
        )


__all__ = ["EngineSettings"]
