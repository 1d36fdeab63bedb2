# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Investor capital accounts.

A `CapitalAccount` is the cumulative financial position of one investor in
one structure: what they contributed, what has come back as return of
capital, and where their preferred return stands. The engine only ever reads
accounts; the ledger moves forward by building the next snapshot with
`fold_allocation` (or by taking `WaterfallResult.closing_accounts`) once a
distribution event is final.

Example:
    ```python
    account = CapitalAccount(
        investor_id="inv-001",
        investor_name="Harbor Pension Fund",
        capital_contributed=2_000_000,
    )
    outstanding_capital(account)  # 2_000_000.0
    ```
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional

from pydantic import Field, model_validator

from ..core.primitives import (
    InvestorTypeEnum,
    Model,
    Percent,
    PositiveFloat,
    TierTypeEnum,
)

if TYPE_CHECKING:
    from .results import InvestorAllocation

# Cumulative fields may not exceed their ceilings by more than float noise
_LEDGER_EPSILON = 1e-6


class CapitalAccount(Model):
    """Cumulative capital position of one investor within one structure."""

    investor_id: str = Field(..., min_length=1, description="Investor identifier")
    investor_name: str = Field(default="", description="Display name")
    investor_type: InvestorTypeEnum = Field(default=InvestorTypeEnum.INDIVIDUAL)
    capital_contributed: PositiveFloat = Field(
        default=0.0, description="Cumulative capital called and paid in"
    )
    capital_returned: PositiveFloat = Field(
        default=0.0, description="Cumulative capital already returned"
    )
    preferred_return_accrued: PositiveFloat = Field(
        default=0.0, description="Cumulative preferred return accrued"
    )
    preferred_return_paid: PositiveFloat = Field(
        default=0.0, description="Cumulative preferred return distributed"
    )
    distributions_received: PositiveFloat = Field(
        default=0.0, description="Cumulative distributions across all tiers"
    )
    ownership_percent: Optional[Percent] = Field(
        default=None,
        description="Ownership share used by the residual split. "
        "If None for ALL accounts, derived from capital contributed.",
    )
    last_accrual_date: Optional[date] = Field(
        default=None,
        description="End of the last accrual window; the next accrual starts here.",
    )

    @model_validator(mode="after")
    def validate_ledger_invariants(self) -> "CapitalAccount":
        """Returned capital and paid preference can never exceed their ceilings."""
        if self.capital_returned > self.capital_contributed + _LEDGER_EPSILON:
            raise ValueError(
                f"Account {self.investor_id}: capital returned "
                f"({self.capital_returned:,.2f}) exceeds capital contributed "
                f"({self.capital_contributed:,.2f})"
            )
        if self.preferred_return_paid > self.preferred_return_accrued + _LEDGER_EPSILON:
            raise ValueError(
                f"Account {self.investor_id}: preferred return paid "
                f"({self.preferred_return_paid:,.2f}) exceeds preferred return accrued "
                f"({self.preferred_return_accrued:,.2f})"
            )
        return self

    @property
    def outstanding_capital(self) -> float:
        return outstanding_capital(self)

    @property
    def outstanding_preferred(self) -> float:
        return outstanding_preferred(self)

    @property
    def profit_received(self) -> float:
        """Distributions received beyond returned capital."""
        return max(0.0, self.distributions_received - self.capital_returned)

    def accrue_preferred(
        self,
        annual_rate_pct: float,
        start: date,
        end: date,
        days_in_year: int = 365,
        base_capital: Optional[float] = None,
    ) -> "CapitalAccount":
        """
        Return a new snapshot with preferred return accrued from start to end.

        Accrual is simple interest on outstanding capital:
        ``base * rate * days / days_in_year``.

        Args:
            annual_rate_pct: Annual hurdle in percent (8 == 8%)
            start: Start of the accrual window (inception or last accrual)
            end: Distribution date
            days_in_year: Day-count denominator
            base_capital: Capital to accrue on; defaults to current outstanding

        Returns:
            New CapitalAccount; this instance is left untouched
        """
        base = self.outstanding_capital if base_capital is None else base_capital
        days = max(0, (end - start).days)
        accrual = max(0.0, base) * (annual_rate_pct / 100.0) * days / days_in_year
        return self.model_copy(
            update={
                "preferred_return_accrued": self.preferred_return_accrued + accrual,
                "last_accrual_date": end,
            }
        )


def outstanding_capital(account: CapitalAccount) -> float:
    """Contributed capital not yet returned."""
    return account.capital_contributed - account.capital_returned


def outstanding_preferred(account: CapitalAccount) -> float:
    """Accrued preferred return not yet paid."""
    return account.preferred_return_accrued - account.preferred_return_paid


def fold_allocation(
    account: CapitalAccount,
    allocation: "InvestorAllocation",
    distribution_date: Optional[date] = None,
) -> CapitalAccount:
    """
    Build the post-event ledger snapshot for one investor.

    Waterfall allocations carry their per-tier breakdown, so return of capital
    and preferred return are taken from the matching tiers. Pro-rata
    allocations have no tiers; their return-of-capital tax category is used
    instead, capped at the capital still outstanding.

    Args:
        account: Snapshot before the distribution event
        allocation: The investor's allocation from the finalized event
        distribution_date: Closes the accrual window when given

    Returns:
        New CapitalAccount with the event folded in
    """
    if allocation.investor_id != account.investor_id:
        raise ValueError(
            f"Allocation for {allocation.investor_id} cannot be folded into "
            f"account {account.investor_id}"
        )

    if allocation.tier_allocations:
        roc = allocation.amount_for_tier_type(TierTypeEnum.RETURN_OF_CAPITAL)
        pref = allocation.amount_for_tier_type(TierTypeEnum.PREFERRED_RETURN)
    else:
        roc = allocation.return_of_capital_amount or 0.0
        pref = 0.0

    roc = min(roc, outstanding_capital(account))
    accrued = max(account.preferred_return_accrued, account.preferred_return_paid + pref)

    update = {
        "capital_returned": account.capital_returned + roc,
        "preferred_return_accrued": accrued,
        "preferred_return_paid": account.preferred_return_paid + pref,
        "distributions_received": account.distributions_received
        + allocation.final_allocation,
    }
    if distribution_date is not None:
        update["last_accrual_date"] = distribution_date
    return account.model_copy(update=update)


__all__ = [
    "CapitalAccount",
    "fold_allocation",
    "outstanding_capital",
    "outstanding_preferred",
]
