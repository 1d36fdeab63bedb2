# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Distribution request models.

The external collaborator (structure and investor storage) describes one
distribution event with a `DistributionRequest`: how much is being paid,
when, how it is classified for tax, and who participates. Participants are
either a flat investor list or a list of `HierarchyNode`s, one per ownership
level, level 1 being the investor-facing master structure.

Example:
    ```python
    request = DistributionRequest(
        total_amount=1_000_000,
        distribution_date=date(2024, 6, 30),
        inception_date=date(2023, 1, 1),
        hierarchy=[
            HierarchyNode(
                level=1,
                structure_name="Master Trust",
                investors=[LevelInvestor(investor_id="a", ownership_percent=100)],
            ),
            HierarchyNode(
                level=2,
                structure_name="Investment Trust",
                investors=[
                    LevelInvestor(investor_id="b", ownership_percent=100, ownership_of_parent=30),
                ],
            ),
        ],
    )
    ```
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import Field, ValidationError

from ..core.errors import ConfigurationError, InvalidRequest
from ..core.primitives import (
    DistributionSourceEnum,
    InvestorTypeEnum,
    Model,
    Percent,
    PositiveFloat,
    PositiveInt,
)
from .accounts import CapitalAccount
from .tax import TaxClassification
from .waterfall import WaterfallStructure

logger = logging.getLogger(__name__)


class LevelInvestor(Model):
    """An investor's position within one hierarchy level."""

    investor_id: str = Field(..., min_length=1)
    investor_name: str = ""
    investor_type: InvestorTypeEnum = InvestorTypeEnum.INDIVIDUAL
    ownership_percent: Optional[Percent] = Field(
        default=None,
        description="Ownership within this level (0-100). If None, a waterfall level "
        "weights the investor by capital contributed; a pro-rata level treats it as 0.",
    )
    ownership_of_parent: Optional[Percent] = Field(
        default=None,
        description="Share of the parent level's distributable amount attributable "
        "to this investor's position (levels below the master only)",
    )
    commitment: PositiveFloat = Field(
        default=0.0, description="Capital commitment, used when no ledger account exists"
    )

    def __str__(self) -> str:
        return f"{self.investor_name or self.investor_id}: {self.ownership_percent or 0.0:.2f}%"


class HierarchyNode(Model):
    """One ownership level of a multi-level structure."""

    level: PositiveInt = Field(..., ge=1, description="1 = master, deeper levels increase")
    structure_name: str = ""
    structure_id: Optional[str] = None
    investors: List[LevelInvestor] = Field(default_factory=list)
    apply_waterfall_at_this_level: bool = False
    waterfall_structure: Optional[WaterfallStructure] = None
    capital_accounts: List[CapitalAccount] = Field(
        default_factory=list,
        description="Prior cumulative ledger snapshots for this level's investors",
    )
    gp_carry_paid_to_date: PositiveFloat = Field(
        default=0.0, description="GP carry paid at this level in earlier events"
    )

    @property
    def ownership_of_parent(self) -> float:
        """Total share of the parent level's amount flowing into this level."""
        return sum(i.ownership_of_parent or 0.0 for i in self.investors)

    @property
    def total_ownership(self) -> float:
        return sum(i.ownership_percent or 0.0 for i in self.investors)

    @property
    def uses_waterfall(self) -> bool:
        return self.apply_waterfall_at_this_level and self.waterfall_structure is not None

    def capital_account_for(self, investor: LevelInvestor) -> CapitalAccount:
        """
        Ledger snapshot for an investor at this level.

        Investors without a supplied snapshot start from their commitment with
        nothing yet returned, accrued or paid.
        """
        for account in self.capital_accounts:
            if account.investor_id == investor.investor_id:
                if account.ownership_percent is None:
                    return account.model_copy(
                        update={"ownership_percent": investor.ownership_percent}
                    )
                return account
        return CapitalAccount(
            investor_id=investor.investor_id,
            investor_name=investor.investor_name,
            investor_type=investor.investor_type,
            capital_contributed=investor.commitment,
            ownership_percent=investor.ownership_percent,
        )


class DistributionRequest(Model):
    """
    One distribution event to be computed.

    Either `investors` (a flat, single-level structure) or `hierarchy` is
    supplied. A flat request may still apply a waterfall by setting
    `waterfall_structure`.
    """

    total_amount: float = Field(..., description="Amount to distribute (> 0)")
    distribution_date: date
    inception_date: date
    distribution_id: Optional[str] = None
    currency: str = Field(default="USD", description="Passed through unchanged")
    source: Optional[DistributionSourceEnum] = None
    tax: Optional[TaxClassification] = Field(
        default=None, description="Declared tax breakdown; must sum to total_amount"
    )

    # Flat structure
    structure_name: str = ""
    investors: List[LevelInvestor] = Field(default_factory=list)
    waterfall_structure: Optional[WaterfallStructure] = None
    capital_accounts: List[CapitalAccount] = Field(default_factory=list)

    # Multi-level structure
    hierarchy: List[HierarchyNode] = Field(default_factory=list)

    @property
    def is_hierarchical(self) -> bool:
        return bool(self.hierarchy)

    @property
    def tax_classification(self) -> Optional[TaxClassification]:
        """Declared breakdown, or the source's default when only a source is given."""
        if self.tax is not None:
            return self.tax
        if self.source is not None:
            return TaxClassification.from_source(self.source, self.total_amount)
        return None

    @property
    def nodes(self) -> List[HierarchyNode]:
        """Hierarchy levels in ascending order; a flat request becomes one level."""
        if self.hierarchy:
            return sorted(self.hierarchy, key=lambda n: n.level)
        return [
            HierarchyNode(
                level=1,
                structure_name=self.structure_name,
                investors=self.investors,
                apply_waterfall_at_this_level=self.waterfall_structure is not None,
                waterfall_structure=self.waterfall_structure,
                capital_accounts=self.capital_accounts,
            )
        ]


def load_distribution_request(data: Dict[str, Any]) -> DistributionRequest:
    """
    Build a request from a plain mapping (e.g. a stored JSON payload).

    Field-level problems surface as the engine's typed errors rather than a
    pydantic `ValidationError`: anything inside a waterfall structure (such
    as an unknown tier type) is a `ConfigurationError`, everything else an
    `InvalidRequest`.

    Raises:
        ConfigurationError: If a waterfall structure in the mapping is malformed
        InvalidRequest: If any other part of the mapping is invalid
    """
    try:
        request = DistributionRequest.model_validate(data)
    except ValidationError as e:
        if any("waterfall_structure" in error["loc"] for error in e.errors()):
            raise ConfigurationError(f"Invalid waterfall structure: {e}") from e
        raise InvalidRequest(f"Invalid distribution request: {e}") from e
    logger.debug(
        f"Loaded distribution request {request.distribution_id or ''} with "
        f"{len(request.nodes)} level(s)"
    )
    return request


__all__ = [
    "DistributionRequest",
    "HierarchyNode",
    "LevelInvestor",
    "load_distribution_request",
]
