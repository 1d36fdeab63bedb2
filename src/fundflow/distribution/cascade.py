# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Hierarchical Cascade Coordinator

Resolves a distribution across a chain of ownership levels. Level 1 is the
investor-facing master; each deeper level owns `ownership_of_parent` percent
of the amount flowing into its parent.

    flow(1)   = total_amount
    flow(k+1) = flow(k) * ownership_of_parent(k+1) / 100
    retained(k) = flow(k) - flow(k+1)      (deepest level retains its flow)

Levels are funded deepest first: a child level's amount is settled before
its parent's remainder is distributed. Retained amounts are computed by
subtraction, so they add back to the total by construction. Each level then
distributes its retained sub-total either through the waterfall engine or
pro-rata by normalized ownership, and the tax categories are apportioned
per level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..core.errors import ArithmeticInvariantViolation
from ..core.primitives import AllocationMethodEnum, EngineSettings
from .engine import WaterfallEngine
from .request import DistributionRequest, HierarchyNode
from .results import CascadeResult, InvestorAllocation, LevelSummary, WaterfallResult
from .tax import TaxClassification, allocate_tax_categories
from .tiers import pro_rata_allocate

logger = logging.getLogger(__name__)


@dataclass
class LevelDistribution:
    """Working result for one level before it is folded into the cascade."""

    node: HierarchyNode
    sub_total: float
    method: AllocationMethodEnum
    allocations: List[InvestorAllocation] = field(default_factory=list)
    waterfall: Optional[WaterfallResult] = None

    @property
    def allocated(self) -> float:
        return sum(a.final_allocation for a in self.allocations)


@dataclass
class CascadeCoordinator:
    """
    Splits a request across hierarchy levels and distributes each level.

    Attributes:
        settings: Tolerances and conventions shared with the waterfall engine
    """

    settings: EngineSettings = field(default_factory=EngineSettings)

    def __post_init__(self):
        self._engine = WaterfallEngine(settings=self.settings)

    def resolve(self, request: DistributionRequest) -> CascadeResult:
        """
        Compute the full cascade for a validated request.

        Args:
            request: Request that has passed `validate_request`

        Returns:
            CascadeResult with allocations ordered deepest level first

        Raises:
            ArithmeticInvariantViolation: If sub-totals or level allocations
                fail to reconcile
        """
        nodes = request.nodes
        sub_totals = self.level_sub_totals(request.total_amount, nodes)
        tax = request.tax_classification

        distributions: List[LevelDistribution] = []
        for node, sub_total in reversed(list(zip(nodes, sub_totals))):
            if not node.investors:
                logger.debug(f"Level {node.level} has no investors; excluded")
                continue
            level = self._distribute_level(request, node, sub_total, tax)
            logger.debug(
                f"Level {node.level} ({node.structure_name or 'unnamed'}): "
                f"${sub_total:,.2f} via {level.method.value} to "
                f"{len(level.allocations)} recipient(s)"
            )
            distributions.append(level)

        if self.settings.check_invariants:
            self._reconcile(request.total_amount, sub_totals, distributions)

        result = CascadeResult(
            total_amount=request.total_amount,
            currency=request.currency,
            allocations=[a for level in distributions for a in level.allocations],
            levels=[
                LevelSummary(
                    level=level.node.level,
                    structure_name=level.node.structure_name,
                    sub_total=level.sub_total,
                    method=level.method,
                    investor_count=len(level.node.investors),
                    gp_amount=level.waterfall.gp_carry if level.waterfall else 0.0,
                )
                for level in distributions
            ],
            waterfall=next(
                (
                    level.waterfall
                    for level in distributions
                    if level.node.level == 1 and level.waterfall is not None
                ),
                None,
            ),
            level_waterfalls={
                level.node.level: level.waterfall
                for level in distributions
                if level.waterfall is not None
            },
        )

        logger.info(
            f"Distributed {request.currency} {request.total_amount:,.2f} across "
            f"{len(result.levels)} level(s) to {len(result.allocations)} recipient(s)"
        )
        return result

    @staticmethod
    def level_sub_totals(total_amount: float, nodes: List[HierarchyNode]) -> List[float]:
        """
        Amount retained at each level, in the order of `nodes` (ascending level).

        Example:
            Two levels, level 2 owning 30% of level 1, total 1,000,000:
            returns [700000.0, 300000.0]
        """
        flows = [float(total_amount)]
        for node in nodes[1:]:
            flows.append(flows[-1] * node.ownership_of_parent / 100.0)

        retained = [flows[k] - flows[k + 1] for k in range(len(flows) - 1)]
        retained.append(flows[-1])
        return retained

    # ==========================================================================
    # LEVEL DISTRIBUTION
    # ==========================================================================

    def _distribute_level(
        self,
        request: DistributionRequest,
        node: HierarchyNode,
        sub_total: float,
        tax: Optional[TaxClassification],
    ) -> LevelDistribution:
        if node.uses_waterfall:
            level = self._waterfall_level(request, node, sub_total)
        else:
            level = self._pro_rata_level(node, sub_total)

        if sub_total <= 0:
            # Nothing reaches this level; keep the summary, drop empty records
            level.allocations = []
            return level

        level.allocations = allocate_tax_categories(
            level.allocations, sub_total, request.total_amount, tax
        )
        return level

    def _waterfall_level(
        self, request: DistributionRequest, node: HierarchyNode, sub_total: float
    ) -> LevelDistribution:
        structure = node.waterfall_structure
        accounts = [node.capital_account_for(investor) for investor in node.investors]
        result = self._engine.evaluate(
            structure=structure,
            amount=sub_total,
            accounts=accounts,
            inception_date=request.inception_date,
            distribution_date=request.distribution_date,
            gp_carry_paid_to_date=node.gp_carry_paid_to_date,
            hierarchy_level=node.level,
            structure_name=node.structure_name or structure.name,
        )

        allocations = list(result.investor_allocations)
        if result.gp_carry > 0:
            allocations.append(
                self._engine.gp_allocation_record(
                    structure,
                    result,
                    hierarchy_level=node.level,
                    structure_name=node.structure_name or structure.name,
                )
            )

        return LevelDistribution(
            node=node,
            sub_total=sub_total,
            method=AllocationMethodEnum.WATERFALL,
            allocations=allocations,
            waterfall=result,
        )

    def _pro_rata_level(self, node: HierarchyNode, sub_total: float) -> LevelDistribution:
        total_ownership = node.total_ownership
        if abs(total_ownership - 100.0) > self.settings.ownership_drift_warning:
            logger.warning(
                f"Ownership at level {node.level} sums to {total_ownership:.4f}%; "
                "normalizing to 100%"
            )

        weights = [i.ownership_percent or 0.0 for i in node.investors]
        amounts = pro_rata_allocate(sub_total, weights)

        allocations = [
            InvestorAllocation(
                investor_id=investor.investor_id,
                investor_name=investor.investor_name,
                investor_type=investor.investor_type,
                ownership_percent=investor.ownership_percent or 0.0,
                base_allocation=float(amount),
                final_allocation=float(amount),
                hierarchy_level=node.level,
                structure_name=node.structure_name,
            )
            for investor, amount in zip(node.investors, amounts)
        ]
        return LevelDistribution(
            node=node,
            sub_total=sub_total,
            method=AllocationMethodEnum.PRO_RATA,
            allocations=allocations,
        )

    # ==========================================================================
    # RECONCILIATION
    # ==========================================================================

    def _reconcile(
        self,
        total_amount: float,
        sub_totals: List[float],
        distributions: List[LevelDistribution],
    ) -> None:
        retained = sum(sub_totals)
        if not self.settings.reconciles(total_amount, retained):
            raise ArithmeticInvariantViolation(
                "Level sub-totals do not add up to the distribution total",
                total_amount,
                retained,
            )

        # Levels without investors keep nothing; their flow stays with the parent
        distributed_levels = {level.node.level for level in distributions}
        orphaned = [
            (k + 1, amount)
            for k, amount in enumerate(sub_totals)
            if (k + 1) not in distributed_levels and amount > self.settings.tolerance
        ]
        if orphaned:
            level, amount = orphaned[0]
            raise ArithmeticInvariantViolation(
                f"Level {level} retains an amount but has no investors to receive it",
                0.0,
                amount,
            )

        for level in distributions:
            if not self.settings.reconciles(level.sub_total, level.allocated):
                raise ArithmeticInvariantViolation(
                    f"Allocations at level {level.node.level} do not reconcile to its sub-total",
                    level.sub_total,
                    level.allocated,
                )


__all__ = ["CascadeCoordinator", "LevelDistribution"]
