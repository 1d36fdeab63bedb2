# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Waterfall Engine

Runs an ordered waterfall structure for one distribution event: each tier is
evaluated against the amount left by the tiers before it, with working
copies of the capital accounts threaded through. The result is an auditable
tier-by-tier breakdown, per-investor allocations and the GP carry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from ..core.errors import ArithmeticInvariantViolation, InvalidRequest
from ..core.primitives import EngineSettings, InvestorTypeEnum
from .accounts import CapitalAccount
from .results import (
    GPAllocation,
    InvestorAllocation,
    TierAllocation,
    TierDistributionResult,
    WaterfallResult,
)
from .tiers import WaterfallState, evaluate_tier, residual_weights
from .waterfall import WaterfallStructure

logger = logging.getLogger(__name__)


@dataclass
class WaterfallEngine:
    """
    Evaluates waterfall structures.

    The engine holds only settings; every call to `evaluate` is independent
    and side-effect free, so one engine can serve concurrent callers.

    Attributes:
        settings: Tolerances and day-count conventions
    """

    settings: EngineSettings = field(default_factory=EngineSettings)

    def evaluate(
        self,
        structure: WaterfallStructure,
        amount: float,
        accounts: List[CapitalAccount],
        inception_date: date,
        distribution_date: date,
        gp_carry_paid_to_date: float = 0.0,
        hierarchy_level: int = 1,
        structure_name: Optional[str] = None,
    ) -> WaterfallResult:
        """
        Run every tier of `structure` in order against `amount`.

        Args:
            structure: Waterfall configuration
            amount: Amount to distribute (>= 0)
            accounts: Capital account snapshots of the participating investors
            inception_date: Accrual start for accounts without a last accrual date
            distribution_date: Date of this distribution event
            gp_carry_paid_to_date: GP carry from earlier events (European only)
            hierarchy_level: Level stamped on the resulting allocations
            structure_name: Structure name stamped on the resulting allocations

        Returns:
            WaterfallResult with tier distributions, investor allocations,
            GP allocation and closing account snapshots

        Raises:
            ConfigurationError: If the structure is malformed
            InvalidRequest: If the amount is negative or accounts are duplicated
            ArithmeticInvariantViolation: If the tiers do not reconcile to `amount`
        """
        structure.validate_configuration()
        self._validate_inputs(amount, accounts, inception_date, distribution_date)

        structure_name = structure_name or structure.name
        state = WaterfallState.open(
            accounts=accounts,
            algorithm=structure.algorithm,
            inception_date=inception_date,
            distribution_date=distribution_date,
            days_in_year=self.settings.days_in_year,
            gp_carry_paid_to_date=gp_carry_paid_to_date,
        )

        logger.debug(
            f"Evaluating {structure} on ${amount:,.2f} for {len(accounts)} investor(s)"
        )

        remaining = float(amount)
        tier_results: List[TierDistributionResult] = []
        investor_tiers: Dict[str, List[TierAllocation]] = {
            a.investor_id: [] for a in accounts
        }
        gp_tiers: List[TierAllocation] = []

        for tier in structure.sorted_tiers:
            outcome = evaluate_tier(tier, remaining, state)
            tier_results.append(outcome.result)

            for investor_id, delta in outcome.deltas.items():
                if delta > 0:
                    investor_tiers[investor_id].append(
                        TierAllocation(
                            tier_id=tier.key,
                            tier_name=tier.display_name,
                            tier_type=tier.tier_type,
                            amount=delta,
                        )
                    )
            if outcome.gp_amount > 0:
                gp_tiers.append(
                    TierAllocation(
                        tier_id=tier.key,
                        tier_name=tier.display_name,
                        tier_type=tier.tier_type,
                        amount=outcome.gp_amount,
                    )
                )

            remaining = outcome.remaining
            state = outcome.state

        gp_allocation = GPAllocation(
            gp_id=structure.gp_id,
            gp_name=structure.gp_name,
            tier_allocations=gp_tiers,
            total_amount=sum(t.amount for t in gp_tiers),
        )

        ownership = self._ownership_percents(accounts)
        investor_allocations = []
        for account in accounts:
            tiers = investor_tiers[account.investor_id]
            total = sum(t.amount for t in tiers)
            investor_allocations.append(
                InvestorAllocation(
                    investor_id=account.investor_id,
                    investor_name=account.investor_name,
                    investor_type=account.investor_type,
                    ownership_percent=ownership[account.investor_id],
                    base_allocation=total,
                    final_allocation=total,
                    hierarchy_level=hierarchy_level,
                    structure_name=structure_name,
                    tier_allocations=tiers,
                )
            )

        result = WaterfallResult(
            structure_name=structure.name,
            algorithm=structure.algorithm,
            total_distributable=float(amount),
            tier_distributions=tier_results,
            investor_allocations=investor_allocations,
            gp_allocation=gp_allocation,
            closing_accounts=list(state.accounts),
        )

        if self.settings.check_invariants:
            self._reconcile(result, float(amount))

        logger.debug(
            f"Waterfall '{structure.name}' complete: LP ${result.total_lp_amount:,.2f}, "
            f"GP carry ${gp_allocation.total_amount:,.2f}"
        )
        return result

    def gp_allocation_record(
        self,
        structure: WaterfallStructure,
        result: WaterfallResult,
        hierarchy_level: int = 1,
        structure_name: Optional[str] = None,
    ) -> InvestorAllocation:
        """
        Express the GP carry of `result` as an allocation record.

        Cascades append this record so a level's allocations add up to the
        level's sub-total.
        """
        total = result.gp_allocation.total_amount
        sub_total = result.total_distributable
        return InvestorAllocation(
            investor_id=structure.gp_id,
            investor_name=structure.gp_name,
            investor_type=InvestorTypeEnum.GENERAL_PARTNER,
            ownership_percent=(total / sub_total * 100.0) if sub_total > 0 else 0.0,
            base_allocation=total,
            final_allocation=total,
            hierarchy_level=hierarchy_level,
            structure_name=structure_name or structure.name,
            tier_allocations=list(result.gp_allocation.tier_allocations),
            is_general_partner=True,
        )

    # ==========================================================================
    # VALIDATION
    # ==========================================================================

    def _validate_inputs(
        self,
        amount: float,
        accounts: List[CapitalAccount],
        inception_date: date,
        distribution_date: date,
    ) -> None:
        if amount < 0:
            raise InvalidRequest(f"Distribution amount must be non-negative, got {amount}")

        ids = [a.investor_id for a in accounts]
        if len(ids) != len(set(ids)):
            raise InvalidRequest("Capital accounts contain duplicate investor ids")

        if distribution_date < inception_date:
            raise InvalidRequest(
                f"Distribution date {distribution_date} precedes inception date {inception_date}"
            )

    def _reconcile(self, result: WaterfallResult, amount: float) -> None:
        """Tiers must consume exactly `amount`, and each tier must split into LP + GP."""
        for tier in result.tier_distributions:
            split = tier.lp_amount + tier.gp_amount
            if not self.settings.reconciles(tier.amount_distributed, split):
                raise ArithmeticInvariantViolation(
                    f"Tier '{tier.tier_name}' LP + GP does not equal its distribution",
                    tier.amount_distributed,
                    split,
                )

        distributed = result.total_distributed
        if not self.settings.reconciles(amount, distributed):
            raise ArithmeticInvariantViolation(
                f"Waterfall '{result.structure_name}' did not distribute the full amount",
                amount,
                distributed,
            )

        allocated = (
            sum(a.final_allocation for a in result.investor_allocations)
            + result.gp_allocation.total_amount
        )
        if not self.settings.reconciles(amount, allocated):
            raise ArithmeticInvariantViolation(
                f"Waterfall '{result.structure_name}' allocations do not reconcile",
                amount,
                allocated,
            )

    @staticmethod
    def _ownership_percents(accounts: List[CapitalAccount]) -> Dict[str, float]:
        """Explicit ownership where given, otherwise share of capital contributed."""
        if any(a.ownership_percent for a in accounts):
            return {a.investor_id: a.ownership_percent or 0.0 for a in accounts}

        weights = residual_weights(accounts)
        total = weights.sum()
        if total <= 0:
            return {a.investor_id: 0.0 for a in accounts}
        return {
            a.investor_id: float(w / total * 100.0) for a, w in zip(accounts, weights)
        }


def evaluate_waterfall(
    structure: WaterfallStructure,
    amount: float,
    accounts: List[CapitalAccount],
    inception_date: date,
    distribution_date: date,
    settings: Optional[EngineSettings] = None,
    **kwargs,
) -> WaterfallResult:
    """Convenience wrapper around `WaterfallEngine.evaluate`."""
    engine = WaterfallEngine(settings=settings or EngineSettings())
    return engine.evaluate(
        structure, amount, accounts, inception_date, distribution_date, **kwargs
    )


__all__ = ["WaterfallEngine", "evaluate_waterfall"]
