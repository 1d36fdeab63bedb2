# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Waterfall Tier Evaluator

Applies one waterfall tier to the amount still available and the current
capital accounts. Each call is pure: it receives an immutable
`WaterfallState` and returns a `TierOutcome` holding the tier summary, the
per-investor deltas, the GP amount, the amount left over and the next state.

Allocation within a tier is a waterline: pro-rata by weight, capped at each
investor's entitlement, with whatever the capped investors could not absorb
redistributed among the others. Every pass either finishes or caps at least
one more investor, so N investors need at most N passes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, List, Tuple

import numpy as np

from ..core.errors import ConfigurationError
from ..core.primitives import TierTypeEnum, WaterfallAlgorithmEnum
from .accounts import CapitalAccount
from .results import TierDistributionResult
from .waterfall import WaterfallTierSpec

logger = logging.getLogger(__name__)

# Amounts below this are treated as fully consumed
_AMOUNT_EPSILON = 1e-9


# =============================================================================
# ALLOCATION PRIMITIVES
# =============================================================================


def waterline_allocate(amount: float, weights, caps) -> np.ndarray:
    """
    Distribute `amount` pro-rata by `weights` without exceeding `caps`.

    Investors with no weight or no headroom receive nothing. If `amount`
    exceeds the total of all caps, every investor is filled to their cap and
    the excess is left unallocated for the caller to carry forward.

    Args:
        amount: Amount to allocate
        weights: Pro-rata weights, one per investor
        caps: Maximum each investor may receive

    Returns:
        Allocation per investor (same order as the inputs)

    Example:
        >>> waterline_allocate(100.0, [1, 1], [10.0, 1000.0])
        array([10., 90.])
    """
    weights = np.asarray(weights, dtype=float)
    caps = np.clip(np.asarray(caps, dtype=float), 0.0, None)
    allocation = np.zeros_like(caps)
    remaining = float(amount)
    active = (caps > 0) & (weights > 0)

    for _ in range(len(caps)):
        if remaining <= _AMOUNT_EPSILON or not active.any():
            break

        active_idx = np.flatnonzero(active)
        active_weights = weights[active_idx]
        shares = remaining * active_weights / active_weights.sum()
        headroom = caps[active_idx] - allocation[active_idx]
        capped = shares >= headroom

        if not capped.any():
            allocation[active_idx] += shares
            remaining = 0.0
            break

        # Fill capped investors, redistribute the rest on the next pass
        capped_idx = active_idx[capped]
        remaining -= float(headroom[capped].sum())
        allocation[capped_idx] = caps[capped_idx]
        active[capped_idx] = False

    return allocation


def pro_rata_allocate(amount: float, weights) -> np.ndarray:
    """
    Split `amount` by normalized weights so the parts sum back to `amount`.

    Weights need not sum to 100; they are normalized by their own total. The
    last investor with positive weight absorbs the floating point remainder.
    If every weight is zero the amount is split equally.
    """
    weights = np.clip(np.asarray(weights, dtype=float), 0.0, None)
    if len(weights) == 0:
        return np.zeros(0)

    total_weight = weights.sum()
    if total_weight <= 0:
        weights = np.ones_like(weights)
        total_weight = float(len(weights))

    allocation = amount * weights / total_weight
    last = int(np.flatnonzero(weights > 0)[-1])
    allocation[last] = amount - (allocation.sum() - allocation[last])
    return allocation


def residual_weights(accounts) -> np.ndarray:
    """
    Ownership weights for splitting LP residuals among `accounts`.

    Explicit `ownership_percent` values are used when at least one of them is
    positive; accounts without one count as zero. Otherwise the weights are
    the capital contributed, so a level described only by commitments splits
    in proportion to them.

    Example:
        >>> residual_weights([CapitalAccount(investor_id="a", capital_contributed=3),
        ...                   CapitalAccount(investor_id="b", capital_contributed=1)])
        array([3., 1.])
    """
    explicit = np.array([a.ownership_percent or 0.0 for a in accounts], dtype=float)
    if explicit.sum() > 0:
        return explicit
    return np.array([a.capital_contributed for a in accounts], dtype=float)


# =============================================================================
# STATE
# =============================================================================


@dataclass(frozen=True)
class WaterfallState:
    """
    Working state threaded through the tiers of one distribution event.

    Attributes:
        accounts: Working account snapshots, in evaluation order
        opening_accounts: Snapshots as supplied, before this event
        algorithm: American or European catch-up context
        inception_date: Start of accrual for accounts without a last accrual date
        distribution_date: Date of this distribution event
        days_in_year: Accrual day-count denominator
        lp_profit_paid: LP profit (preferred + residual) paid in this event
        gp_paid: GP amount paid in this event
        historical_lp_profit: LP profit paid in earlier events (European only)
        historical_gp_paid: GP carry paid in earlier events (European only)
    """

    accounts: Tuple[CapitalAccount, ...]
    opening_accounts: Tuple[CapitalAccount, ...]
    algorithm: WaterfallAlgorithmEnum
    inception_date: date
    distribution_date: date
    days_in_year: int = 365
    lp_profit_paid: float = 0.0
    gp_paid: float = 0.0
    historical_lp_profit: float = 0.0
    historical_gp_paid: float = 0.0

    @classmethod
    def open(
        cls,
        accounts: List[CapitalAccount],
        algorithm: WaterfallAlgorithmEnum,
        inception_date: date,
        distribution_date: date,
        days_in_year: int = 365,
        gp_carry_paid_to_date: float = 0.0,
    ) -> "WaterfallState":
        """Build the opening state for an event from the ledger snapshots."""
        accounts = tuple(accounts)
        historical_lp_profit = 0.0
        historical_gp_paid = 0.0
        if algorithm == WaterfallAlgorithmEnum.EUROPEAN:
            historical_lp_profit = sum(a.profit_received for a in accounts)
            historical_gp_paid = gp_carry_paid_to_date
        return cls(
            accounts=accounts,
            opening_accounts=accounts,
            algorithm=algorithm,
            inception_date=inception_date,
            distribution_date=distribution_date,
            days_in_year=days_in_year,
            historical_lp_profit=historical_lp_profit,
            historical_gp_paid=historical_gp_paid,
        )

    @property
    def investor_ids(self) -> List[str]:
        return [a.investor_id for a in self.accounts]

    @property
    def cumulative_lp_profit(self) -> float:
        """LP profit the catch-up measures against."""
        return self.lp_profit_paid + self.historical_lp_profit

    @property
    def cumulative_gp_paid(self) -> float:
        return self.gp_paid + self.historical_gp_paid

    def ownership_weights(self) -> np.ndarray:
        """
        Residual-split weights for the participating investors.

        Explicit ownership percentages win when they carry any weight;
        otherwise the split follows capital contributed.
        """
        return residual_weights(self.accounts)


@dataclass(frozen=True)
class TierOutcome:
    """Result of evaluating one tier."""

    result: TierDistributionResult
    state: WaterfallState
    deltas: Dict[str, float] = field(default_factory=dict)
    gp_amount: float = 0.0
    remaining: float = 0.0


# =============================================================================
# TIER EVALUATION
# =============================================================================


def evaluate_tier(
    tier: WaterfallTierSpec, remaining: float, state: WaterfallState
) -> TierOutcome:
    """
    Apply one tier against the remaining amount.

    Args:
        tier: Tier configuration
        remaining: Amount still available for distribution
        state: Working state before this tier

    Returns:
        TierOutcome with the tier summary, LP deltas by investor id, the GP
        amount, the new remaining amount and the next state

    Raises:
        ConfigurationError: If the tier type is not recognized
    """
    if tier.tier_type == TierTypeEnum.PREFERRED_RETURN:
        # Accrual happens whether or not there is cash left to pay it
        state = _accrue_preferred(tier, state)

    if remaining <= _AMOUNT_EPSILON:
        logger.debug(f"Skipping tier '{tier.display_name}': nothing left to distribute")
        return TierOutcome(
            result=_tier_result(tier, 0.0, 0.0, 0.0, 0.0, {}),
            remaining=0.0,
            state=state,
        )

    if tier.tier_type == TierTypeEnum.RETURN_OF_CAPITAL:
        outcome = _return_of_capital(tier, remaining, state)
    elif tier.tier_type == TierTypeEnum.PREFERRED_RETURN:
        outcome = _preferred_return(tier, remaining, state)
    elif tier.tier_type == TierTypeEnum.GP_CATCH_UP:
        outcome = _gp_catch_up(tier, remaining, state)
    elif tier.tier_type == TierTypeEnum.RESIDUAL_SPLIT:
        outcome = _residual_split(tier, remaining, state)
    else:
        raise ConfigurationError(f"Unknown tier type: {tier.tier_type!r}")

    logger.debug(
        f"Tier '{tier.display_name}': distributed ${outcome.result.amount_distributed:,.2f} "
        f"(LP ${outcome.result.lp_amount:,.2f}, GP ${outcome.gp_amount:,.2f}), "
        f"${outcome.remaining:,.2f} remaining"
    )
    return outcome


def _return_of_capital(
    tier: WaterfallTierSpec, remaining: float, state: WaterfallState
) -> TierOutcome:
    """Pro-rata by outstanding capital, capped at outstanding capital."""
    outstanding = np.array([max(0.0, a.outstanding_capital) for a in state.accounts])
    allocation = waterline_allocate(remaining, outstanding, outstanding)
    deltas = dict(zip(state.investor_ids, allocation.tolist()))

    accounts = tuple(
        a.model_copy(
            update={
                "capital_returned": min(
                    a.capital_contributed, a.capital_returned + deltas[a.investor_id]
                ),
                "distributions_received": a.distributions_received + deltas[a.investor_id],
            }
        )
        for a in state.accounts
    )
    return _lp_outcome(tier, remaining, deltas, replace(state, accounts=accounts), profit=False)


def _preferred_return(
    tier: WaterfallTierSpec, remaining: float, state: WaterfallState
) -> TierOutcome:
    """Pro-rata by outstanding preferred return, capped at outstanding preferred."""
    outstanding = np.array([max(0.0, a.outstanding_preferred) for a in state.accounts])
    allocation = waterline_allocate(remaining, outstanding, outstanding)
    deltas = dict(zip(state.investor_ids, allocation.tolist()))

    accounts = tuple(
        a.model_copy(
            update={
                "preferred_return_paid": min(
                    a.preferred_return_accrued,
                    a.preferred_return_paid + deltas[a.investor_id],
                ),
                "distributions_received": a.distributions_received + deltas[a.investor_id],
            }
        )
        for a in state.accounts
    )
    return _lp_outcome(tier, remaining, deltas, replace(state, accounts=accounts), profit=True)


def _gp_catch_up(
    tier: WaterfallTierSpec, remaining: float, state: WaterfallState
) -> TierOutcome:
    """Pay the GP until it holds `catch_up_target` percent of profit."""
    target_share = tier.catch_up_target / 100.0
    target_gp = state.cumulative_lp_profit * target_share / (1.0 - target_share)
    catch_up = min(remaining, max(0.0, target_gp - state.cumulative_gp_paid))

    result = _tier_result(tier, catch_up, remaining - catch_up, 0.0, catch_up, {})
    return TierOutcome(
        result=result,
        gp_amount=catch_up,
        remaining=remaining - catch_up,
        state=replace(state, gp_paid=state.gp_paid + catch_up),
    )


def _residual_split(
    tier: WaterfallTierSpec, remaining: float, state: WaterfallState
) -> TierOutcome:
    """Split everything left between LPs (by ownership) and the GP."""
    lp_total = remaining * tier.lp_split / 100.0
    gp_total = remaining - lp_total

    if state.accounts:
        allocation = pro_rata_allocate(lp_total, state.ownership_weights())
    else:
        # No LPs to receive their side; the GP is the only participant left
        allocation = np.zeros(0)
        gp_total = remaining
        lp_total = 0.0
    deltas = dict(zip(state.investor_ids, allocation.tolist()))

    accounts = tuple(
        a.model_copy(
            update={
                "distributions_received": a.distributions_received + deltas[a.investor_id]
            }
        )
        for a in state.accounts
    )
    result = _tier_result(tier, remaining, 0.0, lp_total, gp_total, deltas)
    return TierOutcome(
        result=result,
        deltas=deltas,
        gp_amount=gp_total,
        remaining=0.0,
        state=replace(
            state,
            accounts=accounts,
            lp_profit_paid=state.lp_profit_paid + lp_total,
            gp_paid=state.gp_paid + gp_total,
        ),
    )


# =============================================================================
# HELPERS
# =============================================================================


def _accrue_preferred(tier: WaterfallTierSpec, state: WaterfallState) -> WaterfallState:
    """
    Accrue the tier's hurdle on capital outstanding at the start of the event.

    The accrual window runs from each account's last accrual date (or the
    inception date) to the distribution date, measured on the opening
    snapshot so that a return of capital earlier in the same event does not
    shrink the base.
    """
    accrued = []
    for opening, working in zip(state.opening_accounts, state.accounts):
        start = opening.last_accrual_date or state.inception_date
        accrued.append(
            working.accrue_preferred(
                annual_rate_pct=tier.hurdle_rate,
                start=start,
                end=state.distribution_date,
                days_in_year=state.days_in_year,
                base_capital=max(0.0, opening.outstanding_capital),
            )
        )
    return replace(state, accounts=tuple(accrued))


def _lp_outcome(
    tier: WaterfallTierSpec,
    remaining: float,
    deltas: Dict[str, float],
    state: WaterfallState,
    profit: bool,
) -> TierOutcome:
    lp_total = sum(deltas.values())
    left = max(0.0, remaining - lp_total)
    if profit:
        state = replace(state, lp_profit_paid=state.lp_profit_paid + lp_total)
    return TierOutcome(
        result=_tier_result(tier, lp_total, left, lp_total, 0.0, deltas),
        deltas=deltas,
        remaining=left,
        state=state,
    )


def _tier_result(
    tier: WaterfallTierSpec,
    amount: float,
    remaining_after: float,
    lp_amount: float,
    gp_amount: float,
    deltas: Dict[str, float],
) -> TierDistributionResult:
    return TierDistributionResult(
        tier_id=tier.key,
        tier_name=tier.display_name,
        tier_type=tier.tier_type,
        amount_distributed=amount,
        remaining_after_tier=remaining_after,
        lp_amount=lp_amount,
        gp_amount=gp_amount,
        investor_amounts={k: v for k, v in deltas.items() if v != 0.0},
    )


__all__ = [
    "TierOutcome",
    "WaterfallState",
    "evaluate_tier",
    "pro_rata_allocate",
    "residual_weights",
    "waterline_allocate",
]
