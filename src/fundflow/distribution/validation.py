# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Request validation.

Structural constraints (types, non-negative amounts, 0-100 percentages) are
enforced by the pydantic models at construction. The checks here are the
semantic ones that need the whole request in view, and they raise the
engine's typed errors so nothing is computed from an invalid request.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from ..core.errors import InvalidRequest
from ..core.primitives import EngineSettings
from .request import DistributionRequest, HierarchyNode
from .tiers import residual_weights

logger = logging.getLogger(__name__)


def validate_request(
    request: DistributionRequest, settings: Optional[EngineSettings] = None
) -> None:
    """
    Validate a distribution request before any allocation is computed.

    Raises:
        InvalidRequest: If the amount is not positive, the tax breakdown does
            not add up, no level has investors, levels are malformed, or an
            ownership-of-parent total falls outside 0-100%
        ConfigurationError: If a level's waterfall structure is malformed
    """
    settings = settings or EngineSettings()

    if not math.isfinite(request.total_amount) or request.total_amount <= 0:
        raise InvalidRequest(
            f"Total distribution amount must be positive, got {request.total_amount}"
        )

    if request.distribution_date < request.inception_date:
        raise InvalidRequest(
            f"Distribution date {request.distribution_date} precedes inception date "
            f"{request.inception_date}"
        )

    _validate_tax(request, settings)

    if request.hierarchy and (request.investors or request.waterfall_structure):
        raise InvalidRequest(
            "A request supplies either a flat investor list or a hierarchy, not both"
        )

    nodes = request.nodes
    if not any(node.investors for node in nodes):
        raise InvalidRequest("No investors at any level of the distribution")

    levels = [node.level for node in nodes]
    if len(levels) != len(set(levels)):
        raise InvalidRequest(f"Duplicate hierarchy levels: {levels}")
    if levels != list(range(1, len(levels) + 1)):
        raise InvalidRequest(
            f"Hierarchy levels must run contiguously from 1, got {levels}"
        )

    for node in nodes:
        _validate_node(node)

    # An empty level below the master passes nothing further down
    for k, node in enumerate(nodes[1:], start=1):
        if node.investors:
            continue
        for deeper in nodes[k + 1 :]:
            if deeper.investors and deeper.ownership_of_parent > 0:
                raise InvalidRequest(
                    f"Level {node.level} has no investors, so nothing flows to level "
                    f"{deeper.level}, which owns {deeper.ownership_of_parent:.4f}% "
                    "of its parent"
                )

    # An empty master keeps whatever its children do not own
    master = nodes[0]
    if not master.investors:
        owned_below = nodes[1].ownership_of_parent if len(nodes) > 1 else 0.0
        if owned_below < 100.0 - settings.tolerance:
            raise InvalidRequest(
                f"Level 1 has no investors but retains {100.0 - owned_below:.4f}% "
                "of the distribution"
            )


def _validate_tax(request: DistributionRequest, settings: EngineSettings) -> None:
    tax = request.tax_classification
    if tax is None:
        return

    declared = tax.total
    if abs(declared - request.total_amount) > settings.tax_tolerance:
        raise InvalidRequest(
            f"Tax categories sum to {declared:,.2f} but the distribution total is "
            f"{request.total_amount:,.2f}"
        )


def _validate_node(node: HierarchyNode) -> None:
    label = node.structure_name or f"level {node.level}"

    ids = [i.investor_id for i in node.investors]
    if len(ids) != len(set(ids)):
        raise InvalidRequest(f"Duplicate investor ids at {label}")

    if node.level > 1:
        ownership_of_parent = node.ownership_of_parent
        if not 0.0 <= ownership_of_parent <= 100.0:
            raise InvalidRequest(
                f"Ownership of parent at {label} sums to {ownership_of_parent:.4f}%, "
                "outside the 0-100% range"
            )

    unknown = {a.investor_id for a in node.capital_accounts} - set(ids)
    if unknown:
        raise InvalidRequest(
            f"Capital accounts at {label} for investors not in the level: {sorted(unknown)}"
        )

    if node.uses_waterfall:
        node.waterfall_structure.validate_configuration()
        accounts = [node.capital_account_for(i) for i in node.investors]
        if accounts and residual_weights(accounts).sum() <= 0:
            raise InvalidRequest(
                f"Investors at {label} have neither ownership nor contributed capital "
                "to split the waterfall residual by"
            )
    else:
        if node.apply_waterfall_at_this_level:
            logger.info(
                f"Waterfall requested at {label} without a structure; using pro-rata"
            )
        if node.investors and node.total_ownership <= 0:
            raise InvalidRequest(
                f"Investors at {label} have no ownership to distribute pro-rata by"
            )


__all__ = ["validate_request"]
