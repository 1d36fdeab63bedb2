# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Distribution API

Public entry point for computing a distribution event: validate the request,
cascade it through the hierarchy, run waterfalls where configured and return
the allocation records for the caller to persist and display.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.primitives import EngineSettings
from .cascade import CascadeCoordinator
from .request import DistributionRequest
from .results import CascadeResult
from .validation import validate_request

logger = logging.getLogger(__name__)


def compute_distribution(
    request: DistributionRequest, settings: Optional[EngineSettings] = None
) -> CascadeResult:
    """
    Compute who receives what for one distribution event.

    The computation is pure: the request (including its capital account
    snapshots) is never modified, and identical requests always produce
    identical results. Either a complete result is returned or an error is
    raised; there is no partial output for the caller to apply.

    Args:
        request: Distribution event with amount, dates, tax breakdown and
            participants (flat or hierarchical)
        settings: Optional engine settings (tolerances, day count)

    Returns:
        CascadeResult with per-level allocations, level summaries and the
        top-level waterfall breakdown

    Raises:
        InvalidRequest: If the request fails validation
        ConfigurationError: If a waterfall structure is malformed
        ArithmeticInvariantViolation: If the result fails reconciliation

    Field-level problems such as an unknown tier type or a negative amount
    are caught earlier, when the request models are built, and raise
    `pydantic.ValidationError` there. Build requests from untyped data with
    `load_distribution_request` to get `ConfigurationError` /
    `InvalidRequest` for those as well.

    Example:
        ```python
        result = compute_distribution(request)
        for allocation in result.allocations:
            print(allocation.investor_name, allocation.final_allocation)
        ```
    """
    settings = settings or EngineSettings()

    logger.debug(
        f"Computing distribution {request.distribution_id or ''} of "
        f"{request.currency} {request.total_amount:,.2f} on {request.distribution_date}"
    )
    validate_request(request, settings)

    coordinator = CascadeCoordinator(settings=settings)
    return coordinator.resolve(request)


__all__ = ["compute_distribution"]
