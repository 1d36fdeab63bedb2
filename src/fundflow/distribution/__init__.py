# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Fundflow Distribution Models
Public API for the fundflow.distribution subpackage.

Capital accounts, waterfall configuration, the tier evaluator and waterfall
engine, the hierarchical cascade and the tax-category allocator.
"""

from .accounts import (
    CapitalAccount,
    fold_allocation,
    outstanding_capital,
    outstanding_preferred,
)
from .api import compute_distribution
from .cascade import CascadeCoordinator
from .engine import WaterfallEngine, evaluate_waterfall
from .request import (
    DistributionRequest,
    HierarchyNode,
    LevelInvestor,
    load_distribution_request,
)
from .results import (
    CascadeResult,
    GPAllocation,
    InvestorAllocation,
    LevelSummary,
    TierAllocation,
    TierDistributionResult,
    WaterfallResult,
)
from .tax import TaxClassification, allocate_tax_categories
from .tiers import (
    evaluate_tier,
    pro_rata_allocate,
    residual_weights,
    waterline_allocate,
)
from .validation import validate_request
from .waterfall import (
    AMERICAN_WATERFALL,
    STANDARD_WATERFALL,
    WaterfallStructure,
    WaterfallTierSpec,
    load_waterfall_structure,
    waterfall_for_algorithm,
)

__all__ = [
    # Entry point
    "compute_distribution",
    "validate_request",
    # Capital accounts
    "CapitalAccount",
    "fold_allocation",
    "outstanding_capital",
    "outstanding_preferred",
    # Configuration
    "WaterfallStructure",
    "WaterfallTierSpec",
    "AMERICAN_WATERFALL",
    "STANDARD_WATERFALL",
    "load_waterfall_structure",
    "waterfall_for_algorithm",
    # Requests
    "DistributionRequest",
    "HierarchyNode",
    "LevelInvestor",
    "load_distribution_request",
    "TaxClassification",
    # Engines
    "CascadeCoordinator",
    "WaterfallEngine",
    "evaluate_waterfall",
    "evaluate_tier",
    "pro_rata_allocate",
    "residual_weights",
    "waterline_allocate",
    "allocate_tax_categories",
    # Results
    "CascadeResult",
    "GPAllocation",
    "InvestorAllocation",
    "LevelSummary",
    "TierAllocation",
    "TierDistributionResult",
    "WaterfallResult",
]
