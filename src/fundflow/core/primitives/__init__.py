# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Fundflow Core Primitives

Shared building blocks: the immutable base model, constrained numeric types,
enumerations and engine settings.
"""

from .enums import (
    AllocationMethodEnum,
    DistributionSourceEnum,
    InvestorTypeEnum,
    TierTypeEnum,
    WaterfallAlgorithmEnum,
)
from .model import Model
from .settings import EngineSettings
from .types import (
    FloatBetween0And1,
    Percent,
    PositiveFloat,
    PositiveInt,
    StrictlyPositiveFloat,
)

__all__ = [
    # Core models
    "Model",
    "EngineSettings",
    # Enums
    "AllocationMethodEnum",
    "DistributionSourceEnum",
    "InvestorTypeEnum",
    "TierTypeEnum",
    "WaterfallAlgorithmEnum",
    # Types
    "FloatBetween0And1",
    "Percent",
    "PositiveFloat",
    "PositiveInt",
    "StrictlyPositiveFloat",
]
