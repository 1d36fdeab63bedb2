# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Waterfall Configuration Models

Immutable configuration for a distribution waterfall: an ordered list of
tiers plus the algorithm (American or European) that decides how much
history the GP catch-up looks at.

Key Features:
- Four tier types: return of capital, preferred return, GP catch-up and
  residual LP/GP split
- Percent-scale parameters (8 == 8% hurdle, 80/20 split)
- Explicit configuration check raising `ConfigurationError`
- Industry-standard templates

Example:
    ```python
    structure = WaterfallStructure(
        name="Fund I",
        algorithm="american",
        tiers=[
            WaterfallTierSpec(tier_type="RETURN_OF_CAPITAL", order=1),
            WaterfallTierSpec(tier_type="PREFERRED_RETURN", order=2, hurdle_rate=8),
            WaterfallTierSpec(tier_type="CATCH_UP", order=3, catch_up_target=20),
            WaterfallTierSpec(tier_type="CARRIED_INTEREST", order=4, lp_split=80, gp_split=20),
        ],
    )
    ```
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import Field, ValidationError

from ..core.errors import ConfigurationError
from ..core.primitives import (
    Model,
    Percent,
    PositiveFloat,
    PositiveInt,
    TierTypeEnum,
    WaterfallAlgorithmEnum,
)

logger = logging.getLogger(__name__)

# Splits are percentages; allow float noise when checking they sum to 100
_SPLIT_TOLERANCE = 1e-9

_DEFAULT_TIER_NAMES = {
    TierTypeEnum.RETURN_OF_CAPITAL: "Return of Capital",
    TierTypeEnum.PREFERRED_RETURN: "Preferred Return",
    TierTypeEnum.GP_CATCH_UP: "GP Catch-Up",
    TierTypeEnum.RESIDUAL_SPLIT: "Carried Interest Split",
}


class WaterfallTierSpec(Model):
    """
    One tier of a distribution waterfall.

    Only the parameters relevant to the tier type are read:
    - PREFERRED_RETURN: `hurdle_rate`
    - CATCH_UP: `catch_up_target`
    - CARRIED_INTEREST: `lp_split` and `gp_split`
    """

    tier_type: TierTypeEnum = Field(..., description="Tier type")
    order: PositiveInt = Field(..., description="Execution order (ascending)")
    tier_id: Optional[str] = Field(default=None, description="Stable tier identifier")
    name: Optional[str] = Field(default=None, description="Display name")

    hurdle_rate: Optional[PositiveFloat] = Field(
        default=None, description="Annual preferred return in percent (8 == 8%)"
    )
    catch_up_target: Optional[Percent] = Field(
        default=None, description="GP target share of profit in percent (20 == 20%)"
    )
    lp_split: Optional[Percent] = Field(
        default=None, description="LP share of the tier in percent"
    )
    gp_split: Optional[Percent] = Field(
        default=None, description="GP share of the tier in percent"
    )

    @property
    def key(self) -> str:
        """Identifier used in allocation breakdowns."""
        return self.tier_id or f"tier-{self.order}"

    @property
    def display_name(self) -> str:
        return self.name or _DEFAULT_TIER_NAMES.get(self.tier_type, str(self.tier_type))

    def validate_configuration(self) -> None:
        """
        Check that the parameters this tier type needs are present and sane.

        Raises:
            ConfigurationError: If the tier type is unknown or a required
                parameter is missing or out of range
        """
        if self.tier_type not in _DEFAULT_TIER_NAMES:
            raise ConfigurationError(f"Unknown tier type: {self.tier_type!r}")

        if self.tier_type == TierTypeEnum.PREFERRED_RETURN and self.hurdle_rate is None:
            raise ConfigurationError(
                f"Tier '{self.display_name}' requires a hurdle_rate"
            )

        if self.tier_type == TierTypeEnum.GP_CATCH_UP:
            if self.catch_up_target is None:
                raise ConfigurationError(
                    f"Tier '{self.display_name}' requires a catch_up_target"
                )
            if self.catch_up_target >= 100:
                raise ConfigurationError(
                    f"Tier '{self.display_name}': catch_up_target must be below 100%, "
                    f"got {self.catch_up_target}%"
                )

        if self.tier_type == TierTypeEnum.RESIDUAL_SPLIT and (
            self.lp_split is None or self.gp_split is None
        ):
            raise ConfigurationError(
                f"Tier '{self.display_name}' requires both lp_split and gp_split"
            )

        if self.lp_split is not None and self.gp_split is not None:
            total = self.lp_split + self.gp_split
            if abs(total - 100.0) > _SPLIT_TOLERANCE:
                raise ConfigurationError(
                    f"Tier '{self.display_name}': LP/GP split must sum to 100%, "
                    f"got {self.lp_split}/{self.gp_split} = {total}%"
                )


class WaterfallStructure(Model):
    """
    Complete waterfall configuration supplied with a distribution event.

    The GP identified by `gp_id` receives catch-up and the GP side of the
    residual split.
    """

    name: str = Field(default="Waterfall", description="Structure name")
    algorithm: WaterfallAlgorithmEnum = Field(
        default=WaterfallAlgorithmEnum.AMERICAN,
        description="American (deal-by-deal) or European (whole-fund) catch-up context",
    )
    tiers: List[WaterfallTierSpec] = Field(
        default_factory=list, description="Waterfall tiers"
    )
    gp_id: str = Field(default="general-partner", description="GP identifier")
    gp_name: str = Field(default="General Partner", description="GP display name")

    @property
    def sorted_tiers(self) -> List[WaterfallTierSpec]:
        """Tiers in execution order. Ties keep their configured position."""
        return sorted(self.tiers, key=lambda t: t.order)

    @property
    def has_catch_up(self) -> bool:
        return any(t.tier_type == TierTypeEnum.GP_CATCH_UP for t in self.tiers)

    def validate_configuration(self) -> None:
        """
        Validate the full structure.

        Raises:
            ConfigurationError: If there are no tiers, tier ids collide, a
                tier is malformed, more than one preferred return tier is
                configured, or no residual split tier is configured
        """
        if not self.tiers:
            raise ConfigurationError(f"Waterfall '{self.name}' has no tiers")

        if self.algorithm not in (
            WaterfallAlgorithmEnum.AMERICAN,
            WaterfallAlgorithmEnum.EUROPEAN,
        ):
            raise ConfigurationError(f"Unknown waterfall algorithm: {self.algorithm!r}")

        keys = [t.key for t in self.tiers]
        if len(keys) != len(set(keys)):
            raise ConfigurationError(f"Waterfall '{self.name}' has duplicate tier ids")

        for tier in self.tiers:
            tier.validate_configuration()

        # Each preferred tier accrues its full hurdle on the opening capital
        preferred = [t for t in self.tiers if t.tier_type == TierTypeEnum.PREFERRED_RETURN]
        if len(preferred) > 1:
            raise ConfigurationError(
                f"Waterfall '{self.name}' has {len(preferred)} preferred return tiers; "
                "only one hurdle is supported"
            )

        # The residual split absorbs everything beyond the hurdles
        if not any(t.tier_type == TierTypeEnum.RESIDUAL_SPLIT for t in self.tiers):
            raise ConfigurationError(
                f"Waterfall '{self.name}' needs a residual split tier to absorb "
                "amounts beyond its hurdles"
            )

    def __str__(self) -> str:
        tiers = " -> ".join(t.display_name for t in self.sorted_tiers)
        return f"{self.name} ({self.algorithm.value}): {tiers}"


def load_waterfall_structure(data: Dict[str, Any]) -> WaterfallStructure:
    """
    Build and validate a structure from a plain mapping (e.g. stored JSON).

    Field-level problems such as an unknown tier type surface as
    `ConfigurationError` rather than a pydantic `ValidationError`, so callers
    only need to handle the engine's error types.

    Raises:
        ConfigurationError: If the mapping does not describe a valid structure
    """
    try:
        structure = WaterfallStructure.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid waterfall structure: {e}") from e
    structure.validate_configuration()
    logger.debug(f"Loaded waterfall structure: {structure}")
    return structure


# =============================================================================
# TEMPLATES
# =============================================================================

STANDARD_WATERFALL = WaterfallStructure(
    name="Standard 4-Tier Waterfall",
    algorithm=WaterfallAlgorithmEnum.EUROPEAN,
    tiers=[
        WaterfallTierSpec(
            tier_id="tier-1",
            name="Return of Capital",
            tier_type=TierTypeEnum.RETURN_OF_CAPITAL,
            order=1,
        ),
        WaterfallTierSpec(
            tier_id="tier-2",
            name="Preferred Return (8%)",
            tier_type=TierTypeEnum.PREFERRED_RETURN,
            order=2,
            hurdle_rate=8,
        ),
        WaterfallTierSpec(
            tier_id="tier-3",
            name="GP Catch-Up",
            tier_type=TierTypeEnum.GP_CATCH_UP,
            order=3,
            catch_up_target=20,
            lp_split=0,
            gp_split=100,
        ),
        WaterfallTierSpec(
            tier_id="tier-4",
            name="Carried Interest Split",
            tier_type=TierTypeEnum.RESIDUAL_SPLIT,
            order=4,
            lp_split=80,
            gp_split=20,
        ),
    ],
)

AMERICAN_WATERFALL = WaterfallStructure(
    name="American-Style 3-Tier Waterfall",
    algorithm=WaterfallAlgorithmEnum.AMERICAN,
    tiers=[
        WaterfallTierSpec(
            tier_id="tier-1",
            name="Return of Capital",
            tier_type=TierTypeEnum.RETURN_OF_CAPITAL,
            order=1,
        ),
        WaterfallTierSpec(
            tier_id="tier-2",
            name="Preferred Return (8%)",
            tier_type=TierTypeEnum.PREFERRED_RETURN,
            order=2,
            hurdle_rate=8,
        ),
        WaterfallTierSpec(
            tier_id="tier-3",
            name="Profit Split",
            tier_type=TierTypeEnum.RESIDUAL_SPLIT,
            order=3,
            lp_split=80,
            gp_split=20,
        ),
    ],
)


def waterfall_for_algorithm(algorithm: WaterfallAlgorithmEnum | str) -> WaterfallStructure:
    """
    Return the template that matches a structure's configured algorithm.

    Raises:
        ConfigurationError: If the algorithm is not recognized
    """
    try:
        algorithm = WaterfallAlgorithmEnum(algorithm)
    except ValueError as e:
        raise ConfigurationError(f"Unknown waterfall algorithm: {algorithm!r}") from e

    if algorithm == WaterfallAlgorithmEnum.EUROPEAN:
        return STANDARD_WATERFALL
    return AMERICAN_WATERFALL


__all__ = [
    "AMERICAN_WATERFALL",
    "STANDARD_WATERFALL",
    "WaterfallStructure",
    "WaterfallTierSpec",
    "load_waterfall_structure",
    "waterfall_for_algorithm",
]
