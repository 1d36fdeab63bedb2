# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

import importlib
import logging

"""
Fundflow - Distribution Waterfall & Hierarchical Cascade Engine

Computes how cash returned by an investment vehicle is divided among its
investors: return of capital, preferred return, GP catch-up and carried
interest, cascaded through multi-level ownership structures and split into
tax categories.

Key Entry Points:
- fundflow.distribution.compute_distribution() - Full distribution event
- fundflow.distribution.WaterfallEngine - Single waterfall evaluation
- fundflow.core.primitives.EngineSettings - Tolerances and conventions

Example Usage:
    ```python
    from datetime import date
    from fundflow.distribution import (
        DistributionRequest,
        LevelInvestor,
        compute_distribution,
    )

    request = DistributionRequest(
        total_amount=1_000_000,
        distribution_date=date(2024, 6, 30),
        inception_date=date(2023, 1, 1),
        investors=[
            LevelInvestor(investor_id="a", ownership_percent=60),
            LevelInvestor(investor_id="b", ownership_percent=40),
        ],
    )
    result = compute_distribution(request)
    ```
"""

# NullHandler on the package logger; applications configure their own handlers
logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

# Public API surface (lazy-loaded on first attribute access)
__all__ = [  # noqa: F822 - lazy loading
    "core",
    "distribution",
]


_LAZY_MODULES = {
    "core": "fundflow.core",
    "distribution": "fundflow.distribution",
}


def __getattr__(name: str):
    module_path = _LAZY_MODULES.get(name)
    if module_path is None:
        raise AttributeError(f"module 'fundflow' has no attribute '{name}'")
    module = importlib.import_module(module_path)
    globals()[name] = module
    return module
