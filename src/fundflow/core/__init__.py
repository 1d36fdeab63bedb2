# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Fundflow Core Framework

Primitives and error types shared by every part of the engine.
"""

from . import errors, primitives
from .errors import (
    ArithmeticInvariantViolation,
    ConfigurationError,
    EngineError,
    InvalidRequest,
)
from .primitives import EngineSettings, Model

__all__ = [
    "errors",
    "primitives",
    "ArithmeticInvariantViolation",
    "ConfigurationError",
    "EngineError",
    "EngineSettings",
    "InvalidRequest",
    "Model",
]
