# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Engine error types.

Three kinds of failure can come out of a distribution computation:

- `InvalidRequest`: the caller handed over a request that cannot be
  distributed (non-positive amount, tax categories that do not add up,
  no investors anywhere, ownership-of-parent outside 0-100%).
- `ConfigurationError`: the waterfall structure itself is malformed.
- `ArithmeticInvariantViolation`: a reconciliation check failed after the
  computation finished. This is an internal bug, never a user error, and
  must not be retried.

The first two also subclass `ValueError` so callers that already catch
`ValueError` around model construction keep working.
"""


class EngineError(Exception):
    """Base class for all distribution engine errors."""


class InvalidRequest(EngineError, ValueError):
    """Raised when a distribution request fails semantic validation."""


class ConfigurationError(EngineError, ValueError):
    """Raised when a waterfall structure is malformed."""


class ArithmeticInvariantViolation(EngineError, RuntimeError):
    """Raised when computed allocations do not reconcile to their inputs."""

    def __init__(self, message: str, expected: float, actual: float):
        super().__init__(
            f"{message} (expected {expected:,.6f}, got {actual:,.6f}, "
            f"difference {actual - expected:+.6e})"
        )
        self.expected = expected
        self.actual = actual


__all__ = [
    "ArithmeticInvariantViolation",
    "ConfigurationError",
    "EngineError",
    "InvalidRequest",
]
