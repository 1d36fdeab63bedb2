# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Base Pydantic model with common configuration.

    Immutable models so a ledger snapshot handed to the engine can never be
    altered by it. New state is expressed by building a new instance.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,  # Immutable models; updated snapshots are new objects
        extra="forbid",  # Catches typos and missing field definitions immediately
    )
