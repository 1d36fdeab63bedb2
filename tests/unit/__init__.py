# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for Fundflow components.

Isolated tests of individual engine components; the end-to-end scenarios
live in test_api.py.
"""
