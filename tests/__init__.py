# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Fundflow test suite.

Unit tests for the distribution engine, organized by subpackage.
"""
