# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Genro-DeepMap - Grouped nested maps with change notification.

A lightweight, zero-dependency library storing values under a group plus
a fixed-length key path, with optional structural sharing between
successive states (Genro Kyō).
"""

__version__ = "0.1.0"

from .arity import ArityRegistry
from .draft import Draft, produce
from .exceptions import (
    ArityMismatchError,
    DeepMapError,
    ReentrantMutationError,
    StructureViolationError,
)
from .node import Branch, Leaf, Node
from .store import DeepMap
from .subscription import Subscription

__all__ = [
    # Core classes
    "DeepMap",
    "Branch",
    "Leaf",
    "Node",
    # Building blocks
    "ArityRegistry",
    "Draft",
    "produce",
    "Subscription",
    # Exceptions
    "DeepMapError",
    "ArityMismatchError",
    "StructureViolationError",
    "ReentrantMutationError",
]
