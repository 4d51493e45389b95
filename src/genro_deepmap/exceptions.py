# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""DeepMap exceptions."""

from __future__ import annotations

from typing import Any


class DeepMapError(Exception):
    """Base exception for DeepMap errors."""

    pass


class ArityMismatchError(DeepMapError):
    """Raised when a key path length differs from the group's arity."""

    def __init__(self, group: Any, expected: int, actual: int) -> None:
        self.group = group
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Invalid keys length for group {group!r}: "
            f"expected {expected}, got {actual}"
        )


class StructureViolationError(DeepMapError):
    """Raised when a leaf is found where a branch was expected."""

    pass


class ReentrantMutationError(DeepMapError):
    """Raised when the store is mutated from inside one of its callbacks."""

    pass
