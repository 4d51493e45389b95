# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Per-group key path length bookkeeping."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from .exceptions import ArityMismatchError

_logger = logging.getLogger(__name__)


class ArityRegistry:
    """Remember the key path length each group was first used with.

    The first check for a group fixes its arity. Every later check must
    use a key path of the same length. A recorded arity is kept even after
    the group's last entry is deleted.

    Example:
        >>> registry = ArityRegistry()
        >>> registry.check('users', ('alice', 'profile'))
        >>> registry.get('users')
        2
        >>> registry.check('users', ('alice',))
        Traceback (most recent call last):
        ...
        ArityMismatchError: ...
    """

    __slots__ = ('_arities',)

    def __init__(self) -> None:
        self._arities: dict[Any, int] = {}

    def __repr__(self) -> str:
        return f"ArityRegistry({self._arities!r})"

    def __len__(self) -> int:
        return len(self._arities)

    def __contains__(self, group: Any) -> bool:
        return group in self._arities

    def get(self, group: Any) -> int | None:
        """Return the recorded arity of group, or None if never used."""
        return self._arities.get(group)

    def check(self, group: Any, keys: Sequence[Any]) -> None:
        """Record or verify the key path length for group.

        Args:
            group: The group identifier.
            keys: The key path about to be used with group.

        Raises:
            ArityMismatchError: If group already has a different arity.
        """
        expected = self._arities.get(group)
        if expected is None:
            self._arities[group] = len(keys)
            _logger.debug("Arity of group %r set to %d", group, len(keys))
            return
        if expected != len(keys):
            raise ArityMismatchError(group, expected, len(keys))
