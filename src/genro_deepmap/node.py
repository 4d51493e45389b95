# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""DeepMap node classes.

A DeepMap tree is made of two node kinds, told apart by their ``kind`` tag:

- ``Leaf``: holds a stored value. Any value, including a dict.
- ``Branch``: maps one key to a child node.

The root of a DeepMap is a Branch keyed by group.
"""

from __future__ import annotations

from typing import Any, Iterator, Union

LEAF = 'leaf'
BRANCH = 'branch'


class Leaf:
    """A terminal node holding one stored value.

    Leaves are never modified in place: writing a new value replaces
    the Leaf, so a Leaf can be shared freely between snapshots.

    Example:
        >>> leaf = Leaf({'name': 'Alice'})
        >>> leaf.value
        {'name': 'Alice'}
        >>> leaf.is_branch
        False
    """

    __slots__ = ('value',)

    kind = LEAF

    def __init__(self, value: Any) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"Leaf({self.value!r})"

    @property
    def is_leaf(self) -> bool:
        return True

    @property
    def is_branch(self) -> bool:
        return False


class Branch:
    """An intermediate node mapping keys to child nodes.

    Children are kept in a dict, so lookup is O(1) and iteration
    follows insertion order.

    Example:
        >>> branch = Branch()
        >>> branch.children['alice'] = Leaf(1)
        >>> list(branch)
        ['alice']
        >>> branch.as_dict()
        {'alice': 1}
    """

    __slots__ = ('children',)

    kind = BRANCH

    def __init__(self, children: dict[Any, Node] | None = None) -> None:
        """Initialize a Branch.

        Args:
            children: Optional initial mapping of key to child node.
                The dict is adopted as is, not copied.
        """
        self.children: dict[Any, Node] = children if children is not None else {}

    def __repr__(self) -> str:
        return f"Branch({list(self.children.keys())})"

    def __len__(self) -> int:
        """Return the number of direct children."""
        return len(self.children)

    def __iter__(self) -> Iterator[Any]:
        """Iterate over child keys in insertion order."""
        return iter(self.children)

    def __contains__(self, key: Any) -> bool:
        return key in self.children

    @property
    def is_leaf(self) -> bool:
        return False

    @property
    def is_branch(self) -> bool:
        return True

    def get(self, key: Any, default: Any = None) -> Any:
        """Return the child node at key, or default."""
        return self.children.get(key, default)

    def items(self) -> list[tuple[Any, Node]]:
        """Return list of (key, child) pairs in insertion order."""
        return list(self.children.items())

    def copy(self) -> Branch:
        """Return a shallow copy sharing every child by reference."""
        return Branch(dict(self.children))

    def as_dict(self) -> dict[Any, Any]:
        """Convert to plain dict (recursive).

        Branches become nested dicts, leaves become their value.

        Returns:
            Nested dictionary representation of the subtree.
        """
        result: dict[Any, Any] = {}
        for key, child in self.children.items():
            if child.kind == BRANCH:
                result[key] = child.as_dict()
            else:
                result[key] = child.value
        return result


Node = Union[Leaf, Branch]
