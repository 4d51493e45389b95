# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Draft - structural operations on a DeepMap root inside a transaction.

A Draft wraps a root Branch and exposes the point operations of the
store (read, write, remove with pruning). It works in one of two modes:

- **in place**: branches are modified directly, the result is the base.
- **copy on write**: a branch is shallow-copied the first time the
  transaction modifies it, only along the path to the changed leaf.
  Every other branch is shared by reference with the base, and the base
  itself is never modified. A transaction that changes nothing returns
  the base unchanged.

Example:
    >>> base = Branch()
    >>> new = produce(base, lambda d: d.write('users', ('alice',), 1),
    ...               copy_on_write=True)
    >>> new is base, base.as_dict(), new.as_dict()
    (False, {}, {'users': {'alice': 1}})
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from .exceptions import StructureViolationError
from .node import BRANCH, LEAF, Branch, Leaf, Node

_logger = logging.getLogger(__name__)


class Draft:
    """A mutable view over a root Branch for the length of one transaction.

    Attributes:
        result: The root produced so far. Equal to the base root until
            the first change in copy-on-write mode, always equal to it
            in place.
    """

    __slots__ = ('_base', '_root', '_copy_on_write', '_owned')

    def __init__(self, base: Branch, copy_on_write: bool = False) -> None:
        """Initialize a Draft.

        Args:
            base: The root Branch the transaction starts from.
            copy_on_write: If True, never modify base or any branch
                reachable from it; copy branches on first modification.
        """
        self._base = base
        self._root = base
        self._copy_on_write = copy_on_write
        # id -> branch created by this transaction, safe to modify
        self._owned: dict[int, Branch] = {}

    def __repr__(self) -> str:
        mode = 'copy_on_write' if self._copy_on_write else 'in_place'
        return f"Draft({mode}, owned={len(self._owned)})"

    @property
    def result(self) -> Branch:
        return self._root

    @property
    def copy_on_write(self) -> bool:
        return self._copy_on_write

    # ==================== Ownership ====================

    def _new_branch(self) -> Branch:
        branch = Branch()
        if self._copy_on_write:
            self._owned[id(branch)] = branch
        return branch

    def _own(self, branch: Branch) -> Branch:
        """Return a version of branch this transaction may modify."""
        if not self._copy_on_write or id(branch) in self._owned:
            return branch
        clone = branch.copy()
        self._owned[id(clone)] = clone
        return clone

    def _own_root(self) -> Branch:
        self._root = self._own(self._root)
        return self._root

    def _own_child(self, parent: Branch, key: Any, path: Sequence[Any]) -> Branch:
        """Return the child branch at key, owned and linked into parent.

        Args:
            parent: A branch already owned by this transaction.
            key: Key of the child inside parent.
            path: Keys walked so far, for error reporting.

        Raises:
            StructureViolationError: If the child is a leaf.
        """
        child = parent.children[key]
        if child.kind != BRANCH:
            raise StructureViolationError(
                f"Expected a branch at {tuple(path)!r}, found a leaf"
            )
        owned = self._own(child)
        if owned is not child:
            parent.children[key] = owned
        return owned

    # ==================== Point operations ====================

    def lookup(self, group: Any, keys: Sequence[Any]) -> Node | None:
        """Return the node at group/keys, or None if the path is missing.

        Walking stops with None as soon as a key is missing or a leaf
        is met before keys are exhausted.
        """
        current = self._root.children.get(group)
        for key in keys:
            if current is None or current.kind != BRANCH:
                return None
            current = current.children.get(key)
        return current

    def read(self, group: Any, keys: Sequence[Any], default: Any = None) -> Any:
        """Return the value stored at group/keys, or default."""
        node = self.lookup(group, keys)
        if node is None or node.kind != LEAF:
            return default
        return node.value

    def write(self, group: Any, keys: Sequence[Any], value: Any) -> None:
        """Set or overwrite the leaf at group/keys.

        Intermediate branches are created as needed. With empty keys the
        group entry itself becomes the leaf.

        Raises:
            StructureViolationError: If the walk meets a leaf where a
                branch is needed, or would replace a branch with a leaf.
        """
        root = self._own_root()
        if not keys:
            existing = root.children.get(group)
            if existing is not None and existing.kind == BRANCH:
                raise StructureViolationError(
                    f"Group {group!r} holds a branch, cannot store a leaf"
                )
            root.children[group] = Leaf(value)
            return

        if group in root.children:
            current = self._own_child(root, group, (group,))
        else:
            current = self._new_branch()
            root.children[group] = current
            _logger.debug("Group %r created", group)

        path: list[Any] = [group]
        for key in keys[:-1]:
            path.append(key)
            if key in current.children:
                current = self._own_child(current, key, path)
            else:
                child = self._new_branch()
                current.children[key] = child
                current = child

        last = keys[-1]
        existing = current.children.get(last)
        if existing is not None and existing.kind == BRANCH:
            raise StructureViolationError(
                f"Expected a leaf at {tuple(path) + (last,)!r}, found a branch"
            )
        current.children[last] = Leaf(value)

    def remove(self, group: Any, keys: Sequence[Any]) -> bool:
        """Delete the leaf at group/keys and prune emptied branches.

        Every branch left empty by the deletion is removed, bottom-up.
        When the group's own branch empties, the group entry is removed
        from the root.

        Returns:
            True if a leaf was removed, False if the path was absent.
        """
        node = self.lookup(group, keys)
        if node is None or node.kind != LEAF:
            return False

        root = self._own_root()
        if not keys:
            del root.children[group]
            _logger.debug("Group %r removed", group)
            return True

        trail: list[tuple[Branch, Any]] = [(root, group)]
        current = self._own_child(root, group, (group,))
        path: list[Any] = [group]
        for key in keys[:-1]:
            path.append(key)
            trail.append((current, key))
            current = self._own_child(current, key, path)
        del current.children[keys[-1]]

        for parent, key in reversed(trail):
            if len(parent.children[key]):
                break
            del parent.children[key]
        if group not in root.children:
            _logger.debug("Group %r pruned", group)
        return True


def produce(
    base: Branch,
    recipe: Callable[[Draft], Any],
    copy_on_write: bool = False,
) -> Branch:
    """Run recipe on a Draft of base and return the resulting root.

    Args:
        base: The current root.
        recipe: Callable receiving the Draft; its return value is ignored.
        copy_on_write: If True, base is left untouched and the result
            shares every unmodified branch with it.

    Returns:
        The new root. In place, or when nothing changed, this is base.
    """
    draft = Draft(base, copy_on_write=copy_on_write)
    recipe(draft)
    return draft.result
