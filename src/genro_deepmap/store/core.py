# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""DeepMap - A grouped nested map with change notification.

This module provides the DeepMap class, an associative store addressed by
a *group* plus a *key path*. Each group is an independent subtree whose
key paths all have the same length (the group's arity), fixed the first
time the group is used.

Key Features:
    - **Composite keys**: ``(group, (k1, k2, ...))`` addresses one value
    - **Arity check**: a group's key path length never changes
    - **Pruning**: deleting the last value under a prefix removes the
      branches that held it, up to the group itself
    - **Batch update**: ``update_each`` rewrites many values in a single
      transaction with a single notification
    - **Reactive subscriptions**: subscribers are called after each change
    - **Two update modes**: in place, or immutable with structural sharing

Update Modes:
    - ``DeepMap()``: branches are modified in place. Cheapest; a state
      obtained with ``get_state()`` keeps changing with the store.
    - ``DeepMap(immutable=True)``: each change produces a new root. Only
      the branches on the path to the changed value are copied, all the
      others are shared with the previous root, which stays unchanged.

Example:
    Basic usage::

        store = DeepMap()
        store.set('users', ('alice', 'profile'), {'name': 'Alice'})
        store.get('users', ('alice', 'profile'))  # {'name': 'Alice'}

        store.set('users', ('alice',), 1)  # ArityMismatchError

    Snapshots::

        store = DeepMap(immutable=True)
        before = store.get_state()
        store.set('users', ('bob', 'profile'), {'name': 'Bob'})
        before is store.get_state()  # False, before is unchanged
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Sequence

from ..arity import ArityRegistry
from ..draft import Draft, produce
from ..exceptions import ReentrantMutationError, StructureViolationError
from ..node import BRANCH, Branch
from ..subscription import SubscriberCallback, Subscription, Unsubscribe

_logger = logging.getLogger(__name__)

_MISSING = object()

Entry = tuple[Any, tuple[Any, ...], Any]


def _key_path(keys: Sequence[Any]) -> tuple[Any, ...]:
    """Normalize a key path to a tuple.

    Raises:
        TypeError: If keys is a str or bytes, which would otherwise be
            split into one key per character.
    """
    if isinstance(keys, (str, bytes)):
        raise TypeError(
            f"keys must be a sequence of keys, not {type(keys).__name__}"
        )
    return tuple(keys)


def _unchanged(new_value: Any, value: Any) -> bool:
    """True if new_value is the same as, or equal to, value.

    Values whose comparison fails or has no truth value (e.g. arrays)
    count as changed unless they are identical.
    """
    if new_value is value:
        return True
    try:
        return bool(new_value == value)
    except (TypeError, ValueError):
        return False


class DeepMap:
    """A grouped nested map with O(1) lookup per level.

    DeepMap provides:
    - set(group, keys, value) / get(group, keys): point access
    - delete(group, keys): removal with pruning of empty branches
    - for_each(visit) / iter_entries(): traversal of every value
    - update_each(transform): batch rewrite in one transaction
    - subscribe(callback): notification after each change

    Attributes:
        immutable: True if changes produce a new root with structural
            sharing instead of modifying the tree in place.

    Example:
        >>> store = DeepMap()
        >>> store.set('users', ('alice', 'profile'), 'v1')
        >>> store.set('users', ('bob', 'profile'), 'v2')
        >>> store.delete('users', ('alice', 'profile'))
        >>> store.entries()
        [('users', ('bob', 'profile'), 'v2')]
    """

    __slots__ = ('_state', '_immutable', '_arity', '_subscription', '_busy')

    def __init__(self, immutable: bool = False) -> None:
        """Initialize an empty DeepMap.

        Args:
            immutable: If True, every change produces a new root and
                states returned by ``get_state()`` are never modified.
                If False (default), the tree is modified in place.
        """
        self._state = Branch()
        self._immutable = immutable
        self._arity = ArityRegistry()
        self._subscription = Subscription()
        self._busy: str | None = None

    # ==================== Special Methods ====================

    def __repr__(self) -> str:
        """Return string representation showing groups."""
        mode = 'immutable' if self._immutable else 'mutable'
        return f"DeepMap({mode}, groups={list(self._state)})"

    def __len__(self) -> int:
        """Return the number of stored values across all groups."""
        return len(self._collect())

    @property
    def immutable(self) -> bool:
        return self._immutable

    # ==================== Internals ====================

    def _ensure_idle(self, operation: str) -> None:
        if self._busy is not None:
            raise ReentrantMutationError(
                f"Cannot {operation} while running {self._busy}"
            )

    def _run_callback(self, busy: str, callback: Callable[..., Any], *args: Any) -> Any:
        previous = self._busy
        self._busy = busy
        try:
            return callback(*args)
        finally:
            self._busy = previous

    def _commit(self, recipe: Callable[[Draft], Any]) -> None:
        self._state = produce(self._state, recipe, copy_on_write=self._immutable)

    def _notify(self) -> None:
        self._run_callback('a change notification', self._subscription.emit)

    def _collect(self) -> list[Entry]:
        """Expand the current tree into (group, keys, value) entries.

        Each group is expanded level by level, as many levels as its
        arity, then its leaves are listed in the resulting order.

        Raises:
            StructureViolationError: If a group has no recorded arity,
                or a leaf is found above the arity depth.
        """
        entries: list[Entry] = []
        for group, top in self._state.children.items():
            size = self._arity.get(group)
            if size is None:
                raise StructureViolationError(f"Cannot find arity for group {group!r}")
            level: list[tuple[tuple[Any, ...], Any]] = [((), top)]
            for _ in range(size):
                next_level = []
                for keys, node in level:
                    if node.kind != BRANCH:
                        raise StructureViolationError(
                            f"Expected a branch at {(group,) + keys!r}, found a leaf"
                        )
                    for key, child in node.children.items():
                        next_level.append((keys + (key,), child))
                level = next_level
            for keys, node in level:
                if node.kind == BRANCH:
                    raise StructureViolationError(
                        f"Expected a leaf at {(group,) + keys!r}, found a branch"
                    )
                entries.append((group, keys, node.value))
        return entries

    # ==================== Core API ====================

    def get(self, group: Any, keys: Sequence[Any], default: Any = None) -> Any:
        """Get the value stored at group/keys.

        Args:
            group: The group identifier.
            keys: Key path, of the group's arity.
            default: Value returned if nothing is stored there.

        Returns:
            The stored value, or default.

        Raises:
            ArityMismatchError: If keys has the wrong length for group.
            TypeError: If keys is a str or bytes.
        """
        keys = _key_path(keys)
        self._arity.check(group, keys)
        return Draft(self._state).read(group, keys, default)

    def has(self, group: Any, keys: Sequence[Any]) -> bool:
        """Return True if a value (even None) is stored at group/keys.

        Raises:
            ArityMismatchError: If keys has the wrong length for group.
            TypeError: If keys is a str or bytes.
        """
        keys = _key_path(keys)
        self._arity.check(group, keys)
        return Draft(self._state).read(group, keys, _MISSING) is not _MISSING

    def set(self, group: Any, keys: Sequence[Any], value: Any) -> None:
        """Store value at group/keys, creating branches as needed.

        Subscribers are notified once, even if value was already stored.

        Args:
            group: The group identifier. Created on first use.
            keys: Key path. Its length becomes the group's arity on
                first use.
            value: Any value.

        Raises:
            ArityMismatchError: If keys has the wrong length for group.
            TypeError: If keys is a str or bytes.
            ReentrantMutationError: If called from a store callback.
        """
        self._ensure_idle('set')
        keys = _key_path(keys)
        self._arity.check(group, keys)
        self._commit(lambda draft: draft.write(group, keys, value))
        self._notify()

    def delete(self, group: Any, keys: Sequence[Any]) -> None:
        """Delete the value at group/keys and prune emptied branches.

        Does nothing, and notifies nobody, if no value is stored there.

        Raises:
            ArityMismatchError: If keys has the wrong length for group.
            TypeError: If keys is a str or bytes.
            ReentrantMutationError: If called from a store callback.
        """
        self._ensure_idle('delete')
        keys = _key_path(keys)
        self._arity.check(group, keys)
        if Draft(self._state).read(group, keys, _MISSING) is _MISSING:
            return
        self._commit(lambda draft: draft.remove(group, keys))
        self._notify()

    def get_state(self) -> Branch:
        """Return the current root.

        The root must be treated as read-only. With ``immutable=True`` it
        is a snapshot: later changes to the store never alter it.
        """
        return self._state

    # ==================== Iteration ====================

    def iter_entries(self) -> Iterator[Entry]:
        """Yield (group, keys, value) for every stored value.

        Entries are collected when iteration starts, so changes made
        while iterating are not reflected.
        """
        yield from self._collect()

    def entries(self) -> list[Entry]:
        """Return list of (group, keys, value) for every stored value."""
        return self._collect()

    def for_each(self, visit: Callable[[Any, tuple[Any, ...], Any], Any]) -> None:
        """Call visit(group, keys, value) for every stored value.

        Args:
            visit: Callback. It may read the store but not change it.

        Raises:
            ReentrantMutationError: If visit tries to change the store.
        """
        for group, keys, value in self._collect():
            self._run_callback('for_each', visit, group, keys, value)

    def update_each(self, transform: Callable[[Any, tuple[Any, ...], Any], Any]) -> None:
        """Replace every value with transform(group, keys, value).

        All new values are computed first, then the ones that differ from
        the current value (neither identical nor equal) are written in a
        single transaction. Subscribers are notified once if anything
        changed, not at all otherwise. If transform raises, the store is
        left untouched.

        Args:
            transform: Callback returning the new value. It may read the
                store but not change it.

        Raises:
            ReentrantMutationError: If called from a store callback, or
                if transform tries to change the store.
        """
        self._ensure_idle('update_each')
        changes: list[Entry] = []
        for group, keys, value in self._collect():
            new_value = self._run_callback('update_each', transform, group, keys, value)
            if _unchanged(new_value, value):
                continue
            changes.append((group, keys, new_value))
        if not changes:
            return

        def recipe(draft: Draft) -> None:
            for group, keys, new_value in changes:
                draft.write(group, keys, new_value)

        self._commit(recipe)
        _logger.debug("update_each changed %d entries", len(changes))
        self._notify()

    # ==================== Subscriptions ====================

    def subscribe(
        self,
        callback: SubscriberCallback,
        subscriber_id: str | None = None,
    ) -> Unsubscribe:
        """Register callback to be called after every change.

        Args:
            callback: Callable taking no arguments.
            subscriber_id: Optional id, see ``Subscription.subscribe``.

        Returns:
            A function that cancels the subscription.
        """
        return self._subscription.subscribe(callback, subscriber_id)

    def unsubscribe(self, subscriber_id: str) -> bool:
        """Remove a subscriber by id. Returns True if it was registered."""
        return self._subscription.unsubscribe(subscriber_id)

    # ==================== Introspection ====================

    def groups(self) -> list[Any]:
        """Return list of groups currently holding values."""
        return list(self._state)

    def arity(self, group: Any) -> int | None:
        """Return the key path length of group, or None if never used."""
        return self._arity.get(group)

    def as_dict(self) -> dict[Any, Any]:
        """Convert the current root to a plain nested dict."""
        return self._state.as_dict()
