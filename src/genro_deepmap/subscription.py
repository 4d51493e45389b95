# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Subscription - synchronous change notification.

Subscribers are plain callables taking no arguments. They are called in
registration order, synchronously, each time ``emit()`` runs. Errors
raised by a subscriber are not caught: they reach whoever triggered the
emission, and later subscribers are skipped for that emission.

Example:
    >>> sub = Subscription()
    >>> unsubscribe = sub.subscribe(lambda: print('changed'))
    >>> sub.emit()
    changed
    >>> unsubscribe()
    >>> sub.emit()
"""

from __future__ import annotations

import itertools
from typing import Any, Callable

SubscriberCallback = Callable[[], Any]
Unsubscribe = Callable[[], None]


class Subscription:
    """Registry of subscriber callbacks keyed by subscriber id."""

    __slots__ = ('_subscribers', '_counter', '_emitting')

    def __init__(self) -> None:
        self._subscribers: dict[str, SubscriberCallback] = {}
        self._counter = itertools.count()
        self._emitting = False

    def __repr__(self) -> str:
        return f"Subscription({list(self._subscribers.keys())})"

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscriber_id: str) -> bool:
        return subscriber_id in self._subscribers

    @property
    def emitting(self) -> bool:
        """True while subscribers are being called."""
        return self._emitting

    def subscribe(
        self,
        callback: SubscriberCallback,
        subscriber_id: str | None = None,
    ) -> Unsubscribe:
        """Register a callback.

        Args:
            callback: Callable invoked with no arguments on each emission.
            subscriber_id: Optional id. Subscribing again with the same id
                replaces the callback and keeps its position. Generated
                ids never collide with ids already registered.

        Returns:
            A function that removes this subscription. Calling it more
            than once has no further effect.
        """
        if subscriber_id is None:
            subscriber_id = f"sub_{next(self._counter)}"
            while subscriber_id in self._subscribers:
                subscriber_id = f"sub_{next(self._counter)}"
        self._subscribers[subscriber_id] = callback

        def unsubscribe() -> None:
            if self._subscribers.get(subscriber_id) is callback:
                del self._subscribers[subscriber_id]

        return unsubscribe

    def unsubscribe(self, subscriber_id: str) -> bool:
        """Remove a subscriber by id.

        Returns:
            True if the subscriber was registered.
        """
        return self._subscribers.pop(subscriber_id, None) is not None

    def emit(self) -> None:
        """Call every registered subscriber in registration order.

        The set of subscribers is fixed when the emission starts:
        subscribing or unsubscribing from a callback takes effect at
        the next emission.
        """
        callbacks = list(self._subscribers.values())
        self._emitting = True
        try:
            for callback in callbacks:
                callback()
        finally:
            self._emitting = False
