# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""DeepMap store package - Grouped nested map.

This package provides the DeepMap class, an associative store addressed
by a group plus a fixed-length key path, with pruning on delete, batch
updates and change subscriptions.

The package is organized into:
- core: Main DeepMap class with point access, iteration and batch update

Example:
    >>> from genro_deepmap import DeepMap
    >>> store = DeepMap()
    >>> store.set('fetch_user', (42,), 'pending')
    >>> store.get('fetch_user', (42,))
    'pending'
"""

from .core import DeepMap

__all__ = ["DeepMap"]
