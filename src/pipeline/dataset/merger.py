"""Deep key-wise merge of the ``updates`` sublist into the dataset.

The merge never mutates its inputs: workers receive a snapshot of the
merged dataset, and the pre-merge dataset may still be referenced by the
validator's report or by callers.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from src.config import UPDATES_KEY


def merge(base: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``patch`` merged in recursively.

    For every key of ``patch``: when both sides hold a mapping the merge
    recurses, otherwise the patch value replaces the base value. Keys only
    present in ``base`` are carried over unchanged.

    Parameters
    ----------
    base : Mapping[str, Any]
        Structure to patch.
    patch : Mapping[str, Any]
        Overrides to apply.

    Returns
    -------
    dict[str, Any]
        New structure. No container is shared with ``base`` or ``patch``.

    Notes
    -----
    The operation is idempotent: ``merge(merge(b, p), p) == merge(b, p)``.

    Examples
    --------
    >>> merge({"a": {"x": 1, "y": 2}, "b": 1}, {"a": {"y": 3}})
    {'a': {'x': 1, 'y': 3}, 'b': 1}
    """
    merged: dict[str, Any] = {}
    for key, value in base.items():
        if key not in patch:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, Mapping) and isinstance(patch[key], Mapping):
            merged[key] = merge(value, patch[key])
        else:
            merged[key] = copy.deepcopy(patch[key])
    for key, patch_value in patch.items():
        if key not in merged:
            merged[key] = copy.deepcopy(patch_value)
    return merged


def merge_updates(dataset: Mapping[str, Any]) -> dict[str, Any]:
    """Apply ``dataset["updates"]`` onto the dataset itself.

    The ``updates`` entry stays in the result so the merge can be repeated
    with the same outcome. A dataset without ``updates`` is copied as is.
    """
    updates = dataset.get(UPDATES_KEY) or {}
    if not isinstance(updates, Mapping):
        updates = {}
    return merge(dataset, updates)
