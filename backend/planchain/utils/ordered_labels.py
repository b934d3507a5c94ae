"""Append-only ordered label sets.

A chain keeps labels in order of first appearance and never reorders or drops
one, so the first element is stable across every merge.
"""
from __future__ import annotations

from typing import Hashable, Iterable, Sequence


def append_distinct(existing: Sequence[Hashable], incoming: Iterable[Hashable]) -> tuple:
    """Return ``existing`` followed by the labels of ``incoming`` not already present."""
    seen = set(existing)
    out = list(existing)
    for label in incoming:
        if label not in seen:
            seen.add(label)
            out.append(label)
    return tuple(out)


def shares_label(a: Iterable[Hashable], b: Iterable[Hashable]) -> bool:
    return not set(a).isdisjoint(b)


def overlaps_as_prefix(chain: Sequence[Hashable], labels: Sequence[Hashable]) -> bool:
    """True when ``labels`` starts with exactly the labels it shares with ``chain``, in chain order.

    ``chain=[1, 2, 3]``, ``labels=[2, 3, 4]`` -> True  (shared [2, 3] == [2, 3])
    ``chain=[1, 3]``,    ``labels=[2, 3, 4]`` -> False (shared [3] != [2])
    ``chain=[1, 2]``,    ``labels=[2, 1]``    -> False (shared [1, 2] != [2, 1])
    """
    members = set(labels)
    shared = [label for label in chain if label in members]
    if not shared:
        return False
    return tuple(shared) == tuple(labels[:len(shared)])
