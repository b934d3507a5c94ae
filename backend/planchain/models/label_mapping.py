"""LabelMapping — (group key, observed floor plan) -> canonical floor plan."""
from __future__ import annotations

from typing import Hashable, Iterator

from planchain.models.observation import GroupKey


class LabelMapping:
    """Read-only lookup produced by the label mapper."""

    def __init__(self, entries: dict[tuple[GroupKey, Hashable], Hashable] | None = None) -> None:
        self._entries: dict[tuple[GroupKey, Hashable], Hashable] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[tuple[GroupKey, Hashable]]:
        return iter(self._entries)

    def __getitem__(self, key: tuple[GroupKey, Hashable]) -> Hashable:
        return self._entries[key]

    def get(self, group_key: GroupKey, label: Hashable, default: Hashable | None = None) -> Hashable | None:
        return self._entries.get((group_key, label), default)

    def items(self):
        return self._entries.items()

    def for_group(self, group_key: GroupKey) -> dict[Hashable, Hashable]:
        return {label: canon for (gk, label), canon in self._entries.items() if gk == group_key}

