"""Observation — one raw (homesite, floor plan, report date) row."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Hashable, NamedTuple


class GroupKey(NamedTuple):
    """Partition within which floor plans are comparable (community, bed, bath)."""
    context_id: Hashable
    attr1: Hashable
    attr2: Hashable


@dataclass(frozen=True)
class Observation:
    entity_id: Hashable
    context_id: Hashable
    label: Hashable
    attr1: Hashable
    attr2: Hashable
    observed_at: datetime

    @property
    def group_key(self) -> GroupKey:
        return GroupKey(self.context_id, self.attr1, self.attr2)
