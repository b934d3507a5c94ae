"""LabelSequence — one homesite's ordered floor-plan progression."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Hashable

from planchain.models.observation import GroupKey


@dataclass(frozen=True)
class LabelSequence:
    entity_id: Hashable
    group_key: GroupKey
    labels: tuple  # distinct, ordered by first observation
    first_seen: datetime
    last_seen: datetime
