"""Chain state carried through the two merge passes."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Hashable

from planchain.models.label_sequence import LabelSequence
from planchain.models.observation import GroupKey


@dataclass(frozen=True)
class ChainCandidate:
    """A base sequence plus everything chained onto it so far (ordered pass)."""
    group_key: GroupKey
    base: LabelSequence
    chain: tuple  # accumulated labels; append-only
    match_count: int
    first_seen: datetime
    last_seen: datetime  # of the most recently merged-in sequence
    depth: int = 0
    # True when the generation that produced this state merged something
    advanced: bool = field(default=False, compare=False)

    @classmethod
    def from_sequence(cls, seq: LabelSequence) -> ChainCandidate:
        return cls(
            group_key=seq.group_key,
            base=seq,
            chain=seq.labels,
            match_count=0,
            first_seen=seq.first_seen,
            last_seen=seq.last_seen,
        )

    def carried(self) -> ChainCandidate:
        return replace(self, depth=self.depth + 1, advanced=False)

    @property
    def last_label(self) -> Hashable:
        return self.chain[-1]


@dataclass(frozen=True)
class SelectedChain:
    """A depth-bounded ordered chain that survived selection."""
    group_key: GroupKey
    list_id: int  # 1-based, ordered by first_seen within the group key
    chain: tuple
    base_labels: tuple
    match_count: int
    match_score: int | None
    first_seen: datetime


@dataclass(frozen=True)
class FullChain:
    """Final equivalence class of floor plans; ``labels[0]`` is canonical."""
    group_key: GroupKey
    labels: tuple
    first_seen: datetime
    list_ids: frozenset = frozenset()
    depth: int = 0
    advanced: bool = field(default=False, compare=False)

    @property
    def canonical(self) -> Hashable:
        return self.labels[0]

    @property
    def label_set(self) -> frozenset:
        return frozenset(self.labels)
