"""Collapse homesites that walked through the identical floor-plan progression."""
from __future__ import annotations

import logging
from typing import Iterable

from planchain.models.label_sequence import LabelSequence

logger = logging.getLogger(__name__)


def _is_preferred(seq: LabelSequence, current: LabelSequence) -> bool:
    """Latest last_seen wins, then earliest first_seen, then lowest entity id."""
    if seq.last_seen != current.last_seen:
        return seq.last_seen > current.last_seen
    if seq.first_seen != current.first_seen:
        return seq.first_seen < current.first_seen
    return str(seq.entity_id) < str(current.entity_id)


def dedupe_sequences(sequences: Iterable[LabelSequence]) -> list[LabelSequence]:
    """Keep one sequence per (group key, label list), the most recently active one."""
    best: dict[tuple, LabelSequence] = {}
    total = 0
    for seq in sequences:
        total += 1
        key = (seq.group_key, seq.labels)
        current = best.get(key)
        if current is None or _is_preferred(seq, current):
            best[key] = seq

    if total != len(best):
        logger.debug("Deduplicated %d sequences to %d", total, len(best))
    return list(best.values())
