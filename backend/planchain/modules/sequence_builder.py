"""Per-homesite floor-plan progressions.

Collapses every (homesite, community) pair's observations into one ordered,
duplicate-free list of floor plans, ordered by when each plan first appeared.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Hashable, Iterable

from planchain.models.base import ResolutionFault, ResolutionFaultEnum
from planchain.models.label_sequence import LabelSequence
from planchain.models.observation import GroupKey, Observation

logger = logging.getLogger(__name__)


def _label_sort_key(item: tuple[Hashable, datetime]) -> tuple:
    label, first_seen = item
    # str() keeps mixed-type labels comparable on a first_seen tie
    return (first_seen, str(label))


def build_label_sequences(
    observations: Iterable[Observation],
    faults: list[ResolutionFault] | None = None,
) -> list[LabelSequence]:
    """Build one LabelSequence per (homesite, community).

    Bed/bath are taken from the homesite's earliest observation; a homesite
    whose bed/bath vary is logged and recorded as an INCONSISTENT_ATTRIBUTES
    fault when ``faults`` is given.
    """
    by_entity: dict[tuple[Hashable, Hashable], list[Observation]] = defaultdict(list)
    for obs in observations:
        by_entity[(obs.entity_id, obs.context_id)].append(obs)

    sequences: list[LabelSequence] = []
    for (entity_id, context_id), rows in by_entity.items():
        if not rows:
            continue
        rows.sort(key=lambda o: o.observed_at)
        earliest = rows[0]

        attr_variants = {(o.attr1, o.attr2) for o in rows}
        if len(attr_variants) > 1:
            logger.warning(
                "Homesite %s in community %s has %d bed/bath variants; using earliest %s/%s",
                entity_id, context_id, len(attr_variants), earliest.attr1, earliest.attr2,
            )
            if faults is not None:
                faults.append(ResolutionFault(
                    kind=ResolutionFaultEnum.INCONSISTENT_ATTRIBUTES,
                    message=f"bed/bath vary for homesite {entity_id}",
                    group_key=earliest.group_key,
                    detail={"entity_id": entity_id, "variants": len(attr_variants)},
                ))

        first_by_label: dict[Hashable, datetime] = {}
        for obs in rows:
            if obs.label not in first_by_label:
                first_by_label[obs.label] = obs.observed_at

        labels = tuple(label for label, _ in sorted(first_by_label.items(), key=_label_sort_key))
        sequences.append(LabelSequence(
            entity_id=entity_id,
            group_key=GroupKey(context_id, earliest.attr1, earliest.attr2),
            labels=labels,
            first_seen=rows[0].observed_at,
            last_seen=rows[-1].observed_at,
        ))

    logger.debug("Built %d label sequences", len(sequences))
    return sequences
