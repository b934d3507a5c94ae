"""Ordered floor-plan chaining — first merge pass.

Chains together progressions that overlap as a prefix alignment, the
later-ending progression extending the earlier one:

    homesite 5: [1, 2, 3]
    homesite 6:    [2, 3, 4]   (last seen later)
    chain:      [1, 2, 3, 4]

Runs as a generation-based fixed point bounded at ``CHAIN_MAX_DEPTH``
generations. Every candidate is evaluated against generation i and its
successor written to generation i+1. A candidate advances by one progression
per generation, the eligible one last seen earliest, so progressions seen
later stay eligible for the following generations. A candidate with no
eligible progression carries forward unchanged. Only the final generation is
returned.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Iterable

from planchain.config import settings
from planchain.models.chain import ChainCandidate
from planchain.models.label_sequence import LabelSequence
from planchain.models.observation import GroupKey
from planchain.utils.ordered_labels import append_distinct, overlaps_as_prefix

logger = logging.getLogger(__name__)


def can_extend(candidate: ChainCandidate, seq: LabelSequence) -> bool:
    """Return True if ``seq`` may be chained onto ``candidate``."""
    if candidate.group_key != seq.group_key:
        return False
    # A single plan cannot point anywhere new
    if len(seq.labels) <= 1:
        return False
    if seq.labels == candidate.chain:
        return False
    # Forward-only: the extension must have been seen more recently
    if not seq.last_seen > candidate.last_seen:
        return False
    return overlaps_as_prefix(candidate.chain, seq.labels)


def _extend(candidate: ChainCandidate, seq: LabelSequence) -> ChainCandidate:
    return replace(
        candidate,
        chain=append_distinct(candidate.chain, seq.labels),
        match_count=candidate.match_count + 1,
        last_seen=seq.last_seen,
        depth=candidate.depth + 1,
        advanced=True,
    )


def _extension_order(seq: LabelSequence) -> tuple:
    return (seq.last_seen, seq.first_seen, tuple(str(x) for x in seq.labels))


def run_ordered_chaining(
    sequences: Iterable[LabelSequence],
    max_depth: int | None = None,
) -> list[ChainCandidate]:
    """Chain deduplicated sequences and return the candidates at the final depth.

    Candidates whose ``advanced`` flag is set were still merging in the last
    generation, i.e. their true chain may be longer than the depth bound allows.
    """
    if max_depth is None:
        max_depth = settings.CHAIN_MAX_DEPTH

    by_group: dict[GroupKey, list[LabelSequence]] = defaultdict(list)
    for seq in sequences:
        by_group[seq.group_key].append(seq)
    for group in by_group.values():
        group.sort(key=lambda s: (s.first_seen, tuple(str(x) for x in s.labels)))

    generation = [
        ChainCandidate.from_sequence(seq)
        for group in by_group.values()
        for seq in group
    ]

    for depth in range(max_depth):
        next_generation: list[ChainCandidate] = []
        seen: set[ChainCandidate] = set()
        merges = 0

        for candidate in generation:
            extensions = [seq for seq in by_group[candidate.group_key] if can_extend(candidate, seq)]
            if extensions:
                merges += 1
                successor = _extend(candidate, min(extensions, key=_extension_order))
            else:
                successor = candidate.carried()
            if successor not in seen:
                seen.add(successor)
                next_generation.append(successor)

        generation = next_generation
        logger.debug("Ordered chaining depth %d: %d candidates, %d merges", depth + 1, len(generation), merges)

        if merges == 0:
            # Fixed point reached: the remaining generations would be identical
            generation = [replace(c, depth=max_depth) for c in generation]
            break

    still_merging = sum(1 for c in generation if c.advanced)
    if still_merging:
        logger.info(
            "Ordered chaining hit depth bound %d with %d candidates still merging",
            max_depth, still_merging,
        )
    return generation
