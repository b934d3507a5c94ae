"""Unordered floor-plan chaining — second merge pass.

A few communities cycle homesites through plans with interleaved timing
(homesite 8 goes 1 → 2 while homesite 9 goes 2 → 1), which the ordered pass
cannot join. Here order and recency are ignored: two selected chains merge
when they share any floor plan, as long as the incoming chain has not
already been consumed by the base chain. Each generation a chain absorbs
every such partner at once, in list_id order, so a chain holds a single
state per generation.

Same bounded, generation-based fixed point as the ordered pass
(``MERGE_MAX_DEPTH``). Merging appends, so a chain's first floor plan is
always its base chain's first floor plan.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Iterable

from planchain.config import settings
from planchain.models.chain import FullChain, SelectedChain
from planchain.models.observation import GroupKey
from planchain.utils.ordered_labels import append_distinct, shares_label

logger = logging.getLogger(__name__)


def can_absorb(chain: FullChain, other: SelectedChain) -> bool:
    return (
        chain.group_key == other.group_key
        and other.list_id not in chain.list_ids
        and shares_label(chain.labels, other.chain)
    )


def _absorb(chain: FullChain, partners: list[SelectedChain]) -> FullChain:
    labels = chain.labels
    for other in partners:
        labels = append_distinct(labels, other.chain)
    return replace(
        chain,
        labels=labels,
        list_ids=chain.list_ids | {other.list_id for other in partners},
        depth=chain.depth + 1,
        advanced=True,
    )


def _state_key(chain: FullChain) -> tuple:
    # Merge eligibility only depends on the label set and consumed ids, so
    # states differing only in the order of non-leading labels are equivalent.
    return (chain.group_key, chain.canonical, chain.first_seen, chain.label_set, chain.list_ids)


def collapse_duplicate_chains(chains: Iterable[FullChain]) -> list[FullChain]:
    """One chain per (group key, label set), keeping the earliest first_seen."""
    ordered = sorted(chains, key=lambda c: (c.first_seen, tuple(sorted(c.list_ids))))
    best: dict[tuple[GroupKey, frozenset], FullChain] = {}
    for chain in ordered:
        best.setdefault((chain.group_key, chain.label_set), chain)
    return list(best.values())


def run_unordered_chaining(
    selected: Iterable[SelectedChain],
    max_depth: int | None = None,
) -> list[FullChain]:
    """Merge selected chains sharing any floor plan.

    Returns the whole final generation; ``collapse_duplicate_chains`` reduces
    it to the full chains.
    """
    if max_depth is None:
        max_depth = settings.MERGE_MAX_DEPTH

    by_group: dict[GroupKey, list[SelectedChain]] = defaultdict(list)
    for chain in selected:
        by_group[chain.group_key].append(chain)
    for group in by_group.values():
        group.sort(key=lambda c: c.list_id)

    generation = [
        FullChain(
            group_key=chain.group_key,
            labels=chain.chain,
            first_seen=chain.first_seen,
            list_ids=frozenset({chain.list_id}),
        )
        for group in by_group.values()
        for chain in group
    ]

    for depth in range(max_depth):
        next_generation: list[FullChain] = []
        seen: set[tuple] = set()
        merges = 0

        for chain in generation:
            partners = [other for other in by_group[chain.group_key] if can_absorb(chain, other)]
            if partners:
                merges += len(partners)
                successor = _absorb(chain, partners)
            else:
                successor = replace(chain, depth=chain.depth + 1, advanced=False)
            key = _state_key(successor)
            if key not in seen:
                seen.add(key)
                next_generation.append(successor)

        generation = next_generation
        logger.debug("Unordered chaining depth %d: %d chains, %d merges", depth + 1, len(generation), merges)

        if merges == 0:
            generation = [replace(c, depth=max_depth) for c in generation]
            break

    still_merging = sum(1 for c in generation if c.advanced)
    if still_merging:
        logger.info(
            "Unordered chaining hit depth bound %d with %d chains still merging",
            max_depth, still_merging,
        )
    return generation
