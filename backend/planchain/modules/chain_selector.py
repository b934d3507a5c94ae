"""Pick the extended chain per (group key, final floor plan).

After ordered chaining several candidates can end on the same floor plan:
the fully extended chain plus shorter chains it subsumes. Only the longest
survive, scored by how they got there:

  match_count > 0                       → score = match_count
  never merged, base already max length → score = SINGLETON_MATCH_SCORE
  otherwise                             → no score, dropped

Never-merged multi-plan progressions are kept regardless: they are a
complete progression on their own.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Hashable, Iterable

from planchain.config import settings
from planchain.models.chain import ChainCandidate, SelectedChain
from planchain.models.observation import GroupKey

logger = logging.getLogger(__name__)


def compute_match_score(candidate: ChainCandidate, max_len: int, singleton_score: int) -> int | None:
    if candidate.match_count > 0:
        return candidate.match_count
    if len(candidate.base.labels) == max_len:
        return singleton_score
    return None


def _is_standalone(candidate: ChainCandidate) -> bool:
    return candidate.match_count == 0 and len(candidate.base.labels) > 1


def select_chains(
    candidates: Iterable[ChainCandidate],
    singleton_score: int | None = None,
) -> list[SelectedChain]:
    """Reduce final-depth candidates to one chain per distinct label list."""
    if singleton_score is None:
        singleton_score = settings.SINGLETON_MATCH_SCORE

    by_tail: dict[tuple[GroupKey, Hashable], list[ChainCandidate]] = defaultdict(list)
    for candidate in candidates:
        by_tail[(candidate.group_key, candidate.last_label)].append(candidate)

    survivors: dict[GroupKey, list[tuple[ChainCandidate, int | None]]] = defaultdict(list)
    dropped = 0
    for (group_key, _tail), members in by_tail.items():
        max_len = max(len(c.chain) for c in members)
        for candidate in members:
            score = compute_match_score(candidate, max_len, singleton_score)
            if (len(candidate.chain) == max_len and score is not None) or _is_standalone(candidate):
                survivors[group_key].append((candidate, score))
            else:
                dropped += 1

    selected: list[SelectedChain] = []
    for group_key, members in survivors.items():
        members.sort(key=lambda item: (item[0].first_seen, tuple(str(x) for x in item[0].chain)))
        seen_chains: set[tuple] = set()
        for list_id, (candidate, score) in enumerate(members, start=1):
            # Earliest first_seen wins among identical chains
            if candidate.chain in seen_chains:
                continue
            seen_chains.add(candidate.chain)
            selected.append(SelectedChain(
                group_key=group_key,
                list_id=list_id,
                chain=candidate.chain,
                base_labels=candidate.base.labels,
                match_count=candidate.match_count,
                match_score=score,
                first_seen=candidate.first_seen,
            ))

    logger.debug("Selected %d chains (%d subsumed candidates dropped)", len(selected), dropped)
    return selected
