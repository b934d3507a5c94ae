"""Floor-plan resolution — run the chaining stages per community/bed/bath.

Stages, each partition-local to one group key:

  1. build per-homesite progressions        (sequence_builder)
  2. drop duplicate progressions             (sequence_dedup)
  3. ordered chaining                        (ordered_chainer)
  4. select extended chains                  (chain_selector)
  5. unordered chaining                      (unordered_chainer)
  6. canonical floor plan per observed plan  (label_mapper)

A failure inside one group key is logged, that group falls back to identity
mapping, and the remaining groups are resolved normally.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Hashable, Iterable

import polars as pl

from planchain.config import settings
from planchain.models.base import ResolutionFault, ResolutionFaultEnum
from planchain.models.chain import FullChain
from planchain.models.label_mapping import LabelMapping
from planchain.models.label_sequence import LabelSequence
from planchain.models.observation import GroupKey, Observation
from planchain.modules.chain_selector import select_chains
from planchain.modules.label_mapper import build_label_mapping, check_entity_ownership, mapping_to_frame
from planchain.modules.normalize import (
    DEFAULT_COLUMNS,
    RecordColumns,
    normalize_observation_frame,
    observations_from_frame,
)
from planchain.modules.ordered_chainer import run_ordered_chaining
from planchain.modules.record_rewriter import rewrite_frame
from planchain.modules.sequence_builder import build_label_sequences
from planchain.modules.sequence_dedup import dedupe_sequences
from planchain.modules.unordered_chainer import collapse_duplicate_chains, run_unordered_chaining

logger = logging.getLogger(__name__)

_STAT_KEYS = (
    "observations",
    "rejected",
    "groups",
    "sequences",
    "unique_sequences",
    "ordered_candidates",
    "selected_chains",
    "full_chains",
    "merged_labels",
    "unresolved_labels",
    "conflicting_labels",
    "split_entities",
    "ordered_still_merging",
    "unordered_still_merging",
    "failed_groups",
)


@dataclass
class GroupResolution:
    """Output of resolving one group key."""
    group_key: GroupKey
    mapping: LabelMapping
    full_chains: list[FullChain] = field(default_factory=list)
    stats: dict[str, int] = field(default_factory=dict)
    faults: list[ResolutionFault] = field(default_factory=list)


@dataclass
class ResolutionResult:
    mapping: LabelMapping
    full_chains: dict[GroupKey, list[FullChain]] = field(default_factory=dict)
    stats: dict[str, int] = field(default_factory=dict)
    faults: list[ResolutionFault] = field(default_factory=list)
    rejected_errors: list[str] = field(default_factory=list)

    def faults_of(self, kind: ResolutionFaultEnum) -> list[ResolutionFault]:
        return [f for f in self.faults if f.kind == kind]


def resolve_group(
    group_key: GroupKey,
    sequences: list[LabelSequence],
    pairs: Iterable[tuple[GroupKey, Hashable]],
    chain_max_depth: int | None = None,
    merge_max_depth: int | None = None,
) -> GroupResolution:
    """Resolve every observed floor plan of a single group key."""
    if chain_max_depth is None:
        chain_max_depth = settings.CHAIN_MAX_DEPTH
    if merge_max_depth is None:
        merge_max_depth = settings.MERGE_MAX_DEPTH

    faults: list[ResolutionFault] = []
    unique = dedupe_sequences(sequences)
    candidates = run_ordered_chaining(unique, max_depth=chain_max_depth)
    selected = select_chains(candidates)
    final_generation = run_unordered_chaining(selected, max_depth=merge_max_depth)
    full_chains = collapse_duplicate_chains(final_generation)

    ordered_active = sum(1 for c in candidates if c.advanced)
    unordered_active = sum(1 for c in final_generation if c.advanced)
    for stage, active, depth in (
        ("ordered", ordered_active, chain_max_depth),
        ("unordered", unordered_active, merge_max_depth),
    ):
        if active:
            faults.append(ResolutionFault(
                kind=ResolutionFaultEnum.ITERATION_EXHAUSTION,
                message=f"{active} {stage} chains still merging at depth {depth}",
                group_key=group_key,
                detail={"stage": stage, "still_merging": active, "max_depth": depth},
            ))

    mapping = build_label_mapping(pairs, full_chains, faults)
    split = check_entity_ownership(sequences, mapping, faults)

    stats = {
        "sequences": len(sequences),
        "unique_sequences": len(unique),
        "ordered_candidates": len(candidates),
        "selected_chains": len(selected),
        "full_chains": len(full_chains),
        "merged_labels": sum(1 for (_, label), canon in mapping.items() if canon != label),
        "unresolved_labels": sum(1 for f in faults if f.kind == ResolutionFaultEnum.UNRESOLVED_LABEL),
        "conflicting_labels": sum(
            1 for f in faults
            if f.kind == ResolutionFaultEnum.CONFLICTING_LABEL and "label" in f.detail
        ),
        "split_entities": split,
        "ordered_still_merging": ordered_active,
        "unordered_still_merging": unordered_active,
    }
    return GroupResolution(
        group_key=group_key,
        mapping=mapping,
        full_chains=full_chains,
        stats=stats,
        faults=faults,
    )


def _group_sort_key(group_key: GroupKey) -> tuple:
    return tuple(str(part) for part in group_key)


def resolve_plans(
    observations: Iterable[Observation],
    chain_max_depth: int | None = None,
    merge_max_depth: int | None = None,
) -> ResolutionResult:
    """Resolve floor-plan drift across all communities.

    Returns a ResolutionResult whose mapping has exactly one entry for every
    (group key, floor plan) pair present in ``observations``.
    """
    observations = list(observations)
    faults: list[ResolutionFault] = []
    sequences = build_label_sequences(observations, faults)

    sequences_by_group: dict[GroupKey, list[LabelSequence]] = defaultdict(list)
    pairs_by_group: dict[GroupKey, dict[tuple[GroupKey, Hashable], None]] = defaultdict(dict)
    for seq in sequences:
        sequences_by_group[seq.group_key].append(seq)
        for label in seq.labels:
            pairs_by_group[seq.group_key][(seq.group_key, label)] = None
    for obs in observations:
        pairs_by_group[obs.group_key][(obs.group_key, obs.label)] = None

    stats: dict[str, int] = {key: 0 for key in _STAT_KEYS}
    stats["observations"] = len(observations)
    entries: dict[tuple[GroupKey, Hashable], Hashable] = {}
    full_chains: dict[GroupKey, list[FullChain]] = {}

    for group_key in sorted(pairs_by_group, key=_group_sort_key):
        pairs = list(pairs_by_group[group_key])
        try:
            resolution = resolve_group(
                group_key,
                sequences_by_group.get(group_key, []),
                pairs,
                chain_max_depth=chain_max_depth,
                merge_max_depth=merge_max_depth,
            )
        except Exception as e:
            logger.exception("Floor-plan resolution failed for %s, keeping observed plans", group_key)
            faults.append(ResolutionFault(
                kind=ResolutionFaultEnum.GROUP_FAILURE,
                message=str(e),
                group_key=group_key,
            ))
            stats["failed_groups"] += 1
            entries.update({pair: pair[1] for pair in pairs})
            continue

        entries.update(resolution.mapping.items())
        full_chains[group_key] = resolution.full_chains
        faults.extend(resolution.faults)
        for key, value in resolution.stats.items():
            stats[key] += value

    stats["groups"] = len(pairs_by_group)
    mapping = LabelMapping(entries)
    logger.info(
        "Floor-plan resolution complete: %d groups, %d chains, %d of %d plans remapped",
        stats["groups"], stats["full_chains"], stats["merged_labels"], len(mapping),
    )
    return ResolutionResult(mapping=mapping, full_chains=full_chains, stats=stats, faults=faults)


def resolve_frame(
    df: pl.DataFrame,
    columns: RecordColumns = DEFAULT_COLUMNS,
    chain_max_depth: int | None = None,
    merge_max_depth: int | None = None,
) -> tuple[pl.DataFrame, pl.DataFrame, ResolutionResult]:
    """Resolve and rewrite a frame of homesite records in one call.

    Headers are matched to the configured column names for resolution only;
    the rewritten frame keeps the caller's column names and order. Returns
    (rewritten records, mapping table, result); rejected rows are still
    rewritten when their key fields allow a lookup.
    """
    normalized = normalize_observation_frame(df, columns)
    observations, gate = observations_from_frame(normalized, columns)
    result = resolve_plans(observations, chain_max_depth=chain_max_depth, merge_max_depth=merge_max_depth)
    result.stats["rejected"] = gate["rejected"]
    result.rejected_errors = gate["errors"]
    if gate["rejected"]:
        result.faults.append(ResolutionFault(
            kind=ResolutionFaultEnum.MALFORMED_INPUT,
            message=f"{gate['rejected']} records rejected",
            detail={"errors_truncated": gate["errors_truncated"]},
        ))
    # Normalization only renames, so columns still line up by position
    original_names = {new: old for new, old in zip(normalized.columns, df.columns) if new != old}
    rewritten = rewrite_frame(normalized, result.mapping, columns).rename(original_names)
    return rewritten, mapping_to_frame(result.mapping, columns), result
