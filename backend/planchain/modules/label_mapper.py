"""Canonical floor plan per (group key, observed floor plan).

Every observed floor plan maps to the first floor plan of the full chain that
contains it. A floor plan no chain contains keeps its own value.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Hashable, Iterable

import polars as pl

from planchain.models.base import ResolutionFault, ResolutionFaultEnum
from planchain.models.chain import FullChain
from planchain.models.label_mapping import LabelMapping
from planchain.models.label_sequence import LabelSequence
from planchain.models.observation import GroupKey
from planchain.modules.normalize import DEFAULT_COLUMNS, RecordColumns

logger = logging.getLogger(__name__)


def _chain_order(chain: FullChain) -> tuple:
    return (chain.first_seen, tuple(sorted(chain.list_ids)))


def build_label_mapping(
    pairs: Iterable[tuple[GroupKey, Hashable]],
    full_chains: Iterable[FullChain],
    faults: list[ResolutionFault] | None = None,
) -> LabelMapping:
    """Map each (group key, floor plan) pair to its canonical floor plan.

    A floor plan claimed by several chains of one group key resolves to the
    chain first seen earliest (CONFLICTING_LABEL); one claimed by none maps to
    itself (UNRESOLVED_LABEL). Both are logged and appended to ``faults``.
    """
    index: dict[tuple[GroupKey, Hashable], list[FullChain]] = defaultdict(list)
    for chain in sorted(full_chains, key=_chain_order):
        for label in chain.labels:
            index[(chain.group_key, label)].append(chain)

    entries: dict[tuple[GroupKey, Hashable], Hashable] = {}
    for key in pairs:
        if key in entries:
            continue
        group_key, label = key
        owners = index.get(key)
        if not owners:
            logger.warning("Floor plan %r in %s belongs to no chain, keeping as is", label, group_key)
            if faults is not None:
                faults.append(ResolutionFault(
                    kind=ResolutionFaultEnum.UNRESOLVED_LABEL,
                    message=f"no chain contains floor plan {label!r}",
                    group_key=group_key,
                    detail={"label": label},
                ))
            entries[key] = label
            continue

        canonicals = {chain.canonical for chain in owners}
        if len(canonicals) > 1:
            logger.warning(
                "Floor plan %r in %s claimed by %d chains (%s), using earliest: %r",
                label, group_key, len(owners), sorted(map(str, canonicals)), owners[0].canonical,
            )
            if faults is not None:
                faults.append(ResolutionFault(
                    kind=ResolutionFaultEnum.CONFLICTING_LABEL,
                    message=f"floor plan {label!r} claimed by {len(owners)} chains",
                    group_key=group_key,
                    detail={"label": label, "canonical": owners[0].canonical},
                ))
        entries[key] = owners[0].canonical

    return LabelMapping(entries)


def check_entity_ownership(
    sequences: Iterable[LabelSequence],
    mapping: LabelMapping,
    faults: list[ResolutionFault] | None = None,
) -> int:
    """Count homesites whose floor plans resolve to more than one canonical plan."""
    split = 0
    for seq in sequences:
        canonicals = {mapping.get(seq.group_key, label, label) for label in seq.labels}
        if len(canonicals) > 1:
            split += 1
            logger.warning(
                "Homesite %s spans %d chains in %s", seq.entity_id, len(canonicals), seq.group_key,
            )
            if faults is not None:
                faults.append(ResolutionFault(
                    kind=ResolutionFaultEnum.CONFLICTING_LABEL,
                    message=f"homesite {seq.entity_id} spans {len(canonicals)} chains",
                    group_key=seq.group_key,
                    detail={"entity_id": seq.entity_id},
                ))
    return split


def mapping_to_frame(mapping: LabelMapping, columns: RecordColumns | None = None) -> pl.DataFrame:
    """Export the mapping as one row per (community, bed, bath, floor plan)."""
    columns = columns or DEFAULT_COLUMNS
    canonical_column = f"rpt_{columns.label}"
    rows = [
        {
            columns.context: group_key.context_id,
            columns.attr1: group_key.attr1,
            columns.attr2: group_key.attr2,
            columns.label: label,
            canonical_column: canonical,
        }
        for (group_key, label), canonical in mapping.items()
    ]
    if not rows:
        return pl.DataFrame(
            schema=[columns.context, columns.attr1, columns.attr2, columns.label, canonical_column]
        )
    return pl.DataFrame(rows)
