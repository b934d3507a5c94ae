"""Apply a LabelMapping to homesite records.

Only the floor-plan field changes; every other field and the column order
pass through untouched. Records whose (community, bed, bath, floor plan) has
no mapping entry keep their floor plan.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

import polars as pl

from planchain.models.label_mapping import LabelMapping
from planchain.models.observation import GroupKey
from planchain.modules.normalize import DEFAULT_COLUMNS, RecordColumns

logger = logging.getLogger(__name__)

_CANONICAL = "__canonical_label"
_ROW = "__row_nr"


def rewrite_record(
    record: dict[str, Any],
    mapping: LabelMapping,
    columns: RecordColumns = DEFAULT_COLUMNS,
) -> dict[str, Any]:
    try:
        group_key = GroupKey(record[columns.context], record[columns.attr1], record[columns.attr2])
        label = record[columns.label]
    except KeyError:
        return dict(record)
    canonical = mapping.get(group_key, label, label)
    if canonical == label:
        return dict(record)
    out = dict(record)
    out[columns.label] = canonical
    return out


def rewrite_records(
    records: Iterable[dict[str, Any]],
    mapping: LabelMapping,
    columns: RecordColumns = DEFAULT_COLUMNS,
) -> Iterator[dict[str, Any]]:
    """Lazily rewrite a stream of dict records."""
    for record in records:
        yield rewrite_record(record, mapping, columns)


def rewrite_frame(
    df: pl.DataFrame,
    mapping: LabelMapping,
    columns: RecordColumns = DEFAULT_COLUMNS,
) -> pl.DataFrame:
    """Rewrite the floor-plan column of a polars frame via a left join on the mapping."""
    keys = [columns.context, columns.attr1, columns.attr2, columns.label]
    missing = set(keys) - set(df.columns)
    if missing:
        raise ValueError(f"Records missing required columns: {sorted(missing)}")
    if len(mapping) == 0 or df.height == 0:
        return df

    lookup = pl.DataFrame({
        columns.context: [gk.context_id for gk, _ in mapping],
        columns.attr1: [gk.attr1 for gk, _ in mapping],
        columns.attr2: [gk.attr2 for gk, _ in mapping],
        columns.label: [label for _, label in mapping],
        _CANONICAL: [mapping[key] for key in mapping],
    }).cast(
        {
            columns.context: df.schema[columns.context],
            columns.attr1: df.schema[columns.attr1],
            columns.attr2: df.schema[columns.attr2],
            columns.label: df.schema[columns.label],
            _CANONICAL: df.schema[columns.label],
        },
        strict=False,
    )

    rewritten = (
        df.with_row_index(_ROW)
        .join(lookup, on=keys, how="left")
        .sort(_ROW)
        .with_columns(pl.coalesce(pl.col(_CANONICAL), pl.col(columns.label)).alias(columns.label))
        .select(df.columns)
    )
    changed = int((rewritten[columns.label] != df[columns.label]).sum())
    logger.info("Rewrote floor plan on %d of %d records", changed, df.height)
    return rewritten
