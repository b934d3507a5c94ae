"""Homesite observation normalization and validation.

Gate in front of the chaining core: rows missing a key field or carrying an
unparseable report date are rejected and reported here, never passed on.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterable

import polars as pl

from planchain.config import settings
from planchain.models.observation import Observation

logger = logging.getLogger(__name__)


# --- Shared helpers ---

_COMMON_TIMESTAMP_FORMATS = [
    "%m/%d/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d-%m-%Y %H:%M:%S",
]


@dataclass(frozen=True)
class RecordColumns:
    """Names of the record fields the resolver reads."""
    entity: str = settings.ENTITY_COLUMN
    context: str = settings.CONTEXT_COLUMN
    label: str = settings.LABEL_COLUMN
    attr1: str = settings.ATTR1_COLUMN
    attr2: str = settings.ATTR2_COLUMN
    timestamp: str = settings.TIMESTAMP_COLUMN

    @property
    def group_fields(self) -> tuple[str, str, str]:
        return (self.context, self.attr1, self.attr2)

    @property
    def required(self) -> tuple[str, ...]:
        return (self.entity, self.context, self.label, self.attr1, self.attr2, self.timestamp)


DEFAULT_COLUMNS = RecordColumns()


def parse_timestamp_flexible(ts: Any) -> datetime | None:
    """Parse a report date from various formats.

    Returns a naive UTC datetime or None if parsing fails.
    Supports: datetime/date objects, ISO 8601, Unix epoch, and common strftime formats.
    """
    parsed: datetime | None = None

    if isinstance(ts, datetime):
        parsed = ts
    elif isinstance(ts, date):
        parsed = datetime.combine(ts, datetime.min.time())
    elif isinstance(ts, (int, float)) and not isinstance(ts, bool) and ts > 1_000_000_000:
        try:
            parsed = datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OSError, ValueError, OverflowError):
            return None
    elif isinstance(ts, str):
        ts_str = ts.strip()
        if not ts_str:
            return None
        try:
            parsed = datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _COMMON_TIMESTAMP_FORMATS:
                try:
                    parsed = datetime.strptime(ts_str, fmt)
                    break
                except ValueError:
                    continue

    if parsed is None:
        return None
    # Mixed aware/naive values cannot be ordered against each other
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def normalize_observation_frame(df: pl.DataFrame, columns: RecordColumns = DEFAULT_COLUMNS) -> pl.DataFrame:
    """Lowercase headers and rename common aliases to the configured field names."""
    rename_map = {
        "homesite": columns.entity,
        "homesite_id": columns.entity,
        "community": columns.context,
        "community_id": columns.context,
        "plan": columns.label,
        "plan_name": columns.label,
        "floor_plan": columns.label,
        "floorplan": columns.label,
        "beds": columns.attr1,
        "bedrooms": columns.attr1,
        "bed": columns.attr1,
        "baths": columns.attr2,
        "bathrooms": columns.attr2,
        "bath": columns.attr2,
        "run_date": columns.timestamp,
        "date": columns.timestamp,
        "report_date": columns.timestamp,
    }
    if set(columns.required) <= set(df.columns):
        return df

    lowered = {col: col.lower().strip() for col in df.columns}
    if len(set(lowered.values())) == len(lowered):
        df = df.rename({k: v for k, v in lowered.items() if k != v})
    # Only rename aliases that exist, never onto a column already present
    actual_renames = {
        k: v for k, v in rename_map.items()
        if k in df.columns and k != v and v not in df.columns
    }
    if actual_renames and len(set(actual_renames.values())) == len(actual_renames):
        df = df.rename(actual_renames)
    return df


def validate_observation_row(row: dict[str, Any], columns: RecordColumns = DEFAULT_COLUMNS) -> str | None:
    """
    Validate a single normalized observation row.
    Returns an error string if invalid, None if valid.
    """
    for name in (columns.entity, columns.context, columns.label, columns.attr1, columns.attr2):
        value = row.get(name)
        if value is None:
            return f"Missing {name}"
        if isinstance(value, str) and not value.strip():
            return f"Blank {name}"
        if isinstance(value, float) and value != value:  # NaN
            return f"Missing {name}"

    ts = row.get(columns.timestamp)
    if ts is None:
        return "Missing timestamp"
    if parse_timestamp_flexible(ts) is None:
        return f"Unparseable timestamp {ts!r}"
    return None


def observations_from_rows(
    rows: Iterable[dict[str, Any]],
    columns: RecordColumns = DEFAULT_COLUMNS,
) -> tuple[list[Observation], dict[str, Any]]:
    """Validate dict rows and convert the accepted ones to Observations.

    Returns (observations, summary) where summary carries accepted/rejected
    counts and the first few rejection messages.
    """
    observations: list[Observation] = []
    errors: list[str] = []
    rejected = 0

    for row in rows:
        error = validate_observation_row(row, columns)
        if error:
            logger.warning("Rejected observation: %s | row: %s", error, row)
            errors.append(error)
            rejected += 1
            continue
        observations.append(
            Observation(
                entity_id=row[columns.entity],
                context_id=row[columns.context],
                label=row[columns.label],
                attr1=row[columns.attr1],
                attr2=row[columns.attr2],
                observed_at=parse_timestamp_flexible(row[columns.timestamp]),
            )
        )

    limit = settings.MAX_REPORTED_ERRORS
    if rejected:
        logger.info("Observation gate: %d accepted, %d rejected", len(observations), rejected)
    return observations, {
        "accepted": len(observations),
        "rejected": rejected,
        "errors": errors[:limit],
        "errors_truncated": len(errors) > limit,
    }


def observations_from_frame(
    df: pl.DataFrame,
    columns: RecordColumns = DEFAULT_COLUMNS,
) -> tuple[list[Observation], dict[str, Any]]:
    """Validate a polars frame of homesite records.

    Raises ValueError when a required column is absent altogether.
    """
    df = normalize_observation_frame(df, columns)
    missing = set(columns.required) - set(df.columns)
    if missing:
        raise ValueError(f"Records missing required columns: {sorted(missing)}")
    return observations_from_rows(df.select(list(columns.required)).iter_rows(named=True), columns)
