"""Shared enums and fault records for the resolution pipeline."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class ResolutionFaultEnum(str, enum.Enum):
    MALFORMED_INPUT = "malformed_input"
    INCONSISTENT_ATTRIBUTES = "inconsistent_attributes"
    UNRESOLVED_LABEL = "unresolved_label"
    # A label claimed by more than one full chain in the same group key.
    # Resolved by earliest first_seen.
    CONFLICTING_LABEL = "conflicting_label"
    ITERATION_EXHAUSTION = "iteration_exhaustion"
    GROUP_FAILURE = "group_failure"


@dataclass
class ResolutionFault:
    """A non-fatal problem found while resolving one group key."""
    kind: ResolutionFaultEnum
    message: str
    group_key: Any = None
    detail: dict[str, Any] = field(default_factory=dict)
