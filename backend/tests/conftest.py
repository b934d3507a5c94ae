"""Shared builders for floor-plan chaining tests."""
from datetime import datetime

import pytest

from planchain.models import GroupKey, LabelSequence, Observation


GROUP = GroupKey("ABC", 3, 2)


def day(n: int, month: int = 1) -> datetime:
    return datetime(2024, month, n)


@pytest.fixture
def group_key():
    return GROUP


@pytest.fixture
def make_sequence():
    """Factory: make_sequence("E5", [1, 2, 3], first=2, last=4) — days of January 2024."""
    def _make(entity, labels, first, last, group_key=GROUP):
        return LabelSequence(
            entity_id=entity,
            group_key=group_key,
            labels=tuple(labels),
            first_seen=day(first),
            last_seen=day(last),
        )
    return _make


@pytest.fixture
def make_observations():
    """Factory: make_observations("E5", [(1, 2), (2, 3)]) — (label, day) pairs for one homesite."""
    def _make(entity, label_days, context="ABC", bed=3, bath=2):
        return [
            Observation(
                entity_id=entity,
                context_id=context,
                label=label,
                attr1=bed,
                attr2=bath,
                observed_at=day(d),
            )
            for label, d in label_days
        ]
    return _make
