"""Tests for the ordered chaining pass and the ordered-label helpers.

Covers:
  - Prefix-overlap test (order sensitive)
  - Each eligibility condition for extending a chain
  - Two-homesite chaining [1, 2, 3] + [2, 3, 4] -> [1, 2, 3, 4]
  - Several eligible progressions taken one per generation, earliest first
  - Depth bound: candidates still merging at the last generation are flagged
"""
from datetime import datetime

from planchain.models import ChainCandidate, GroupKey
from planchain.modules.ordered_chainer import can_extend, run_ordered_chaining
from planchain.utils.ordered_labels import append_distinct, overlaps_as_prefix, shares_label


class TestOrderedLabels:
    def test_append_distinct_keeps_existing_order(self):
        assert append_distinct((1, 2, 3), (2, 3, 4)) == (1, 2, 3, 4)

    def test_append_distinct_never_reorders(self):
        assert append_distinct((2, 1), (1, 2, 3)) == (2, 1, 3)

    def test_prefix_overlap(self):
        assert overlaps_as_prefix((1, 2, 3), (2, 3, 4)) is True

    def test_overlap_not_at_prefix(self):
        assert overlaps_as_prefix((1, 3), (2, 3, 4)) is False

    def test_overlap_out_of_order(self):
        assert overlaps_as_prefix((1, 2), (2, 1)) is False

    def test_no_overlap(self):
        assert overlaps_as_prefix((1, 2), (3, 4)) is False

    def test_shares_label(self):
        assert shares_label((1, 2), (2, 5)) is True
        assert shares_label((1, 2), (3, 5)) is False


class TestCanExtend:
    def _candidate(self, make_sequence, labels=(1, 2, 3), last=4):
        return ChainCandidate.from_sequence(make_sequence("E5", labels, first=2, last=last))

    def test_eligible(self, make_sequence):
        candidate = self._candidate(make_sequence)
        assert can_extend(candidate, make_sequence("E6", [2, 3, 4], first=3, last=5)) is True

    def test_other_group_rejected(self, make_sequence):
        candidate = self._candidate(make_sequence)
        other = make_sequence("E6", [2, 3, 4], first=3, last=5, group_key=GroupKey("ABC", 4, 2))
        assert can_extend(candidate, other) is False

    def test_no_shared_label_rejected(self, make_sequence):
        candidate = self._candidate(make_sequence)
        assert can_extend(candidate, make_sequence("E6", [7, 8], first=3, last=5)) is False

    def test_shared_label_not_leading_rejected(self, make_sequence):
        candidate = self._candidate(make_sequence)
        assert can_extend(candidate, make_sequence("E6", [9, 3, 4], first=3, last=5)) is False

    def test_identical_list_rejected(self, make_sequence):
        candidate = self._candidate(make_sequence)
        assert can_extend(candidate, make_sequence("E6", [1, 2, 3], first=3, last=5)) is False

    def test_single_label_rejected(self, make_sequence):
        candidate = self._candidate(make_sequence)
        assert can_extend(candidate, make_sequence("E6", [3], first=3, last=5)) is False

    def test_same_last_seen_rejected(self, make_sequence):
        """Forward-only: equal last_seen is not strictly later."""
        candidate = self._candidate(make_sequence)
        assert can_extend(candidate, make_sequence("E6", [2, 3, 4], first=3, last=4)) is False

    def test_earlier_last_seen_rejected(self, make_sequence):
        candidate = self._candidate(make_sequence, last=6)
        assert can_extend(candidate, make_sequence("E6", [2, 3, 4], first=3, last=5)) is False


class TestRunOrderedChaining:
    def test_two_homesites_chain(self, make_sequence):
        e5 = make_sequence("E5", [1, 2, 3], first=2, last=4)
        e6 = make_sequence("E6", [2, 3, 4], first=3, last=5)
        candidates = run_ordered_chaining([e5, e6])

        by_base = {c.base.entity_id: c for c in candidates}
        assert by_base["E5"].chain == (1, 2, 3, 4)
        assert by_base["E5"].match_count == 1
        assert by_base["E5"].last_seen == datetime(2024, 1, 5)
        assert by_base["E5"].first_seen == datetime(2024, 1, 2)
        # Nothing extends E6 forward
        assert by_base["E6"].chain == (2, 3, 4)
        assert by_base["E6"].match_count == 0

    def test_all_candidates_reach_max_depth(self, make_sequence):
        e5 = make_sequence("E5", [1, 2, 3], first=2, last=4)
        e6 = make_sequence("E6", [2, 3, 4], first=3, last=5)
        candidates = run_ordered_chaining([e5, e6], max_depth=5)
        assert {c.depth for c in candidates} == {5}

    def test_equal_last_seen_does_not_chain(self, make_sequence):
        """The documented example: both homesites last seen 01-04, so the ordered pass leaves them apart."""
        e5 = make_sequence("E5", [1, 2, 3], first=2, last=4)
        e6 = make_sequence("E6", [2, 3, 4], first=3, last=4)
        candidates = run_ordered_chaining([e5, e6])
        assert sorted(c.chain for c in candidates) == [(1, 2, 3), (2, 3, 4)]

    def test_earliest_extension_taken_first(self, make_sequence):
        """[1, 2] can be extended by [2, 3] and [2, 4]: [2, 3] first, [2, 4] next generation."""
        base = make_sequence("A", [1, 2], first=1, last=1)
        f = make_sequence("B", [2, 3], first=2, last=2)
        g = make_sequence("C", [2, 4], first=3, last=3)
        candidates = run_ordered_chaining([base, g, f])

        [from_base] = [c for c in candidates if c.base.entity_id == "A"]
        assert from_base.chain == (1, 2, 3, 4)
        assert from_base.match_count == 2
        [from_f] = [c for c in candidates if c.base.entity_id == "B"]
        assert from_f.chain == (2, 3, 4)

    def test_one_candidate_per_sequence(self, make_sequence):
        """Many progressions leaving the same plan do not multiply candidates."""
        sequences = [make_sequence("H", ["x", "hub"], first=1, last=1)] + [
            make_sequence(f"P{i}", ["hub", f"p{i}"], first=2, last=i + 2) for i in range(25)
        ]
        candidates = run_ordered_chaining(sequences)
        assert len(candidates) == len(sequences)
        [head] = [c for c in candidates if c.base.entity_id == "H"]
        assert head.chain == ("x", "hub", "p0", "p1", "p2", "p3", "p4")
        assert head.advanced is True

    def test_chain_of_five(self, make_sequence):
        sequences = [make_sequence(f"E{i}", [i, i + 1], first=i + 1, last=i + 1) for i in range(5)]
        candidates = run_ordered_chaining(sequences)
        head = next(c for c in candidates if c.base.entity_id == "E0")
        assert head.chain == (0, 1, 2, 3, 4, 5)
        assert head.match_count == 4
        assert not any(c.advanced for c in candidates)

    def test_depth_bound_flags_still_merging(self, make_sequence):
        sequences = [make_sequence(f"E{i}", [i, i + 1], first=i + 1, last=i + 1) for i in range(5)]
        candidates = run_ordered_chaining(sequences, max_depth=2)
        head = next(c for c in candidates if c.base.entity_id == "E0")
        assert head.chain == (0, 1, 2, 3)
        assert head.advanced is True
        assert head.depth == 2

    def test_groups_never_mix(self, make_sequence):
        a = make_sequence("A", [1, 2], first=1, last=1)
        b = make_sequence("B", [2, 3], first=2, last=2, group_key=GroupKey("DEF", 3, 2))
        candidates = run_ordered_chaining([a, b])
        assert sorted(c.chain for c in candidates) == [(1, 2), (2, 3)]

    def test_empty(self):
        assert run_ordered_chaining([]) == []
