"""Tests for base order construction, rotation and mirrored orders."""

import random

from engine.pick_order import (base_order, interleave_teams, is_mirror_slot, manual_order, race_order, rotate,
                               slots_of)


MEMBERS = [11, 12, 13, 14]


def test_base_order_is_permutation():
    order = base_order(MEMBERS, rng=random.Random(7))
    assert sorted(order) == MEMBERS


def test_base_order_deterministic_with_seeded_rng():
    assert base_order(MEMBERS, rng=random.Random(3)) == base_order(MEMBERS, rng=random.Random(3))


def test_manual_ranks_override_shuffle():
    ranks = {11: 3, 12: 1, 13: 4, 14: 2}
    assert base_order(MEMBERS, manual_ranks=ranks, rng=random.Random(1)) == [12, 14, 11, 13]


def test_incomplete_manual_ranks_are_ignored():
    assert manual_order(MEMBERS, {11: 1, 12: 2, 13: None, 14: 4}) is None
    assert manual_order(MEMBERS, {11: 1, 12: 1, 13: 2, 14: 3}) is None


def test_team_order_interleaves_teams():
    teams = [(1, [11, 12]), (2, [13, 14])]
    order = base_order(MEMBERS, teams=teams, rng=random.Random(5))
    assert sorted(order) == MEMBERS
    team_of = {11: 1, 12: 1, 13: 2, 14: 2}
    # no two consecutive picks belong to the same team
    for first, second in zip(order, order[1:]):
        assert team_of[first] != team_of[second]


def test_unassigned_members_drafted_alone():
    order = base_order([11, 12, 13, 14, 15], teams=[(1, [11, 12]), (2, [13, 14])], rng=random.Random(2))
    assert sorted(order) == [11, 12, 13, 14, 15]
    assert order.index(15) < 3


def test_interleave_uneven_groups():
    assert interleave_teams([[1, 2, 3], [4, 5], [6]]) == [1, 4, 6, 2, 5, 3]


def test_rotate():
    assert rotate([1, 2, 3], 0) == [1, 2, 3]
    assert rotate([1, 2, 3], 1) == [2, 3, 1]
    assert rotate([1, 2, 3], 4) == [2, 3, 1]
    assert rotate([], 2) == []


def test_race_order_rotates_by_offset():
    base = [1, 2, 3, 4]
    assert [race_order(base, k, False)[0] for k in range(5)] == [1, 2, 3, 4, 1]


def test_mirror_order_appends_reverse():
    assert race_order([1, 2, 3], 1, True) == [2, 3, 1, 1, 3, 2]


def test_mirror_slot_detection():
    order = [2, 3, 1, 1, 3, 2]
    assert [is_mirror_slot(order, i, True) for i in range(6)] == [False, False, False, True, True, True]
    assert not is_mirror_slot(order, 4, False)


def test_slots_of():
    assert slots_of([2, 3, 1, 1, 3, 2], 3) == [1, 4]
    assert slots_of([1, 2], 9) == []
