"""Tests for the team partition rules."""

import pytest

from engine import team_balance
from engine.errors import BadRequest


def test_max_teams_capped_by_players():
    assert team_balance.max_teams(7, 10) == 3


def test_max_teams_capped_by_constructors():
    assert team_balance.max_teams(20, 4) == 4


def test_max_teams_ignores_tiny_constructor_count():
    # fewer than two constructors means the season does not constrain teams
    assert team_balance.max_teams(8, 1) == 4


def test_max_teams_not_enough_players():
    with pytest.raises(BadRequest, match="Not enough players to form teams."):
        team_balance.max_teams(3, 1)


def test_partial_assignment_feasible():
    assert team_balance.is_feasible(6, [2], 3)


def test_empty_assignment_feasible():
    assert team_balance.is_feasible(6, [], 3)


def test_complete_balanced_partition():
    assert team_balance.is_feasible(7, [4, 3], 3)


@pytest.mark.parametrize("total, sizes, limit", [
    (6, [4, 2], 3),      # sizes differ by two
    (6, [1], 3),         # team below minimum size
    (4, [3, 3], 2),      # more players assigned than exist
])
def test_infeasible_partitions(total, sizes, limit):
    assert not team_balance.is_feasible(total, sizes, limit)


def test_leftover_players_fill_existing_teams():
    assert team_balance.is_feasible(9, [2, 2, 2], 3)


def test_too_many_teams_for_limit():
    assert not team_balance.is_feasible(8, [2, 2, 2, 2], 3)


def test_validate_raises_bad_request():
    with pytest.raises(BadRequest, match="Team distribution is not balanced or possible."):
        team_balance.validate(6, [5], 3)
