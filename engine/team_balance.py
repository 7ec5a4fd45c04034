"""
team_balance.py
===============

Feasibility rules for splitting a league's players into teams.

A partition is valid when there are at least ``MIN_TEAMS`` teams, every
team has at least ``MIN_TEAM_SIZE`` players and team sizes differ by at
most one.  ``is_feasible`` answers whether a set of (partial) team sizes
can still be completed into such a partition once the unassigned players
are distributed.
"""

from __future__ import annotations

from typing import Sequence

from engine.errors import BadRequest

MIN_TEAM_SIZE = 2
MIN_TEAMS = 2


def max_teams(total_players: int, season_constructor_count: int) -> int:
    """Upper bound on the number of teams a league may form.

    Capped by the number of constructors in the season when the season
    has at least ``MIN_TEAMS`` of them.
    """
    max_by_players = total_players // MIN_TEAM_SIZE
    if max_by_players < MIN_TEAMS:
        raise BadRequest("Not enough players to form teams.")

    max_by_season = season_constructor_count if season_constructor_count >= MIN_TEAMS else max_by_players
    return min(max_by_players, max_by_season)


def is_feasible(total_players: int, team_sizes: Sequence[int], max_teams: int) -> bool:
    assigned = sum(team_sizes)
    if assigned > total_players:
        return False
    if any(size < MIN_TEAM_SIZE for size in team_sizes):
        return False

    remaining = total_players - assigned
    current_teams = len(team_sizes)

    for k in range(MIN_TEAMS, max_teams + 1):
        if k < current_teams:
            continue

        min_size = total_players // k
        max_size = -(-total_players // k)
        if min_size < MIN_TEAM_SIZE:
            continue
        if any(size > max_size for size in team_sizes):
            continue

        new_teams = k - current_teams
        min_required = sum(max(0, min_size - size) for size in team_sizes) + new_teams * min_size
        max_capacity = sum(max_size - size for size in team_sizes) + new_teams * max_size

        if min_required <= remaining <= max_capacity:
            return True

    return False


def validate(total_players: int, team_sizes: Sequence[int], max_teams: int) -> None:
    if not is_feasible(total_players, team_sizes, max_teams):
        raise BadRequest("Team distribution is not balanced or possible.")
