"""
pick_order.py
=============

Turn order construction for race drafts.

A league gets one *base order* when its draft is activated.  Every race
of the season from the activation point onward receives that base order
rotated left by the race's position, so the first-pick advantage cycles
through the league.  Leagues with mirrored picks append the reversed
order, giving each participant a second turn in snake position.
"""

from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence, Tuple


def manual_order(members: Sequence[int], manual_ranks: Optional[Dict[int, Optional[int]]]) -> Optional[List[int]]:
    """Return the owner's manual order, or ``None`` when it is incomplete.

    The manual order is only honoured when every member holds a distinct
    rank and the ranks cover exactly ``1..N``.
    """
    if not manual_ranks or not members:
        return None
    ranks = [manual_ranks.get(user_id) for user_id in members]
    if any(rank is None for rank in ranks):
        return None
    if sorted(ranks) != list(range(1, len(members) + 1)):
        return None
    return sorted(members, key=lambda user_id: manual_ranks[user_id])


def interleave_teams(groups: Sequence[Sequence[int]]) -> List[int]:
    """Round-robin across groups: one member of each group per round."""
    order: List[int] = []
    rounds = max((len(group) for group in groups), default=0)
    for round_num in range(rounds):
        for group in groups:
            if round_num < len(group):
                order.append(group[round_num])
    return order


def base_order(
    members: Sequence[int],
    teams: Optional[Sequence[Tuple[int, Sequence[int]]]] = None,
    manual_ranks: Optional[Dict[int, Optional[int]]] = None,
    rng: Optional[random.Random] = None,
) -> List[int]:
    """Build the league's base pick order.

    Parameters
    ----------
    members : Sequence[int]
        User ids of every league member.
    teams : Sequence[Tuple[int, Sequence[int]]], optional
        ``(team_id, member_ids)`` pairs when the league plays in teams.
        Members without a team are drafted as a team of one.
    manual_ranks : Dict[int, Optional[int]], optional
        Owner-assigned rank per user id.
    rng : random.Random, optional
        Source of randomness; a fresh ``random.Random`` when omitted.

    Returns
    -------
    List[int]
        A permutation of ``members``.
    """
    fixed = manual_order(members, manual_ranks)
    if fixed is not None:
        return fixed

    rng = rng or random.Random()

    if not teams:
        order = list(members)
        rng.shuffle(order)
        return order

    member_set = set(members)
    seen = set()
    groups: List[List[int]] = []
    for _, team_members in teams:
        group = [user_id for user_id in team_members if user_id in member_set and user_id not in seen]
        seen.update(group)
        if group:
            rng.shuffle(group)
            groups.append(group)
    groups.extend([user_id] for user_id in members if user_id not in seen)
    rng.shuffle(groups)
    return interleave_teams(groups)


def rotate(order: Sequence[int], k: int) -> List[int]:
    if not order:
        return []
    shift = k % len(order)
    return list(order[shift:]) + list(order[:shift])


def race_order(base: Sequence[int], race_offset: int, mirror: bool) -> List[int]:
    """Final pick order for the race at ``race_offset`` (0 = first drafted race)."""
    rotated = rotate(base, race_offset)
    if mirror:
        return rotated + list(reversed(rotated))
    return rotated


def is_mirror_slot(pick_order: Sequence[int], index: int, mirror_picks: bool) -> bool:
    """True when ``index`` is its owner's second (mirrored) turn."""
    if not mirror_picks:
        return False
    return pick_order[index] in pick_order[:index]


def slots_of(pick_order: Sequence[int], user_id: int) -> List[int]:
    return [i for i, uid in enumerate(pick_order) if uid == user_id]
