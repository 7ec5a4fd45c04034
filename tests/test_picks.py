"""Tests for interactive picks and the draft cursor."""

from datetime import timedelta

import pytest

from engine import picks, repository
from engine.errors import BadRequest, Conflict, Forbidden, NotFound
from models.draft import DRAFT_COMPLETE, PlayerPick, RaceDraft
from tests.conftest import (FIRST_HALF_DEADLINE, FP1, NOW, seed_draft, seed_league, seed_team, seed_users)


def _pick(session, league, season, user_id, driver_index, now=NOW, **kwargs):
    return picks.make_pick(session, league.id, season.races[0].id, user_id, season.drivers[driver_index].id,
                           now=now, **kwargs)


def test_pick_moves_turn_to_next_user(session, season, three_player_draft, notifier):
    league, draft, (a, b, c) = three_player_draft

    result = _pick(session, league, season, a, 0, notifier=notifier)

    assert result.current_pick_index == 1
    assert result.next_user_id == b
    assert result.picked_driver_ids == [season.drivers[0].id]
    assert result.your_turn is False
    # A has no slot left, so the reported deadline is FP1
    assert result.your_deadline == FP1
    assert notifier.calls == [(b, 1)]


def test_full_draft_completes(session, season, three_player_draft):
    league, draft, (a, b, c) = three_player_draft

    _pick(session, league, season, a, 0)
    _pick(session, league, season, b, 1)
    result = _pick(session, league, season, c, 2)

    assert result.current_pick_index == 3
    assert result.next_user_id is None
    session.refresh(draft)
    assert draft.status == DRAFT_COMPLETE

    with pytest.raises(BadRequest, match="Draft already completed"):
        _pick(session, league, season, a, 3)


def test_pick_out_of_turn_forbidden(session, season, three_player_draft):
    league, draft, (a, b, c) = three_player_draft
    with pytest.raises(Forbidden, match="It's not your turn to pick"):
        _pick(session, league, season, b, 0)
    session.refresh(draft)
    assert draft.current_pick_index == 0


def test_driver_already_picked(session, season, three_player_draft):
    league, draft, (a, b, c) = three_player_draft
    _pick(session, league, season, a, 0)
    with pytest.raises(Conflict, match="Driver already picked"):
        _pick(session, league, season, b, 0)
    session.refresh(draft)
    assert draft.current_pick_index == 1


def test_driver_outside_season_rejected(session, season, three_player_draft):
    league, draft, (a, b, c) = three_player_draft
    with pytest.raises(BadRequest):
        picks.make_pick(session, league.id, season.races[0].id, a, 9999, now=NOW)


def test_pick_after_race_start(session, season, three_player_draft):
    league, draft, (a, b, c) = three_player_draft
    with pytest.raises(BadRequest, match="Race already started"):
        _pick(session, league, season, a, 0, now=FP1 + timedelta(days=3))


def test_missing_draft_not_found(session, season, three_player_draft):
    league, draft, (a, b, c) = three_player_draft
    with pytest.raises(NotFound):
        picks.make_pick(session, league.id, season.races[1].id, a, season.drivers[0].id, now=NOW)


def test_late_pick_before_sweep_is_accepted(session, season, three_player_draft, notifier):
    league, draft, (a, b, c) = three_player_draft
    # A's deadline has passed, but no sweep has moved the cursor yet
    now = FIRST_HALF_DEADLINE + timedelta(minutes=1)

    result = _pick(session, league, season, a, 0, now=now, notifier=notifier)

    assert result.current_pick_index == 1
    assert result.next_user_id == b
    assert notifier.calls == [(b, 1)]


def test_rejected_pick_leaves_draft_untouched(session, season, three_player_draft, notifier):
    league, draft, (a, b, c) = three_player_draft
    now = FIRST_HALF_DEADLINE + timedelta(minutes=1)

    with pytest.raises(Forbidden):
        _pick(session, league, season, c, 0, now=now, notifier=notifier)

    session.refresh(draft)
    assert draft.current_pick_index == 0
    assert notifier.calls == []
    assert session.query(PlayerPick).count() == 0


def test_pick_already_submitted(session, season, three_player_draft):
    league, draft, (a, b, c) = three_player_draft
    session.add(PlayerPick(draft_id=draft.id, user_id=a, driver_id=season.drivers[5].id))
    session.commit()

    with pytest.raises(Conflict, match="Pick already submitted"):
        _pick(session, league, season, a, 0)

    session.refresh(draft)
    assert draft.current_pick_index == 0
    assert session.query(PlayerPick).count() == 1


def test_concurrent_pick_of_same_driver_is_conflict(session, season, three_player_draft, monkeypatch):
    league, draft, (a, b, c) = three_player_draft
    # another writer took the driver after this request read the picked list
    session.add(PlayerPick(draft_id=draft.id, user_id=c, driver_id=season.drivers[0].id))
    session.commit()
    monkeypatch.setattr(repository, "picked_driver_ids", lambda session, draft_id: [])

    with pytest.raises(Conflict, match="Driver already picked"):
        _pick(session, league, season, a, 0)

    session.expire_all()
    assert session.query(PlayerPick).filter(PlayerPick.driver_id == season.drivers[0].id).count() == 1
    assert session.query(RaceDraft).filter(RaceDraft.id == draft.id).one().current_pick_index == 0


def test_deadline_is_strictly_after(session, season, three_player_draft):
    league, draft, (a, b, c) = three_player_draft
    result = _pick(session, league, season, a, 0, now=FIRST_HALF_DEADLINE)
    assert result.current_pick_index == 1


def test_mirror_draft_records_mirror_picks(session, season):
    a, b = seed_users(session, 2)
    league = seed_league(session, season.season, [a, b], mirror_picks_enabled=True)
    seed_draft(session, league, season.races[0], [a, b, b, a], mirror_picks=True)

    _pick(session, league, season, a, 0)
    _pick(session, league, season, b, 1)
    result = _pick(session, league, season, b, 2)
    assert result.next_user_id == a
    result = _pick(session, league, season, a, 3)
    assert result.current_pick_index == 4

    flags = {(p.user_id, p.driver_id): p.is_mirror_pick for p in session.query(PlayerPick).all()}
    assert flags[(a, season.drivers[0].id)] is False
    assert flags[(b, season.drivers[2].id)] is True
    assert flags[(a, season.drivers[3].id)] is True


class TestTeammatePicks:

    @pytest.fixture
    def team_draft(self, session, season):
        a, b, c, d = seed_users(session, 4)
        league = seed_league(session, season.season, [a, b, c, d], teams_enabled=True)
        seed_team(session, league, "Blue", [a, b])
        seed_team(session, league, "Red", [c, d])
        # slots 0 and 1 are already resolved, so it is B's turn
        draft = seed_draft(session, league, season.races[0], [a, c, b, d], current_pick_index=2)
        return league, draft, (a, b, c, d)

    def test_teammate_may_pick_inside_window(self, session, season, team_draft):
        league, draft, (a, b, c, d) = team_draft
        now = FP1 - timedelta(minutes=30)

        result = _pick(session, league, season, a, 4, now=now)

        assert result.current_pick_index == 3
        pick = session.query(PlayerPick).one()
        assert pick.user_id == b

    def test_teammate_blocked_before_window(self, session, season, team_draft):
        league, draft, (a, b, c, d) = team_draft
        with pytest.raises(Forbidden):
            _pick(session, league, season, a, 4, now=FP1 - timedelta(hours=2))

    def test_opponent_blocked_inside_window(self, session, season, team_draft):
        league, draft, (a, b, c, d) = team_draft
        with pytest.raises(Forbidden):
            _pick(session, league, season, d, 4, now=FP1 - timedelta(minutes=30))


def test_get_draft_state_lists_active_picks(session, season, three_player_draft):
    league, draft, (a, b, c) = three_player_draft
    _pick(session, league, season, a, 0)

    state = picks.get_draft_state(session, league.id, season.races[0].id)
    assert state["pick_order"] == [a, b, c]
    assert state["current_pick_index"] == 1
    assert state["status"] == "open"
    assert [(p["user_id"], p["driver_id"]) for p in state["picks"]] == [(a, season.drivers[0].id)]
    assert picks.get_pick_order(session, league.id, season.races[0].id) == [a, b, c]
