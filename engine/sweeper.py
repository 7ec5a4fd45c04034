"""
sweeper.py
==========

Deadline sweep.  For every open draft whose race has not started, each
slot whose deadline has passed is resolved by autopick (when the user
left a preference list) and the cursor moves past it.  The stored cursor
is only ever moved forward, so a slow sweep racing an interactive pick
cannot roll the draft back.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from config import Settings
from engine import repository
from engine.autopick import attempt_autopick
from engine.deadlines import DraftDeadlines, deadlines_for
from engine.notifier import Notifier, safe_notify
from engine.pick_order import is_mirror_slot
from models.base import utcnow
from models.draft import DRAFT_OPEN, RaceDraft
from models.season import Race

logger = logging.getLogger('pickdriver')


@dataclass
class SweepReport:
    drafts_checked: int = 0
    drafts_advanced: int = 0
    autopicks: int = 0
    failures: int = 0


def advance_expired_turns(session: Session, draft: RaceDraft, deadlines: DraftDeadlines, now: datetime,
                          notifier: Optional[Notifier] = None) -> tuple:
    """Resolve every expired slot from the draft's cursor onward.

    Returns ``(current_pick_index, autopicks_made)``.
    """
    pick_order = list(draft.pick_order)
    start = draft.current_pick_index
    index = start
    autopicks = 0

    while index < len(pick_order) and deadlines.has_expired(index, len(pick_order), now):
        user_id = pick_order[index]
        mirror = is_mirror_slot(pick_order, index, draft.mirror_picks)
        if attempt_autopick(session, draft, user_id, mirror) is not None:
            autopicks += 1
        index += 1

    if index == start:
        return start, autopicks

    previous_user = pick_order[start] if start < len(pick_order) else None
    stored = repository.advance_cursor(session, draft, index)
    session.commit()
    logger.info(f"Draft {draft.id}: expired turns advanced cursor {start} -> {stored}")

    if stored < len(pick_order) and pick_order[stored] != previous_user:
        safe_notify(notifier, pick_order[stored], draft.league_id, draft.race_id, draft.id, stored)
    return stored, autopicks


def sweep_expired_turns(session_factory: Callable[[], Session], now: Optional[datetime] = None,
                        notifier: Optional[Notifier] = None, settings: Optional[Settings] = None) -> SweepReport:
    """Run one sweep over all open drafts.  A failing draft never stops the sweep."""
    now = now or utcnow()
    report = SweepReport()

    with session_factory() as session:
        rows = session.query(RaceDraft.id)\
            .join(Race, RaceDraft.race_id == Race.id)\
            .filter(RaceDraft.status == DRAFT_OPEN)\
            .filter(Race.completed == False)\
            .filter(Race.fp1_time.isnot(None))\
            .order_by(RaceDraft.id.asc()).all()
        draft_ids = [row.id for row in rows]

    for draft_id in draft_ids:
        report.drafts_checked += 1
        try:
            with session_factory() as session:
                draft = session.query(RaceDraft).filter(RaceDraft.id == draft_id).first()
                if draft is None or draft.is_complete:
                    continue
                race = repository.get_race(session, draft.race_id)
                if race.has_started(now):
                    continue
                deadlines = deadlines_for(race, draft.league_id, settings)
                before = draft.current_pick_index
                after, autopicks = advance_expired_turns(session, draft, deadlines, now, notifier)
                report.autopicks += autopicks
                if after > before:
                    report.drafts_advanced += 1
        except Exception:
            report.failures += 1
            logger.error(f"Deadline sweep failed for draft {draft_id}")
            logger.error(traceback.format_exc())

    if report.drafts_advanced or report.failures:
        logger.info(f"Deadline sweep: {report}")
    return report
