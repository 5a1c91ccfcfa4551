"""Live control of the event day.

The current position is never cached: it is derived from the persisted
``started_at``/``ended_at`` columns on every call. ``advance_timeplan`` and
``rewind_timeplan`` each change exactly one step and are inverses of each other.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from . import models
from .catalog import scheduled_acts
from .db import atomic

logger = logging.getLogger(__name__)

# serializes read-then-write steps within this process; the row locks below
# cover databases that support SELECT ... FOR UPDATE
_step_lock = threading.Lock()


@dataclass
class TimeplanStep:
    """What a forward/backward call changed. ``action`` is "none" when there was nothing to do."""

    action: str
    entry_id: Optional[int] = None
    act_id: Optional[str] = None
    category_ended: bool = False


def is_running(row) -> bool:
    return row.started_at is not None and row.ended_at is None

def find_running_entry(entries: Sequence[models.TimeplanEntry]) -> Optional[models.TimeplanEntry]:
    """Earliest entry (by id) that is started but not ended."""
    for entry in sorted(entries, key=lambda e: e.id):
        if is_running(entry):
            return entry
    return None

def find_running_act(acts: Sequence[models.Act]) -> Optional[models.Act]:
    for act in acts:
        if is_running(act):
            return act
    return None

def _load_entries(session: Session) -> list[models.TimeplanEntry]:
    return session.execute(
        select(models.TimeplanEntry).order_by(models.TimeplanEntry.id.asc()).with_for_update()
    ).scalars().all()


def _forward(session: Session, now: datetime) -> TimeplanStep:
    entries = _load_entries(session)
    running = find_running_entry(entries)

    if running is None:
        upcoming = next((e for e in entries if e.started_at is None), None)
        if upcoming is None:
            return TimeplanStep("none")
        upcoming.started_at = now
        logger.info("Started timeplan entry %s", upcoming.id)
        return TimeplanStep("entry_started", entry_id=upcoming.id)

    if running.category is None:
        running.ended_at = now
        logger.info("Ended custom timeplan entry %s", running.id)
        return TimeplanStep("entry_ended", entry_id=running.id)

    acts = scheduled_acts(session, running.category)
    act = find_running_act(acts)
    if act is not None:
        act.ended_at = now
        step = TimeplanStep("act_ended", entry_id=running.id, act_id=act.id)
        if all(a.started_at is not None for a in acts):
            running.ended_at = now
            step.category_ended = True
        logger.info("Ended act %s in %s (category ended: %s)", act.id, running.category, step.category_ended)
        return step

    upcoming_act = next((a for a in acts if a.started_at is None), None)
    if upcoming_act is None:
        # nothing left to start in this category
        running.ended_at = now
        logger.info("Ended category entry %s without pending acts", running.id)
        return TimeplanStep("entry_ended", entry_id=running.id, category_ended=True)
    upcoming_act.started_at = now
    logger.info("Started act %s in %s", upcoming_act.id, running.category)
    return TimeplanStep("act_started", entry_id=running.id, act_id=upcoming_act.id)


def _last_finished_act(acts: Sequence[models.Act]) -> Optional[models.Act]:
    finished = [a for a in acts if a.ended_at is not None]
    return finished[-1] if finished else None

def _backward(session: Session) -> TimeplanStep:
    entries = _load_entries(session)
    running = find_running_entry(entries)

    if running is None:
        ended = [e for e in entries if e.ended_at is not None]
        if not ended:
            return TimeplanStep("none")
        last = ended[-1]
        last.ended_at = None
        step = TimeplanStep("entry_reopened", entry_id=last.id)
        if last.category is not None:
            act = _last_finished_act(scheduled_acts(session, last.category))
            if act is not None:
                act.ended_at = None
                step.act_id = act.id
        logger.info("Reopened timeplan entry %s (act %s)", last.id, step.act_id)
        return step

    if running.category is None:
        running.started_at = None
        logger.info("Unstarted custom timeplan entry %s", running.id)
        return TimeplanStep("entry_unstarted", entry_id=running.id)

    acts = scheduled_acts(session, running.category)
    act = find_running_act(acts)
    if act is not None:
        act.started_at = None
        logger.info("Unstarted act %s in %s", act.id, running.category)
        return TimeplanStep("act_unstarted", entry_id=running.id, act_id=act.id)

    finished = _last_finished_act(acts)
    if finished is not None:
        finished.ended_at = None
        logger.info("Reopened act %s in %s", finished.id, running.category)
        return TimeplanStep("act_reopened", entry_id=running.id, act_id=finished.id)

    running.started_at = None
    logger.info("Unstarted category entry %s", running.id)
    return TimeplanStep("entry_unstarted", entry_id=running.id)


def advance_timeplan(session: Session, now: Optional[datetime] = None) -> TimeplanStep:
    now = now or models.utcnow()
    with _step_lock, atomic(session):
        return _forward(session, now)

def rewind_timeplan(session: Session) -> TimeplanStep:
    with _step_lock, atomic(session):
        return _backward(session)
