from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from freestyle_cup import models
from freestyle_cup.catalog import scheduled_acts
from freestyle_cup.timeplan import advance_timeplan, find_running_entry, rewind_timeplan

T0 = datetime(2026, 5, 9, 9, 0, 0)


@pytest.fixture
def female_acts(session, categories, make_starter):
    acts = []
    for i, name in enumerate(["Anna", "Bea", "Cleo"], start=1):
        s = make_starter(name, "Roller", single_female=True)
        act = session.execute(
            select(models.Act).join(models.act_participants).where(models.act_participants.c.starter_id == s.id)
        ).scalar_one()
        act.order = i
        acts.append(act.id)
    session.commit()
    return acts


@pytest.fixture
def plan(session, female_acts):
    rows = [
        models.TimeplanEntry(id=1, earliest_start_time=T0, label="Opening", duration_seconds=600),
        models.TimeplanEntry(id=2, category="Einer Schueler"),
        models.TimeplanEntry(id=3, label="Break", duration_seconds=300),
    ]
    session.add_all(rows)
    session.commit()
    return rows


def _position(session):
    """(running entry id, running act id, statuses) derived from the stored rows."""
    session.expire_all()
    entries = session.execute(select(models.TimeplanEntry).order_by(models.TimeplanEntry.id)).scalars().all()
    running = find_running_entry(entries)
    running_act = None
    if running is not None and running.category:
        running_act = next(
            (a.id for a in scheduled_acts(session, running.category) if a.started_at and not a.ended_at), None
        )
    states = [(e.started_at is not None, e.ended_at is not None) for e in entries]
    act_states = [
        (a.started_at is not None, a.ended_at is not None) for a in scheduled_acts(session, "Einer Schueler")
    ]
    return running.id if running else None, running_act, states, act_states


def test_find_running_entry_picks_earliest():
    entries = [
        models.TimeplanEntry(id=3, started_at=T0),
        models.TimeplanEntry(id=1, started_at=T0, ended_at=T0),
        models.TimeplanEntry(id=2, started_at=T0),
    ]
    assert find_running_entry(entries).id == 2
    assert find_running_entry([models.TimeplanEntry(id=1)]) is None


def test_forward_walks_the_whole_day(session, plan, female_acts):
    steps = [advance_timeplan(session, now=T0 + timedelta(minutes=i)) for i in range(12)]
    assert [s.action for s in steps] == [
        "entry_started",   # Opening
        "entry_ended",
        "entry_started",   # category
        "act_started",
        "act_ended",
        "act_started",
        "act_ended",
        "act_started",
        "act_ended",       # last act closes the category too
        "entry_started",   # Break
        "entry_ended",
        "none",
    ]
    assert steps[8].category_ended is True
    assert [s.act_id for s in steps[3:9:2]] == female_acts

    session.expire_all()
    cat_entry = session.get(models.TimeplanEntry, 2)
    assert cat_entry.ended_at == T0 + timedelta(minutes=8)


def test_forward_ends_act_and_only_act_closes_category(session, categories, make_starter):
    make_starter("Anna", "Roller", single_female=True)
    act = session.execute(select(models.Act)).scalar_one()
    act.order = 1
    session.add(models.TimeplanEntry(id=1, category="Einer Schueler", earliest_start_time=T0, started_at=T0))
    act.started_at = T0 + timedelta(minutes=2)
    session.commit()

    now = T0 + timedelta(minutes=4)
    step = advance_timeplan(session, now=now)

    session.expire_all()
    assert step.action == "act_ended"
    assert session.get(models.Act, act.id).ended_at == now
    assert session.get(models.TimeplanEntry, 1).ended_at == now


def test_forward_on_empty_category_ends_it(session, categories):
    session.add(models.TimeplanEntry(id=1, category="Paare", earliest_start_time=T0, started_at=T0))
    session.commit()

    step = advance_timeplan(session, now=T0)
    assert step.action == "entry_ended"
    session.expire_all()
    assert session.get(models.TimeplanEntry, 1).ended_at == T0


def test_backward_reopens_finished_custom_block(session, plan):
    advance_timeplan(session, now=T0)
    advance_timeplan(session, now=T0 + timedelta(minutes=10))

    step = rewind_timeplan(session)

    session.expire_all()
    assert step.action == "entry_reopened"
    opening = session.get(models.TimeplanEntry, 1)
    assert opening.ended_at is None
    assert opening.started_at == T0


def test_backward_with_nothing_done_is_noop(session, plan):
    assert rewind_timeplan(session).action == "none"


def test_forward_then_backward_restores_position(session, plan):
    for i in range(12):
        before = _position(session)
        step = advance_timeplan(session, now=T0 + timedelta(minutes=i))
        if step.action == "none":
            break
        rewind_timeplan(session)
        assert _position(session) == before
        advance_timeplan(session, now=T0 + timedelta(minutes=i))


def test_backward_after_category_completion_reopens_last_act(session, plan, female_acts):
    for i in range(9):
        advance_timeplan(session, now=T0 + timedelta(minutes=i))

    step = rewind_timeplan(session)

    session.expire_all()
    assert step.entry_id == 2
    assert step.act_id == female_acts[-1]
    assert session.get(models.TimeplanEntry, 2).ended_at is None
    last = session.get(models.Act, female_acts[-1])
    assert last.started_at is not None and last.ended_at is None


def test_unordered_acts_are_not_scheduled(session, plan, female_acts):
    act = session.get(models.Act, female_acts[1])
    act.order = None
    session.commit()

    assert [a.id for a in scheduled_acts(session, "Einer Schueler")] == [female_acts[0], female_acts[2]]
