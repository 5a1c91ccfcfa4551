"""Timeplan prediction.

``predict_timeplan`` folds over the timeplan entries in id order with two cursors:

* the planned cursor follows the static schedule; it only moves forward and is
  floored by each entry's ``earliest_start_time``;
* the predicted cursor follows reality; it never falls behind ``now`` unless a
  recorded ``started_at``/``ended_at`` pins it to that instant.

Within a category, every act costs ``act_duration + judge_duration`` on both
cursors, whether or not it finished early. The first act found in progress gives
the drift against the plan (``offset``); the last entry that yields a drift wins.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Mapping, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from . import models
from .catalog import acts_by_category, list_categories
from .errors import IntegrityViolation, NotFoundError


class TimeplanItemStatus(str, enum.Enum):
    PLANNED = "Planned"
    STARTED = "Started"
    ENDED = "Ended"


@dataclass
class TimeplanAct:
    status: TimeplanItemStatus
    id: str
    name: str
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    predicted_start: datetime
    predicted_end: datetime
    planned_start: datetime
    planned_end: datetime


@dataclass
class CategoryEntry:
    name: str
    description: str
    duration: timedelta
    order: Optional[int]
    einfahrzeit: timedelta
    act_duration: timedelta
    judge_duration: timedelta
    acts: list[TimeplanAct] = field(default_factory=list)
    kind: str = "category"


@dataclass
class CustomEntry:
    label: str
    duration: timedelta
    kind: str = "custom"


@dataclass
class TimeplanItem:
    id: int
    status: TimeplanItemStatus
    predicted_start: datetime
    predicted_end: datetime
    planned_start: datetime
    planned_end: datetime
    planned_duration: timedelta
    real_start: Optional[datetime]
    real_end: Optional[datetime]
    timeplan_entry: Union[CategoryEntry, CustomEntry]


@dataclass
class Timeplan:
    offset: timedelta
    items: list[TimeplanItem] = field(default_factory=list)


def item_status(started_at: Optional[datetime], ended_at: Optional[datetime]) -> TimeplanItemStatus:
    if started_at is None and ended_at is None:
        return TimeplanItemStatus.PLANNED
    if started_at is not None and ended_at is None:
        return TimeplanItemStatus.STARTED
    if started_at is not None and ended_at is not None:
        return TimeplanItemStatus.ENDED
    raise IntegrityViolation("ended_at set without started_at")


def _fold_category(category, acts, planned: datetime, predicted: datetime, now: datetime):
    """Returns (CategoryEntry, planned cursor, predicted cursor, act offset or None)."""
    einfahrzeit = timedelta(seconds=category.einfahrzeit_seconds)
    act_duration = timedelta(seconds=category.act_duration_seconds)
    judge_duration = timedelta(seconds=category.judge_duration_seconds)
    slot = act_duration + judge_duration

    planned += einfahrzeit
    predicted += einfahrzeit

    offset = None
    timeplan_acts: list[TimeplanAct] = []
    for act in acts:
        status = item_status(act.started_at, act.ended_at)
        if status is TimeplanItemStatus.STARTED and offset is None:
            offset = act.started_at - planned

        if act.started_at is not None:
            predicted = act.started_at
        else:
            predicted = max(predicted, now)

        timeplan_acts.append(
            TimeplanAct(
                status=status,
                id=act.id,
                name=act.name,
                started_at=act.started_at,
                ended_at=act.ended_at,
                predicted_start=predicted,
                predicted_end=act.ended_at if act.ended_at is not None else predicted + act_duration,
                planned_start=planned,
                planned_end=planned + act_duration,
            )
        )
        planned += slot
        predicted += slot

    result = CategoryEntry(
        name=category.name,
        description=category.description or "",
        duration=einfahrzeit + slot * len(timeplan_acts),
        order=category.order,
        einfahrzeit=einfahrzeit,
        act_duration=act_duration,
        judge_duration=judge_duration,
        acts=timeplan_acts,
    )
    return result, planned, predicted, offset


def predict_timeplan(
    entries: Sequence[models.TimeplanEntry],
    categories: Mapping[str, models.Category],
    acts: Mapping[str, Sequence[models.Act]],
    now: datetime,
) -> Timeplan:
    """Annotate the timeplan with planned and predicted times.

    ``entries`` must be in id order and ``acts`` holds the scheduled acts of each
    category in running order. Nothing is written; the result only depends on
    the arguments.
    """
    if not entries:
        raise NotFoundError("No timeplan entries")
    first = entries[0]
    if first.earliest_start_time is None:
        raise IntegrityViolation("Earliest start time of the first entry is not set")

    planned = first.earliest_start_time
    predicted = max(now, planned)
    timeplan = Timeplan(offset=timedelta(0))

    for entry in entries:
        if entry.earliest_start_time is not None:
            planned = max(planned, entry.earliest_start_time)
            predicted = max(predicted, entry.earliest_start_time)

        status = item_status(entry.started_at, entry.ended_at)
        planned_start = planned
        if entry.started_at is not None:
            predicted = entry.started_at
        else:
            predicted = max(predicted, now)
        predicted_start = predicted

        act_offset = None
        if entry.category is not None:
            category = categories.get(entry.category)
            if category is None:
                raise NotFoundError(f"Category not found: {entry.category}")
            timeplan_entry, planned, predicted, act_offset = _fold_category(
                category, acts.get(entry.category, ()), planned, predicted, now
            )
        elif entry.duration_seconds is not None and entry.label is not None:
            timeplan_entry = CustomEntry(label=entry.label, duration=timedelta(seconds=entry.duration_seconds))
            planned += timeplan_entry.duration
            predicted += timeplan_entry.duration
        else:
            raise IntegrityViolation(f"Timeplan entry {entry.id} is neither a category nor a custom block")

        duration = timeplan_entry.duration
        if entry.ended_at is not None:
            predicted = entry.ended_at
        item = TimeplanItem(
            id=entry.id,
            status=status,
            predicted_start=predicted_start,
            predicted_end=predicted,
            planned_start=planned_start,
            planned_end=planned_start + duration,
            planned_duration=duration,
            real_start=entry.started_at,
            real_end=entry.ended_at,
            timeplan_entry=timeplan_entry,
        )

        if act_offset is not None:
            timeplan.offset = act_offset
        elif status is not TimeplanItemStatus.PLANNED:
            timeplan.offset = entry.started_at - planned_start

        timeplan.items.append(item)

    return timeplan


def load_timeplan(session: Session, now: Optional[datetime] = None) -> Timeplan:
    entries = session.execute(
        select(models.TimeplanEntry).order_by(models.TimeplanEntry.id.asc())
    ).scalars().all()
    categories = {c.name: c for c in list_categories(session)}
    return predict_timeplan(entries, categories, acts_by_category(session), now or models.utcnow())
