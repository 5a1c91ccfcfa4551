"""Category catalog and the act -> category read view.

Acts carry no category column; the category is derived from the participants'
birthdates and flags against the catalog.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from . import models


def list_categories(session: Session) -> list[models.Category]:
    return session.execute(
        select(models.Category).order_by(models.Category.order.asc(), models.Category.name.asc())
    ).scalars().all()


def _oldest_birthdate(act: models.Act) -> Optional[date]:
    dates = [p.birthdate for p in act.participants if p.birthdate is not None]
    return min(dates) if dates else None

def category_matches(category: models.Category, act: models.Act) -> bool:
    if not act.participants:
        return False
    if bool(category.is_pair) != bool(act.is_pair):
        return False
    if act.is_pair:
        if category.is_single_male:
            return False
        sonderpokal = any(p.pair_sonderpokal for p in act.participants)
    else:
        starter = act.participants[0]
        if bool(category.is_single_male) != bool(starter.single_male):
            return False
        sonderpokal = bool(starter.single_sonderpokal)
    if bool(category.is_sonderpokal) != sonderpokal:
        return False

    birthdate = _oldest_birthdate(act)
    if birthdate is None:
        return False
    if category.from_birthday is not None and birthdate < category.from_birthday:
        return False
    if category.to_birthday is not None and birthdate > category.to_birthday:
        return False
    return True

def category_for_act(categories: Sequence[models.Category], act: models.Act) -> Optional[models.Category]:
    """First matching category by catalog order, or None if the act fits nowhere."""
    ordered = sorted(categories, key=lambda c: (c.order is None, c.order or 0, c.name))
    for cat in ordered:
        if category_matches(cat, act):
            return cat
    return None

def _all_acts(session: Session) -> list[models.Act]:
    return session.execute(
        select(models.Act).options(selectinload(models.Act.participants).selectinload(models.Starter.club))
    ).scalars().all()

def _act_sort_key(act: models.Act):
    return (act.order is None, act.order or 0, act.created_at, act.id)

def acts_by_category(session: Session) -> dict[str, list[models.Act]]:
    """Scheduled acts (order set) per category name, in running order."""
    categories = list_categories(session)
    out: dict[str, list[models.Act]] = {c.name: [] for c in categories}
    for act in _all_acts(session):
        if act.order is None:
            continue
        cat = category_for_act(categories, act)
        if cat is not None:
            out[cat.name].append(act)
    for acts in out.values():
        acts.sort(key=_act_sort_key)
    return out

def scheduled_acts(session: Session, category_name: str) -> list[models.Act]:
    return acts_by_category(session).get(category_name, [])


@dataclass
class ActParticipantRow:
    id: str
    firstname: str
    lastname: str
    club_name: str


@dataclass
class ActRow:
    id: str
    name: str
    description: Optional[str]
    is_pair: bool
    max_age_birthdate: Optional[date]
    is_sonderpokal: Optional[bool]
    category: Optional[str]
    category_order: Optional[int]
    act_order: Optional[int]
    song_file_name: Optional[str] = None
    song_checked: bool = False
    participants: list[ActParticipantRow] = field(default_factory=list)


def list_acts(session: Session, club_id: Optional[str] = None) -> list[ActRow]:
    """All acts with their derived category, by category order then act order.

    Acts outside every category come last.
    """
    categories = list_categories(session)
    rows: list[ActRow] = []
    for act in _all_acts(session):
        if club_id is not None and not any(p.club_id == club_id for p in act.participants):
            continue
        cat = category_for_act(categories, act)
        rows.append(
            ActRow(
                id=act.id,
                name=act.name,
                description=act.description,
                is_pair=act.is_pair,
                max_age_birthdate=_oldest_birthdate(act),
                is_sonderpokal=cat.is_sonderpokal if cat else None,
                category=cat.name if cat else None,
                category_order=cat.order if cat else None,
                act_order=act.order,
                song_file_name=act.song_file_name,
                song_checked=act.song_checked,
                participants=[
                    ActParticipantRow(
                        id=p.id,
                        firstname=p.firstname,
                        lastname=p.lastname,
                        club_name=p.club.name if p.club else "",
                    )
                    for p in act.participants
                ],
            )
        )
    rows.sort(key=lambda r: (
        r.category_order is None, r.category_order or 0,
        r.act_order is None, r.act_order or 0,
        r.id,
    ))
    return rows
