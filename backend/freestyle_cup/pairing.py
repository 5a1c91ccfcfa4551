"""Starter registration and the partner/act pairing rules.

A starter may name a partner by id or by free text ("firstname lastname"). Links
are always kept symmetric, and acts are created or removed so that:

* a singles act exists iff the starter has ``single_male`` or ``single_female``;
* a pair act exists for every linked couple created through a ``pair`` starter.

Every public function runs inside one transaction.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.orm import Session

from . import models
from .db import atomic
from .errors import NotFoundError, ValidationError
from .schemas import StarterCreate, StarterEdit

logger = logging.getLogger(__name__)

SELF_PARTNER_MESSAGE = "Starter and partner are the same person"


def resolve_partner_by_name(session: Session, club_id: str, partner_name: Optional[str]) -> Optional[str]:
    """Id of the single pair starter in the club whose full name equals ``partner_name``.

    Zero or several matches resolve to None; an ambiguous name never picks one.
    """
    if not partner_name:
        return None
    full_name = models.Starter.firstname + " " + models.Starter.lastname
    ids = session.execute(
        select(models.Starter.id).where(
            and_(
                full_name == partner_name,
                models.Starter.pair.is_(True),
                models.Starter.club_id == club_id,
            )
        )
    ).scalars().all()
    if len(ids) != 1:
        return None
    return ids[0]

def _resolve_partner(session: Session, club_id: str, pair: bool, partner_id: Optional[str], partner_name: Optional[str]) -> Optional[str]:
    # only starters entering the pair competition get a partner
    if not pair:
        return None
    if partner_id is not None:
        if session.get(models.Starter, partner_id) is None:
            raise NotFoundError("Partner not found")
        return partner_id
    return resolve_partner_by_name(session, club_id, partner_name)

def get_acts_for_starter(session: Session, starter_id: str, is_pair: bool) -> list[models.Act]:
    return session.execute(
        select(models.Act)
        .join(models.act_participants, models.act_participants.c.act_id == models.Act.id)
        .where(
            and_(
                models.act_participants.c.starter_id == starter_id,
                models.Act.is_pair.is_(is_pair),
            )
        )
    ).scalars().all()

def create_act(session: Session, participants: list[models.Starter], is_pair: bool, name: str = "", description: Optional[str] = None) -> models.Act:
    act = models.Act(name=name, description=description, is_pair=is_pair, participants=list(participants))
    session.add(act)
    session.flush()
    logger.info("Created %s act %s for %s", "pair" if is_pair else "single", act.id, [p.id for p in participants])
    return act

def delete_acts_for_starter(session: Session, starter_id: str, is_pair: bool) -> None:
    for act in get_acts_for_starter(session, starter_id, is_pair):
        logger.info("Deleting %s act %s", "pair" if is_pair else "single", act.id)
        session.delete(act)
    session.flush()

def _unlink(session: Session, starter_id: Optional[str]) -> None:
    if starter_id is None:
        return
    other = session.get(models.Starter, starter_id)
    if other is None:
        return
    logger.info("Clearing partner link of starter %s (was %s)", other.id, other.partner_id)
    other.partner_id = None
    other.partner_name = None

def _unlink_everyone_pointing_at(session: Session, starter_id: str, keep: Optional[str] = None) -> None:
    rows = session.execute(
        select(models.Starter).where(models.Starter.partner_id == starter_id)
    ).scalars().all()
    for row in rows:
        if row.id == keep:
            continue
        row.partner_id = None
        row.partner_name = None

def _link(session: Session, starter: models.Starter, partner: models.Starter) -> None:
    """Make ``starter`` and ``partner`` each other's only partner and give them one pair act."""
    # the partner's previous couple, if any, is dissolved
    if partner.partner_id is not None and partner.partner_id != starter.id:
        _unlink(session, partner.partner_id)
    _unlink_everyone_pointing_at(session, partner.id, keep=starter.id)
    session.flush()

    partner.partner_id = starter.id
    partner.partner_name = starter.full_name
    starter.partner_id = partner.id
    if not starter.partner_name:
        starter.partner_name = partner.full_name
    logger.info("Linked starters %s <-> %s", starter.id, partner.id)

    delete_acts_for_starter(session, starter.id, is_pair=True)
    delete_acts_for_starter(session, partner.id, is_pair=True)
    create_act(session, [starter, partner], is_pair=True)

def _sync_single_act(session: Session, starter: models.Starter) -> None:
    wants_single = starter.single_male or starter.single_female
    existing = get_acts_for_starter(session, starter.id, is_pair=False)
    if wants_single and not existing:
        create_act(session, [starter], is_pair=False)
    elif not wants_single and existing:
        delete_acts_for_starter(session, starter.id, is_pair=False)


def add_starter(session: Session, payload: StarterCreate) -> models.Starter:
    if session.get(models.Club, payload.club_id) is None:
        raise NotFoundError("Club not found")
    with atomic(session):
        starter = models.Starter(
            club_id=payload.club_id,
            firstname=payload.firstname,
            lastname=payload.lastname,
            birthdate=payload.birthdate,
            single_sonderpokal=payload.single_sonderpokal,
            single_male=payload.single_male,
            single_female=payload.single_female,
            pair_sonderpokal=payload.pair_sonderpokal,
            pair=payload.pair,
            partner_name=payload.partner_name,
        )
        session.add(starter)
        session.flush()

        partner_id = _resolve_partner(session, payload.club_id, payload.pair, payload.partner_id, payload.partner_name)
        if partner_id == starter.id:
            raise ValidationError(SELF_PARTNER_MESSAGE)

        _sync_single_act(session, starter)
        if partner_id is not None:
            _link(session, starter, session.get(models.Starter, partner_id))
        session.flush()
    return starter


def edit_starter(session: Session, payload: StarterEdit) -> models.Starter:
    starter = session.get(models.Starter, payload.starter_id)
    if starter is None:
        raise NotFoundError("Starter not found")

    requested_id = payload.partner_id
    # a changed partner text invalidates an earlier resolution
    if starter.partner_name != payload.partner_name or not payload.pair:
        requested_id = None

    partner_id = _resolve_partner(session, starter.club_id, payload.pair, requested_id, payload.partner_name)
    existing_partner_id = starter.partner_id

    if partner_id != existing_partner_id and partner_id == starter.id:
        raise ValidationError(SELF_PARTNER_MESSAGE)

    with atomic(session):
        starter.firstname = payload.firstname
        starter.lastname = payload.lastname
        starter.birthdate = payload.birthdate
        starter.single_sonderpokal = payload.single_sonderpokal
        starter.single_male = payload.single_male
        starter.single_female = payload.single_female
        starter.pair_sonderpokal = payload.pair_sonderpokal
        starter.pair = payload.pair
        starter.partner_name = payload.partner_name

        if partner_id != existing_partner_id:
            _unlink(session, existing_partner_id)
            starter.partner_id = None
            delete_acts_for_starter(session, starter.id, is_pair=True)
            if partner_id is not None:
                _link(session, starter, session.get(models.Starter, partner_id))
        elif partner_id is not None:
            # same couple, keep the partner's view of our name current
            partner = session.get(models.Starter, partner_id)
            if partner is not None:
                partner.partner_name = starter.full_name

        _sync_single_act(session, starter)
        session.flush()
    return starter


def delete_starter(session: Session, starter_id: str) -> None:
    starter = session.get(models.Starter, starter_id)
    if starter is None:
        raise NotFoundError("Starter not found")
    with atomic(session):
        delete_acts_for_starter(session, starter.id, is_pair=True)
        delete_acts_for_starter(session, starter.id, is_pair=False)
        _unlink(session, starter.partner_id)
        _unlink_everyone_pointing_at(session, starter.id)
        session.delete(starter)
        logger.info("Deleted starter %s", starter_id)


def list_club_starters(session: Session, club_id: str) -> list[dict]:
    starters = session.execute(
        select(models.Starter)
        .where(models.Starter.club_id == club_id)
        .order_by(models.Starter.lastname.asc(), models.Starter.firstname.asc())
    ).scalars().all()
    out = []
    for s in starters:
        partner = session.get(models.Starter, s.partner_id) if s.partner_id else None
        out.append({
            "id": s.id,
            "club_id": s.club_id,
            "firstname": s.firstname,
            "lastname": s.lastname,
            "birthdate": s.birthdate.isoformat(),
            "single_sonderpokal": s.single_sonderpokal,
            "single_male": s.single_male,
            "single_female": s.single_female,
            "pair_sonderpokal": s.pair_sonderpokal,
            "pair": s.pair,
            "partner_id": s.partner_id,
            "partner_name": s.partner_name,
            "resolved_partner_name": partner.full_name if partner else None,
            "resolved_partner_club": partner.club.name if partner and partner.club else None,
        })
    return out
