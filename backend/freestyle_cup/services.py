from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from . import models
from .db import atomic
from .errors import NotFoundError
from .schemas import ActEdit, ActOrderSet, SongChecked
from .security import hash_password, verify_password
from .settings import settings

logger = logging.getLogger(__name__)

# ---------------------------
# Users / auth
# ---------------------------

def ensure_admin_user(session: Session) -> None:
    """Ensure the bootstrap admin account (from settings) exists in DB."""
    existing = session.execute(
        select(models.User).where(models.User.email == settings.CUP_ADMIN_EMAIL)
    ).scalar_one_or_none()

    with atomic(session):
        if existing:
            existing.is_admin = True
            existing.club_id = None
            if not verify_password(settings.CUP_ADMIN_PASSWORD, existing.password_hash):
                existing.password_hash = hash_password(settings.CUP_ADMIN_PASSWORD)
            return

        session.add(models.User(
            email=settings.CUP_ADMIN_EMAIL,
            name=settings.CUP_ADMIN_NAME,
            password_hash=hash_password(settings.CUP_ADMIN_PASSWORD),
            is_admin=True,
        ))
    logger.info("Created admin user %s", settings.CUP_ADMIN_EMAIL)

def authenticate_user(session: Session, email: str, password: str) -> Optional[models.User]:
    u = session.execute(select(models.User).where(models.User.email == email)).scalar_one_or_none()
    if not u:
        return None
    if verify_password(password, u.password_hash):
        return u
    return None

def get_club(session: Session, club_id: str) -> models.Club:
    club = session.get(models.Club, club_id)
    if club is None:
        raise NotFoundError("Club not found")
    return club

# ---------------------------
# Acts
# ---------------------------

def _get_act(session: Session, act_id: str) -> models.Act:
    act = session.get(models.Act, act_id)
    if act is None:
        raise NotFoundError("Act not found")
    return act

def set_act_order(session: Session, payload: ActOrderSet) -> None:
    act = _get_act(session, payload.act_id)
    with atomic(session):
        act.order = payload.order

def edit_act(session: Session, payload: ActEdit) -> None:
    act = _get_act(session, payload.id)
    with atomic(session):
        act.name = payload.name
        act.description = payload.description

def set_song_checked(session: Session, payload: SongChecked) -> None:
    act = _get_act(session, payload.act_id)
    with atomic(session):
        act.song_checked = payload.song_checked

def act_club_ids(session: Session, act_id: str) -> set[str]:
    return {p.club_id for p in _get_act(session, act_id).participants}
