from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import Depends, HTTPException

from .auth import CurrentUser, get_current_user
from .models import utcnow
from .settings import settings


@dataclass
class Capabilities:
    can_register: bool
    can_create_club: bool
    can_register_starter: bool
    can_register_judge: bool
    can_edit_acts: bool


ALL_CAPABILITIES = Capabilities(
    can_register=True,
    can_create_club=True,
    can_register_starter=True,
    can_register_judge=True,
    can_edit_acts=True,
)


def capabilities_at(
    now: datetime,
    start_register: Optional[datetime],
    end_register: Optional[datetime],
    end_music_upload: Optional[datetime],
) -> Capabilities:
    in_register_period = (start_register is None or now >= start_register) and (
        end_register is None or now <= end_register
    )
    return Capabilities(
        can_register=in_register_period,
        can_create_club=in_register_period,
        can_register_starter=in_register_period,
        can_register_judge=in_register_period,
        can_edit_acts=end_music_upload is None or now <= end_music_upload,
    )


def get_capabilities(user: Optional[CurrentUser] = Depends(get_current_user)) -> Capabilities:
    if user and user.is_admin:
        return ALL_CAPABILITIES
    return capabilities_at(
        utcnow(),
        settings.CUP_START_REGISTER_DATE,
        settings.CUP_END_REGISTER_DATE,
        settings.CUP_END_MUSIC_UPLOAD_DATE,
    )


def starter_registration_open(caps: Capabilities = Depends(get_capabilities)) -> Capabilities:
    if not caps.can_register_starter:
        raise HTTPException(status_code=403, detail="Starter registration is closed")
    return caps


def act_editing_open(caps: Capabilities = Depends(get_capabilities)) -> Capabilities:
    if not caps.can_edit_acts:
        raise HTTPException(status_code=403, detail="Act editing is closed")
    return caps
