from __future__ import annotations
from datetime import date
from pydantic import BaseModel

class LoginBody(BaseModel):
    email: str
    password: str

class StarterCreate(BaseModel):
    club_id: str
    firstname: str
    lastname: str
    birthdate: date
    single_sonderpokal: bool = False
    single_male: bool = False
    single_female: bool = False
    pair_sonderpokal: bool = False
    pair: bool = False
    partner_id: str | None = None
    partner_name: str | None = None

class StarterEdit(BaseModel):
    starter_id: str
    firstname: str
    lastname: str
    birthdate: date
    single_sonderpokal: bool = False
    single_male: bool = False
    single_female: bool = False
    pair_sonderpokal: bool = False
    pair: bool = False
    partner_id: str | None = None
    partner_name: str | None = None

class StarterDelete(BaseModel):
    starter_id: str

class ActOrderSet(BaseModel):
    act_id: str
    order: int | None = None  # None unschedules the act

class ActEdit(BaseModel):
    id: str
    name: str
    description: str | None = None

class SongChecked(BaseModel):
    act_id: str
    song_checked: bool
