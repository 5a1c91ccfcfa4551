from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from sqlalchemy import String, Integer, Boolean, Date, DateTime, ForeignKey, Table, Column, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def new_id() -> str:
    return str(uuid.uuid4())

def utcnow() -> datetime:
    # timestamps are stored as naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Club(Base):
    __tablename__ = "clubs"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)

    starters: Mapped[list["Starter"]] = relationship(back_populates="club", cascade="all, delete-orphan")


class User(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    club_id: Mapped[str | None] = mapped_column(ForeignKey("clubs.id", ondelete="SET NULL"), nullable=True)


class Category(Base):
    __tablename__ = "categories"
    name: Mapped[str] = mapped_column(String, primary_key=True)
    description: Mapped[str] = mapped_column(String, nullable=False, default="")
    from_birthday: Mapped[date | None] = mapped_column(Date, nullable=True)
    to_birthday: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_pair: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_sonderpokal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_single_male: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order: Mapped[int | None] = mapped_column("order", Integer, nullable=True, unique=True)

    # seconds
    einfahrzeit_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    act_duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    judge_duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


act_participants = Table(
    "act_participants",
    Base.metadata,
    Column("act_id", ForeignKey("acts.id", ondelete="CASCADE"), primary_key=True),
    Column("starter_id", ForeignKey("starter.id", ondelete="CASCADE"), primary_key=True),
)


class Starter(Base):
    __tablename__ = "starter"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    club_id: Mapped[str] = mapped_column(ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False)

    firstname: Mapped[str] = mapped_column(String, nullable=False)
    lastname: Mapped[str] = mapped_column(String, nullable=False)
    birthdate: Mapped[date] = mapped_column(Date, nullable=False)

    single_sonderpokal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    single_male: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    single_female: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pair_sonderpokal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pair: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # partner_name is free text until the partner registers and gets resolved
    partner_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    partner_name: Mapped[str | None] = mapped_column(String, nullable=True)

    club: Mapped["Club"] = relationship(back_populates="starters")
    acts: Mapped[list["Act"]] = relationship(secondary=act_participants, back_populates="participants")

    __table_args__ = (
        Index("ix_starter_club", "club_id"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.lastname}"


class Act(Base):
    __tablename__ = "acts"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    is_pair: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # NULL = not scheduled yet
    order: Mapped[int | None] = mapped_column("order", Integer, nullable=True)

    song_file_name: Mapped[str | None] = mapped_column(String, nullable=True)
    song_checked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    participants: Mapped[list["Starter"]] = relationship(secondary=act_participants, back_populates="acts")


class TimeplanEntry(Base):
    """One slot of the event day: a category pass or a custom block (label + duration)."""

    __tablename__ = "timeplan"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    earliest_start_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    label: Mapped[str | None] = mapped_column(String, nullable=True)
    category: Mapped[str | None] = mapped_column(ForeignKey("categories.name"), nullable=True)

    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
