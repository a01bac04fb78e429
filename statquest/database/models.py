"""SQLAlchemy ORM models for StatQuest."""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, BigInteger, DateTime, Date, Float, JSON, Text
)
from sqlalchemy.orm import DeclarativeBase

from ..gamification.stats import zero_stats


def _unit_multipliers() -> dict:
    return {key: 1.0 for key in zero_stats()}


class Base(DeclarativeBase):
    pass


class AvatarRow(Base):
    """Single-row table holding the player's avatar."""

    __tablename__ = "avatar"

    id = Column(Integer, primary_key=True, autoincrement=True)
    level = Column(Integer, nullable=False, default=1)
    total_exp = Column(Integer, nullable=False, default=0)
    stat_exp = Column(JSON, nullable=False, default=zero_stats)

    def __repr__(self) -> str:
        return f"<AvatarRow level={self.level} exp={self.total_exp}>"


class SessionRecord(Base):
    """One completed quest session with its reward and bonus ledger."""

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, unique=True)
    quest_key = Column(String(255), nullable=True)
    allocation = Column(JSON, nullable=False, default=dict)
    duration_minutes = Column(Integer, nullable=False, default=0)
    start_time_ms = Column(BigInteger, nullable=False)
    end_time_ms = Column(BigInteger, nullable=False)
    combo_bonus = Column(Integer, nullable=False, default=0)
    rest_bonus = Column(Integer, nullable=False, default=0)
    bonus_multiplier = Column(Float, nullable=False, default=1.0)
    total_exp = Column(Integer, nullable=False, default=0)
    stat_exp = Column(JSON, nullable=False, default=zero_stats)
    bonus_breakdown = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return (
            f"<SessionRecord id={self.session_id} quest={self.quest_key} "
            f"exp={self.total_exp}>"
        )


class QuestStreakRow(Base):
    """Per-quest ("mandala") streak."""

    __tablename__ = "quest_streaks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quest_key = Column(String(255), nullable=False, unique=True)
    last_completed_day = Column(Date, nullable=False)
    streak_length = Column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<QuestStreakRow {self.quest_key} streak={self.streak_length}>"


class AdaptiveStateRow(Base):
    """Single-row table for the adaptive overload multipliers."""

    __tablename__ = "adaptive_state"

    id = Column(Integer, primary_key=True, autoincrement=True)
    current = Column(JSON, nullable=False, default=_unit_multipliers)
    next = Column(JSON, nullable=False, default=_unit_multipliers)
    last_rollover_day = Column(Date, nullable=True)


class OneShotFlagsRow(Base):
    """Single-row table for the combo / well-rested flags."""

    __tablename__ = "one_shot_flags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    combo_source_id = Column(String(64), nullable=True)
    well_rested_until_ms = Column(BigInteger, nullable=True)
