"""Database package."""

from .db import get_session, init_db, configure_engine
from .models import (
    AvatarRow, SessionRecord, QuestStreakRow, AdaptiveStateRow, OneShotFlagsRow,
)

__all__ = [
    "get_session",
    "init_db",
    "configure_engine",
    "AvatarRow",
    "SessionRecord",
    "QuestStreakRow",
    "AdaptiveStateRow",
    "OneShotFlagsRow",
]
