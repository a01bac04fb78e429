"""Consecutive-day streaks.

One rule drives every streak, per quest ("mandala") or global:

    no record                    →  1
    completion on the same day   →  unchanged
    completion the next day      →  n + 1
    anything later               →  1  (streak broken)

The global streak is the same rule folded over the distinct completion
days in the session history.  It still counts when the last completion
was yesterday, so a streak is not lost before the day is over.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Mapping

from .models import CompletedSession, StreakRecord
from .stats import STAT_KEYS, coerce_number, zero_stats


WEEK_DAYS = 7
MONTH_DAYS = 30
WEEK_WEIGHT = 0.6
MONTH_WEIGHT = 0.4


def day_for_ms(epoch_ms: int, tz: tzinfo | None = None) -> date:
    """Calendar day of an epoch-millisecond timestamp in *tz* (local if None)."""
    return datetime.fromtimestamp(epoch_ms / 1000, tz).date()


def advance_streak(record: StreakRecord | None, day: date) -> StreakRecord:
    """Apply one completion on *day* to *record*."""
    if record is None:
        return StreakRecord(last_completed_day=day, streak_length=1)
    gap = (day - record.last_completed_day).days
    if gap < 0:
        # Out-of-order completion; the newer record wins.
        return record
    if gap == 0:
        return record
    if gap == 1:
        return StreakRecord(
            last_completed_day=day,
            streak_length=max(1, record.streak_length) + 1,
        )
    return StreakRecord(last_completed_day=day, streak_length=1)


def update_streaks(
    table: Mapping[str, StreakRecord],
    quest_key: str | None,
    completed_day: date,
) -> dict[str, StreakRecord]:
    """New streak table with *quest_key* advanced to *completed_day*."""
    updated = dict(table)
    key = (quest_key or "").strip()
    if not key:
        return updated
    updated[key] = advance_streak(table.get(key), completed_day)
    return updated


def global_streak_days(days: Iterable[date], today: date) -> int:
    """Current streak over *days*, counted as of *today*."""
    record: StreakRecord | None = None
    for day in sorted({d for d in days if d <= today}):
        record = advance_streak(record, day)
    if record is None:
        return 0
    if (today - record.last_completed_day).days > 1:
        return 0
    return record.streak_length


def max_mandala_streak(table: Mapping[str, StreakRecord]) -> int:
    return max((r.streak_length for r in table.values()), default=0)


def aggregate_consistency(days: Iterable[date], today: date) -> float:
    """Blend of 7-day and 30-day active-day coverage, in ``[0, 1]``."""
    week: set[date] = set()
    month: set[date] = set()
    for day in days:
        age = (today - day).days
        if 0 <= age < WEEK_DAYS:
            week.add(day)
        if 0 <= age < MONTH_DAYS:
            month.add(day)
    ratio = (len(week) / WEEK_DAYS) * WEEK_WEIGHT + (len(month) / MONTH_DAYS) * MONTH_WEIGHT
    return max(0.0, min(1.0, ratio))


# ── history views ────────────────────────────────────────────────────────


def completion_days(
    history: Iterable[CompletedSession], tz: tzinfo | None = None,
) -> list[date]:
    return [day_for_ms(s.end_time_ms, tz) for s in history]


def today_stat_exp(
    history: Iterable[CompletedSession], today: date, tz: tzinfo | None = None,
) -> dict[str, int]:
    """EXP already banked per axis on *today*."""
    totals = zero_stats()
    for session in history:
        if day_for_ms(session.end_time_ms, tz) != today:
            continue
        for key in STAT_KEYS:
            totals[key] += int(coerce_number(session.reward.stat_exp.get(key)))
    return totals
