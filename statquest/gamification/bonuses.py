"""Bonus modifiers and how they stack.

Modifiers
---------
=================  ===========  =====================================
key                mode         when
=================  ===========  =====================================
``combo``          mult x1.2    "continue this quest" was chosen for
                                the session right before this one
``rest``           mult x1.1    session started inside the 45-minute
                                well-rested window after a break
``global_streak``  add +0.2     2+ consecutive days with a completion
``mandala_streak`` add +0.1/day this quest on 2+ consecutive days,
                                capped at +1.0 (day 11)
``first_light``    stat_mult x2 SPI-weighted session ending 96-48
                                minutes before the daily anchor time
=================  ===========  =====================================

Stacking
--------
``stat_mult`` modifiers are applied first, directly to their axis; the
delta is added to the total, nothing else moves.  Then::

    final = product(mult values) * (1 + sum(add values))

scales the total, and the scaled total is re-split using the current
per-axis values as weights.

One-shot flags
--------------
Combo and rest are read from :class:`OneShotFlags`, which the caller
owns.  :func:`consume_one_shot_flags` returns the flags with everything
it read cleared; the caller must store that cleared state before
scoring another session, or the bonus is paid twice.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, Mapping, Sequence

from ..errors import ConfigurationError
from ..logging_setup import get_logger
from .models import (
    DEFAULT_ANCHOR_TIME,
    CompletedSession,
    FlagConsumption,
    Modifier,
    OneShotFlags,
    RewardResult,
    SessionIntent,
    StreakRecord,
)
from .split import split_total
from .stats import SPIRIT_STAT, STAT_KEYS, coerce_number
from .streaks import global_streak_days, update_streaks


logger = get_logger("bonuses")


# ── bonus constants ──────────────────────────────────────────────────────

COMBO_MULTIPLIER = 1.2
REST_MULTIPLIER = 1.1
REST_WINDOW_MINUTES = 45

GLOBAL_STREAK_BONUS = 0.2
MANDALA_STEP = 0.1
MANDALA_CAP = 1.0
STREAK_MIN_DAYS = 2

FIRST_LIGHT_MULTIPLIER = 2.0
WINDOW_START_MIN_BEFORE = 96
WINDOW_END_MIN_BEFORE = 48

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")


# ── anchor time ──────────────────────────────────────────────────────────


def parse_anchor_time(text: object) -> time:
    """Parse ``"HH:MM"`` (24h) or raise :class:`ConfigurationError`."""
    match = _HHMM.match(str(text if text is not None else "").strip())
    if not match:
        raise ConfigurationError("anchor_time", text, "expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ConfigurationError("anchor_time", text, "out of range")
    return time(hours, minutes)


def resolve_anchor_time(text: object) -> time:
    """Like :func:`parse_anchor_time`, falling back to the default anchor."""
    try:
        return parse_anchor_time(text)
    except ConfigurationError as exc:
        logger.warning("%s; using %s", exc, DEFAULT_ANCHOR_TIME)
        return parse_anchor_time(DEFAULT_ANCHOR_TIME)


@dataclass(frozen=True)
class TimeWindowRule:
    """First-light window, in minutes before the daily anchor time."""

    anchor_time: str = DEFAULT_ANCHOR_TIME
    start_min_before: int = WINDOW_START_MIN_BEFORE
    end_min_before: int = WINDOW_END_MIN_BEFORE
    stat: str = SPIRIT_STAT

    def _bounds(self, anchor_at: datetime) -> tuple[datetime, datetime]:
        start = anchor_at - timedelta(minutes=max(0, self.start_min_before))
        end = anchor_at - timedelta(minutes=max(0, self.end_min_before))
        return start, end

    def window_for(self, moment: datetime) -> tuple[datetime, datetime]:
        """``(start, end)`` of the first window that has not closed by *moment*.

        The anchor is taken on *moment*'s calendar day, or the next day
        once that day's window is over.  An anchor shortly after
        midnight therefore still covers the evening before it.
        """
        anchor = resolve_anchor_time(self.anchor_time)
        anchor_at = moment.replace(
            hour=anchor.hour, minute=anchor.minute, second=0, microsecond=0,
        )
        start, end = self._bounds(anchor_at)
        if moment > end:
            start, end = self._bounds(anchor_at + timedelta(days=1))
        return start, end

    def contains(self, end_time_ms: int, tz: tzinfo | None = None) -> bool:
        """True if *end_time_ms* falls inside the window (both ends inclusive)."""
        moment = datetime.fromtimestamp(end_time_ms / 1000, tz)
        start, end = self.window_for(moment)
        return start <= moment <= end


# ── one-shot flags ───────────────────────────────────────────────────────


def well_rested_until(break_taken_ms: int, minutes: int = REST_WINDOW_MINUTES) -> int:
    """End of the rest-bonus window for a break taken at *break_taken_ms*."""
    return int(break_taken_ms) + int(minutes) * 60 * 1000


def consume_one_shot_flags(
    flags: OneShotFlags,
    last_session_id: str | None,
    start_time_ms: int,
) -> tuple[FlagConsumption, OneShotFlags]:
    """Read the combo/rest flags for a session starting at *start_time_ms*.

    Returns ``(consumed, remaining)``.  ``remaining`` has every flag that
    granted a bonus cleared; the caller persists it.
    """
    combo = (
        flags.combo_source_id is not None
        and last_session_id is not None
        and flags.combo_source_id == last_session_id
    )
    rest = (
        flags.well_rested_until_ms is not None
        and start_time_ms < flags.well_rested_until_ms
    )
    remaining = flags
    if combo:
        remaining = replace(remaining, combo_source_id=None)
    if rest:
        remaining = replace(remaining, well_rested_until_ms=None)
    return FlagConsumption(combo=combo, rest=rest), remaining


def one_shot_modifiers(
    consumed: FlagConsumption,
    combo_multiplier: float = COMBO_MULTIPLIER,
    rest_multiplier: float = REST_MULTIPLIER,
) -> list[Modifier]:
    modifiers = []
    if consumed.combo:
        modifiers.append(Modifier("combo", "Combo", "mult", combo_multiplier))
    if consumed.rest:
        modifiers.append(Modifier("rest", "Well rested", "mult", rest_multiplier))
    return modifiers


# ── streak modifiers ─────────────────────────────────────────────────────


def mandala_bonus(streak_days: int) -> float:
    """+10% per day after the first, capped at +100%."""
    if streak_days < STREAK_MIN_DAYS:
        return 0.0
    return min(MANDALA_CAP, MANDALA_STEP * (streak_days - 1))


@dataclass(frozen=True)
class StreakBonuses:
    modifiers: tuple[Modifier, ...]
    global_streak_days: int
    mandala_days: int
    next_quest_streaks: dict[str, StreakRecord]


def streak_modifiers(
    *,
    history_days: Iterable[date],
    quest_streaks: Mapping[str, StreakRecord],
    quest_key: str | None,
    completed_day: date,
) -> StreakBonuses:
    """Streak modifiers for a completion on *completed_day*.

    Both streaks count the completion being scored.
    """
    days = list(history_days) + [completed_day]
    global_days = global_streak_days(days, completed_day)
    modifiers = []
    if global_days >= STREAK_MIN_DAYS:
        modifiers.append(Modifier(
            "global_streak", "Global streak", "add",
            GLOBAL_STREAK_BONUS, days=global_days,
        ))

    next_streaks = update_streaks(quest_streaks, quest_key, completed_day)
    mandala_days = 0
    if quest_key and quest_key in next_streaks:
        mandala_days = next_streaks[quest_key].streak_length
    if mandala_days >= STREAK_MIN_DAYS:
        modifiers.append(Modifier(
            "mandala_streak", "Mandala streak", "add",
            mandala_bonus(mandala_days), days=mandala_days,
        ))
    return StreakBonuses(
        modifiers=tuple(modifiers),
        global_streak_days=global_days,
        mandala_days=mandala_days,
        next_quest_streaks=next_streaks,
    )


# ── first light ──────────────────────────────────────────────────────────


def first_light_modifier(
    intent: SessionIntent,
    split: RewardResult,
    end_time_ms: int,
    rule: TimeWindowRule = TimeWindowRule(),
    tz: tzinfo | None = None,
) -> Modifier | None:
    """The first-light modifier, or None when the session doesn't qualify.

    Needs weight on the rule's axis, an end time inside the window, and
    a post-split gain on that axis; doubling a zero gain changes nothing.
    """
    if intent.allocation.get(rule.stat, 0) <= 0:
        return None
    if not rule.contains(end_time_ms, tz):
        return None
    if split.stat_exp.get(rule.stat, 0) <= 0:
        return None
    return Modifier(
        "first_light", "First light", "stat_mult",
        FIRST_LIGHT_MULTIPLIER, stat=rule.stat,
    )


# ── resolution ───────────────────────────────────────────────────────────


def resolve_multiplier(
    modifiers: Sequence[Modifier], fallback_multiplier: float = 1.0,
) -> float:
    """``product(mult) * (1 + sum(add))``.

    With no ``mult`` modifier the product starts at *fallback_multiplier*.
    """
    mults = [coerce_number(m.value, 1.0) for m in modifiers if m.mode == "mult"]
    adds = [coerce_number(m.value) for m in modifiers if m.mode == "add"]
    if mults:
        product = math.prod(mults)
    else:
        product = coerce_number(fallback_multiplier, 1.0)
        if product <= 0:
            product = 1.0
    return product * (1 + math.fsum(adds))


def apply_stat_multipliers(
    reward: RewardResult, modifiers: Sequence[Modifier],
) -> RewardResult:
    """Scale single axes in place of a re-split.  Never lowers an axis."""
    stat_exp = dict(reward.stat_exp)
    total = reward.total_exp
    for modifier in modifiers:
        if modifier.mode != "stat_mult" or modifier.stat not in STAT_KEYS:
            continue
        before = stat_exp[modifier.stat]
        after = max(before, int(math.floor(before * coerce_number(modifier.value, 1.0) + 0.5)))
        stat_exp[modifier.stat] = after
        total += after - before
    return RewardResult(total_exp=total, stat_exp=stat_exp)


def rescale(reward: RewardResult, multiplier: float) -> RewardResult:
    """Scale the total and re-split it over the current per-axis values."""
    if multiplier == 1.0:
        return reward
    total = max(0, int(math.floor(reward.total_exp * multiplier + 0.5)))
    return RewardResult(total_exp=total, stat_exp=split_total(total, reward.stat_exp))


def resolve_bonuses(
    split: RewardResult,
    modifiers: Sequence[Modifier],
    fallback_multiplier: float = 1.0,
) -> tuple[RewardResult, float]:
    """Apply *modifiers* to an already split reward.

    Returns the boosted reward and the scalar multiplier that was used.
    """
    boosted = apply_stat_multipliers(split, modifiers)
    multiplier = resolve_multiplier(modifiers, fallback_multiplier)
    return rescale(boosted, multiplier), multiplier


def last_session_id(history: Sequence[CompletedSession]) -> str | None:
    return history[0].session_id if history else None
