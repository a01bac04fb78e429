"""Plain-data records passed into and out of the reward engine.

Every record is a frozen dataclass.  Engine functions never mutate their
inputs; "changing" a record means building a new one with
:func:`dataclasses.replace` or one of the ``with_*`` helpers below.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, tzinfo
from typing import Mapping

from .leveling import level_for_total_exp
from .stats import STAT_KEYS, int_stat_map, stat_map, zero_stats


MIN_SESSION_MINUTES = 1
MAX_SESSION_MINUTES = 240
MAX_ALLOCATION_POINTS = 3

DEFAULT_ANCHOR_TIME = "06:30"


def clamp_duration(minutes: object) -> int:
    try:
        value = int(minutes)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        value = MIN_SESSION_MINUTES
    return max(MIN_SESSION_MINUTES, min(MAX_SESSION_MINUTES, value))


# ── rewards ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RewardResult:
    """EXP earned by one session.  ``sum(stat_exp.values()) == total_exp``."""

    total_exp: int = 0
    stat_exp: Mapping[str, int] = field(default_factory=zero_stats)

    @classmethod
    def from_stats(cls, stat_exp: Mapping[str, object]) -> "RewardResult":
        """Build a result whose total is the direct sum of *stat_exp*."""
        clean = int_stat_map(stat_exp)
        return cls(total_exp=sum(clean.values()), stat_exp=clean)

    def to_dict(self) -> dict:
        return {"total_exp": self.total_exp, "stat_exp": dict(self.stat_exp)}


@dataclass(frozen=True)
class Modifier:
    """One line of the bonus ledger.

    ``mode`` is ``"mult"`` (multiplies the total), ``"add"`` (summed into
    ``1 + adds``) or ``"stat_mult"`` (multiplies a single axis, ``stat``).
    """

    key: str
    label: str
    mode: str
    value: float
    stat: str | None = None
    days: int | None = None

    def to_dict(self) -> dict:
        data: dict[str, object] = {
            "key": self.key,
            "label": self.label,
            "mode": self.mode,
            "value": self.value,
        }
        if self.stat is not None:
            data["stat"] = self.stat
        if self.days is not None:
            data["days"] = self.days
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Modifier":
        return cls(
            key=str(data.get("key", "")),
            label=str(data.get("label", "")),
            mode=str(data.get("mode", "mult")),
            value=float(data.get("value", 1.0)),  # type: ignore[arg-type]
            stat=data.get("stat"),  # type: ignore[arg-type]
            days=data.get("days"),  # type: ignore[arg-type]
        )


# ── avatar ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Avatar:
    level: int = 1
    total_exp: int = 0
    stat_exp: Mapping[str, int] = field(default_factory=zero_stats)

    @classmethod
    def from_totals(cls, stat_exp: Mapping[str, object] | None = None,
                    total_exp: int | None = None) -> "Avatar":
        """Avatar whose level is derived from its total, never stored apart."""
        clean = int_stat_map(stat_exp)
        total = sum(clean.values()) if total_exp is None else max(0, int(total_exp))
        return cls(
            level=level_for_total_exp(total),
            total_exp=total,
            stat_exp=clean,
        )


# ── sessions ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OneShotFlags:
    """Caller-owned bonus flags.  Each is cleared the moment it is read.

    ``combo_source_id``      id of the session the user chose to continue
    ``well_rested_until_ms`` epoch ms until which a break still counts
    """

    combo_source_id: str | None = None
    well_rested_until_ms: int | None = None


@dataclass(frozen=True)
class FlagConsumption:
    """Which one-shot bonuses a session picked up at start."""

    combo: bool = False
    rest: bool = False


@dataclass(frozen=True)
class SessionIntent:
    """A quest attempt as described when the timer starts."""

    allocation: Mapping[str, float]
    duration_minutes: int
    start_time_ms: int
    quest_key: str | None = None
    flags: FlagConsumption = FlagConsumption()
    bonus_multiplier: float = 1.0
    stand_stats: Mapping[str, float] | None = None
    session_id: str | None = None

    def __post_init__(self) -> None:
        allocation = {
            key: max(0.0, min(float(MAX_ALLOCATION_POINTS), value))
            for key, value in stat_map(self.allocation).items()
        }
        object.__setattr__(self, "allocation", allocation)
        object.__setattr__(self, "duration_minutes", clamp_duration(self.duration_minutes))
        if self.quest_key is not None:
            key = str(self.quest_key).strip()
            object.__setattr__(self, "quest_key", key or None)

    def with_remaining_minutes(self, minutes: int) -> "SessionIntent":
        """Intent for previewing a user-adjusted duration."""
        return replace(self, duration_minutes=clamp_duration(minutes))


@dataclass(frozen=True)
class CompletedSession:
    intent: SessionIntent
    end_time_ms: int
    reward: RewardResult
    bonus_breakdown: tuple[Modifier, ...] = ()
    notes: str = ""

    @property
    def session_id(self) -> str | None:
        return self.intent.session_id

    @property
    def quest_key(self) -> str | None:
        return self.intent.quest_key

    def with_notes(self, notes: str) -> "CompletedSession":
        return replace(self, notes=notes.strip())


# ── streaks & adaptive overload ──────────────────────────────────────────


@dataclass(frozen=True)
class StreakRecord:
    last_completed_day: date
    streak_length: int = 1


@dataclass(frozen=True)
class AdaptiveOverloadState:
    """``current`` is today's multiplier; ``next`` becomes current at rollover."""

    current: Mapping[str, float] = field(
        default_factory=lambda: {key: 1.0 for key in STAT_KEYS})
    next: Mapping[str, float] = field(
        default_factory=lambda: {key: 1.0 for key in STAT_KEYS})
    last_rollover_day: date | None = None


# ── pipeline context ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class RewardContext:
    """Everything the reward pipeline needs besides the intent.

    ``history`` is ordered newest first.  ``now_ms`` is the single clock
    reading for the whole calculation; when ``None`` the session's end
    time stands in for it.  ``tz`` decides calendar days and the anchor
    time (``None`` means the machine's local zone).
    """

    history: tuple[CompletedSession, ...] = ()
    quest_streaks: Mapping[str, StreakRecord] = field(default_factory=dict)
    avatar: Avatar = Avatar()
    adaptive: AdaptiveOverloadState = AdaptiveOverloadState()
    anchor_time: str = DEFAULT_ANCHOR_TIME
    one_shot_flags: OneShotFlags = OneShotFlags()
    aggregate_consistency: float | None = None
    now_ms: int | None = None
    tz: tzinfo | None = None
