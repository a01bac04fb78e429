"""Daily budgets, diminishing returns, and adaptive overload.

Budget
------
Each axis gets a daily EXP budget before damping kicks in::

    budget = tier * BASE_PER_POINT
             * (1 + 0.7 * streak_factor + 0.3 * level_factor)
             * adaptive_multiplier

``tier`` is 1-3 from the axis' lifetime EXP (600 EXP ~ 60 focused
minutes at the current rate, 2400 ~ 4 hours).  The streak factor is
dominated by the best quest ("mandala") streak; overall consistency
adds a little on top.

Damping
-------
Only the EXP above budget is damped, and only for the session being
scored.  The multiplier is 1 up to the budget and decays toward
``floor`` above it (about 0.62 at twice the budget with the default
floor of 0.4).

Adaptive overload
-----------------
Hitting the budget nudges tomorrow's multiplier up 3%; falling short
lets it drift down 1%.  :func:`update_adaptive_overload` only computes
the *next* value; :func:`roll_over_adaptive` promotes it at the day
boundary.  Neither reads a clock or touches storage.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date
from typing import Mapping

from .models import AdaptiveOverloadState, Avatar, RewardResult
from .stats import STAT_KEYS, coerce_number


# ── constants (easy to re-tune) ──────────────────────────────────────────

TIER_2_AT_EXP = 600
TIER_3_AT_EXP = 2400
BASE_PER_POINT = 120.0
LEVEL_FACTOR_FULL_AT = 30
MANDALA_FULL_AT_DAYS = 21
DEFAULT_DAMPING_FLOOR = 0.4


@dataclass(frozen=True)
class StreakSignals:
    """Consistency inputs to the budget, derived from session history."""

    mandala_streak: int = 0
    aggregate_consistency: float = 0.0


@dataclass(frozen=True)
class AdaptiveConfig:
    up_pct: float = 0.03
    down_pct: float = 0.01
    min: float = 0.8
    max: float = 2.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _positive_or_one(value: object) -> float:
    number = coerce_number(value, 1.0)
    return number if number > 0 else 1.0


# ── budget model ─────────────────────────────────────────────────────────


def stat_exp_to_tier(exp: object) -> int:
    """Quantise an axis' lifetime EXP into budget points (1-3)."""
    e = max(0.0, coerce_number(exp))
    if e >= TIER_3_AT_EXP:
        return 3
    if e >= TIER_2_AT_EXP:
        return 2
    return 1


def level_factor(level: object) -> float:
    """0.0 at level 1, 1.0 from level 30 on."""
    lv = max(1.0, coerce_number(level, 1.0))
    return max(0.0, min(1.0, (lv - 1) / (LEVEL_FACTOR_FULL_AT - 1)))


def streak_factor(mandala_streak: object = 0, aggregate_consistency: object = 0) -> float:
    mandala = max(0.0, coerce_number(mandala_streak))
    mandala_score = min(1.0, mandala / MANDALA_FULL_AT_DAYS)
    aggregate_score = max(0.0, min(1.0, coerce_number(aggregate_consistency)))
    return 0.7 * mandala_score + 0.3 * aggregate_score


def budget_for_stat(
    *,
    tier: int = 1,
    level: int = 1,
    signals: StreakSignals = StreakSignals(),
    adaptive_multiplier: float = 1.0,
    base_per_point: float = BASE_PER_POINT,
) -> float:
    sf = streak_factor(signals.mandala_streak, signals.aggregate_consistency)
    lf = level_factor(level)
    points = max(1, int(coerce_number(tier, 1.0)))
    base = points * max(0.0, coerce_number(base_per_point, BASE_PER_POINT))
    return base * (1 + 0.7 * sf + 0.3 * lf) * _positive_or_one(adaptive_multiplier)


def compute_daily_budgets(
    avatar: Avatar,
    signals: StreakSignals = StreakSignals(),
    adaptive_state: AdaptiveOverloadState | None = None,
    *,
    base_per_point: float = BASE_PER_POINT,
) -> dict[str, float]:
    """Per-axis budget for today from the avatar and streak snapshot."""
    current = adaptive_state.current if adaptive_state is not None else {}
    return {
        key: budget_for_stat(
            tier=stat_exp_to_tier(avatar.stat_exp.get(key, 0)),
            level=avatar.level,
            signals=signals,
            adaptive_multiplier=current.get(key, 1.0),
            base_per_point=base_per_point,
        )
        for key in STAT_KEYS
    }


# ── damping ──────────────────────────────────────────────────────────────


def damping_multiplier(
    spent: float, budget: float, floor: float = DEFAULT_DAMPING_FLOOR,
) -> float:
    """Multiplier in ``(floor, 1]`` for *spent* EXP against *budget*."""
    s = coerce_number(spent)
    b = coerce_number(budget)
    if b <= 0 or s <= b:
        return 1.0
    f = max(0.0, min(1.0, coerce_number(floor, DEFAULT_DAMPING_FLOOR)))
    excess_ratio = s / b - 1
    return f + (1 - f) * math.exp(-excess_ratio)


def apply_damping(
    gain: RewardResult,
    spent_today: Mapping[str, object],
    budgets: Mapping[str, object],
    floor: float = DEFAULT_DAMPING_FLOOR,
) -> RewardResult:
    """Damp this session's per-axis gain against today's budgets.

    When no axis goes over budget, *gain* itself is returned.
    """
    adjusted: dict[str, int] = {}
    damped = False
    for key in STAT_KEYS:
        g = int(gain.stat_exp.get(key, 0))
        spent = max(0.0, coerce_number(spent_today.get(key)))
        mult = damping_multiplier(spent + g, coerce_number(budgets.get(key)), floor)
        if mult < 1.0:
            damped = True
        adjusted[key] = max(0, round_half_up(g * mult))
    if not damped:
        return gain
    return RewardResult.from_stats(adjusted)


# ── adaptive overload ────────────────────────────────────────────────────


def update_adaptive_overload(
    state: AdaptiveOverloadState,
    spent_today: Mapping[str, object],
    budgets_today: Mapping[str, object],
    config: AdaptiveConfig = AdaptiveConfig(),
) -> AdaptiveOverloadState:
    """Return *state* with ``next`` recomputed from today's spend.

    Axes without a positive budget carry ``current`` over unchanged.
    """
    nxt: dict[str, float] = {}
    for key in STAT_KEYS:
        cur = _positive_or_one(state.current.get(key, 1.0))
        budget = coerce_number(budgets_today.get(key))
        if budget <= 0:
            nxt[key] = cur
            continue
        spent = max(0.0, coerce_number(spent_today.get(key)))
        if spent >= budget:
            nxt[key] = min(config.max, cur * (1 + config.up_pct))
        else:
            nxt[key] = max(config.min, cur * (1 - config.down_pct))
    return replace(state, next=nxt)


def roll_over_adaptive(state: AdaptiveOverloadState, day: date) -> AdaptiveOverloadState:
    """Promote ``next`` to ``current`` once per new calendar day."""
    if state.last_rollover_day is not None and day <= state.last_rollover_day:
        return state
    if state.last_rollover_day is None:
        # First sighting: start the clock without promoting anything.
        return replace(state, last_rollover_day=day)
    promoted = {key: _positive_or_one(state.next.get(key, 1.0)) for key in STAT_KEYS}
    return AdaptiveOverloadState(
        current=promoted,
        next=dict(promoted),
        last_rollover_day=day,
    )
