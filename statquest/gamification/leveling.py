"""Leveling curve for StatQuest.

Curve
-----
Reaching level *L* takes ``50 * (L - 1) * L`` total EXP:

    Lv 2    100 EXP
    Lv 3    300 EXP
    Lv 5   1000 EXP
    Lv 10  4500 EXP

Each level costs 100 EXP more than the previous one.  The curve is a
plain quadratic, so :func:`level_for_total_exp` inverts it in constant
time instead of walking levels one by one.  Levels stop at
``MAX_LEVEL``.

Titles
------
Every few levels earns a new title:
    1-4   Novice
    5-9   Apprentice
   10-19  Adventurer
   20-29  Veteran
   30-39  Expert
   40-49  Master
   50+    Legendary Hero
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .stats import coerce_number


# ── curve constants ──────────────────────────────────────────────────────

EXP_PER_LEVEL_STEP = 50
MAX_LEVEL = 1000


# ── level math ───────────────────────────────────────────────────────────


def exp_floor_for_level(level: int) -> int:
    """Total EXP required to *reach* *level*.  ``exp_floor_for_level(1)`` is 0."""
    if level <= 1:
        return 0
    return EXP_PER_LEVEL_STEP * (level - 1) * level


def _clean_total(total_exp: object) -> int:
    return max(0, int(math.floor(coerce_number(total_exp))))


def level_for_total_exp(total_exp: int) -> int:
    """Largest level whose floor is ``<= total_exp``, capped at MAX_LEVEL."""
    exp = _clean_total(total_exp)
    # L*(L-1) <= q  <=>  (2L-1)^2 <= 4q+1, with q = exp // 50
    steps = exp // EXP_PER_LEVEL_STEP
    level = (1 + math.isqrt(4 * steps + 1)) // 2
    return max(1, min(MAX_LEVEL, level))


@dataclass(frozen=True)
class LevelProgress:
    level: int
    current: int     # EXP earned inside the current level
    required: int    # EXP span of the current level
    ratio: float     # 0.0 → 1.0

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "current": self.current,
            "required": self.required,
            "ratio": self.ratio,
        }


def progress(total_exp: int) -> LevelProgress:
    """Where *total_exp* sits inside its level."""
    exp = _clean_total(total_exp)
    level = level_for_total_exp(exp)
    floor = exp_floor_for_level(level)
    span = exp_floor_for_level(level + 1) - floor
    into_level = exp - floor
    if level >= MAX_LEVEL:
        return LevelProgress(level=level, current=into_level, required=span, ratio=1.0)
    ratio = max(0.0, min(1.0, into_level / span))
    return LevelProgress(level=level, current=into_level, required=span, ratio=ratio)


def exp_to_next_level(total_exp: int) -> int:
    """EXP still needed for the next level (0 at the cap)."""
    exp = _clean_total(total_exp)
    level = level_for_total_exp(exp)
    if level >= MAX_LEVEL:
        return 0
    return exp_floor_for_level(level + 1) - exp


# ── level titles ─────────────────────────────────────────────────────────

# Ordered descending so the first match wins.
LEVEL_TITLES: list[tuple[int, str]] = [
    (50, "Legendary Hero"),
    (40, "Master"),
    (30, "Expert"),
    (20, "Veteran"),
    (10, "Adventurer"),
    (5,  "Apprentice"),
    (1,  "Novice"),
]


def title_for_level(level: int) -> str:
    for threshold, title in LEVEL_TITLES:
        if level >= threshold:
            return title
    return "Novice"
