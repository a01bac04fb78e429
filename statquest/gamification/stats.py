"""The seven stat axes and the helpers every stat map goes through.

Display order is fixed and doubles as the tie-break order for the
largest-remainder split.

    STR  Strength      INT  Intelligence
    DEX  Dexterity     SPI  Spirit
    STA  Stamina       CHA  Charisma
    VIT  Vitality
"""

from __future__ import annotations

import math
from typing import Mapping


STAT_KEYS: tuple[str, ...] = ("STR", "DEX", "STA", "INT", "SPI", "CHA", "VIT")

STAT_NAMES: dict[str, str] = {
    "STR": "Strength",
    "DEX": "Dexterity",
    "STA": "Stamina",
    "INT": "Intelligence",
    "SPI": "Spirit",
    "CHA": "Charisma",
    "VIT": "Vitality",
}

# Axis doubled by the first-light bonus.
SPIRIT_STAT = "SPI"

# Where a split puts everything when no axis carries weight.
FALLBACK_STAT = STAT_KEYS[0]


def coerce_number(value: object, default: float = 0.0) -> float:
    """Return *value* as a finite float, or *default*.

    ``bool`` is rejected on purpose: ``True`` is not a weight.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return float(value)


def stat_map(
    values: Mapping[str, object] | None = None,
    default: float = 0,
) -> dict[str, float]:
    """Full 7-key map from a partial one.  Unknown keys are dropped."""
    values = values or {}
    return {key: coerce_number(values.get(key), default) for key in STAT_KEYS}


def int_stat_map(values: Mapping[str, object] | None = None) -> dict[str, int]:
    """Like :func:`stat_map` but integer, non-negative values."""
    return {
        key: max(0, int(round(value)))
        for key, value in stat_map(values).items()
    }


def zero_stats() -> dict[str, int]:
    return {key: 0 for key in STAT_KEYS}


def add_stats(
    current: Mapping[str, object], delta: Mapping[str, object],
) -> dict[str, int]:
    """Per-axis integer sum of two stat maps."""
    return {
        key: int(coerce_number(current.get(key)) + coerce_number(delta.get(key)))
        for key in STAT_KEYS
    }
