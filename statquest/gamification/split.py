"""Sum-preserving split of an EXP total across the stat axes.

Every place that hands out or redistributes a total goes through
:func:`split_total`.  It uses the largest-remainder (Hamilton) method:

1. give each axis the floor of its exact share;
2. hand the leftover units, one each, to the axes with the largest
   fractional remainders (ties go to the earlier axis in ``STAT_KEYS``).

Rounding each axis independently can drift the per-axis sum away from
the total after a multiplier; this method cannot.

Base session EXP
----------------
``EXP_PER_MINUTE`` EXP per focused minute, duration clamped to
1-240 minutes.  Allocation points (0-3 per axis) are the split weights.
Sessions recorded before allocations existed carry a chart snapshot
(``stand_stats``, 1 = baseline) instead; its ``value - 1`` is used as
the weight when every allocation point is zero.
"""

from __future__ import annotations

from fractions import Fraction
from typing import Mapping

from .models import RewardResult, SessionIntent, clamp_duration
from .stats import FALLBACK_STAT, STAT_KEYS, coerce_number, zero_stats


EXP_PER_MINUTE = 10


def _whole_amount(total: object) -> int:
    if isinstance(total, int) and not isinstance(total, bool):
        return max(0, total)
    return max(0, int(round(coerce_number(total))))


def _weight(value: object) -> Fraction:
    if isinstance(value, int) and not isinstance(value, bool):
        return Fraction(max(0, value))
    return Fraction(max(0.0, coerce_number(value)))


def split_total(total: int, weights: Mapping[str, object] | None) -> dict[str, int]:
    """Apportion *total* over all axes in proportion to *weights*.

    The result always holds every stat key and sums to exactly
    ``max(0, round(total))``.  With no positive weight the whole total
    goes to ``FALLBACK_STAT``.  Shares are exact fractions, so the
    leftover after flooring is always fewer units than there are axes.
    """
    amount = _whole_amount(total)
    result = zero_stats()
    if amount == 0:
        return result

    clean = {key: _weight((weights or {}).get(key)) for key in STAT_KEYS}
    weight_sum = sum(clean.values())
    if weight_sum <= 0:
        result[FALLBACK_STAT] = amount
        return result

    remainders: list[tuple[Fraction, int, str]] = []
    used = 0
    for index, key in enumerate(STAT_KEYS):
        share = amount * clean[key] / weight_sum
        floor = share.numerator // share.denominator
        result[key] = floor
        used += floor
        remainders.append((share - floor, index, key))

    leftover = amount - used
    # Largest fraction first, then fixed key order.
    remainders.sort(key=lambda item: (-item[0], item[1]))
    for _frac, _index, key in remainders[:leftover]:
        result[key] += 1
    return result


def session_weights(intent: SessionIntent) -> dict[str, float]:
    """Split weights for *intent*: allocation first, legacy chart second."""
    weights = {key: intent.allocation.get(key, 0.0) for key in STAT_KEYS}
    if sum(weights.values()) > 0:
        return weights
    if intent.stand_stats:
        return {
            key: max(0.0, coerce_number(intent.stand_stats.get(key), 1.0) - 1.0)
            for key in STAT_KEYS
        }
    return weights


def base_exp_for_session(intent: SessionIntent) -> RewardResult:
    """Unmodified EXP for *intent*: duration times rate, split by weight."""
    total = clamp_duration(intent.duration_minutes) * EXP_PER_MINUTE
    return RewardResult(
        total_exp=total,
        stat_exp=split_total(total, session_weights(intent)),
    )
