"""Tests for daily budgets, damping, and adaptive overload."""

import math
from datetime import date, timedelta

import pytest

from statquest.gamification.fatigue import (
    AdaptiveConfig,
    StreakSignals,
    apply_damping,
    budget_for_stat,
    compute_daily_budgets,
    damping_multiplier,
    level_factor,
    roll_over_adaptive,
    round_half_up,
    stat_exp_to_tier,
    streak_factor,
    update_adaptive_overload,
)
from statquest.gamification.models import (
    AdaptiveOverloadState,
    Avatar,
    RewardResult,
)
from statquest.gamification.stats import STAT_KEYS


def _uniform(value):
    return {key: value for key in STAT_KEYS}


# ═══════════════════════════════════════════════════════════════════════════
#  BUDGET MODEL
# ═══════════════════════════════════════════════════════════════════════════


class TestTiers:

    @pytest.mark.parametrize("exp,tier", [
        (0, 1), (599, 1), (600, 2), (2399, 2), (2400, 3), (10 ** 6, 3),
        (-50, 1), (float("nan"), 1), (None, 1),
    ])
    def test_thresholds(self, exp, tier):
        assert stat_exp_to_tier(exp) == tier


class TestFactors:

    def test_level_factor_bounds(self):
        assert level_factor(1) == 0.0
        assert level_factor(30) == 1.0
        assert level_factor(80) == 1.0
        assert level_factor(0) == 0.0
        assert level_factor(15.5) == pytest.approx(0.5)

    def test_streak_factor_weights(self):
        assert streak_factor(0, 0) == 0.0
        assert streak_factor(21, 1) == pytest.approx(1.0)
        assert streak_factor(42, 5) == pytest.approx(1.0)
        assert streak_factor(21, 0) == pytest.approx(0.7)
        assert streak_factor(0, 1) == pytest.approx(0.3)


class TestBudgets:

    def test_fresh_avatar(self):
        budgets = compute_daily_budgets(Avatar())
        assert budgets == pytest.approx(_uniform(120.0))

    def test_tiers_scale_budget(self):
        avatar = Avatar(level=1, total_exp=3000, stat_exp={"STR": 600, "INT": 2400})
        budgets = compute_daily_budgets(avatar)
        assert budgets["STR"] == pytest.approx(240.0)
        assert budgets["INT"] == pytest.approx(360.0)
        assert budgets["DEX"] == pytest.approx(120.0)

    def test_level_adds_thirty_percent(self):
        budgets = compute_daily_budgets(Avatar(level=30))
        assert budgets["CHA"] == pytest.approx(156.0)

    def test_full_streak_adds_seventy_percent(self):
        budgets = compute_daily_budgets(
            Avatar(), StreakSignals(mandala_streak=21, aggregate_consistency=1.0),
        )
        assert budgets["VIT"] == pytest.approx(204.0)

    def test_adaptive_multiplier(self):
        state = AdaptiveOverloadState(current={**_uniform(1.0), "STR": 1.5})
        budgets = compute_daily_budgets(Avatar(), adaptive_state=state)
        assert budgets["STR"] == pytest.approx(180.0)
        assert budgets["DEX"] == pytest.approx(120.0)

    def test_bad_adaptive_multiplier_means_one(self):
        state = AdaptiveOverloadState(
            current={**_uniform(1.0), "STR": -2.0, "DEX": float("nan")},
        )
        budgets = compute_daily_budgets(Avatar(), adaptive_state=state)
        assert budgets["STR"] == pytest.approx(120.0)
        assert budgets["DEX"] == pytest.approx(120.0)

    def test_base_per_point(self):
        assert budget_for_stat(tier=2, base_per_point=50) == pytest.approx(100.0)


# ═══════════════════════════════════════════════════════════════════════════
#  DAMPING
# ═══════════════════════════════════════════════════════════════════════════


class TestDampingMultiplier:

    def test_under_budget(self):
        assert damping_multiplier(50, 100) == 1.0

    def test_at_budget(self):
        assert damping_multiplier(100, 100) == 1.0

    def test_no_budget(self):
        assert damping_multiplier(500, 0) == 1.0
        assert damping_multiplier(500, -10) == 1.0

    def test_twice_budget(self):
        expected = 0.4 + 0.6 * math.exp(-1)
        assert damping_multiplier(200, 100) == pytest.approx(expected)

    def test_custom_floor(self):
        assert damping_multiplier(10 ** 6, 1, floor=0.25) == pytest.approx(0.25, abs=1e-9)

    @pytest.mark.parametrize("budget", [1, 37.5, 120, 360, 10_000])
    def test_monotonic_and_bounded(self, budget):
        floor = 0.4
        previous = 1.0
        spent = 0.0
        while spent < budget * 12:
            m = damping_multiplier(spent, budget, floor)
            assert floor < m <= 1.0
            assert m <= previous
            if spent <= budget:
                assert m == 1.0
            previous = m
            spent += budget / 17


class TestApplyDamping:

    def test_below_budget_returns_input_unchanged(self):
        gain = RewardResult.from_stats({"STR": 60, "INT": 40})
        out = apply_damping(gain, {"STR": 20}, _uniform(120.0))
        assert out is gain

    def test_exactly_at_budget_is_unchanged(self):
        gain = RewardResult.from_stats({"STR": 100})
        out = apply_damping(gain, {"STR": 20}, _uniform(120.0))
        assert out is gain

    def test_damps_only_the_axis_over_budget(self):
        gain = RewardResult.from_stats({"STR": 100, "INT": 50})
        out = apply_damping(gain, {"STR": 100}, _uniform(120.0))
        expected_str = round_half_up(100 * damping_multiplier(200, 120))
        assert out.stat_exp["STR"] == expected_str
        assert out.stat_exp["INT"] == 50
        assert out.total_exp == expected_str + 50

    def test_damped_total_is_direct_sum(self):
        gain = RewardResult.from_stats({k: 333 for k in STAT_KEYS})
        out = apply_damping(gain, _uniform(500), _uniform(120.0))
        assert out.total_exp == sum(out.stat_exp.values())
        assert out.total_exp < gain.total_exp

    def test_never_below_floor_share(self):
        gain = RewardResult.from_stats({"STR": 1000})
        out = apply_damping(gain, {"STR": 10 ** 6}, _uniform(120.0))
        assert out.stat_exp["STR"] >= 400


# ═══════════════════════════════════════════════════════════════════════════
#  ADAPTIVE OVERLOAD
# ═══════════════════════════════════════════════════════════════════════════


class TestAdaptiveOverload:

    def test_saturated_goes_up_undershot_goes_down(self):
        state = AdaptiveOverloadState()
        nxt = update_adaptive_overload(
            state, {"STR": 150, "INT": 10}, _uniform(120.0),
        )
        assert nxt.next["STR"] == pytest.approx(1.03)
        assert nxt.next["INT"] == pytest.approx(0.99)

    def test_exactly_at_budget_counts_as_saturated(self):
        nxt = update_adaptive_overload(AdaptiveOverloadState(), {"STR": 120}, _uniform(120.0))
        assert nxt.next["STR"] == pytest.approx(1.03)

    def test_current_is_untouched(self):
        state = AdaptiveOverloadState()
        nxt = update_adaptive_overload(state, {"STR": 150}, _uniform(120.0))
        assert nxt.current == state.current

    def test_clamped_at_max(self):
        state = AdaptiveOverloadState(current=_uniform(1.99))
        nxt = update_adaptive_overload(state, _uniform(500), _uniform(120.0))
        assert nxt.next["DEX"] == pytest.approx(2.0)

    def test_clamped_at_min(self):
        state = AdaptiveOverloadState(current=_uniform(0.805))
        nxt = update_adaptive_overload(state, {}, _uniform(120.0))
        assert nxt.next["DEX"] == pytest.approx(0.8)

    def test_custom_config(self):
        config = AdaptiveConfig(up_pct=0.5, down_pct=0.5, min=0.1, max=10)
        nxt = update_adaptive_overload(
            AdaptiveOverloadState(), {"STR": 200}, _uniform(100.0), config,
        )
        assert nxt.next["STR"] == pytest.approx(1.5)
        assert nxt.next["INT"] == pytest.approx(0.5)

    def test_axis_without_budget_keeps_current(self):
        state = AdaptiveOverloadState(current={**_uniform(1.0), "SPI": 1.2})
        nxt = update_adaptive_overload(state, {"SPI": 999}, {**_uniform(120.0), "SPI": 0})
        assert nxt.next["SPI"] == pytest.approx(1.2)

    def test_repeated_updates_same_day_do_not_compound(self):
        state = AdaptiveOverloadState()
        once = update_adaptive_overload(state, {"STR": 200}, _uniform(120.0))
        twice = update_adaptive_overload(once, {"STR": 300}, _uniform(120.0))
        assert twice.next["STR"] == pytest.approx(1.03)


class TestRollover:

    def test_first_rollover_only_starts_the_clock(self):
        day = date(2026, 3, 10)
        state = AdaptiveOverloadState(next={**_uniform(1.0), "STR": 1.03})
        rolled = roll_over_adaptive(state, day)
        assert rolled.last_rollover_day == day
        assert rolled.current["STR"] == 1.0

    def test_new_day_promotes_next(self):
        day = date(2026, 3, 10)
        state = AdaptiveOverloadState(
            next={**_uniform(1.0), "STR": 1.03}, last_rollover_day=day,
        )
        rolled = roll_over_adaptive(state, day + timedelta(days=1))
        assert rolled.current["STR"] == pytest.approx(1.03)
        assert rolled.next["STR"] == pytest.approx(1.03)
        assert rolled.last_rollover_day == day + timedelta(days=1)

    def test_same_day_is_a_noop(self):
        day = date(2026, 3, 10)
        state = AdaptiveOverloadState(
            next={**_uniform(1.0), "STR": 1.03}, last_rollover_day=day,
        )
        assert roll_over_adaptive(state, day) is state
        assert roll_over_adaptive(state, day - timedelta(days=3)) is state
