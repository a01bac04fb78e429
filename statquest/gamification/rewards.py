"""Session reward pipeline.

For one finished session::

    base split  →  bonus modifiers  →  stat_mult  →  ×final multiplier
                →  re-split  →  daily-budget damping  →  reward

The whole calculation reads the clock once (``context.now_ms``, or the
session's scheduled end when the caller passes none) and works only on
the snapshots in :class:`RewardContext`.  It returns new state for the
caller to persist (quest streaks, cleared one-shot flags); it never
stores anything itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..logging_setup import get_logger
from .bonuses import (
    COMBO_MULTIPLIER,
    REST_MULTIPLIER,
    TimeWindowRule,
    consume_one_shot_flags,
    first_light_modifier,
    last_session_id,
    one_shot_modifiers,
    resolve_bonuses,
    streak_modifiers,
)
from .fatigue import (
    BASE_PER_POINT,
    DEFAULT_DAMPING_FLOOR,
    StreakSignals,
    apply_damping,
    compute_daily_budgets,
)
from .leveling import level_for_total_exp
from .models import (
    Avatar,
    CompletedSession,
    FlagConsumption,
    Modifier,
    OneShotFlags,
    RewardContext,
    RewardResult,
    SessionIntent,
    StreakRecord,
)
from .split import base_exp_for_session
from .stats import add_stats
from .streaks import (
    aggregate_consistency,
    completion_days,
    day_for_ms,
    max_mandala_streak,
    today_stat_exp,
)


logger = get_logger("rewards")


@dataclass(frozen=True)
class SessionReward:
    """Outcome of :func:`compute_session_reward`.

    ``reward`` is what the avatar gains; ``bonus_breakdown`` explains it.
    ``next_quest_streaks`` and ``next_flags`` are the caller's state after
    this completion.
    """

    reward: RewardResult
    bonus_breakdown: tuple[Modifier, ...]
    base: RewardResult
    boosted: RewardResult
    multiplier: float
    end_time_ms: int
    budgets: dict[str, float] = field(default_factory=dict)
    spent_today: dict[str, int] = field(default_factory=dict)
    next_quest_streaks: dict[str, StreakRecord] = field(default_factory=dict)
    next_flags: OneShotFlags = OneShotFlags()
    global_streak_days: int = 0
    mandala_days: int = 0

    @property
    def spent_after(self) -> dict[str, int]:
        """Today's per-axis spend including this reward."""
        return add_stats(self.spent_today, self.reward.stat_exp)

    def to_completed(self, intent: SessionIntent) -> CompletedSession:
        return CompletedSession(
            intent=intent,
            end_time_ms=self.end_time_ms,
            reward=self.reward,
            bonus_breakdown=self.bonus_breakdown,
        )


def compute_session_reward(
    intent: SessionIntent,
    context: RewardContext,
    *,
    window_rule: TimeWindowRule | None = None,
    base_per_point: float = BASE_PER_POINT,
    damping_floor: float = DEFAULT_DAMPING_FLOOR,
    combo_multiplier: float = COMBO_MULTIPLIER,
    rest_multiplier: float = REST_MULTIPLIER,
) -> SessionReward:
    """Score one completed session."""
    tz = context.tz
    end_time_ms = (
        int(context.now_ms) if context.now_ms is not None
        else intent.start_time_ms + intent.duration_minutes * 60 * 1000
    )
    end_day = day_for_ms(end_time_ms, tz)
    rule = window_rule or TimeWindowRule(anchor_time=context.anchor_time)

    # ── 1. base split ────────────────────────────────────────────────
    base = base_exp_for_session(intent)

    # ── 2. modifiers ─────────────────────────────────────────────────
    read, next_flags = consume_one_shot_flags(
        context.one_shot_flags,
        last_session_id(context.history),
        intent.start_time_ms,
    )
    consumed = FlagConsumption(
        combo=intent.flags.combo or read.combo,
        rest=intent.flags.rest or read.rest,
    )
    modifiers = one_shot_modifiers(consumed, combo_multiplier, rest_multiplier)

    history_days = completion_days(context.history, tz)
    streaks = streak_modifiers(
        history_days=history_days,
        quest_streaks=context.quest_streaks,
        quest_key=intent.quest_key,
        completed_day=end_day,
    )
    modifiers.extend(streaks.modifiers)

    first_light = first_light_modifier(intent, base, end_time_ms, rule, tz)
    if first_light is not None:
        modifiers.append(first_light)

    # ── 3. resolve ───────────────────────────────────────────────────
    boosted, multiplier = resolve_bonuses(base, modifiers, intent.bonus_multiplier)

    # ── 4. damping ───────────────────────────────────────────────────
    spent = today_stat_exp(context.history, end_day, tz)
    consistency = context.aggregate_consistency
    if consistency is None:
        consistency = aggregate_consistency(history_days, end_day)
    signals = StreakSignals(
        mandala_streak=max_mandala_streak(context.quest_streaks),
        aggregate_consistency=consistency,
    )
    budgets = compute_daily_budgets(
        context.avatar, signals, context.adaptive, base_per_point=base_per_point,
    )
    reward = apply_damping(boosted, spent, budgets, damping_floor)

    logger.debug(
        "session %s: base=%d boosted=%d final=%d x%.3f [%s]",
        intent.session_id, base.total_exp, boosted.total_exp, reward.total_exp,
        multiplier, ", ".join(m.key for m in modifiers),
    )
    return SessionReward(
        reward=reward,
        bonus_breakdown=tuple(modifiers),
        base=base,
        boosted=boosted,
        multiplier=multiplier,
        end_time_ms=end_time_ms,
        budgets=budgets,
        spent_today=spent,
        next_quest_streaks=streaks.next_quest_streaks,
        next_flags=next_flags,
        global_streak_days=streaks.global_streak_days,
        mandala_days=streaks.mandala_days,
    )


def apply_reward_to_avatar(avatar: Avatar, reward: RewardResult) -> Avatar:
    """Bank *reward* on *avatar*.  Level is recomputed, never stored apart."""
    total = avatar.total_exp + max(0, reward.total_exp)
    return Avatar(
        level=level_for_total_exp(total),
        total_exp=total,
        stat_exp=add_stats(avatar.stat_exp, reward.stat_exp),
    )
