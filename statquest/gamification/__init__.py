"""Gamification package: the progression and reward engine."""

from .stats import STAT_KEYS, STAT_NAMES, SPIRIT_STAT, FALLBACK_STAT
from .leveling import (
    MAX_LEVEL,
    LevelProgress,
    exp_floor_for_level,
    level_for_total_exp,
    progress,
    exp_to_next_level,
    title_for_level,
)
from .models import (
    Avatar,
    SessionIntent,
    CompletedSession,
    Modifier,
    RewardResult,
    StreakRecord,
    AdaptiveOverloadState,
    OneShotFlags,
    FlagConsumption,
    RewardContext,
)
from .split import EXP_PER_MINUTE, split_total, base_exp_for_session
from .streaks import advance_streak, update_streaks, global_streak_days
from .fatigue import (
    AdaptiveConfig,
    StreakSignals,
    compute_daily_budgets,
    damping_multiplier,
    apply_damping,
    update_adaptive_overload,
    roll_over_adaptive,
)
from .bonuses import (
    TimeWindowRule,
    consume_one_shot_flags,
    resolve_multiplier,
    well_rested_until,
)
from .rewards import SessionReward, compute_session_reward, apply_reward_to_avatar

__all__ = [
    "STAT_KEYS",
    "STAT_NAMES",
    "SPIRIT_STAT",
    "FALLBACK_STAT",
    "MAX_LEVEL",
    "LevelProgress",
    "exp_floor_for_level",
    "level_for_total_exp",
    "progress",
    "exp_to_next_level",
    "title_for_level",
    "Avatar",
    "SessionIntent",
    "CompletedSession",
    "Modifier",
    "RewardResult",
    "StreakRecord",
    "AdaptiveOverloadState",
    "OneShotFlags",
    "FlagConsumption",
    "RewardContext",
    "EXP_PER_MINUTE",
    "split_total",
    "base_exp_for_session",
    "advance_streak",
    "update_streaks",
    "global_streak_days",
    "AdaptiveConfig",
    "StreakSignals",
    "compute_daily_budgets",
    "damping_multiplier",
    "apply_damping",
    "update_adaptive_overload",
    "roll_over_adaptive",
    "TimeWindowRule",
    "consume_one_shot_flags",
    "resolve_multiplier",
    "well_rested_until",
    "SessionReward",
    "compute_session_reward",
    "apply_reward_to_avatar",
]
