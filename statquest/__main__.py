"""Print the avatar's progress: python -m statquest."""

from .database.db import init_db
from .engine import RewardEngine
from .gamification.leveling import progress, title_for_level
from .gamification.stats import STAT_KEYS, STAT_NAMES
from .logging_setup import setup_logger


def main() -> None:
    setup_logger()
    init_db()

    engine = RewardEngine()
    avatar = engine.avatar_snapshot()
    prog = progress(avatar.total_exp)
    budgets = engine.daily_budgets()

    print(f"Level {prog.level} {title_for_level(prog.level)}")
    print(f"  {prog.current}/{prog.required} EXP to next level ({prog.ratio:.0%})")
    for key in STAT_KEYS:
        print(
            f"  {STAT_NAMES[key]:<13}{avatar.stat_exp.get(key, 0):>7} EXP"
            f"   budget today {budgets[key]:>6.0f}"
        )


if __name__ == "__main__":
    main()
