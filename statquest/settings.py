"""Reward-engine settings with JSON persistence.

Settings are stored at:
    ~/Library/Application Support/StatQuest/settings.json

Usage::

    settings = load_settings()
    settings.anchor_time = "05:45"
    save_settings(settings)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict, fields
from pathlib import Path

from .gamification.bonuses import (
    COMBO_MULTIPLIER,
    REST_MULTIPLIER,
    REST_WINDOW_MINUTES,
    WINDOW_END_MIN_BEFORE,
    WINDOW_START_MIN_BEFORE,
    TimeWindowRule,
)
from .gamification.fatigue import BASE_PER_POINT, DEFAULT_DAMPING_FLOOR, AdaptiveConfig
from .gamification.models import DEFAULT_ANCHOR_TIME
from .logging_setup import get_logger
from .paths import APP_SUPPORT_DIR


SETTINGS_PATH = APP_SUPPORT_DIR / "settings.json"

logger = get_logger("settings")


@dataclass
class Settings:
    """All tunable reward settings."""

    # ── first-light window ────────────────────────────────────────────
    anchor_time: str = DEFAULT_ANCHOR_TIME      # local "HH:MM"
    window_start_min_before: int = WINDOW_START_MIN_BEFORE
    window_end_min_before: int = WINDOW_END_MIN_BEFORE

    # ── budgets & damping ─────────────────────────────────────────────
    base_per_point: float = BASE_PER_POINT
    damping_floor: float = DEFAULT_DAMPING_FLOOR

    # ── adaptive overload ─────────────────────────────────────────────
    adaptive_up_pct: float = 0.03
    adaptive_down_pct: float = 0.01
    adaptive_min: float = 0.8
    adaptive_max: float = 2.0

    # ── one-shot bonuses ──────────────────────────────────────────────
    combo_multiplier: float = COMBO_MULTIPLIER
    rest_multiplier: float = REST_MULTIPLIER
    rest_window_minutes: int = REST_WINDOW_MINUTES

    def window_rule(self) -> TimeWindowRule:
        return TimeWindowRule(
            anchor_time=self.anchor_time,
            start_min_before=self.window_start_min_before,
            end_min_before=self.window_end_min_before,
        )

    def adaptive_config(self) -> AdaptiveConfig:
        return AdaptiveConfig(
            up_pct=self.adaptive_up_pct,
            down_pct=self.adaptive_down_pct,
            min=self.adaptive_min,
            max=self.adaptive_max,
        )


def load_settings(path: Path = SETTINGS_PATH) -> Settings:
    """Load settings from disk, falling back to defaults."""
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            # Only use keys that exist in the dataclass
            valid_keys = {f.name for f in fields(Settings)}
            filtered = {k: v for k, v in data.items() if k in valid_keys}
            return Settings(**filtered)
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        logger.warning("could not read %s (%s); using defaults", path, exc)
    return Settings()


def save_settings(settings: Settings, path: Path = SETTINGS_PATH) -> None:
    """Write settings to disk as JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(asdict(settings), indent=2) + "\n",
        encoding="utf-8",
    )
