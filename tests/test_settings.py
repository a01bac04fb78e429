"""Tests for settings persistence, logging setup, and the CLI summary."""

import json
import logging

import pytest

import statquest.__main__ as cli
from statquest.gamification.bonuses import TimeWindowRule
from statquest.gamification.fatigue import AdaptiveConfig
from statquest.logging_setup import LOGGER_NAME, get_logger, setup_logger
from statquest.settings import Settings, load_settings, save_settings


# ═══════════════════════════════════════════════════════════════════════════
#  SETTINGS
# ═══════════════════════════════════════════════════════════════════════════


class TestSettings:

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path / "nope.json") == Settings()

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "sub" / "settings.json"
        save_settings(Settings(anchor_time="05:15", damping_floor=0.5), path)
        loaded = load_settings(path)
        assert loaded.anchor_time == "05:15"
        assert loaded.damping_floor == 0.5
        assert loaded.combo_multiplier == 1.2

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"anchor_time": "07:00", "volume": 11}))
        assert load_settings(path).anchor_time == "07:00"

    @pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
    def test_unreadable_file_falls_back(self, tmp_path, caplog, content):
        path = tmp_path / "settings.json"
        path.write_text(content)
        with caplog.at_level(logging.WARNING, logger="StatQuest.settings"):
            assert load_settings(path) == Settings()
        assert "using defaults" in caplog.text

    def test_window_rule(self):
        rule = Settings(anchor_time="07:10", window_start_min_before=60).window_rule()
        assert rule == TimeWindowRule(
            anchor_time="07:10", start_min_before=60, end_min_before=48,
        )

    def test_adaptive_config(self):
        config = Settings(adaptive_max=3.0).adaptive_config()
        assert config == AdaptiveConfig(up_pct=0.03, down_pct=0.01, min=0.8, max=3.0)


# ═══════════════════════════════════════════════════════════════════════════
#  LOGGING
# ═══════════════════════════════════════════════════════════════════════════


class TestLogging:

    def test_child_logger_names(self):
        assert get_logger().name == "StatQuest"
        assert get_logger("engine").name == "StatQuest.engine"

    def test_modules_log_under_one_tree(self):
        from statquest import engine, settings
        from statquest.gamification import bonuses, rewards

        names = {m.logger.name for m in (bonuses, rewards, settings, engine)}
        assert names == {
            "StatQuest.bonuses", "StatQuest.rewards",
            "StatQuest.settings", "StatQuest.engine",
        }

    def test_setup_logger_writes_file(self, tmp_path):
        log_file = tmp_path / "logs" / "statquest.log"
        logger = logging.getLogger(LOGGER_NAME)
        saved = list(logger.handlers)
        logger.handlers.clear()
        try:
            setup_logger(log_file)
            get_logger("engine").info("hello from the engine")
            for handler in logger.handlers:
                handler.flush()
            assert "INFO | hello from the engine" in log_file.read_text()
        finally:
            for handler in logger.handlers:
                handler.close()
            logger.handlers[:] = saved


# ═══════════════════════════════════════════════════════════════════════════
#  CLI
# ═══════════════════════════════════════════════════════════════════════════


class TestMain:

    def test_prints_summary(self, qapp, monkeypatch, capsys):
        monkeypatch.setattr(cli, "setup_logger", lambda: None)
        monkeypatch.setattr("statquest.engine.load_settings", lambda: Settings())
        cli.main()
        out = capsys.readouterr().out
        assert out.startswith("Level 1 Novice")
        assert "0/100 EXP" in out
        assert "Strength" in out
        assert "Vitality" in out
