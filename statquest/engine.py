"""Reward engine service: the reward pipeline wired to storage and Qt.

The pure functions in :mod:`statquest.gamification` never touch storage
or the clock.  ``RewardEngine`` is the caller they expect: it loads the
snapshots, reads the clock once per operation, runs the pipeline,
persists the returned state, and tells the UI.

Signals
-------
reward_granted(data: dict)
    After every completed session.  Keys: ``amount``, ``stat_exp``,
    ``bonuses`` (list of modifier dicts), ``multiplier``,
    ``total_exp``, ``level``, ``title``, ``session_id``.
level_up(data: dict)
    When the avatar reaches a new level.  Keys: ``old_level``,
    ``new_level``, ``new_title``.
streak_updated(quest_key: str, streak_days: int)
    After a completion that carries a quest key.

One-shot flags
--------------
Combo and rest flags are consumed in :meth:`RewardEngine.start_session`
and the cleared state is written back in the same transaction, so
starting a second session can never collect them again.
"""

from __future__ import annotations

import time
import uuid
from datetime import date, tzinfo
from typing import Mapping

from PyQt6.QtCore import QObject, pyqtSignal

from .database.db import get_session
from .database.models import (
    AdaptiveStateRow,
    AvatarRow,
    OneShotFlagsRow,
    QuestStreakRow,
    SessionRecord,
)
from .gamification.bonuses import consume_one_shot_flags, well_rested_until
from .gamification.fatigue import (
    StreakSignals,
    compute_daily_budgets,
    roll_over_adaptive,
    update_adaptive_overload,
)
from .gamification.leveling import title_for_level
from .gamification.models import (
    AdaptiveOverloadState,
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
from .gamification.rewards import apply_reward_to_avatar, compute_session_reward
from .gamification.stats import int_stat_map, stat_map
from .gamification.streaks import (
    aggregate_consistency,
    completion_days,
    day_for_ms,
    max_mandala_streak,
)
from .logging_setup import get_logger
from .settings import Settings, load_settings


logger = get_logger("engine")


def _now_ms() -> int:
    return int(time.time() * 1000)


# ── row ↔ record conversion ──────────────────────────────────────────────


def _record_to_session(rec: SessionRecord) -> CompletedSession:
    intent = SessionIntent(
        allocation=rec.allocation or {},
        duration_minutes=rec.duration_minutes,
        start_time_ms=rec.start_time_ms,
        quest_key=rec.quest_key,
        flags=FlagConsumption(combo=bool(rec.combo_bonus), rest=bool(rec.rest_bonus)),
        bonus_multiplier=rec.bonus_multiplier,
        session_id=rec.session_id,
    )
    return CompletedSession(
        intent=intent,
        end_time_ms=rec.end_time_ms,
        reward=RewardResult(
            total_exp=rec.total_exp, stat_exp=int_stat_map(rec.stat_exp),
        ),
        bonus_breakdown=tuple(Modifier.from_dict(m) for m in rec.bonus_breakdown or []),
        notes=rec.notes or "",
    )


def _avatar_from_row(row: AvatarRow) -> Avatar:
    return Avatar.from_totals(row.stat_exp, total_exp=row.total_exp)


def _adaptive_from_row(row: AdaptiveStateRow) -> AdaptiveOverloadState:
    return AdaptiveOverloadState(
        current=stat_map(row.current, 1.0),
        next=stat_map(row.next, 1.0),
        last_rollover_day=row.last_rollover_day,
    )


def _store_adaptive(row: AdaptiveStateRow, state: AdaptiveOverloadState) -> None:
    # Fresh dicts so the JSON columns register as changed.
    row.current = dict(state.current)
    row.next = dict(state.next)
    row.last_rollover_day = state.last_rollover_day


# ── engine ───────────────────────────────────────────────────────────────


class RewardEngine(QObject):
    """Runs the reward pipeline against the StatQuest database."""

    reward_granted = pyqtSignal(object)
    level_up = pyqtSignal(object)
    streak_updated = pyqtSignal(str, int)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        settings: Settings | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings if settings is not None else load_settings()
        self._tz = tz

    @property
    def settings(self) -> Settings:
        return self._settings

    # ── loading helpers ──────────────────────────────────────────────────

    @staticmethod
    def _single(db, row_type):
        row = db.query(row_type).first()
        if row is None:
            row = row_type()
            db.add(row)
            db.flush()
        return row

    @staticmethod
    def _history(db) -> tuple[CompletedSession, ...]:
        records = (
            db.query(SessionRecord)
            .order_by(SessionRecord.end_time_ms.desc(), SessionRecord.id.desc())
            .all()
        )
        return tuple(_record_to_session(r) for r in records)

    @staticmethod
    def _streaks(db) -> dict[str, StreakRecord]:
        return {
            row.quest_key: StreakRecord(
                last_completed_day=row.last_completed_day,
                streak_length=row.streak_length,
            )
            for row in db.query(QuestStreakRow).all()
        }

    # ── queries ──────────────────────────────────────────────────────────

    def avatar_snapshot(self) -> Avatar:
        with get_session() as db:
            return _avatar_from_row(self._single(db, AvatarRow))

    def streak_table(self) -> dict[str, StreakRecord]:
        with get_session() as db:
            return self._streaks(db)

    def history(self) -> tuple[CompletedSession, ...]:
        with get_session() as db:
            return self._history(db)

    def one_shot_flags(self) -> OneShotFlags:
        with get_session() as db:
            row = self._single(db, OneShotFlagsRow)
            return OneShotFlags(row.combo_source_id, row.well_rested_until_ms)

    def adaptive_state(self) -> AdaptiveOverloadState:
        with get_session() as db:
            return _adaptive_from_row(self._single(db, AdaptiveStateRow))

    def daily_budgets(self, now_ms: int | None = None) -> dict[str, float]:
        """Today's per-axis budgets, as the next completion would see them."""
        now = _now_ms() if now_ms is None else now_ms
        today = day_for_ms(now, self._tz)
        with get_session() as db:
            avatar = _avatar_from_row(self._single(db, AvatarRow))
            adaptive = roll_over_adaptive(
                _adaptive_from_row(self._single(db, AdaptiveStateRow)), today,
            )
            history = self._history(db)
            streaks = self._streaks(db)
        signals = StreakSignals(
            mandala_streak=max_mandala_streak(streaks),
            aggregate_consistency=aggregate_consistency(
                completion_days(history, self._tz), today,
            ),
        )
        return compute_daily_budgets(
            avatar, signals, adaptive, base_per_point=self._settings.base_per_point,
        )

    # ── session lifecycle ────────────────────────────────────────────────

    def start_session(
        self,
        *,
        allocation: Mapping[str, float],
        duration_minutes: int,
        quest_key: str | None = None,
        start_time_ms: int | None = None,
        session_id: str | None = None,
        stand_stats: Mapping[str, float] | None = None,
    ) -> SessionIntent:
        """Create the intent for a session that is starting now.

        Reads and clears the one-shot flags.
        """
        start = _now_ms() if start_time_ms is None else start_time_ms
        with get_session() as db:
            flags_row = self._single(db, OneShotFlagsRow)
            flags = OneShotFlags(flags_row.combo_source_id, flags_row.well_rested_until_ms)
            latest = (
                db.query(SessionRecord)
                .order_by(SessionRecord.end_time_ms.desc(), SessionRecord.id.desc())
                .first()
            )
            consumed, remaining = consume_one_shot_flags(
                flags, latest.session_id if latest else None, start,
            )
            flags_row.combo_source_id = remaining.combo_source_id
            flags_row.well_rested_until_ms = remaining.well_rested_until_ms

        multiplier = 1.0
        if consumed.combo:
            multiplier *= self._settings.combo_multiplier
        if consumed.rest:
            multiplier *= self._settings.rest_multiplier
        if consumed.combo or consumed.rest:
            logger.info(
                "session bonuses picked up combo=%s rest=%s", consumed.combo, consumed.rest,
            )

        return SessionIntent(
            allocation=allocation,
            duration_minutes=duration_minutes,
            start_time_ms=start,
            quest_key=quest_key,
            flags=consumed,
            bonus_multiplier=multiplier,
            stand_stats=stand_stats,
            session_id=session_id or f"session-{uuid.uuid4().hex}",
        )

    def complete_session(
        self, intent: SessionIntent, end_time_ms: int | None = None,
    ) -> dict:
        """Score *intent*, bank the reward and persist the new state.

        **Idempotent**: completing the same ``session_id`` twice returns
        ``exp_earned=0`` the second time.
        """
        end = _now_ms() if end_time_ms is None else end_time_ms
        end_day = day_for_ms(end, self._tz)
        settings = self._settings

        with get_session() as db:
            avatar_row = self._single(db, AvatarRow)
            avatar = _avatar_from_row(avatar_row)
            if (
                intent.session_id is not None
                and db.query(SessionRecord).filter_by(session_id=intent.session_id).first()
            ):
                logger.info("session %s already rewarded", intent.session_id)
                return {
                    "exp_earned": 0,
                    "stat_exp": {},
                    "level_up": False,
                    "old_level": avatar.level,
                    "new_level": avatar.level,
                    "new_title": title_for_level(avatar.level),
                    "bonuses": [],
                }

            adaptive_row = self._single(db, AdaptiveStateRow)
            adaptive = roll_over_adaptive(_adaptive_from_row(adaptive_row), end_day)
            context = RewardContext(
                history=self._history(db),
                quest_streaks=self._streaks(db),
                avatar=avatar,
                adaptive=adaptive,
                anchor_time=settings.anchor_time,
                now_ms=end,
                tz=self._tz,
            )
            result = compute_session_reward(
                intent,
                context,
                window_rule=settings.window_rule(),
                base_per_point=settings.base_per_point,
                damping_floor=settings.damping_floor,
                combo_multiplier=settings.combo_multiplier,
                rest_multiplier=settings.rest_multiplier,
            )
            reward = result.reward

            # ── avatar ───────────────────────────────────────────────
            new_avatar = apply_reward_to_avatar(avatar, reward)
            avatar_row.total_exp = new_avatar.total_exp
            avatar_row.level = new_avatar.level
            avatar_row.stat_exp = dict(new_avatar.stat_exp)

            # ── session record ───────────────────────────────────────
            db.add(SessionRecord(
                session_id=intent.session_id or f"session-{uuid.uuid4().hex}",
                quest_key=intent.quest_key,
                allocation=dict(intent.allocation),
                duration_minutes=intent.duration_minutes,
                start_time_ms=intent.start_time_ms,
                end_time_ms=end,
                combo_bonus=int(intent.flags.combo),
                rest_bonus=int(intent.flags.rest),
                bonus_multiplier=intent.bonus_multiplier,
                total_exp=reward.total_exp,
                stat_exp=dict(reward.stat_exp),
                bonus_breakdown=[m.to_dict() for m in result.bonus_breakdown],
            ))

            # ── quest streak ─────────────────────────────────────────
            if intent.quest_key:
                record = result.next_quest_streaks[intent.quest_key]
                row = db.query(QuestStreakRow).filter_by(quest_key=intent.quest_key).first()
                if row is None:
                    row = QuestStreakRow(quest_key=intent.quest_key)
                    db.add(row)
                row.last_completed_day = record.last_completed_day
                row.streak_length = record.streak_length

            # ── tomorrow's adaptive multiplier ───────────────────────
            adaptive = update_adaptive_overload(
                adaptive, result.spent_after, result.budgets, settings.adaptive_config(),
            )
            _store_adaptive(adaptive_row, adaptive)

        old_level = avatar.level
        leveled_up = new_avatar.level > old_level
        new_title = title_for_level(new_avatar.level)
        bonuses = [m.to_dict() for m in result.bonus_breakdown]
        logger.info(
            "session %s rewarded %d EXP (x%.3f) level %d",
            intent.session_id, reward.total_exp, result.multiplier, new_avatar.level,
        )

        # ── emit signals ─────────────────────────────────────────────
        self.reward_granted.emit({
            "amount": reward.total_exp,
            "stat_exp": dict(reward.stat_exp),
            "bonuses": bonuses,
            "multiplier": result.multiplier,
            "total_exp": new_avatar.total_exp,
            "level": new_avatar.level,
            "title": new_title,
            "session_id": intent.session_id,
        })
        if leveled_up:
            self.level_up.emit({
                "old_level": old_level,
                "new_level": new_avatar.level,
                "new_title": new_title,
            })
        if intent.quest_key:
            self.streak_updated.emit(intent.quest_key, result.mandala_days)

        return {
            "exp_earned": reward.total_exp,
            "stat_exp": dict(reward.stat_exp),
            "level_up": leveled_up,
            "old_level": old_level,
            "new_level": new_avatar.level,
            "new_title": new_title,
            "bonuses": bonuses,
        }

    # ── after-session choices ────────────────────────────────────────────

    def continue_quest(self, session_id: str | None = None) -> None:
        """Arm the combo bonus for the session after *session_id* (or the latest)."""
        with get_session() as db:
            if session_id is None:
                latest = (
                    db.query(SessionRecord)
                    .order_by(SessionRecord.end_time_ms.desc(), SessionRecord.id.desc())
                    .first()
                )
                if latest is None:
                    return
                session_id = latest.session_id
            self._single(db, OneShotFlagsRow).combo_source_id = session_id

    def take_break(self, now_ms: int | None = None) -> int:
        """Start the well-rested window; returns when it ends (epoch ms)."""
        now = _now_ms() if now_ms is None else now_ms
        until = well_rested_until(now, self._settings.rest_window_minutes)
        with get_session() as db:
            self._single(db, OneShotFlagsRow).well_rested_until_ms = until
        return until

    def add_notes(self, session_id: str, notes: str) -> bool:
        with get_session() as db:
            rec = db.query(SessionRecord).filter_by(session_id=session_id).first()
            if rec is None:
                return False
            rec.notes = _record_to_session(rec).with_notes(notes).notes
            return True

    def roll_over(self, day: date) -> AdaptiveOverloadState:
        """Promote tomorrow's adaptive multipliers if *day* is a new day."""
        with get_session() as db:
            row = self._single(db, AdaptiveStateRow)
            state = roll_over_adaptive(_adaptive_from_row(row), day)
            _store_adaptive(row, state)
            return state
