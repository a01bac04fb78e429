"""Shared test helpers for StatQuest."""

from datetime import datetime, timedelta, timezone

from statquest.gamification.models import (
    CompletedSession,
    RewardResult,
    SessionIntent,
)


UTC = timezone.utc

# A Tuesday afternoon: well clear of the first-light window.
NOON = datetime(2026, 3, 10, 13, 0, tzinfo=UTC)


def ms(moment: datetime) -> int:
    """Epoch milliseconds for an aware datetime."""
    return int(moment.timestamp() * 1000)


def make_intent(
    allocation=None,
    duration_minutes: int = 10,
    start: datetime = NOON,
    **kwargs,
) -> SessionIntent:
    return SessionIntent(
        allocation=allocation if allocation is not None else {"INT": 2},
        duration_minutes=duration_minutes,
        start_time_ms=ms(start),
        **kwargs,
    )


def completed(
    session_id: str,
    end: datetime,
    stat_exp=None,
    quest_key=None,
) -> CompletedSession:
    """A past session that earned *stat_exp* and ended at *end*."""
    gains = stat_exp if stat_exp is not None else {"STR": 10}
    reward = RewardResult.from_stats(gains)
    intent = SessionIntent(
        allocation={k: 1 for k, v in gains.items() if v},
        duration_minutes=max(1, reward.total_exp // 10),
        start_time_ms=ms(end - timedelta(minutes=10)),
        quest_key=quest_key,
        session_id=session_id,
    )
    return CompletedSession(intent=intent, end_time_ms=ms(end), reward=reward)


def end_of(intent: SessionIntent) -> int:
    return intent.start_time_ms + intent.duration_minutes * 60 * 1000


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()
