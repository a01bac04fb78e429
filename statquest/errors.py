"""Exceptions raised by StatQuest.

Session data never raises: the reward engine normalises bad numbers
instead.  Only caller-supplied configuration can fail, and even then
the engine falls back to a default (see
:func:`statquest.gamification.bonuses.resolve_anchor_time`).
"""

from __future__ import annotations


class StatQuestError(Exception):
    """Base class for all StatQuest errors."""


class ConfigurationError(StatQuestError, ValueError):
    """A configuration value could not be understood.

    ``field`` names the setting, ``value`` is what was supplied.
    """

    def __init__(self, field: str, value: object, reason: str = "") -> None:
        self.field = field
        self.value = value
        message = f"invalid {field}: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
