"""StatQuest: turn finished focus sessions into stat EXP."""

__version__ = "0.1.0"
