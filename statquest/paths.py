"""On-disk locations shared by settings, logging and the database."""

from pathlib import Path


APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "StatQuest"
