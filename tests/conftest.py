"""Shared pytest fixtures for StatQuest tests."""

import os
import sys
from datetime import timezone

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtCore import QCoreApplication

from statquest.database.db import configure_engine, init_db
from statquest.engine import RewardEngine
from statquest.settings import Settings


@pytest.fixture(scope="session")
def qapp():
    """A single QCoreApplication instance shared across the entire test run."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def reward_engine(qapp):
    """RewardEngine on default settings, calendar days in UTC."""
    return RewardEngine(parent=None, settings=Settings(), tz=timezone.utc)
