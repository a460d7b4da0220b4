"""Shared fixtures for tests that run against a real SQLite database."""

import unittest
from datetime import UTC, datetime
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from remindee.database import connection
from remindee.database.connection import create_all_tables

# Fixed reference instant used across store and dispatcher tests
T = datetime(2025, 1, 6, 13, 0, 0, tzinfo=UTC)


class DatabaseTestCase(unittest.TestCase):
    """Test case backed by an in-memory SQLite database.

    ``get_session()`` is pointed at the in-memory engine for the duration of
    each test, so code under test uses the real session handling.
    """

    def setUp(self) -> None:
        """Create a fresh database and route get_session() to it."""
        self.engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        create_all_tables(self.engine)
        session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

        for name, value in (("engine", self.engine), ("session_factory", session_factory)):
            patcher = patch.object(connection._state, name, value)
            patcher.start()
            self.addCleanup(patcher.stop)
        self.addCleanup(self.engine.dispose)
