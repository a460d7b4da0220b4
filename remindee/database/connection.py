"""Database connection and session management."""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from remindee.database.core import Base
from remindee.exceptions import StorageError
from remindee.paths import PROJECT_ROOT

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_FILENAME = "remindee_db.sqlite"


def get_database_url() -> str:
    """Get the database URL from the environment.

    Falls back to a SQLite file in the project root when DATABASE_URL is unset.

    :returns: The database connection URL.
    """
    url = os.environ.get("DATABASE_URL")
    if url:
        return url
    return f"sqlite:///{PROJECT_ROOT / DEFAULT_SQLITE_FILENAME}"


def create_db_engine(*, echo: bool = False) -> Engine:
    """Create a SQLAlchemy engine for the database.

    :param echo: If True, log all SQL statements.
    :returns: A configured SQLAlchemy engine.
    """
    return create_engine(get_database_url(), echo=echo, pool_pre_ping=True)


def create_all_tables(engine: Engine) -> None:
    """Create every table known to the ORM metadata.

    Intended for local development and tests; deployed databases are managed
    by alembic.

    :param engine: Engine to create the tables on.
    """
    Base.metadata.create_all(engine)
    logger.info(f"Created tables: {sorted(Base.metadata.tables)}")


@dataclass
class _DatabaseState:
    """Container for database connection state."""

    engine: Engine | None = field(default=None)
    session_factory: sessionmaker[Session] | None = field(default=None)


_state = _DatabaseState()


def get_engine() -> Engine:
    """Get or create the database engine singleton.

    :returns: The database engine.
    """
    if _state.engine is None:
        _state.engine = create_db_engine()
    return _state.engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the session factory singleton.

    :returns: A sessionmaker bound to the database engine.
    """
    if _state.session_factory is None:
        _state.session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _state.session_factory


@contextmanager
def get_session() -> Iterator[Session]:
    """Create a new database session with automatic cleanup.

    The block is a single transaction: it commits on successful completion
    and rolls back on any exception. Database errors are re-raised as
    StorageError; other exceptions propagate unchanged.

    :yields: A database session.
    :raises StorageError: If the database raises during the block or commit.
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()

    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError(f"Database operation failed: {e}") from e

    except Exception:
        session.rollback()
        raise

    finally:
        session.close()
