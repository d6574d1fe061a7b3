"""Database connection and session management."""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_NAME = "carenest"

# Processing passes, channel lookups and API requests all hold short sessions
DEFAULT_POOL_SIZE = 10
DEFAULT_MAX_OVERFLOW = 10


def get_database_url() -> str:
    """Build the PostgreSQL database URL from environment variables.

    DATABASE_URL takes precedence when set, which is how local tooling points
    the service at a throwaway database.

    :returns: The database connection URL.
    :raises KeyError: If required environment variables are not set.
    """
    explicit_url = os.environ.get("DATABASE_URL")
    if explicit_url:
        return explicit_url

    host = os.environ["DATABASE_HOST"]
    port = os.environ.get("DATABASE_PORT", "5432")
    password = os.environ["APP_DB_PASSWORD"]
    name = os.environ.get("DATABASE_NAME", DEFAULT_DATABASE_NAME)

    return f"postgresql://app:{password}@{host}:{port}/{name}"


def create_db_engine(*, echo: bool = False) -> Engine:
    """Create a SQLAlchemy engine for the database.

    PostgreSQL engines get a pool sized by DATABASE_POOL_SIZE and
    DATABASE_MAX_OVERFLOW, and sessions run in UTC.

    :param echo: If True, log all SQL statements.
    :returns: A configured SQLAlchemy engine.
    """
    url = get_database_url()
    if not url.startswith("postgresql"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=int(os.environ.get("DATABASE_POOL_SIZE", DEFAULT_POOL_SIZE)),
        max_overflow=int(os.environ.get("DATABASE_MAX_OVERFLOW", DEFAULT_MAX_OVERFLOW)),
        connect_args={"options": "-c timezone=utc"},
    )


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


def dispose_engine() -> None:
    """Close pooled connections and forget the engine.

    Called when a runner shuts down. The next session creates a fresh engine.
    """
    if _state.engine is not None:
        _state.engine.dispose()
        logger.info("Database engine disposed")
    _state.engine = None
    _state.session_factory = None


@contextmanager
def get_session() -> Iterator[Session]:
    """Create a new database session with automatic cleanup.

    Commits on successful completion, rolls back on exception.

    :yields: A database session.
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()

    except Exception:
        session.rollback()
        raise

    finally:
        session.close()
