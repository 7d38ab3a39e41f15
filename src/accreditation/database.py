"""Database handle and session management.

The Database object owns the engine and session factory. It is constructed
explicitly at process start (FastAPI lifespan, Celery worker init, tests)
and passed into the services that need it; there is no module-level engine.
"""

import functools
import logging
from contextlib import contextmanager
from typing import Callable, Generator, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import AccreditationError, StorageError
from .models.base import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Engine plus session factory with an explicit lifecycle.

    Usage:
        db = Database(settings.DATABASE_URL)
        with db.session() as session:
            session.query(User).all()
        db.dispose()
    """

    def __init__(self, url: str, echo: bool = False):
        engine_kwargs = {
            "pool_pre_ping": True,  # Verify connections before using
            "echo": echo,
        }

        # Pool settings only apply to server databases (not SQLite)
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every session sees an empty database
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_size"] = 5
            engine_kwargs["max_overflow"] = 10

        self.url = url
        self.engine: Engine = create_engine(url, **engine_kwargs)

        if url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

    def create_all(self) -> None:
        """Create all tables (development and tests only)."""
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        """Close all pooled connections. Called on shutdown."""
        self.engine.dispose()
        logger.info("Database connections disposed")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Transactional unit of work.

        Commits on success, rolls back on any exception. Backend failures
        are re-raised as StorageError; domain errors pass through unchanged.

        Usage:
            with db.session() as session:
                session.add(record)
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except AccreditationError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Database error, transaction rolled back", exc_info=True)
            raise StorageError(f"Persistence backend failure: {type(e).__name__}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def retry_once_on_storage_error(func: Callable[..., T]) -> Callable[..., T]:
    """Retry an idempotent read once when the backend fails.

    Only for reads. Writes are never retried, the caller surfaces the failure
    instead of risking a duplicate submission.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> T:
        try:
            return func(*args, **kwargs)
        except StorageError:
            logger.warning(f"Storage error in {func.__name__}, retrying once")
            return func(*args, **kwargs)

    return wrapper
