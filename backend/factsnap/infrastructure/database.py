"""Database Session Manager — async pool, transaction scope and error translation.

Invariants:
    - Every session auto-rolls-back on exception (no partial commits leak)
    - transaction() commits all statements together or none of them
    - Store errors are translated ONCE here into the core taxonomy:
      unique violation -> ConflictError (field parsed from driver detail),
      foreign-key violation / NoResultFound -> NotFoundError,
      anything else -> DatabaseError
    - SQLite connections get the math functions the haversine SQL needs and
      enforce foreign keys, so the same queries run in tests and on Postgres

Design Decisions:
    - Singleton db_manager initialized on startup: FastAPI lifespan manages lifecycle
    - expire_on_commit=False: rows stay readable after commit in async context
    - One session per unit of work: concurrent tasks never share an AsyncSession
"""

import logging
import math
import re
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, NoResultFound, SQLAlchemyError,
)

from factsnap.core.errors import (
    ConflictError, DatabaseError, FactSnapError, NotFoundError,
)

logger = logging.getLogger(__name__)

_PG_UNIQUE_VIOLATION = "23505"
_PG_FOREIGN_KEY_VIOLATION = "23503"

_PG_KEY_RE = re.compile(r"Key \(([^)]*)\)=")
_SQLITE_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: (.+)$")


def extract_unique_field(detail: str | None) -> str | None:
    """Offending column from a unique-violation detail; None for composite keys."""
    if not detail:
        return None
    match = _PG_KEY_RE.search(detail) or _SQLITE_UNIQUE_RE.search(detail)
    if not match:
        return None
    columns = match.group(1).strip()
    if "," in columns:
        return None
    return columns.rsplit(".", 1)[-1]


def _integrity_kind(exc: IntegrityError) -> tuple[str, str]:
    """Classify an IntegrityError as unique / foreign_key / other, with its detail."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    cause = getattr(orig, "__cause__", None)
    detail = (
        getattr(orig, "detail", None)
        or getattr(cause, "detail", None)
        or str(orig)
    )
    message = str(orig)
    if code == _PG_UNIQUE_VIOLATION or "UNIQUE constraint failed" in message:
        return "unique", detail
    if code == _PG_FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in message:
        return "foreign_key", detail
    return "other", detail


def translate_db_error(exc: SQLAlchemyError) -> FactSnapError:
    """Map a SQLAlchemy exception onto the core error taxonomy."""
    if isinstance(exc, NoResultFound):
        return NotFoundError("Record")
    if isinstance(exc, IntegrityError):
        kind, detail = _integrity_kind(exc)
        if kind == "unique":
            field = extract_unique_field(detail)
            message = f"{field} is already taken" if field else "record already exists"
            return ConflictError(message, field=field)
        if kind == "foreign_key":
            return NotFoundError("Referenced record")
        return DatabaseError("Integrity constraint violated", "commit")
    if isinstance(exc, OperationalError):
        return DatabaseError("Connection or operational error", "execute")
    if isinstance(exc, DBAPIError):
        return DatabaseError("Database driver error", "query")
    return DatabaseError("Database operation failed", "unknown")


def _nullsafe(fn):
    def wrapper(*args):
        if any(a is None for a in args):
            return None
        return fn(*args)
    return wrapper


_SQLITE_FUNCTIONS = (
    ("radians", 1, _nullsafe(math.radians)),
    ("sin", 1, _nullsafe(math.sin)),
    ("cos", 1, _nullsafe(math.cos)),
    ("asin", 1, _nullsafe(lambda x: math.asin(max(-1.0, min(1.0, x))))),
    ("sqrt", 1, _nullsafe(lambda x: math.sqrt(max(0.0, x)))),
    ("power", 2, _nullsafe(math.pow)),
)


def install_sqlite_hooks(engine: AsyncEngine) -> None:
    """Register math functions and enable FK enforcement on SQLite connections."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        for name, num_args, fn in _SQLITE_FUNCTIONS:
            dbapi_connection.create_function(name, num_args, fn)
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_engine(
    database_url: str, pool_size: int = 20, max_overflow: int = 10,
) -> AsyncEngine:
    """Create the async engine with store-specific hooks installed."""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(database_url)
    else:
        engine = create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    install_sqlite_hooks(engine)
    return engine


class DatabaseSessionManager:
    """Manages async database sessions with pooling, rollback, and health checks."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.engine = create_engine(
            database_url, pool_size=pool_size, max_overflow=max_overflow,
        )
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "DatabaseSessionManager":
        """Wrap an existing engine (test fixtures, scripts)."""
        manager = cls.__new__(cls)
        manager.engine = engine
        manager._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False,
        )
        return manager

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback and error translation."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            translated = translate_db_error(e)
            if isinstance(translated, DatabaseError):
                logger.error(f"DB error: {e}", extra={"error_code": translated.code})
            else:
                logger.warning(
                    f"DB constraint error: {e}", extra={"error_code": translated.code},
                )
            raise translated from e
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Session inside BEGIN ... COMMIT. Any exception rolls everything back."""
        async with self.session() as session:
            async with session.begin():
                yield session

    async def health_check(self) -> bool:
        """Check database connectivity (for the readiness check)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


# Singleton (initialized on startup)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


def get_db_manager() -> DatabaseSessionManager:
    """FastAPI dependency for the session manager."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    return db_manager
