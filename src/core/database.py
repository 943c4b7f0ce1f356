"""Database engine and session helpers."""

from collections.abc import AsyncIterator

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.engine.url import URL
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from .config import settings

SUPPORTED_ASYNC_DIALECTS = {"postgresql+asyncpg", "mysql+asyncmy", "sqlite+aiosqlite"}
DRIVER_COERCIONS = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
    "mysql": "mysql+asyncmy",
    "sqlite": "sqlite+aiosqlite",
}


def resolve_async_database_url(raw_url: str) -> str:
    """Ensure the configured DATABASE_URL uses an async-capable driver."""
    url = make_url(raw_url)
    drivername = url.drivername.lower()
    if drivername in SUPPORTED_ASYNC_DIALECTS:
        return raw_url

    base_driver = drivername.split("+", 1)[0]
    target_driver = DRIVER_COERCIONS.get(base_driver)
    if not target_driver:
        raise ValueError(
            f"Unsupported database dialect '{url.drivername}'. "
            "The clinic API supports PostgreSQL (asyncpg), "
            "MySQL (asyncmy), or SQLite with aiosqlite for testing."
        )

    coerced_url: URL = url.set(drivername=target_driver)
    return coerced_url.render_as_string(hide_password=False)


# postgres lock_not_available / deadlock_detected / serialization_failure, mysql lock wait / deadlock
LOCK_SQLSTATES = {"55P03", "40P01", "40001"}
LOCK_ERROR_CODES = {1205, 1213}


def is_lock_failure(exc: DBAPIError) -> bool:
    """True when the driver error means a row lock could not be taken in time."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in LOCK_SQLSTATES:
        return True
    args = getattr(orig, "args", ()) or ()
    if args and args[0] in LOCK_ERROR_CODES:
        return True
    return "database is locked" in str(orig)


async def apply_lock_timeout(session: AsyncSession, timeout_ms: int) -> None:
    """Bound how long the current transaction waits on row locks.

    Only PostgreSQL can scope this to the transaction. MySQL connections get
    the wait configured once when they are opened, see ``set_mysql_lock_wait``.
    SQLite has no row locks.
    """
    dialect = session.bind.dialect.name if session.bind is not None else ""
    if dialect == "postgresql":
        await session.execute(text(f"SET LOCAL lock_timeout = {int(timeout_ms)}"))


def set_mysql_lock_wait(dbapi_connection, _connection_record) -> None:
    """Connect hook: every pooled MySQL connection carries the configured lock wait."""
    seconds = max(1, int(settings.lock_timeout_ms) // 1000)
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute(f"SET SESSION innodb_lock_wait_timeout = {seconds}")
    finally:
        cursor.close()


class Base(DeclarativeBase):
    """Base declarative class with common metadata."""


DATABASE_URL = resolve_async_database_url(settings.database_url)

engine = create_async_engine(
    DATABASE_URL,
    echo=settings.debug,
    future=True,
)
if engine.dialect.name == "mysql":
    event.listen(engine.sync_engine, "connect", set_mysql_lock_wait)

AsyncSessionLocal = async_sessionmaker(
    engine,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an async session."""
    async with AsyncSessionLocal() as session:
        yield session
