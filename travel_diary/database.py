"""
Travel Diary – Async SQLAlchemy engine, session factory, and declarative base.

The engine and session factory are built from an explicit ``Settings`` object
and hung off ``app.state`` by the application factory; nothing in the core
reaches for a process-wide handle. Sessions are opened per unit of work by
``EntryRepository`` and the identity dependency, never held across a request.
"""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from travel_diary.config import Settings


# ── Declarative base ──
class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


# ── Engine ──
def build_engine(settings: Settings) -> AsyncEngine:
    engine_kwargs = {
        "echo": settings.DEBUG,
        "future": True,
    }

    # If using PostgreSQL (Render/Supabase), disable prepared statement caching
    # because PgBouncer (transaction mode) does not support it properly.
    if "postgresql" in settings.DATABASE_URL:
        engine_kwargs["connect_args"] = {"statement_cache_size": 0}

    engine = create_async_engine(settings.DATABASE_URL, **engine_kwargs)
    if engine.dialect.name == "sqlite":
        _begin_immediate(engine)
    return engine


def _begin_immediate(engine: AsyncEngine) -> None:
    """Take the SQLite write lock when a transaction starts, not at its first write.

    SQLite has no ``SELECT ... FOR UPDATE``; without this the read half of a
    read-modify-write holds no lock and two transitions can both pass their
    precondition. Disabling the driver's own BEGIN handling and emitting
    ``BEGIN IMMEDIATE`` makes concurrent writers queue on the database lock.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# ── Session factory ──
def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables known to ``Base.metadata``."""
    # Import models so their tables are registered on the metadata.
    import travel_diary.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

