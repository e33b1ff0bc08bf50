import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from citymayor.errors import BackendUnavailable
from citymayor.load_settings import database_url

if database_url.startswith("sqlite"):
    # aiosqlite connections must not outlive the event loop that opened them
    engine = create_async_engine(database_url, echo=False, poolclass=NullPool)

    @event.listens_for(engine.sync_engine, "connect")
    def disable_driver_begin(dbapi_connection, connection_record):
        # SQLAlchemy emits BEGIN itself, see take_write_lock
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def take_write_lock(conn):
        # SQLite ignores SELECT ... FOR UPDATE; the write lock is taken before the first read instead
        conn.exec_driver_sql("BEGIN IMMEDIATE")

else:
    engine = create_async_engine(database_url, pool_size=20, max_overflow=20)

# Centralized session factory to avoid creating it in router modules.
Session = async_sessionmaker(
    autocommit=False,
    class_=AsyncSession,
    autoflush=True,
    expire_on_commit=False,
    bind=engine,
)


@asynccontextmanager
async def transaction() -> AsyncIterator[AsyncSession]:
    """Open a session and a transaction committed when the block exits without error.

    A failing commit is reported as BackendUnavailable like any other database error.
    """
    async with Session() as session:
        try:
            async with session.begin():
                yield session
        except SQLAlchemyError as e:
            logging.error(f"Transaction failed: {e}")
            raise BackendUnavailable("The database rejected the change. Please try again.") from e
