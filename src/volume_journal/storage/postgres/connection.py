"""Database handle for one journal process.

The CLI and the tests are short-lived: they open one database, run an
import or save a few volume days, and exit.  :func:`open_database` owns
the engine for that span (no connection pool is kept), and the store
helpers hand out repositories already bound to a session with the right
commit policy.

Usage::

    async with open_database(settings.database_url) as db:
        async with db.trade_store() as store:
            summary = await import_statement(text, store, options)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from volume_journal.core.errors import StoreUnavailableError

from .models import Base
from .repos import TradeRepo, VolumeDayRepo

logger = logging.getLogger(__name__)


class JournalDatabase:
    """Engine plus session factory for one database URL.

    Args:
        url: ``postgresql+asyncpg://...`` in production,
            ``sqlite+aiosqlite:///journal.db`` for local files and tests.
        echo: Log every emitted SQL statement.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = make_url(url)
        self.engine = create_async_engine(self.url, echo=echo, poolclass=NullPool)
        self._sessions = async_sessionmaker(self.engine, expire_on_commit=False)

    def __repr__(self) -> str:
        return f"<JournalDatabase {self.url.render_as_string(hide_password=True)}>"

    async def create_tables(self) -> None:
        """Create missing ORM tables.  Deployed schemas come from Alembic."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"create tables: {exc}") from exc
        logger.info("Tables verified on %s", self.url.render_as_string(hide_password=True))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session committed when the block exits cleanly, rolled back otherwise."""
        session = self._sessions()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise StoreUnavailableError(f"commit: {exc}") from exc
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def trade_store(self, *, commit_each: bool = True) -> AsyncIterator[TradeRepo]:
        """Trade repository on a fresh session.

        ``commit_each`` defaults on: an import commits every write, so
        rows stored before a failure stay stored.
        """
        async with self.session() as session:
            yield TradeRepo(session, commit_each=commit_each)

    @asynccontextmanager
    async def volume_day_store(self) -> AsyncIterator[VolumeDayRepo]:
        """Volume-day repository; all saved days commit together."""
        async with self.session() as session:
            yield VolumeDayRepo(session)

    async def close(self) -> None:
        await self.engine.dispose()


@asynccontextmanager
async def open_database(
    url: str,
    *,
    create_tables: bool = False,
    echo: bool = False,
) -> AsyncIterator[JournalDatabase]:
    """Open a :class:`JournalDatabase` and dispose of it on exit."""
    db = JournalDatabase(url, echo=echo)
    try:
        if create_tables:
            await db.create_tables()
        yield db
    finally:
        await db.close()
