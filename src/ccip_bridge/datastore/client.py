"""Datastore client: engine, sessions and transactions for the transfer store.

The transfer store keeps one row per transfer. Each store call runs in its
own short transaction obtained from :meth:`Datastore.transaction`, which
commits on exit and rolls back when the block raises.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ccip_bridge.datastore.engines import create_engine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.orm import DeclarativeBase

    from ccip_bridge.config.settings import DatabaseConfig

logger = logging.getLogger(__name__)

_NOT_OPEN = "Datastore is not open. Call open() first."


class Datastore:
    """Owns the async engine behind the transfer records.

    Usage::

        ds = Datastore(config.db)
        await ds.open(base=Base)
        async with ds.transaction() as session:
            session.add(record)
        await ds.close()
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """The open engine.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        if self._engine is None:
            raise RuntimeError(_NOT_OPEN)
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self, *, base: type[DeclarativeBase] | None = None) -> None:
        """Connect, and create the tables of *base* when given."""
        self._engine = create_engine(self._config)
        # Records stay readable after the transaction that loaded them ends.
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)
        if base is not None:
            await self.create_tables(base)
        logger.debug("Datastore opened: %s", self._engine.url.render_as_string())

    async def create_tables(self, base: type[DeclarativeBase]) -> None:
        """Create missing tables; existing tables and rows are left alone."""
        async with self.engine.begin() as conn:
            await conn.run_sync(base.metadata.create_all)

    async def close(self) -> None:
        """Dispose the engine. Safe to call twice."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.debug("Datastore closed")

    def session(self) -> AsyncSession:
        """New session for reads or hand-managed commits.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        if self._sessions is None:
            raise RuntimeError(_NOT_OPEN)
        return self._sessions()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Session inside one transaction: committed on exit, rolled back on error.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        async with self.session() as session, session.begin():
            yield session
