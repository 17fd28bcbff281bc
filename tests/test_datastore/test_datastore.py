"""Tests for datastore abstraction: engines and client."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import text

from ccip_bridge.config.settings import DatabaseConfig
from ccip_bridge.datastore.client import Datastore
from ccip_bridge.datastore.engines import create_engine, ensure_sqlite_directory, is_sqlite
from ccip_bridge.models.base import Base
from ccip_bridge.models.transfer import TransferRecord

if TYPE_CHECKING:
    from pathlib import Path


def _memory_config(**overrides) -> DatabaseConfig:
    return DatabaseConfig(dsn="sqlite+aiosqlite:///:memory:", **overrides)


# ---------------------------------------------------------------------------
# Engine factory
# ---------------------------------------------------------------------------


class TestCreateEngine:
    """Test engine factory."""

    async def test_create_sqlite_engine(self) -> None:
        engine = create_engine(_memory_config())
        assert engine is not None
        await engine.dispose()

    async def test_engine_echo_flag(self) -> None:
        engine = create_engine(_memory_config(debug_sql=True))
        assert engine.echo is True
        await engine.dispose()

    async def test_creates_sqlite_directory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "dir" / "transfers.db"
        engine = create_engine(DatabaseConfig(dsn=f"sqlite+aiosqlite:///{db_path}"))
        assert db_path.parent.is_dir()
        await engine.dispose()

    def test_is_sqlite(self) -> None:
        assert is_sqlite("sqlite+aiosqlite:///:memory:")
        assert not is_sqlite("postgresql+asyncpg://user:pw@localhost/bridge")

    def test_memory_database_needs_no_directory(self) -> None:
        ensure_sqlite_directory("sqlite+aiosqlite:///:memory:")


# ---------------------------------------------------------------------------
# Datastore client
# ---------------------------------------------------------------------------


class TestDatastore:
    """Test Datastore lifecycle and session management."""

    async def test_open_close(self) -> None:
        ds = Datastore(_memory_config())
        assert not ds.is_open
        await ds.open()
        assert ds.is_open
        await ds.close()
        assert not ds.is_open

    async def test_close_idempotent(self) -> None:
        ds = Datastore(_memory_config())
        await ds.close()
        assert not ds.is_open

    async def test_engine_property_when_closed(self) -> None:
        ds = Datastore(_memory_config())
        with pytest.raises(RuntimeError, match="not open"):
            _ = ds.engine

    async def test_session_when_closed(self) -> None:
        ds = Datastore(_memory_config())
        with pytest.raises(RuntimeError, match="not open"):
            ds.session()

    async def test_session_basic_operations(self) -> None:
        ds = Datastore(_memory_config())
        await ds.open()
        async with ds.session() as session:
            result = await session.execute(text("SELECT 1"))
            assert result.scalar() == 1
        await ds.close()

    async def test_open_creates_transfer_table(self, tmp_path: Path) -> None:
        ds = Datastore(DatabaseConfig(dsn=f"sqlite+aiosqlite:///{tmp_path / 't.db'}"))
        await ds.open(base=Base)
        async with ds.session() as session:
            result = await session.execute(
                text("SELECT name FROM sqlite_master WHERE type='table'")
            )
            tables = [row[0] for row in result.fetchall()]
        assert "transfers" in tables
        await ds.close()

    async def test_create_tables_keeps_rows(self, tmp_path: Path) -> None:
        ds = Datastore(DatabaseConfig(dsn=f"sqlite+aiosqlite:///{tmp_path / 't.db'}"))
        await ds.open(base=Base)
        async with ds.transaction() as session:
            session.add(_transfer("t-1"))
        await ds.create_tables(Base)
        async with ds.session() as session:
            assert await session.get(TransferRecord, "t-1") is not None
        await ds.close()


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def _transfer(transfer_id: str) -> TransferRecord:
    return TransferRecord(
        transfer_id=transfer_id,
        asset_id="1",
        source_chain="avalanche-fuji",
        destination_chain="arbitrum-sepolia",
        receiver="0xABC",
    )


class TestTransaction:
    """Test the commit-or-rollback transaction helper."""

    async def test_commits_on_exit(self, tmp_path: Path) -> None:
        ds = Datastore(DatabaseConfig(dsn=f"sqlite+aiosqlite:///{tmp_path / 't.db'}"))
        await ds.open(base=Base)
        async with ds.transaction() as session:
            session.add(_transfer("t-1"))
        async with ds.session() as session:
            record = await session.get(TransferRecord, "t-1")
        assert record is not None
        assert record.version == 1
        await ds.close()

    async def test_rolls_back_on_error(self, tmp_path: Path) -> None:
        ds = Datastore(DatabaseConfig(dsn=f"sqlite+aiosqlite:///{tmp_path / 't.db'}"))
        await ds.open(base=Base)
        with pytest.raises(RuntimeError, match="abort"):
            async with ds.transaction() as session:
                session.add(_transfer("t-1"))
                await session.flush()
                raise RuntimeError("abort")
        async with ds.session() as session:
            assert await session.get(TransferRecord, "t-1") is None
        await ds.close()

    async def test_transaction_when_closed(self) -> None:
        ds = Datastore(_memory_config())
        with pytest.raises(RuntimeError, match="not open"):
            async with ds.transaction():
                pass
