"""Shared test fixtures for the ccip-bridge test suite."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from ccip_bridge.config.settings import (
    AppConfig,
    AuditConfig,
    ChainConfig,
    ChainId,
    DatabaseConfig,
    LedgerConfig,
)
from ccip_bridge.ledger.models import Receipt, SubmissionHandle

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable
    from pathlib import Path

# Well-known development key (hardhat account #0)
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_SENDER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
FUJI_BRIDGE = "0x" + "11" * 20
ARBITRUM_BRIDGE = "0x" + "22" * 20
RECEIVER = "0x" + "ab" * 20


class FakeLedgerClient:
    """Scriptable ledger client recording every call."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.config_error: Exception | None = None
        self.submit_error: BaseException | None = None
        self.confirm_error: BaseException | None = None
        self.extract_error: Exception | None = None
        self.tx_hash = "0xHASH"
        self.sender = TEST_SENDER
        self.message_id: str | None = "msg-1"
        self.block_number = 4242
        self.on_submit: Callable[[], Awaitable[None]] | None = None
        self.submit_gate: asyncio.Event | None = None
        self.confirm_gate: asyncio.Event | None = None
        self.timeouts: list[float] = []
        self.submitted: list[tuple[ChainId, int, str, str]] = []

    def ensure_configured(self, source_chain: ChainId, destination_chain: ChainId) -> None:
        self.calls.append("ensure_configured")
        if self.config_error is not None:
            raise self.config_error

    def relay_selector(self, chain: ChainId) -> int:
        return 3478487238524512106

    async def submit(
        self,
        source_chain: ChainId,
        destination_selector: int,
        receiver: str,
        asset_id: str,
    ) -> SubmissionHandle:
        self.calls.append("submit")
        self.submitted.append((source_chain, destination_selector, receiver, asset_id))
        if self.on_submit is not None:
            await self.on_submit()
        if self.submit_gate is not None:
            await self.submit_gate.wait()
        if self.submit_error is not None:
            raise self.submit_error
        return SubmissionHandle(tx_hash=self.tx_hash, sender=self.sender, source_chain=source_chain)

    async def await_confirmation(self, handle: SubmissionHandle, *, timeout: float) -> Receipt:
        self.calls.append("await_confirmation")
        self.timeouts.append(timeout)
        if self.confirm_gate is not None:
            await self.confirm_gate.wait()
        if self.confirm_error is not None:
            raise self.confirm_error
        return Receipt(
            tx_hash=handle.tx_hash,
            source_chain=handle.source_chain,
            block_number=self.block_number,
        )

    def extract_relay_message_id(self, receipt: Receipt) -> str | None:
        self.calls.append("extract_relay_message_id")
        if self.extract_error is not None:
            raise self.extract_error
        return self.message_id


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Provide a test AppConfig backed by temporary files."""
    return AppConfig(
        debug=True,
        private_key=TEST_PRIVATE_KEY,
        db=DatabaseConfig(dsn=f"sqlite+aiosqlite:///{tmp_path / 'data' / 'transfers.db'}"),
        audit=AuditConfig(log_path=str(tmp_path / "logs" / "transfers.log")),
        ledger=LedgerConfig(confirmation_timeout=30.0, poll_interval=0.1),
        avalanche_fuji=ChainConfig(rpc_url="http://fuji.test", bridge_address=FUJI_BRIDGE),
        arbitrum_sepolia=ChainConfig(
            rpc_url="http://arbitrum.test", bridge_address=ARBITRUM_BRIDGE
        ),
    )


@pytest.fixture
async def datastore(app_config: AppConfig) -> AsyncIterator:
    """Open a datastore on a temporary SQLite file with tables created."""
    from ccip_bridge.datastore.client import Datastore
    from ccip_bridge.models.base import Base

    ds = Datastore(app_config.db)
    await ds.open(base=Base)
    yield ds
    await ds.close()


@pytest.fixture
def store(datastore):
    """Transfer store over the test datastore."""
    from ccip_bridge.store.transfer_store import TransferStore

    return TransferStore(datastore)


@pytest.fixture
def audit(app_config: AppConfig):
    """Audit log writing to the temporary log path."""
    from ccip_bridge.audit import AuditLog

    return AuditLog(app_config.audit.log_path)


@pytest.fixture
def ledger() -> FakeLedgerClient:
    """Fake ledger client that succeeds unless told otherwise."""
    return FakeLedgerClient()
