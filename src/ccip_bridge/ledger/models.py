"""Ledger data models: submission handle and confirmation receipt."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ccip_bridge.config.settings import ChainId


@dataclass(frozen=True)
class SubmissionHandle:
    """Identifies a send accepted by the source ledger but not yet confirmed.

    Attributes:
        tx_hash: Transaction hash (0x-prefixed hex).
        sender: Address that signed the transaction.
        source_chain: Ledger the transaction was sent to.
    """

    tx_hash: str
    sender: str
    source_chain: ChainId


@dataclass(frozen=True)
class Receipt:
    """Inclusion receipt of a submitted send.

    Attributes:
        tx_hash: Transaction hash (0x-prefixed hex).
        source_chain: Ledger that included the transaction.
        block_number: Block the transaction was included in.
        status: 1 for success; reverted sends never produce a Receipt.
        logs: Raw event logs, decoded by the client for relay metadata.
    """

    tx_hash: str
    source_chain: ChainId
    block_number: int = 0
    status: int = 1
    logs: list[Any] = field(default_factory=list)
