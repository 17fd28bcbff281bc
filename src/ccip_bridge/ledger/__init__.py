"""Ledger submission: consumed interface and the EVM bridge client."""

from ccip_bridge.ledger.client import LedgerSubmissionClient
from ccip_bridge.ledger.evm import EVMBridgeClient
from ccip_bridge.ledger.models import Receipt, SubmissionHandle

__all__ = ["EVMBridgeClient", "LedgerSubmissionClient", "Receipt", "SubmissionHandle"]
