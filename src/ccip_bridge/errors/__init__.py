"""Bridge error hierarchy."""

from ccip_bridge.errors.bridge_errors import (
    BridgeError,
    ConfigurationError,
    TransferCancelledError,
    ValidationError,
)
from ccip_bridge.errors.ledger_errors import (
    ConfirmationTimeoutError,
    ContractRevertedError,
    InsufficientFundsError,
    LedgerError,
    NetworkError,
    ReceiptUnavailableError,
)
from ccip_bridge.errors.store_errors import (
    DuplicateKeyError,
    InvalidTransitionError,
    NotFoundError,
    StoreError,
)

__all__ = [
    "BridgeError",
    "ConfigurationError",
    "ConfirmationTimeoutError",
    "ContractRevertedError",
    "DuplicateKeyError",
    "InsufficientFundsError",
    "InvalidTransitionError",
    "LedgerError",
    "NetworkError",
    "NotFoundError",
    "ReceiptUnavailableError",
    "StoreError",
    "TransferCancelledError",
    "ValidationError",
]
