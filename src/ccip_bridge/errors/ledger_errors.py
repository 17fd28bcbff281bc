"""Ledger submission errors.

Errors whose ``outcome_unknown`` flag is set leave the source-ledger effect
undetermined: the send may still be mined. The others guarantee it did not
happen.
"""

from __future__ import annotations

from ccip_bridge.errors.bridge_errors import BridgeError


class LedgerError(BridgeError):
    """Error raised by a ledger submission client."""


class NetworkError(LedgerError):
    """RPC endpoint unreachable or misbehaving."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="network-error", outcome_unknown=True)


class ConfirmationTimeoutError(LedgerError):
    """No receipt within the confirmation timeout."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="confirmation-timeout", outcome_unknown=True)


class ReceiptUnavailableError(LedgerError):
    """The ledger could not return a receipt for a submitted transaction."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="receipt-unavailable", outcome_unknown=True)


class ContractRevertedError(LedgerError):
    """The bridge contract rejected the send."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="contract-reverted")


class InsufficientFundsError(LedgerError):
    """The sender cannot pay for gas or relay fees."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="insufficient-funds")
