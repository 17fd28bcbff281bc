"""BridgeError: base exception class for all bridge errors."""

from __future__ import annotations


class BridgeError(Exception):
    """Base error for all bridge operations.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code string, persisted as the
            failure reason of a transfer.
        outcome_unknown: True when the ledger effect behind the error may
            still have happened (the error says nothing about it).
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "bridge-error",
        outcome_unknown: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.outcome_unknown = outcome_unknown


class ValidationError(BridgeError):
    """Transfer request rejected before any record exists."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="validation-error")


class ConfigurationError(BridgeError):
    """Missing endpoint, credential, contract address or relay selector."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="configuration-error")


class TransferCancelledError(BridgeError):
    """Transfer aborted by the caller before a submission handle existed."""

    def __init__(self, message: str = "transfer cancelled", *, outcome_unknown: bool = False) -> None:
        super().__init__(message, code="cancelled", outcome_unknown=outcome_unknown)
