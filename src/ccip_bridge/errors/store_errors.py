"""Transfer record store integrity errors."""

from __future__ import annotations

from ccip_bridge.errors.bridge_errors import BridgeError


class StoreError(BridgeError):
    """Integrity error raised by the transfer record store."""


class DuplicateKeyError(StoreError):
    """A record with the same transfer id already exists."""

    def __init__(self, transfer_id: str) -> None:
        super().__init__(f"transfer already exists: {transfer_id}", code="duplicate-key")
        self.transfer_id = transfer_id


class NotFoundError(StoreError):
    """No record for the transfer id."""

    def __init__(self, transfer_id: str) -> None:
        super().__init__(f"transfer not found: {transfer_id}", code="not-found")
        self.transfer_id = transfer_id


class InvalidTransitionError(StoreError):
    """The write would break the transfer record invariants."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="invalid-transition")
