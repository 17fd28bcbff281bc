"""Ledger submission capability consumed by the transfer orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ccip_bridge.config.settings import ChainId
    from ccip_bridge.ledger.models import Receipt, SubmissionHandle


class LedgerSubmissionClient(Protocol):
    """Submits cross-chain sends to a source ledger and follows them up.

    Implementations raise :mod:`ccip_bridge.errors` types; anything else is
    treated as an unexpected failure by the orchestrator.
    """

    def ensure_configured(self, source_chain: ChainId, destination_chain: ChainId) -> None:
        """Check that endpoint, credentials, contract and selector are known.

        Raises:
            ConfigurationError: If anything needed for the send is missing.
        """
        ...

    def relay_selector(self, chain: ChainId) -> int:
        """Relay-network selector of a destination ledger."""
        ...

    async def submit(
        self,
        source_chain: ChainId,
        destination_selector: int,
        receiver: str,
        asset_id: str,
    ) -> SubmissionHandle:
        """Send the asset to the bridge contract of *source_chain*.

        Raises:
            NetworkError, InsufficientFundsError, ContractRevertedError,
            ConfigurationError, ValidationError.
        """
        ...

    async def await_confirmation(self, handle: SubmissionHandle, *, timeout: float) -> Receipt:
        """Wait until the send is included in the source ledger.

        Raises:
            ConfirmationTimeoutError, ReceiptUnavailableError, ContractRevertedError.
        """
        ...

    def extract_relay_message_id(self, receipt: Receipt) -> str | None:
        """Decode the relay message id from the receipt logs, if present."""
        ...
