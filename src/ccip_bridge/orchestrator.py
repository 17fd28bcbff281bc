"""Transfer orchestrator: drives one cross-chain transfer to a terminal state.

Lifecycle::

    validate → create (initiated) → configuration check
             → submit → in-progress → await confirmation → completed
    any failure or cancellation after the record exists → failed

Every transition is mirrored to the audit log. Errors are never retried:
a retry is a new transfer with a new id.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from web3 import Web3

from ccip_bridge.config.settings import ChainId
from ccip_bridge.errors.bridge_errors import (
    BridgeError,
    TransferCancelledError,
    ValidationError,
)
from ccip_bridge.models.transfer import TransferRecord, TransferStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from ccip_bridge.audit import AuditLog
    from ccip_bridge.ledger.client import LedgerSubmissionClient
    from ccip_bridge.ledger.models import SubmissionHandle
    from ccip_bridge.store.transfer_store import TransferStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID_REQUEST = 2


@dataclass(frozen=True)
class TransferRequest:
    """A client's request to move one asset between ledgers."""

    asset_id: str
    source_chain: ChainId
    destination_chain: ChainId
    receiver: str

    def validate(self) -> None:
        """Reject requests that could never be sent.

        Raises:
            ValidationError: If the request cannot become a transfer.
        """
        for name in ("asset_id", "source_chain", "destination_chain", "receiver"):
            value = getattr(self, name)
            if value is None or not str(value).strip():
                msg = f"missing required field: {name}"
                raise ValidationError(msg)
        try:
            source = ChainId(self.source_chain)
            destination = ChainId(self.destination_chain)
        except ValueError as exc:
            msg = f"unsupported chain: {exc}"
            raise ValidationError(msg) from exc
        if source == destination:
            msg = "Source and destination chains must be different"
            raise ValidationError(msg)
        if not Web3.is_address(self.receiver):
            msg = f"Invalid receiver address: {self.receiver}"
            raise ValidationError(msg)
        if not str(self.asset_id).isdigit():
            msg = f"Token ID must be a non-negative integer: {self.asset_id}"
            raise ValidationError(msg)


@dataclass(frozen=True)
class TransferOutcome:
    """Terminal result of one transfer attempt."""

    record: TransferRecord
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.record.status == TransferStatus.COMPLETED

    @property
    def exit_code(self) -> int:
        return EXIT_OK if self.succeeded else EXIT_FAILED


class TransferOrchestrator:
    """Runs transfers against a record store, a ledger client and an audit log.

    Usage::

        orchestrator = TransferOrchestrator(store, client, audit, confirmation_timeout=180)
        outcome = await orchestrator.run(request)
    """

    def __init__(
        self,
        store: TransferStore,
        ledger: LedgerSubmissionClient,
        audit: AuditLog,
        *,
        confirmation_timeout: float,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._audit = audit
        self._timeout = confirmation_timeout
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

    async def run(self, request: TransferRequest) -> TransferOutcome:
        """Drive *request* to ``completed`` or ``failed``.

        Returns:
            The terminal record and, on failure, the original error.

        Raises:
            ValidationError: If the request is rejected (no record is created).
            StoreError: If the record store refuses to record the failure.
            asyncio.CancelledError: After recording a cancellation.
        """
        request.validate()
        source = ChainId(request.source_chain)
        destination = ChainId(request.destination_chain)

        record = await self._store.create(
            TransferRecord(
                transfer_id=self._new_id(),
                asset_id=str(request.asset_id),
                source_chain=source.value,
                destination_chain=destination.value,
                receiver=request.receiver,
                status=TransferStatus.INITIATED.value,
            )
        )
        transfer_id = record.transfer_id

        stage = "configuration"
        handle: SubmissionHandle | None = None
        try:
            await self._audit.record(
                f"Initiating transfer {transfer_id} of tokenId {record.asset_id} "
                f"from {source} to {destination} (receiver {record.receiver})"
            )
            self._ledger.ensure_configured(source, destination)
            selector = self._ledger.relay_selector(destination)
            await self._audit.record(
                f"Broadcasting sendNFT({selector}, {record.receiver}, {record.asset_id}) "
                f"on {source}"
            )

            stage = "submission"
            handle = await self._ledger.submit(source, selector, record.receiver, record.asset_id)
            await self._audit.record(
                f"Transaction submitted from {handle.sender}. Hash: {handle.tx_hash}"
            )
            record = await self._store.update(
                transfer_id,
                status=TransferStatus.IN_PROGRESS,
                sender=handle.sender,
                source_tx_hash=handle.tx_hash,
            )
        except asyncio.CancelledError:
            if handle is not None:
                detail = f"transfer cancelled after broadcasting {handle.tx_hash}"
            elif stage == "submission":
                detail = "transfer cancelled before a submission handle was returned"
            else:
                detail = "transfer cancelled before submission"
            cancelled = TransferCancelledError(detail, outcome_unknown=stage == "submission")
            await self._fail(record, cancelled, stage=stage, handle=handle)
            raise
        except Exception as exc:
            return await self._fail(
                record,
                exc,
                stage=stage,
                handle=handle,
                outcome_unknown=True if handle is not None else None,
            )

        # The send may already be irreversible: see confirmation through.
        confirmation = asyncio.ensure_future(self._confirm(record, handle))
        try:
            return await asyncio.shield(confirmation)
        except asyncio.CancelledError:
            if confirmation.done():
                raise
            await self._audit.record(
                f"Cancellation requested for transfer {transfer_id} after submission; "
                "waiting for the confirmation outcome"
            )
            await confirmation
            raise

    async def _confirm(self, record: TransferRecord, handle: SubmissionHandle) -> TransferOutcome:
        transfer_id = record.transfer_id
        try:
            await self._audit.record(f"Waiting for transaction confirmation of {handle.tx_hash}...")
            receipt = await self._ledger.await_confirmation(handle, timeout=self._timeout)
        except Exception as exc:
            return await self._fail(record, exc, stage="confirmation", handle=handle)

        try:
            await self._audit.record(f"Transaction confirmed in block {receipt.block_number}")

            try:
                message_id = self._ledger.extract_relay_message_id(receipt)
            except Exception:
                logger.warning("Relay message id decoding failed for %s", transfer_id, exc_info=True)
                message_id = None

            fields: dict[str, object] = {"status": TransferStatus.COMPLETED}
            if message_id:
                fields["relay_message_id"] = message_id
            else:
                await self._audit.record(
                    f"Could not parse NFTSent event for messageId of transfer {transfer_id}; "
                    "marking completed without it"
                )
            record = await self._store.update(transfer_id, **fields)
        except Exception as exc:
            return await self._fail(
                record,
                exc,
                stage="confirmation",
                handle=handle,
                outcome_unknown=True,
                confirmed_block=receipt.block_number,
            )

        await self._audit.record(
            f"Successfully initiated cross-chain transfer {transfer_id}! "
            f"MessageId: {message_id or 'unknown'}"
        )
        return TransferOutcome(record=record)

    async def _fail(
        self,
        record: TransferRecord,
        exc: BaseException,
        *,
        stage: str,
        handle: SubmissionHandle | None = None,
        outcome_unknown: bool | None = None,
        confirmed_block: int | None = None,
    ) -> TransferOutcome:
        """Persist ``failed`` and mirror the error to the audit log.

        Args:
            handle: Submission handle once the send was broadcast; its hash
                and sender are kept on the failed record.
            outcome_unknown: Overrides the flag derived from *exc*.
            confirmed_block: Block the send was confirmed in, when the
                failure happened after confirmation.
        """
        transfer_id = record.transfer_id
        if isinstance(exc, BridgeError):
            reason = exc.code
            derived_unknown = exc.outcome_unknown
        else:
            reason = "unexpected-error"
            # Unrecognised errors after the send was attempted say nothing about the ledger.
            derived_unknown = stage != "configuration"
        if outcome_unknown is None:
            outcome_unknown = derived_unknown

        tx_hash = record.source_tx_hash or (handle.tx_hash if handle else None)
        hash_note = f" (tx {tx_hash})" if tx_hash else ""

        await self._audit.record(
            f"ERROR: Transfer {transfer_id} failed during {stage} "
            f"[{reason}] - {type(exc).__name__}: {exc}"
        )
        if confirmed_block is not None:
            await self._audit.record(
                f"WARNING: Send of transfer {transfer_id}{hash_note} was confirmed in block "
                f"{confirmed_block} on {record.source_chain} but the record could not be "
                "completed. Do not retry; reconcile the record with the chain."
            )
        elif outcome_unknown:
            await self._audit.record(
                f"WARNING: Ledger outcome of transfer {transfer_id} is UNKNOWN{hash_note}; "
                f"the send may still be included on {record.source_chain}. "
                "Verify on-chain before retrying."
            )
        else:
            await self._audit.record(
                f"Transfer {transfer_id}: no ledger effect occurred on {record.source_chain}"
            )
        logger.error("Transfer %s failed during %s: %s", transfer_id, stage, exc)

        fields: dict[str, object] = {
            "status": TransferStatus.FAILED,
            "failure_reason": reason,
            "outcome_unknown": outcome_unknown,
        }
        if handle is not None:
            fields["sender"] = handle.sender
            fields["source_tx_hash"] = handle.tx_hash
        record = await self._store.update(transfer_id, **fields)
        return TransferOutcome(record=record, error=exc)
