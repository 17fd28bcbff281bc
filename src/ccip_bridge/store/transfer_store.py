"""Transfer record store.

Keyed, durable storage of :class:`TransferRecord` rows on top of the
datastore. Every ``create``/``update`` runs in its own committed
transaction, so an observer never sees a half-written record.

Writes to one transfer are linearized: in-process by a per-transfer
``asyncio.Lock``, across processes by the record's ``version`` column
(a stale write is re-read, re-validated and retried). Writes to different
transfers never share a lock.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ccip_bridge.errors.store_errors import (
    DuplicateKeyError,
    InvalidTransitionError,
    NotFoundError,
)
from ccip_bridge.models.base import utcnow
from ccip_bridge.models.transfer import (
    IMMUTABLE_FIELDS,
    MUTABLE_FIELDS,
    SET_ONCE_FIELDS,
    VALID_TRANSITIONS,
    TransferRecord,
    TransferStatus,
)

if TYPE_CHECKING:
    from ccip_bridge.datastore.client import Datastore

logger = logging.getLogger(__name__)

_WRITABLE_FIELDS = IMMUTABLE_FIELDS | SET_ONCE_FIELDS | MUTABLE_FIELDS
_REQUIRED_FIELDS = ("transfer_id", "asset_id", "source_chain", "destination_chain", "receiver")


def _check_shape(
    transfer_id: str,
    status: TransferStatus,
    *,
    source_tx_hash: str | None,
    relay_message_id: str | None,
    failure_reason: str | None,
    outcome_unknown: bool,
) -> None:
    """Reject field combinations that no reachable state has."""
    if status == TransferStatus.INITIATED and source_tx_hash:
        msg = f"transfer {transfer_id}: source tx hash set while still initiated"
        raise InvalidTransitionError(msg)
    if status in (TransferStatus.IN_PROGRESS, TransferStatus.COMPLETED) and not source_tx_hash:
        msg = f"transfer {transfer_id}: status {status} requires a source tx hash"
        raise InvalidTransitionError(msg)
    if relay_message_id and status != TransferStatus.COMPLETED:
        msg = f"transfer {transfer_id}: relay message id is only recorded on completion"
        raise InvalidTransitionError(msg)
    if (failure_reason or outcome_unknown) and status != TransferStatus.FAILED:
        msg = f"transfer {transfer_id}: failure details require status failed"
        raise InvalidTransitionError(msg)


def _parse_status(value: Any) -> TransferStatus:
    try:
        return TransferStatus(value)
    except ValueError:
        msg = f"unknown transfer status: {value!r}"
        raise InvalidTransitionError(msg) from None


def check_new_record(record: TransferRecord) -> None:
    """Validate a record about to be created.

    Raises:
        InvalidTransitionError: If the record is not a well-formed initiated record.
    """
    for name in _REQUIRED_FIELDS:
        if not getattr(record, name, None):
            msg = f"transfer record is missing required field: {name}"
            raise InvalidTransitionError(msg)
    if record.source_chain == record.destination_chain:
        msg = f"transfer {record.transfer_id}: source and destination chains must differ"
        raise InvalidTransitionError(msg)
    status = _parse_status(record.status or TransferStatus.INITIATED)
    if status != TransferStatus.INITIATED:
        msg = f"transfer {record.transfer_id}: new records start as initiated, not {status}"
        raise InvalidTransitionError(msg)
    _check_shape(
        record.transfer_id,
        status,
        source_tx_hash=record.source_tx_hash,
        relay_message_id=record.relay_message_id,
        failure_reason=record.failure_reason,
        outcome_unknown=bool(record.outcome_unknown),
    )


def merge_changes(record: TransferRecord, fields: dict[str, Any]) -> dict[str, Any]:
    """Validate merging *fields* into *record* and return the changed subset.

    Raises:
        InvalidTransitionError: If the merge breaks the record invariants.
    """
    unknown = set(fields) - _WRITABLE_FIELDS
    if unknown:
        msg = f"unknown transfer fields: {', '.join(sorted(unknown))}"
        raise InvalidTransitionError(msg)

    if "status" in fields:
        fields = {**fields, "status": _parse_status(fields["status"]).value}

    changes = {name: value for name, value in fields.items() if getattr(record, name) != value}
    current = _parse_status(record.status)

    if current.is_terminal:
        if changes:
            msg = (
                f"transfer {record.transfer_id} is {current}; "
                f"cannot change {', '.join(sorted(changes))}"
            )
            raise InvalidTransitionError(msg)
        return changes

    for name in sorted(changes.keys() & IMMUTABLE_FIELDS):
        msg = f"transfer {record.transfer_id}: {name} is immutable"
        raise InvalidTransitionError(msg)
    for name in sorted(changes.keys() & SET_ONCE_FIELDS):
        if getattr(record, name) is not None:
            msg = f"transfer {record.transfer_id}: {name} is already set"
            raise InvalidTransitionError(msg)

    target = _parse_status(changes.get("status", current))
    if target != current and target not in VALID_TRANSITIONS[current]:
        msg = f"transfer {record.transfer_id}: invalid status transition {current} -> {target}"
        raise InvalidTransitionError(msg)

    def merged(name: str) -> Any:
        return changes.get(name, getattr(record, name))

    _check_shape(
        record.transfer_id,
        target,
        source_tx_hash=merged("source_tx_hash"),
        relay_message_id=merged("relay_message_id"),
        failure_reason=merged("failure_reason"),
        outcome_unknown=bool(merged("outcome_unknown")),
    )
    return changes


class TransferStore:
    """Data access layer for transfer records.

    Usage::

        store = TransferStore(datastore)
        await store.create(record)
        record = await store.update(transfer_id, status="in-progress", source_tx_hash=h)
    """

    def __init__(self, datastore: Datastore, *, max_retries: int = 3) -> None:
        self._ds = datastore
        self._max_retries = max_retries
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, transfer_id: str) -> asyncio.Lock:
        lock = self._locks.get(transfer_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[transfer_id] = lock
        return lock

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, record: TransferRecord) -> TransferRecord:
        """Persist a new initiated transfer record.

        Raises:
            DuplicateKeyError: If the transfer id already exists.
            InvalidTransitionError: If the record is malformed.
        """
        check_new_record(record)
        now = utcnow()
        record.status = TransferStatus.INITIATED.value
        record.outcome_unknown = False
        if record.created_at is None:
            record.created_at = now
        record.updated_at = record.created_at

        async with self._lock_for(record.transfer_id):
            try:
                async with self._ds.transaction() as session:
                    if await session.get(TransferRecord, record.transfer_id) is not None:
                        raise DuplicateKeyError(record.transfer_id)
                    session.add(record)
            except IntegrityError as exc:
                raise DuplicateKeyError(record.transfer_id) from exc

        logger.debug("Transfer record created: %s", record.transfer_id)
        return record

    async def update(self, transfer_id: str, **fields: Any) -> TransferRecord:
        """Merge *fields* into a transfer record and bump ``updated_at``.

        A merge that changes nothing on a terminal record is a no-op and
        returns the stored record unchanged.

        Raises:
            NotFoundError: If no record exists for *transfer_id*.
            InvalidTransitionError: If the merge breaks the record invariants.
        """
        async with self._lock_for(transfer_id):
            for attempt in range(1, self._max_retries + 1):
                try:
                    async with self._ds.transaction() as session:
                        record = await session.get(TransferRecord, transfer_id)
                        if record is None:
                            raise NotFoundError(transfer_id)

                        changes = merge_changes(record, fields)
                        if not changes and TransferStatus(record.status).is_terminal:
                            return record

                        for name, value in changes.items():
                            setattr(record, name, value)
                        record.updated_at = utcnow()
                except StaleDataError:
                    logger.warning(
                        "Concurrent write on transfer %s, retrying (%d/%d)",
                        transfer_id,
                        attempt,
                        self._max_retries,
                    )
                    continue

                if changes:
                    logger.debug(
                        "Transfer %s updated: %s", transfer_id, ", ".join(sorted(changes))
                    )
                return record

        msg = f"transfer {transfer_id}: gave up after {self._max_retries} conflicting writes"
        raise InvalidTransitionError(msg)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, transfer_id: str) -> TransferRecord:
        """Return the current record.

        Raises:
            NotFoundError: If no record exists for *transfer_id*.
        """
        async with self._ds.session() as session:
            record = await session.get(TransferRecord, transfer_id)
        if record is None:
            raise NotFoundError(transfer_id)
        return record

    async def list_transfers(
        self,
        *,
        status: TransferStatus | str | None = None,
        limit: int = 50,
    ) -> list[TransferRecord]:
        """List records, newest first, optionally filtered by status."""
        async with self._ds.session() as session:
            stmt = select(TransferRecord).order_by(TransferRecord.created_at.desc())
            if status:
                stmt = stmt.where(TransferRecord.status == _parse_status(status).value)
            stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def export_snapshot(self) -> list[dict[str, Any]]:
        """Return the whole collection, oldest first, as JSON-ready dicts."""
        async with self._ds.session() as session:
            stmt = select(TransferRecord).order_by(TransferRecord.created_at.asc())
            result = await session.execute(stmt)
            return [record.to_dict() for record in result.scalars().all()]
