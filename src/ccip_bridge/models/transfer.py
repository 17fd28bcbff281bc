"""Transfer model: one cross-chain send and its lifecycle."""

from __future__ import annotations

import enum
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ccip_bridge.models.base import Base, TimestampMixin


class TransferStatus(enum.StrEnum):
    """Transfer lifecycle.

    Lifecycle: INITIATED → IN_PROGRESS → COMPLETED
               INITIATED → FAILED, IN_PROGRESS → FAILED
    """

    INITIATED = "initiated"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """True once no field of the record may change."""
        return self in (TransferStatus.COMPLETED, TransferStatus.FAILED)


# Valid status transitions
VALID_TRANSITIONS: dict[TransferStatus, set[TransferStatus]] = {
    TransferStatus.INITIATED: {TransferStatus.IN_PROGRESS, TransferStatus.FAILED},
    TransferStatus.IN_PROGRESS: {TransferStatus.COMPLETED, TransferStatus.FAILED},
    TransferStatus.COMPLETED: set(),
    TransferStatus.FAILED: set(),
}

IMMUTABLE_FIELDS = frozenset(
    {"transfer_id", "asset_id", "source_chain", "destination_chain", "receiver", "created_at"}
)
SET_ONCE_FIELDS = frozenset({"sender", "source_tx_hash"})
MUTABLE_FIELDS = frozenset({"status", "relay_message_id", "failure_reason", "outcome_unknown"})


class TransferRecord(Base, TimestampMixin):
    """A cross-chain transfer request and its progress.

    Written by the orchestrator only, field by field, as each step of the
    transfer completes.
    """

    __tablename__ = "transfers"
    __table_args__ = (
        CheckConstraint("source_chain <> destination_chain", name="distinct_chains"),
        CheckConstraint(
            "status IN ('initiated', 'in-progress', 'completed', 'failed')",
            name="valid_status",
        ),
    )

    transfer_id: Mapped[str] = mapped_column(
        String(36), primary_key=True, comment="Transfer ID (uuid4)"
    )
    asset_id: Mapped[str] = mapped_column(
        String(78), nullable=False, comment="Token ID of the bridged NFT"
    )
    source_chain: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    destination_chain: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    receiver: Mapped[str] = mapped_column(
        String(64), nullable=False, comment="Receiver address on the destination chain"
    )
    sender: Mapped[str | None] = mapped_column(
        String(64), nullable=True, default=None, comment="Signing address on the source chain"
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TransferStatus.INITIATED.value, index=True,
        comment="initiated | in-progress | completed | failed",
    )
    source_tx_hash: Mapped[str | None] = mapped_column(
        String(66), nullable=True, default=None, comment="Send transaction hash"
    )
    relay_message_id: Mapped[str | None] = mapped_column(
        String(66), nullable=True, default=None, comment="CCIP message ID"
    )
    failure_reason: Mapped[str | None] = mapped_column(
        String(64), nullable=True, default=None, comment="Error code of a failed transfer"
    )
    outcome_unknown: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
        comment="Failed, but the source-chain send may still have happened",
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the field names of the JSON transfer snapshot."""
        return {
            "transferId": self.transfer_id,
            "tokenId": self.asset_id,
            "sourceChain": self.source_chain,
            "destinationChain": self.destination_chain,
            "receiver": self.receiver,
            "sender": self.sender,
            "status": self.status,
            "sourceTxHash": self.source_tx_hash,
            "ccipMessageId": self.relay_message_id,
            "failureReason": self.failure_reason,
            "outcomeUnknown": self.outcome_unknown,
            "timestamp": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    def __repr__(self) -> str:
        return f"<TransferRecord id={self.transfer_id} status={self.status}>"
