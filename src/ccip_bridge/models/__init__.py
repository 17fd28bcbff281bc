"""Bridge data models (SQLAlchemy ORM)."""

from ccip_bridge.models.base import Base, TimestampMixin, UTCDateTime, utcnow
from ccip_bridge.models.transfer import (
    IMMUTABLE_FIELDS,
    MUTABLE_FIELDS,
    SET_ONCE_FIELDS,
    VALID_TRANSITIONS,
    TransferRecord,
    TransferStatus,
)

__all__ = [
    "IMMUTABLE_FIELDS",
    "MUTABLE_FIELDS",
    "SET_ONCE_FIELDS",
    "VALID_TRANSITIONS",
    "Base",
    "TimestampMixin",
    "TransferRecord",
    "TransferStatus",
    "UTCDateTime",
    "utcnow",
]
