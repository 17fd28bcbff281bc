"""Bridge configuration."""

from ccip_bridge.config.settings import (
    AppConfig,
    AuditConfig,
    ChainConfig,
    ChainId,
    DatabaseConfig,
    LedgerConfig,
)

__all__ = [
    "AppConfig",
    "AuditConfig",
    "ChainConfig",
    "ChainId",
    "DatabaseConfig",
    "LedgerConfig",
]
