"""Bridge settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``CCIPBRIDGE_``, nested via ``__``)
2. YAML config file (``--config path`` or ``CCIPBRIDGE_CONFIG_PATH`` env var)
3. Defaults defined here

Bridge contract addresses may also come from a ``deployment.json`` file
(``deployment_path``) written by the contract deployment scripts.
"""

from __future__ import annotations

import enum
import json
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import AliasChoices, BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class ChainId(enum.StrEnum):
    """Supported ledgers."""

    AVALANCHE_FUJI = "avalanche-fuji"
    ARBITRUM_SEPOLIA = "arbitrum-sepolia"

    @property
    def field_name(self) -> str:
        """Attribute name of this chain's section on :class:`AppConfig`."""
        return self.value.replace("-", "_")

    @property
    def deployment_key(self) -> str:
        """Key of this chain in ``deployment.json`` (camelCase)."""
        head, *rest = self.value.split("-")
        return head + "".join(part.capitalize() for part in rest)


# CCIP chain selectors
DEFAULT_CHAIN_SELECTORS: dict[ChainId, int] = {
    ChainId.AVALANCHE_FUJI: 14767482510784806043,
    ChainId.ARBITRUM_SEPOLIA: 3478487238524512106,
}


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ChainConfig(BaseModel):
    """Per-ledger endpoint, bridge contract and relay selector."""

    rpc_url: str = ""
    bridge_address: str = ""
    chain_selector: int = Field(default=0, ge=0)


class DatabaseConfig(BaseSettings):
    """Transfer record database settings."""

    model_config = SettingsConfigDict(
        env_prefix="CCIPBRIDGE_DB__",
        case_sensitive=False,
    )

    dsn: str = Field(
        default="sqlite+aiosqlite:///./data/transfers.db",
        description="Async database connection string",
    )
    max_idle_connections: int = 5
    max_open_connections: int = 10
    debug_sql: bool = False


class AuditConfig(BaseSettings):
    """Audit log settings."""

    model_config = SettingsConfigDict(
        env_prefix="CCIPBRIDGE_AUDIT__",
        case_sensitive=False,
    )

    log_path: str = "./logs/transfers.log"


class LedgerConfig(BaseSettings):
    """Ledger submission settings shared by all chains."""

    model_config = SettingsConfigDict(
        env_prefix="CCIPBRIDGE_LEDGER__",
        case_sensitive=False,
    )

    confirmation_timeout: float = Field(default=180.0, gt=0)
    poll_interval: float = Field(default=2.0, gt=0)
    gas_limit: int = Field(default=1_000_000, gt=0)
    abi_path: str = Field(
        default="",
        description="Optional Foundry artifact holding the bridge ABI",
    )


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


def _load_deployment(path: str | Path) -> dict[str, Any]:
    """Load ``deployment.json``; an absent file yields an empty mapping."""
    p = Path(path)
    if not p.exists():
        return {}
    data = json.loads(p.read_text(encoding="utf-8"))
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level bridge configuration.

    Loads settings from environment variables (``CCIPBRIDGE_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="CCIPBRIDGE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        populate_by_name=True,
    )

    debug: bool = False
    private_key: str = Field(
        default="",
        validation_alias=AliasChoices("ccipbridge_private_key", "private_key"),
    )
    config_path: str = ""
    deployment_path: str = ""

    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    avalanche_fuji: ChainConfig = Field(default_factory=ChainConfig)
    arbitrum_sepolia: ChainConfig = Field(default_factory=ChainConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            present = [k for k in cls._input_keys(key) if values.get(k) is not None]
            if not present:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values[present[0]], dict):
                values[present[0]] = {**val, **values[present[0]]}
        return values

    @classmethod
    def _input_keys(cls, key: str) -> tuple[str, ...]:
        """Field name plus the alias names its value may arrive under."""
        field = cls.model_fields.get(key)
        if field is None:
            return (key,)
        alias = field.validation_alias
        if isinstance(alias, AliasChoices):
            return (key, *(choice for choice in alias.choices if isinstance(choice, str)))
        if isinstance(alias, str):
            return (key, alias)
        return (key,)

    @model_validator(mode="after")
    def _fill_chain_defaults(self) -> Self:
        """Apply default relay selectors and deployment.json addresses."""
        deployment = _load_deployment(self.deployment_path) if self.deployment_path else {}
        for chain_id in ChainId:
            chain = self.chain(chain_id)
            if not chain.chain_selector:
                chain.chain_selector = DEFAULT_CHAIN_SELECTORS[chain_id]
            if not chain.bridge_address:
                entry = deployment.get(chain_id.deployment_key) or {}
                chain.bridge_address = entry.get("bridgeContractAddress", "")
        return self

    def chain(self, chain_id: ChainId | str) -> ChainConfig:
        """Return the settings section of a ledger."""
        return getattr(self, ChainId(chain_id).field_name)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
