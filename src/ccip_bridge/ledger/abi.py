"""CCIPNFTBridge contract ABI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ccip_bridge.errors.bridge_errors import ConfigurationError

SEND_FUNCTION = "sendNFT"
SENT_EVENT = "NFTSent"

# Subset of the CCIPNFTBridge ABI used by the client.
BRIDGE_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": SEND_FUNCTION,
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "destinationChainSelector", "type": "uint64", "internalType": "uint64"},
            {"name": "receiver", "type": "address", "internalType": "address"},
            {"name": "tokenId", "type": "uint256", "internalType": "uint256"},
        ],
        "outputs": [{"name": "messageId", "type": "bytes32", "internalType": "bytes32"}],
    },
    {
        "type": "event",
        "name": SENT_EVENT,
        "anonymous": False,
        "inputs": [
            {"name": "messageId", "type": "bytes32", "indexed": True, "internalType": "bytes32"},
            {
                "name": "destinationChainSelector",
                "type": "uint64",
                "indexed": True,
                "internalType": "uint64",
            },
            {"name": "receiver", "type": "address", "indexed": False, "internalType": "address"},
            {"name": "tokenId", "type": "uint256", "indexed": False, "internalType": "uint256"},
        ],
    },
]


def load_bridge_abi(path: str | Path | None = None) -> list[dict[str, Any]]:
    """Return the bridge ABI, from a Foundry artifact when *path* is given.

    Raises:
        ConfigurationError: If the artifact is missing or has no ABI.
    """
    if not path:
        return BRIDGE_ABI
    p = Path(path)
    if not p.exists():
        msg = f"Bridge ABI not found at {p}. Compile contracts first."
        raise ConfigurationError(msg)
    data = json.loads(p.read_text(encoding="utf-8"))
    abi = data.get("abi") if isinstance(data, dict) else data
    if not isinstance(abi, list):
        msg = f"No ABI in bridge artifact {p}"
        raise ConfigurationError(msg)
    return abi
