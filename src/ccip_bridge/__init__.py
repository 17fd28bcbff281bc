"""Cross-chain NFT transfers over Chainlink CCIP with a durable transfer ledger."""

__version__ = "0.1.0"
