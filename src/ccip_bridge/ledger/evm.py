"""EVM ledger client: sends NFTs through the CCIPNFTBridge contract.

Provides an async web3 client for the bridge:
- ``sendNFT(selector, receiver, tokenId)`` signed with the configured key
- receipt polling with an explicit timeout
- ``NFTSent`` event decoding for the CCIP message id
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import (
    ContractLogicError,
    TimeExhausted,
    TransactionNotFound,
    Web3Exception,
)
from web3.logs import DISCARD

from ccip_bridge.config.settings import ChainId
from ccip_bridge.errors.bridge_errors import BridgeError, ConfigurationError, ValidationError
from ccip_bridge.errors.ledger_errors import (
    ConfirmationTimeoutError,
    ContractRevertedError,
    InsufficientFundsError,
    LedgerError,
    NetworkError,
    ReceiptUnavailableError,
)
from ccip_bridge.ledger.abi import SEND_FUNCTION, SENT_EVENT, load_bridge_abi
from ccip_bridge.ledger.models import Receipt, SubmissionHandle

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount

    from ccip_bridge.config.settings import AppConfig

logger = logging.getLogger(__name__)


def classify_send_error(exc: Exception) -> LedgerError | None:
    """Map a web3/transport failure of a send to a ledger error.

    Returns None for errors that are not recognised; callers re-raise those.
    """
    text = str(exc)
    lowered = text.lower()
    if isinstance(exc, ContractLogicError) or "execution reverted" in lowered:
        return ContractRevertedError(f"Bridge contract rejected sendNFT: {text}")
    if "insufficient funds" in lowered:
        return InsufficientFundsError(f"Sender cannot pay for the transfer: {text}")
    if isinstance(exc, (OSError, Web3Exception)):
        return NetworkError(f"RPC request failed: {text}")
    return None


class EVMBridgeClient:
    """Ledger submission client for EVM chains running CCIPNFTBridge.

    Usage::

        client = EVMBridgeClient(config)
        client.ensure_configured(ChainId.AVALANCHE_FUJI, ChainId.ARBITRUM_SEPOLIA)
        try:
            handle = await client.submit(...)
            receipt = await client.await_confirmation(handle, timeout=180)
        finally:
            await client.close()
    """

    def __init__(self, config: AppConfig) -> None:
        """Initialize the client.

        Args:
            config: Bridge configuration (keys, chains, ledger settings).
        """
        self._config = config
        self._abi: list[dict[str, Any]] | None = None
        self._account: LocalAccount | None = None
        self._clients: dict[ChainId, AsyncWeb3] = {}
        self._decoder = Web3()

    async def close(self) -> None:
        """Close the HTTP sessions of all providers."""
        for w3 in self._clients.values():
            await w3.provider.disconnect()
        self._clients.clear()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def abi(self) -> list[dict[str, Any]]:
        """Bridge ABI, loaded on first use."""
        if self._abi is None:
            self._abi = load_bridge_abi(self._config.ledger.abi_path)
        return self._abi

    @property
    def account(self) -> LocalAccount:
        """Signing account derived from the configured private key.

        Raises:
            ConfigurationError: If the key is missing or malformed.
        """
        if self._account is None:
            if not self._config.private_key:
                msg = "PRIVATE_KEY environment variable is required"
                raise ConfigurationError(msg)
            try:
                self._account = Account.from_key(self._config.private_key)
            except (ValueError, TypeError) as exc:
                msg = "PRIVATE_KEY is not a valid private key"
                raise ConfigurationError(msg) from exc
        return self._account

    def ensure_configured(self, source_chain: ChainId, destination_chain: ChainId) -> None:
        """Check key, RPC endpoint, bridge address, ABI and relay selector.

        Raises:
            ConfigurationError: On the first missing or invalid setting.
        """
        _ = self.account
        source = self._config.chain(source_chain)
        if not source.rpc_url:
            msg = f"RPC URL for {source_chain} not configured"
            raise ConfigurationError(msg)
        if not source.bridge_address:
            msg = f"Bridge contract address for {source_chain} not configured"
            raise ConfigurationError(msg)
        if not Web3.is_address(source.bridge_address):
            msg = f"Bridge contract address for {source_chain} is invalid: {source.bridge_address}"
            raise ConfigurationError(msg)
        _ = self.abi
        self.relay_selector(destination_chain)

    def relay_selector(self, chain: ChainId) -> int:
        """CCIP chain selector of *chain*.

        Raises:
            ConfigurationError: If no selector is configured.
        """
        selector = self._config.chain(chain).chain_selector
        if not selector:
            msg = f"CCIP chain selector for {chain} not configured"
            raise ConfigurationError(msg)
        return selector

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(
        self,
        source_chain: ChainId,
        destination_selector: int,
        receiver: str,
        asset_id: str,
    ) -> SubmissionHandle:
        """Sign and broadcast ``sendNFT`` on the source bridge.

        Returns:
            SubmissionHandle with the transaction hash and sender.

        Raises:
            ValidationError: If the receiver or token id is malformed.
            LedgerError: On RPC, balance or contract failures.
        """
        try:
            receiver_address = Web3.to_checksum_address(receiver)
        except ValueError as exc:
            msg = f"Invalid receiver address: {receiver}"
            raise ValidationError(msg) from exc
        try:
            token_id = int(asset_id)
        except ValueError as exc:
            msg = f"Token ID must be an integer: {asset_id}"
            raise ValidationError(msg) from exc

        account = self.account
        w3 = self._web3(source_chain)
        contract = self._contract(w3, source_chain)

        try:
            nonce = await w3.eth.get_transaction_count(account.address, "pending")
            tx = await getattr(contract.functions, SEND_FUNCTION)(
                destination_selector, receiver_address, token_id
            ).build_transaction(
                {
                    "from": account.address,
                    "nonce": nonce,
                    "gas": self._config.ledger.gas_limit,
                }
            )
            signed = account.sign_transaction(tx)
            tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        except BridgeError:
            raise
        except Exception as exc:
            mapped = classify_send_error(exc)
            if mapped is None:
                raise
            raise mapped from exc

        handle = SubmissionHandle(
            tx_hash=Web3.to_hex(tx_hash),
            sender=account.address,
            source_chain=ChainId(source_chain),
        )
        logger.info("sendNFT broadcast on %s: %s", source_chain, handle.tx_hash)
        return handle

    async def await_confirmation(self, handle: SubmissionHandle, *, timeout: float) -> Receipt:
        """Poll for the receipt of a submitted send.

        Raises:
            ConfirmationTimeoutError: If no receipt appears within *timeout*.
            ReceiptUnavailableError: If the receipt cannot be fetched.
            ContractRevertedError: If the transaction reverted on-chain.
        """
        w3 = self._web3(handle.source_chain)
        try:
            raw = await w3.eth.wait_for_transaction_receipt(
                handle.tx_hash,
                timeout=timeout,
                poll_latency=self._config.ledger.poll_interval,
            )
        except TimeExhausted as exc:
            msg = f"Transaction {handle.tx_hash} not confirmed within {timeout:g}s"
            raise ConfirmationTimeoutError(msg) from exc
        except (TransactionNotFound, OSError, Web3Exception) as exc:
            msg = f"Could not fetch receipt for {handle.tx_hash}: {exc}"
            raise ReceiptUnavailableError(msg) from exc

        block_number = int(raw["blockNumber"])
        if raw["status"] == 0:
            msg = f"Transaction {handle.tx_hash} reverted in block {block_number}"
            raise ContractRevertedError(msg)

        return Receipt(
            tx_hash=handle.tx_hash,
            source_chain=handle.source_chain,
            block_number=block_number,
            status=int(raw["status"]),
            logs=list(raw["logs"]),
        )

    def extract_relay_message_id(self, receipt: Receipt) -> str | None:
        """Decode the CCIP message id from the ``NFTSent`` event, if any."""
        address = self._config.chain(receipt.source_chain).bridge_address
        contract = self._decoder.eth.contract(
            address=Web3.to_checksum_address(address) if address else None,
            abi=self.abi,
        )
        event = getattr(contract.events, SENT_EVENT)()
        events = event.process_receipt({"logs": receipt.logs}, errors=DISCARD)
        if not events:
            logger.warning("No %s event in receipt of %s", SENT_EVENT, receipt.tx_hash)
            return None
        return Web3.to_hex(events[0]["args"]["messageId"])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _web3(self, chain: ChainId) -> AsyncWeb3:
        """Return the cached async web3 instance of *chain*."""
        chain = ChainId(chain)
        w3 = self._clients.get(chain)
        if w3 is None:
            rpc_url = self._config.chain(chain).rpc_url
            if not rpc_url:
                msg = f"RPC URL for {chain} not configured"
                raise ConfigurationError(msg)
            w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
            self._clients[chain] = w3
        return w3

    def _contract(self, w3: AsyncWeb3, chain: ChainId) -> Any:
        address = self._config.chain(chain).bridge_address
        if not address:
            msg = f"Bridge contract address for {chain} not configured"
            raise ConfigurationError(msg)
        return w3.eth.contract(address=Web3.to_checksum_address(address), abi=self.abi)
