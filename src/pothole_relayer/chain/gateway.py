"""Chain gateway: the only component that talks to the node.

Owns the JSON-RPC connection, the relayer key and the forwarder contract
binding. Nothing here retries; callers decide what to do with failures.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Optional

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from pothole_relayer.chain.abi import FORWARDER_ABI
from pothole_relayer.config import RelayerConfig
from pothole_relayer.relay.models import (
    ForwardRequest,
    VerificationOutcome,
    VerificationStatus,
)

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base error for chain gateway failures."""


class TransactionRevertedError(GatewayError):
    """Raised when a relayed transaction is mined with status 0."""

    def __init__(self, tx_hash: str):
        self.tx_hash = tx_hash
        super().__init__(f"Transaction {tx_hash} reverted")


def format_ether(balance_wei: int) -> str:
    """Render a wei amount as plain decimal ether, e.g. "0.0", "2.0", "0.0000001"."""
    text = format(Decimal(Web3.from_wei(balance_wei, "ether")), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text if "." in text else f"{text}.0"


class ChainGateway:
    """Relayer wallet plus forwarder contract on one chain.

    Args:
        config: Relayer configuration
        web3: Optional pre-built AsyncWeb3 (tests inject a fake provider)
    """

    def __init__(self, config: RelayerConfig, web3: Optional[AsyncWeb3] = None):
        self.config = config
        self.web3 = web3 or AsyncWeb3(AsyncHTTPProvider(config.rpc_url))
        self._account = Account.from_key(config.relayer_private_key)
        self.forwarder = self.web3.eth.contract(
            address=Web3.to_checksum_address(config.forwarder_address),
            abi=FORWARDER_ABI,
        )
        # Serializes the relayer's own account nonce across concurrent sends
        self._send_lock = asyncio.Lock()

    def get_relayer_address(self) -> str:
        """Public address of the relayer wallet."""
        return self._account.address

    async def get_nonce(self, address: str) -> int:
        """Forwarder nonce for a signer."""
        nonce = await self.forwarder.functions.nonces(
            Web3.to_checksum_address(address)
        ).call()
        logger.debug(f"Fetched forwarder nonce for {address}: {nonce}")
        return nonce

    async def get_balance(self) -> str:
        """Relayer balance in ether, as a decimal string."""
        balance_wei = await self.web3.eth.get_balance(self._account.address)
        return format_ether(balance_wei)

    async def verify(self, request: ForwardRequest) -> VerificationOutcome:
        """Ask the forwarder whether the request's signature is valid.

        Never raises: RPC and contract errors come back as TRANSPORT_ERROR.
        """
        try:
            is_valid = await self.forwarder.functions.verify(
                request.as_contract_tuple()
            ).call()
        except Exception as e:
            logger.warning(f"Signature verification call failed for {request.from_address}: {e}")
            return VerificationOutcome(VerificationStatus.TRANSPORT_ERROR, detail=str(e))

        if is_valid:
            return VerificationOutcome(VerificationStatus.VALID)
        return VerificationOutcome(VerificationStatus.INVALID)

    async def verify_signature(self, request: ForwardRequest) -> bool:
        """True only when the forwarder positively confirms the signature."""
        outcome = await self.verify(request)
        return outcome.is_valid

    async def execute_meta_tx(self, request: ForwardRequest) -> str:
        """Submit forwarder.execute() and wait for one confirmation.

        The outer transaction always uses the configured gas ceiling;
        request.gas only bounds the inner call.

        Returns:
            Transaction hash (0x-prefixed)

        Raises:
            TransactionRevertedError: If the transaction was mined but reverted
            Exception: RPC, signing or timeout errors from web3
        """
        relayer = self._account.address

        async with self._send_lock:
            nonce = await self.web3.eth.get_transaction_count(relayer, "pending")
            gas_price = await self.web3.eth.gas_price

            tx = await self.forwarder.functions.execute(
                request.as_contract_tuple()
            ).build_transaction({
                "from": relayer,
                "nonce": nonce,
                "gas": self.config.gas_limit,
                "gasPrice": gas_price,
                "value": request.value,
                "chainId": self.config.chain_id,
            })

            signed_tx = self._account.sign_transaction(tx)
            tx_hash = await self.web3.eth.send_raw_transaction(signed_tx.raw_transaction)

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Relayed tx sent: {tx_hash_hex} (signer {request.from_address})")

        receipt = await self.web3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.config.confirmation_timeout
        )
        if receipt["status"] == 0:
            logger.error(f"Relayed tx {tx_hash_hex} reverted in block {receipt['blockNumber']}")
            raise TransactionRevertedError(tx_hash_hex)

        logger.info(f"Relayed tx {tx_hash_hex} confirmed in block {receipt['blockNumber']}")
        return tx_hash_hex

    async def close(self) -> None:
        """Close the provider session."""
        disconnect = getattr(self.web3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
