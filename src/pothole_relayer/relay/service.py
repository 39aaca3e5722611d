"""Relayer service: runs one meta-transaction through the relay pipeline.

Pipeline (linear, each step can end the request):
1. Structural validation (no network)
2. Per-signer lock
3. Signature verification via the forwarder
4. Relayer solvency check
5. execute() and wait for confirmation

Every anticipated failure is returned as a RelayResult; nothing is retried.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from pothole_relayer.chain.gateway import ChainGateway
from pothole_relayer.config import RelayerConfig
from pothole_relayer.relay.models import (
    ForwardRequest,
    ForwardRequestPayload,
    RelayResult,
    VerificationStatus,
)
from pothole_relayer.relay.validation import is_valid_request, to_forward_request
from pothole_relayer.utils.locks import LockTimeoutError, SignerLockRegistry

logger = logging.getLogger(__name__)

ERR_INVALID_FORMAT = "Invalid request format"
ERR_INVALID_SIGNATURE = "Invalid signature"
ERR_INSUFFICIENT_BALANCE = "Insufficient relayer balance"
ERR_SIGNER_BUSY = "Relayer busy for signer, retry later"
ERR_GENERIC = "Failed to process meta-transaction"
MSG_SUCCESS = "Meta-transaction executed successfully"


class RelayerService:
    """Stateless relay pipeline over a ChainGateway.

    Args:
        gateway: Chain gateway holding the relayer wallet
        config: Relayer configuration
        locks: Per-signer lock registry (a fresh one by default)
        lock_timeout: Seconds to wait behind another request from the same signer
    """

    def __init__(
        self,
        gateway: ChainGateway,
        config: RelayerConfig,
        locks: Optional[SignerLockRegistry] = None,
        lock_timeout: Optional[float] = 180.0,
    ):
        self.gateway = gateway
        self.config = config
        self.locks = locks if locks is not None else SignerLockRegistry()
        self.lock_timeout = lock_timeout

    async def process_meta_tx(self, payload: Optional[ForwardRequestPayload]) -> RelayResult:
        """Validate, verify and execute a signed forward request."""
        logger.info("Processing meta-transaction request")

        if not is_valid_request(payload):
            logger.warning("Rejected relay request: invalid format")
            return RelayResult.rejected(ERR_INVALID_FORMAT)

        request = to_forward_request(payload)

        try:
            async with self.locks.lock(
                request.from_address, timeout=self.lock_timeout, operation="relay"
            ):
                return await self._relay(request)
        except LockTimeoutError as e:
            logger.warning(str(e))
            return RelayResult.rejected(ERR_SIGNER_BUSY)

    async def _relay(self, request: ForwardRequest) -> RelayResult:
        signer = request.from_address

        try:
            outcome = await self.gateway.verify(request)
            if not outcome.is_valid:
                if outcome.status == VerificationStatus.TRANSPORT_ERROR:
                    logger.error(f"Could not verify signature for {signer}: {outcome.detail}")
                else:
                    logger.warning(f"Invalid signature from {signer}")
                return RelayResult.rejected(ERR_INVALID_SIGNATURE)

            logger.info(f"Signature verified for {signer}")

            balance = await self.gateway.get_balance()
            logger.info(f"Relayer balance: {balance} ETH")
            if not self._is_solvent(balance):
                logger.error(
                    f"Relayer balance {balance} ETH below minimum {self.config.min_relayer_balance} ETH"
                )
                return RelayResult.rejected(ERR_INSUFFICIENT_BALANCE)

            logger.info(f"Executing meta-transaction for {signer} -> {request.to}")
            tx_hash = await self.gateway.execute_meta_tx(request)

        except Exception as e:
            logger.error(f"Relay failed for {signer}: {e}")
            return RelayResult.rejected(str(e) or ERR_GENERIC)

        return RelayResult(success=True, tx_hash=tx_hash, message=MSG_SUCCESS)

    def _is_solvent(self, balance: str) -> bool:
        try:
            return Decimal(balance) >= self.config.min_relayer_balance
        except InvalidOperation:
            logger.error(f"Unparseable relayer balance: {balance!r}")
            return False

    async def get_nonce(self, address: str) -> int:
        """Forwarder nonce for a signer (pass-through)."""
        return await self.gateway.get_nonce(address)

    async def get_status(self) -> dict:
        """Relayer status snapshot."""
        balance = await self.gateway.get_balance()
        return {
            "relayerAddress": self.gateway.get_relayer_address(),
            "balance": f"{balance} ETH",
            "chainId": self.config.chain_id,
            "forwarderAddress": self.config.forwarder_address,
            "status": "active",
        }
