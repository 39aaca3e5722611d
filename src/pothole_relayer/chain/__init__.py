"""Chain access: forwarder ABI and the relayer's chain gateway."""

from pothole_relayer.chain.gateway import ChainGateway, GatewayError, TransactionRevertedError

__all__ = ["ChainGateway", "GatewayError", "TransactionRevertedError"]
