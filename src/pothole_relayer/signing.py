"""EIP-712 helpers for building and signing forward requests.

The relayer never checks signatures itself (the forwarder contract does);
these helpers produce what a wallet would, for scripts and tests.
"""

import logging
from typing import Any, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import to_checksum_address
from web3 import Web3

logger = logging.getLogger(__name__)

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

FORWARD_REQUEST_TYPE = [
    {"name": "from", "type": "address"},
    {"name": "to", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "gas", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "deadline", "type": "uint48"},
    {"name": "data", "type": "bytes"},
]


def build_typed_data(
    from_address: str,
    to: str,
    value: int,
    gas: int,
    nonce: int,
    deadline: int,
    data: str,
    chain_id: int,
    forwarder_address: str,
    name: str = "PotholesForwarder",
    version: str = "1",
) -> dict[str, Any]:
    """Build the EIP-712 message a signer signs for the forwarder.

    Args:
        from_address: Signer address
        to: Target contract
        value: Wei forwarded with the call
        gas: Gas for the inner call
        nonce: Signer's current forwarder nonce
        deadline: Unix timestamp after which the request is void
        data: Call data (0x hex)
        chain_id: Chain the forwarder lives on
        forwarder_address: Forwarder contract (verifyingContract)
        name: Forwarder's EIP-712 domain name
        version: Forwarder's EIP-712 domain version

    Returns:
        Full typed-data dict (types, primaryType, domain, message)
    """
    return {
        "types": {
            "EIP712Domain": EIP712_DOMAIN_TYPE,
            "ForwardRequest": FORWARD_REQUEST_TYPE,
        },
        "primaryType": "ForwardRequest",
        "domain": {
            "name": name,
            "version": version,
            "chainId": chain_id,
            "verifyingContract": to_checksum_address(forwarder_address),
        },
        "message": {
            "from": to_checksum_address(from_address),
            "to": to_checksum_address(to),
            "value": value,
            "gas": gas,
            "nonce": nonce,
            "deadline": deadline,
            "data": data,
        },
    }


def sign_forward_request(private_key: str, typed_data: dict[str, Any]) -> str:
    """Sign typed data, returning the 0x-prefixed 65-byte signature."""
    signed = Account.sign_typed_data(private_key, full_message=typed_data)
    return Web3.to_hex(signed.signature)


def recover_signer(typed_data: dict[str, Any], signature: str) -> str:
    """Address that produced a typed-data signature."""
    message = encode_typed_data(full_message=typed_data)
    return Account.recover_message(message, signature=signature)


def build_relay_body(
    typed_data: dict[str, Any],
    signature: str,
    extra: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """JSON body for POST /api/relay, numbers as decimal strings."""
    message = typed_data["message"]
    request = {
        "from": message["from"],
        "to": message["to"],
        "value": str(message["value"]),
        "gas": str(message["gas"]),
        "deadline": str(message["deadline"]),
        "data": message["data"],
        "signature": signature,
    }
    if extra:
        request.update(extra)
    return {"request": request}
