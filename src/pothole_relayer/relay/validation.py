"""Structural validation of forward requests.

These checks run before any RPC call so malformed requests never cost
gas or node round-trips. Signature and nonce correctness are left to the
forwarder contract.
"""

import logging
import re
from typing import Optional

from eth_utils import is_address, to_checksum_address

from pothole_relayer.relay.models import ForwardRequest, ForwardRequestPayload

logger = logging.getLogger(__name__)

UINT48_MAX = 2**48 - 1
UINT256_MAX = 2**256 - 1

_DECIMAL_RE = re.compile(r"^[0-9]+$")
_HEX_RE = re.compile(r"^0x([0-9a-fA-F]{2})*$")


def _parse_uint(raw: Optional[str], maximum: int = UINT256_MAX) -> Optional[int]:
    """Parse a decimal string into an unsigned int, None if malformed."""
    if raw is None:
        return None
    raw = raw.strip()
    if not _DECIMAL_RE.match(raw):
        return None
    number = int(raw)
    if number > maximum:
        return None
    return number


def _is_hex_bytes(raw: Optional[str]) -> bool:
    return bool(raw) and bool(_HEX_RE.match(raw))


def is_valid_request(payload: Optional[ForwardRequestPayload]) -> bool:
    """Check that a forward request is complete and well formed.

    Zero is a valid value and deadline; expiry is enforced on-chain.

    Args:
        payload: Request as received from the client

    Returns:
        True if the request can be handed to the forwarder
    """
    if payload is None:
        return False

    if not payload.from_address or not payload.to or not payload.data or not payload.signature:
        return False

    if payload.value is None or payload.gas is None or payload.deadline is None:
        return False

    if not is_address(payload.from_address) or not is_address(payload.to):
        return False

    value = _parse_uint(payload.value)
    gas = _parse_uint(payload.gas)
    deadline = _parse_uint(payload.deadline, UINT48_MAX)
    if value is None or deadline is None:
        return False
    if gas is None or gas == 0:
        return False

    # "0x" is a valid empty call, but the field itself must be present
    if not _is_hex_bytes(payload.data):
        return False
    if not _is_hex_bytes(payload.signature) or payload.signature == "0x":
        return False

    return True


def to_forward_request(payload: ForwardRequestPayload) -> ForwardRequest:
    """Convert a validated payload into the typed request.

    Raises:
        ValueError: If the payload does not pass is_valid_request
    """
    if not is_valid_request(payload):
        raise ValueError("Invalid request format")

    return ForwardRequest(
        from_address=to_checksum_address(payload.from_address),
        to=to_checksum_address(payload.to),
        value=int(payload.value),
        gas=int(payload.gas),
        deadline=int(payload.deadline),
        data=bytes.fromhex(payload.data[2:]),
        signature=bytes.fromhex(payload.signature[2:]),
    )
