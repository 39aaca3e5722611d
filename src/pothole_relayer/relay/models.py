"""Relay data types.

ForwardRequestPayload is what arrives over HTTP; ForwardRequest is the typed
form handed to the chain gateway once the payload passes validation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ForwardRequestPayload(BaseModel):
    """Signed forward request as sent by the frontend.

    Every field is optional here so that incomplete requests reach the
    relay pipeline and get a 400 with a reason instead of a 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    from_address: Optional[str] = Field(None, alias="from", description="Signer address")
    to: Optional[str] = Field(None, description="Target contract address")
    value: Optional[str] = Field(None, description="Wei to forward (decimal string)")
    gas: Optional[str] = Field(None, description="Gas for the inner call (decimal string)")
    deadline: Optional[str] = Field(None, description="Unix expiry timestamp")
    data: Optional[str] = Field(None, description="Call data (0x hex)")
    signature: Optional[str] = Field(None, description="EIP-712 signature (0x hex)")
    # Accepted for older clients; the forwarder tracks nonces itself
    nonce: Optional[str] = Field(None, description="Ignored")

    @field_validator("value", "gas", "deadline", "nonce", mode="before")
    @classmethod
    def numbers_as_strings(cls, v: Any) -> Any:
        """Accept JSON integers for the numeric fields."""
        if isinstance(v, bool):
            return v
        if isinstance(v, int):
            return str(v)
        return v


class RelayRequestBody(BaseModel):
    """Body of POST /api/relay."""

    request: Optional[ForwardRequestPayload] = None
    # Legacy clients send the signature next to the request
    signature: Optional[str] = None


@dataclass(frozen=True)
class ForwardRequest:
    """Validated forward request, ready for the forwarder contract."""

    from_address: str
    to: str
    value: int
    gas: int
    deadline: int
    data: bytes
    signature: bytes

    def as_contract_tuple(self) -> tuple:
        """Tuple in ForwardRequestData field order."""
        return (
            self.from_address,
            self.to,
            self.value,
            self.gas,
            self.deadline,
            self.data,
            self.signature,
        )


class VerificationStatus(str, Enum):
    """Outcome of an on-chain signature check."""
    VALID = "valid"
    INVALID = "invalid"
    TRANSPORT_ERROR = "transport_error"


@dataclass
class VerificationOutcome:
    """Signature check result. Anything but VALID is treated as invalid."""
    status: VerificationStatus
    detail: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status == VerificationStatus.VALID


@dataclass
class RelayResult:
    """Result of one relay attempt."""
    success: bool
    tx_hash: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def rejected(cls, error: str) -> "RelayResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Union[bool, str]]:
        """JSON body in the shape the frontend expects."""
        body: dict[str, Union[bool, str]] = {"success": self.success}
        if self.tx_hash is not None:
            body["txHash"] = self.tx_hash
        if self.message is not None:
            body["message"] = self.message
        if self.error is not None:
            body["error"] = self.error
        return body


class RelayerStatus(BaseModel):
    """Response for GET /api/relay/status."""

    relayerAddress: str
    balance: str
    chainId: int
    forwarderAddress: str
    status: str = "active"


class NonceResponse(BaseModel):
    """Response for GET /api/relay/nonce."""

    nonce: str
