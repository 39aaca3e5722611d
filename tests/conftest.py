"""Pytest configuration and fixtures."""

import os
import time
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

# Set test environment before the package reads it
os.environ["ENVIRONMENT"] = "test"
os.environ["RPC_URL"] = "http://localhost:8545"
os.environ["CHAIN_ID"] = "31337"
os.environ["FORWARDER_ADDRESS"] = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
os.environ["RELAYER_PRIVATE_KEY"] = (
    "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
)
os.environ["FRONTEND_URL"] = "http://localhost:3000"

from pothole_relayer.chain.gateway import ChainGateway
from pothole_relayer.config import RelayerConfig
from pothole_relayer.relay.models import (
    ForwardRequestPayload,
    VerificationOutcome,
    VerificationStatus,
)
from pothole_relayer.relay.service import RelayerService
from pothole_relayer.signing import build_relay_body, build_typed_data, sign_forward_request

FORWARDER_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
REGISTRY_ADDRESS = "0x9fE46736679d2D9a65F0992F2272dE9f3c7fa6e0"
RELAYER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
RELAYER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
SIGNER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
SIGNER_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"

# Opaque call data: a selector plus one address argument
CALL_DATA = (
    "0x2f5fb4d7"
    "00000000000000000000000070997970c51812dc3a010c7d01b50e0d17dc79c8"
)
TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def relayer_config() -> RelayerConfig:
    """Relayer configuration for a local hardhat node."""
    return RelayerConfig(
        rpc_url="http://localhost:8545",
        chain_id=31337,
        forwarder_address=FORWARDER_ADDRESS,
        relayer_private_key=RELAYER_KEY,
        gas_limit=200000,
        confirmation_timeout=5.0,
        min_relayer_balance=Decimal("0.01"),
    )


@pytest.fixture
def typed_data() -> dict:
    """Typed data for a registry call by the hardhat #1 account."""
    return build_typed_data(
        from_address=SIGNER_ADDRESS,
        to=REGISTRY_ADDRESS,
        value=0,
        gas=300000,
        nonce=0,
        deadline=int(time.time()) + 3600,
        data=CALL_DATA,
        chain_id=31337,
        forwarder_address=FORWARDER_ADDRESS,
    )


@pytest.fixture
def relay_body(typed_data) -> dict:
    """POST /api/relay body with a real signature."""
    return build_relay_body(typed_data, sign_forward_request(SIGNER_KEY, typed_data))


@pytest.fixture
def payload(relay_body) -> ForwardRequestPayload:
    """Well-formed, signed forward request payload."""
    return ForwardRequestPayload.model_validate(relay_body["request"])


@pytest.fixture
def gateway() -> MagicMock:
    """Chain gateway double: valid signatures, funded wallet, successful execute."""
    gw = MagicMock(spec=ChainGateway)
    gw.verify.return_value = VerificationOutcome(VerificationStatus.VALID)
    gw.get_balance.return_value = "1.0"
    gw.execute_meta_tx.return_value = TX_HASH
    gw.get_nonce.return_value = 3
    gw.get_relayer_address.return_value = RELAYER_ADDRESS
    return gw


@pytest.fixture
def service(gateway, relayer_config) -> RelayerService:
    """Relayer service over the gateway double."""
    return RelayerService(gateway, relayer_config, lock_timeout=5.0)
