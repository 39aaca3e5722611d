"""Component tests: signer locks, EIP-712 signing helpers, result models."""

import asyncio

import pytest

from pothole_relayer.relay.models import RelayResult
from pothole_relayer.signing import build_relay_body, recover_signer, sign_forward_request
from pothole_relayer.utils.locks import LockTimeoutError, SignerLockRegistry

from conftest import SIGNER_ADDRESS, SIGNER_KEY


class TestSignerLocks:
    """Tests for the per-signer lock registry."""

    @pytest.fixture
    def registry(self):
        return SignerLockRegistry()

    @pytest.mark.asyncio
    async def test_same_signer_same_lock(self, registry):
        lock1 = await registry.get_lock(SIGNER_ADDRESS)
        lock2 = await registry.get_lock(SIGNER_ADDRESS.lower())

        assert lock1 is lock2
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_different_signers_get_different_locks(self, registry):
        lock1 = await registry.get_lock("0x" + "1" * 40)
        lock2 = await registry.get_lock("0x" + "2" * 40)

        assert lock1 is not lock2

    @pytest.mark.asyncio
    async def test_context_manager_releases(self, registry):
        async with registry.lock(SIGNER_ADDRESS, operation="test"):
            lock = await registry.get_lock(SIGNER_ADDRESS)
            assert lock.locked()

        assert not lock.locked()

    @pytest.mark.asyncio
    async def test_released_on_error(self, registry):
        with pytest.raises(ValueError):
            async with registry.lock(SIGNER_ADDRESS):
                raise ValueError("boom")

        lock = await registry.get_lock(SIGNER_ADDRESS)
        assert not lock.locked()

    @pytest.mark.asyncio
    async def test_different_signers_run_concurrently(self, registry):
        results = []

        async def task(signer, name):
            async with registry.lock(signer, timeout=5.0):
                results.append(f"{name}_start")
                await asyncio.sleep(0.05)
                results.append(f"{name}_end")

        await asyncio.gather(
            task("0x" + "1" * 40, "A"),
            task("0x" + "2" * 40, "B"),
        )

        assert results[:2] == ["A_start", "B_start"]

    @pytest.mark.asyncio
    async def test_timeout_raises(self, registry):
        async def hold_lock():
            async with registry.lock(SIGNER_ADDRESS, timeout=5.0):
                await asyncio.sleep(0.3)

        hold_task = asyncio.create_task(hold_lock())
        await asyncio.sleep(0.05)

        with pytest.raises(LockTimeoutError):
            async with registry.lock(SIGNER_ADDRESS, timeout=0.05):
                pass

        await hold_task

    @pytest.mark.asyncio
    async def test_entry_evicted_after_release(self, registry):
        async with registry.lock(SIGNER_ADDRESS):
            assert len(registry) == 1

        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_entry_kept_while_waiter_queued(self, registry):
        order = []

        async def relay(name):
            async with registry.lock(SIGNER_ADDRESS, timeout=5.0):
                order.append(name)
                await asyncio.sleep(0.05)

        first = asyncio.create_task(relay("first"))
        await asyncio.sleep(0.01)
        second = asyncio.create_task(relay("second"))
        await first

        assert len(registry) == 1
        await second
        assert order == ["first", "second"]
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_entry_evicted_after_timeout(self, registry):
        async def hold_lock():
            async with registry.lock(SIGNER_ADDRESS, timeout=5.0):
                await asyncio.sleep(0.2)

        hold_task = asyncio.create_task(hold_lock())
        await asyncio.sleep(0.05)

        with pytest.raises(LockTimeoutError):
            async with registry.lock(SIGNER_ADDRESS, timeout=0.05):
                pass

        assert len(registry) == 1
        await hold_task
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_clear(self, registry):
        await registry.get_lock(SIGNER_ADDRESS)
        registry.clear()

        assert len(registry) == 0


class TestSigning:
    """Tests for EIP-712 request signing."""

    def test_signature_recovers_signer(self, typed_data):
        signature = sign_forward_request(SIGNER_KEY, typed_data)

        assert signature.startswith("0x")
        assert len(signature) == 2 + 65 * 2
        assert recover_signer(typed_data, signature) == SIGNER_ADDRESS

    def test_tampered_message_recovers_someone_else(self, typed_data):
        signature = sign_forward_request(SIGNER_KEY, typed_data)
        typed_data["message"]["gas"] = 1

        assert recover_signer(typed_data, signature) != SIGNER_ADDRESS

    def test_domain_uses_forwarder(self, typed_data):
        assert typed_data["domain"]["name"] == "PotholesForwarder"
        assert typed_data["domain"]["version"] == "1"
        assert typed_data["primaryType"] == "ForwardRequest"

    def test_relay_body_shape(self, typed_data):
        body = build_relay_body(typed_data, "0xabcd")

        request = body["request"]
        assert request["from"] == SIGNER_ADDRESS
        assert request["value"] == "0"
        assert request["gas"] == "300000"
        assert request["signature"] == "0xabcd"
        assert "nonce" not in request


class TestRelayResult:
    """Tests for RelayResult serialization."""

    def test_success_body(self):
        result = RelayResult(success=True, tx_hash="0xabc", message="ok")

        assert result.to_dict() == {"success": True, "txHash": "0xabc", "message": "ok"}

    def test_rejected_body(self):
        assert RelayResult.rejected("Invalid signature").to_dict() == {
            "success": False,
            "error": "Invalid signature",
        }
