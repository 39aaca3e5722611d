"""Concurrency control for relays.

Provides per-signer locking so two requests from the same signer are never
in flight at once (they would race for the same forwarder nonce).
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


class SignerLockRegistry:
    """Registry of asyncio locks keyed by signer address.

    Addresses are compared case-insensitively. Entries taken through
    ``lock()`` are reference counted and dropped once the last holder or
    waiter leaves, so the table only holds signers with a relay in flight.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._refs: dict[str, int] = {}
        self._registry_lock = asyncio.Lock()

    async def get_lock(self, signer: str) -> asyncio.Lock:
        """Get or create the lock for a signer."""
        key = signer.lower()
        async with self._registry_lock:
            if key not in self._locks:
                self._locks[key] = asyncio.Lock()
            return self._locks[key]

    async def checkout(self, signer: str) -> asyncio.Lock:
        """Get the signer's lock and register one more user of it."""
        key = signer.lower()
        async with self._registry_lock:
            if key not in self._locks:
                self._locks[key] = asyncio.Lock()
            self._refs[key] = self._refs.get(key, 0) + 1
            return self._locks[key]

    def checkin(self, signer: str) -> None:
        """Drop one user of the signer's lock; evict the entry when unused."""
        key = signer.lower()
        remaining = self._refs.get(key, 0) - 1
        if remaining > 0:
            self._refs[key] = remaining
            return
        self._refs.pop(key, None)
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def lock(
        self,
        signer: str,
        timeout: Optional[float] = 180.0,
        operation: str = "relay",
    ) -> "SignerLock":
        """Context manager holding the signer's lock."""
        return SignerLock(self, signer, timeout=timeout, operation=operation)

    def clear(self) -> None:
        """Drop all locks (useful for testing)."""
        self._locks.clear()
        self._refs.clear()

    def __len__(self) -> int:
        return len(self._locks)


class SignerLock:
    """Context manager for exclusive access to a signer's relay slot.

    Example:
        async with registry.lock(request.from_address, timeout=60):
            # verify, check balance, execute
            ...
    """

    def __init__(
        self,
        registry: SignerLockRegistry,
        signer: str,
        timeout: Optional[float] = 180.0,
        operation: str = "relay",
    ):
        """Initialize the lock.

        Args:
            registry: Registry holding the per-signer locks
            signer: Signer address
            timeout: Maximum time to wait for lock (None = wait forever)
            operation: Description of the operation for logging
        """
        self.registry = registry
        self.signer = signer
        self.timeout = timeout
        self.operation = operation
        self._lock: Optional[asyncio.Lock] = None
        self._acquired = False

    async def __aenter__(self) -> "SignerLock":
        """Acquire the lock."""
        self._lock = await self.registry.checkout(self.signer)

        try:
            if self.timeout:
                self._acquired = await asyncio.wait_for(
                    self._lock.acquire(),
                    timeout=self.timeout,
                )
            else:
                await self._lock.acquire()
                self._acquired = True

            logger.debug(f"Lock acquired for signer {self.signer}: {self.operation}")
            return self

        except asyncio.TimeoutError:
            self.registry.checkin(self.signer)
            logger.warning(
                f"Lock timeout for signer {self.signer} after {self.timeout}s: {self.operation}"
            )
            raise LockTimeoutError(
                f"Could not acquire lock for signer {self.signer} within {self.timeout}s"
            )
        except asyncio.CancelledError:
            self.registry.checkin(self.signer)
            raise

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Release the lock."""
        if self._acquired and self._lock:
            self._lock.release()
            self._acquired = False
            self.registry.checkin(self.signer)
            logger.debug(f"Lock released for signer {self.signer}: {self.operation}")
        return False
