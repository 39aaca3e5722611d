"""Utility modules for the pothole relayer."""

from pothole_relayer.utils.locks import LockTimeoutError, SignerLock, SignerLockRegistry

__all__ = ["LockTimeoutError", "SignerLock", "SignerLockRegistry"]
