from abc import ABC, abstractmethod

from pydantic import BaseModel


class VerificationResult(BaseModel):
    """Outcome of checking a plaintext against a stored hash"""

    matched: bool
    needs_migration: bool = False


class IPasswordHasher(ABC):
    """Password hasher interface - application layer

    Verification never mutates anything. When needs_migration is set the
    caller re-hashes with hash() and persists before reporting success.
    """

    @abstractmethod
    def hash(self, plaintext: str) -> str:
        """Hash with the preferred algorithm. Raises HashingError on failure."""
        pass

    @abstractmethod
    def verify(self, plaintext: str, stored_hash: str) -> VerificationResult:
        """Verify against any supported generation; unknown tags never match"""
        pass

    @abstractmethod
    def dummy_verify(self, plaintext: str) -> None:
        """Spend the cost of a real verification for unknown accounts"""
        pass
