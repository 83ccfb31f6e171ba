from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.domain.entities import Credential


class ICredentialRepository(ABC):
    """Credential repository interface - application layer

    Loaded records are detached snapshots: mutating one changes nothing
    until it is written back with conditional_save. record_login and
    increment_failed_reset_requests are narrow column updates that never
    touch version.
    """

    @abstractmethod
    async def get_by_id(self, account_id: UUID) -> Optional[Credential]:
        """Get credential by account ID"""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Credential]:
        """Get credential by normalised email"""
        pass

    @abstractmethod
    async def get_by_identity(self, identity: str) -> Optional[Credential]:
        """Get credential by email or phone number"""
        pass

    @abstractmethod
    async def get_by_token_digest(self, token_digest: str) -> Optional[Credential]:
        """Get credential whose pending reset token has the given SHA-256 digest"""
        pass

    @abstractmethod
    async def exists(self, email: str, phone: Optional[str]) -> bool:
        """True if an account already uses the email or phone"""
        pass

    @abstractmethod
    async def create(self, credential: Credential) -> Credential:
        """Create a new credential record"""
        pass

    @abstractmethod
    async def conditional_save(self, credential: Credential, expected_version: int) -> bool:
        """
        Write the record only if its stored version still equals expected_version.

        Returns False on conflict (someone else wrote first). On success the
        record's version is advanced.
        """
        pass

    @abstractmethod
    async def record_login(self, account_id: UUID, at: datetime) -> None:
        """Stamp last_login_at. Leaves version alone so logins never conflict."""
        pass

    @abstractmethod
    async def increment_failed_reset_requests(self, account_id: UUID) -> None:
        """Atomically bump the throttled-request counter, version untouched"""
        pass

    @abstractmethod
    async def purge_expired_reset_tokens(self, now: datetime) -> int:
        """Clear pending reset tokens that expired before now. Returns count."""
        pass
