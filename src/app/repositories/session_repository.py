from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from src.domain.entities import ActiveSession


class ISessionRepository(ABC):
    """Session registry interface - application layer"""

    @abstractmethod
    async def add_session(
        self,
        account_id: UUID,
        session_id: str,
        origin_address: Optional[str] = None,
        client_agent: Optional[str] = None,
    ) -> ActiveSession:
        """Register a new logged-in session for an account"""
        pass

    @abstractmethod
    async def get_session(self, account_id: UUID, session_id: str) -> Optional[ActiveSession]:
        """Get a session of an account by its session ID"""
        pass

    @abstractmethod
    async def list_by_account(self, account_id: UUID) -> List[ActiveSession]:
        """Get all sessions of an account, oldest first"""
        pass

    @abstractmethod
    async def touch(self, account_id: UUID, session_id: str) -> bool:
        """Refresh last_accessed_at. Returns False if the session is gone."""
        pass

    @abstractmethod
    async def remove_session(self, account_id: UUID, session_id: str) -> bool:
        """Remove one session. Returns True if it existed."""
        pass

    @abstractmethod
    async def clear_all(self, account_id: UUID, except_session_id: Optional[str] = None) -> int:
        """Remove every session of an account (optionally sparing one). Returns count."""
        pass
