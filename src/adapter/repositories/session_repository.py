from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.session_repository import ISessionRepository
from src.domain.base import utcnow
from src.domain.entities import ActiveSession


class SessionRepository(ISessionRepository):
    """Session registry implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_session(
        self,
        account_id: UUID,
        session_id: str,
        origin_address: Optional[str] = None,
        client_agent: Optional[str] = None,
    ) -> ActiveSession:
        """Register a new logged-in session for an account"""
        session_obj = ActiveSession(
            account_id=account_id,
            session_id=session_id,
            origin_address=origin_address,
            client_agent=client_agent,
        )
        self.session.add(session_obj)
        await self.session.flush()
        await self.session.refresh(session_obj)
        return session_obj

    async def get_session(self, account_id: UUID, session_id: str) -> Optional[ActiveSession]:
        """Get a session of an account by its session ID"""
        stmt = select(ActiveSession).where(
            ActiveSession.account_id == account_id,
            ActiveSession.session_id == session_id,
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def list_by_account(self, account_id: UUID) -> List[ActiveSession]:
        """Get all sessions of an account, oldest first"""
        stmt = (
            select(ActiveSession)
            .where(ActiveSession.account_id == account_id)
            .order_by(ActiveSession.created_at)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def touch(self, account_id: UUID, session_id: str) -> bool:
        """Refresh last_accessed_at"""
        stmt = (
            update(ActiveSession)
            .where(
                ActiveSession.account_id == account_id,
                ActiveSession.session_id == session_id,
            )
            .values(last_accessed_at=utcnow())
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def remove_session(self, account_id: UUID, session_id: str) -> bool:
        """Remove one session"""
        stmt = delete(ActiveSession).where(
            ActiveSession.account_id == account_id,
            ActiveSession.session_id == session_id,
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def clear_all(self, account_id: UUID, except_session_id: Optional[str] = None) -> int:
        """Remove every session of an account, optionally sparing one"""
        stmt = delete(ActiveSession).where(ActiveSession.account_id == account_id)
        if except_session_id is not None:
            stmt = stmt.where(ActiveSession.session_id != except_session_id)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount
