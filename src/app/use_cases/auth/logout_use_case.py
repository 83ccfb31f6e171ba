from uuid import UUID

from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent
from src.libs.result import Error, Result, Return
from .dtos import LogoutResponse
from .errors import SESSION_NOT_FOUND


class LogoutUseCase:
    """Removes the caller's own session from the registry"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, account_id: UUID, session_id: str) -> Result[LogoutResponse]:
        async with self.uow:
            removed = await self.uow.sessions.remove_session(account_id, session_id)
            if not removed:
                return Return.err(Error(SESSION_NOT_FOUND, "Session not found"))

            await self.uow.audit_events.create(
                AuditEvent(account_id=account_id, action="logout")
            )
            await self.uow.commit()

        return Return.ok(LogoutResponse(status="success", message="Logged out successfully"))
