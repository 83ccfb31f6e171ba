"""
Change Password Use Case

Authenticated password change with re-verification of the current password.
"""

import asyncio
import logging
from uuid import UUID

from src.app.services.password_hasher import IPasswordHasher
from src.app.services.password_strength import AccountContext, PasswordStrengthValidator
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent
from src.libs.result import Error, Result, Return
from .dtos import ChangePasswordCommand, ChangePasswordResponse
from .errors import (
    INVALID_CURRENT_PASSWORD,
    SAME_AS_CURRENT_PASSWORD,
    concurrent_update,
    invalid_credentials,
    weak_password,
)

logger = logging.getLogger(__name__)


class ChangePasswordUseCase:
    """
    Use case for changing a password while logged in.

    Business Rules:
    - Current password must verify
    - New password must not verify against the current hash (no write otherwise)
    - New password must pass the strength validator
    - Saved with a conditional write; a concurrent change reports CONCURRENT_UPDATE
    - A pending reset token is cancelled
    - Other sessions are cleared when configured; the caller's session stays
    """

    def __init__(
        self,
        uow: UnitOfWork,
        hasher: IPasswordHasher,
        strength_validator: PasswordStrengthValidator,
        clear_other_sessions: bool = True,
    ):
        self.uow = uow
        self.hasher = hasher
        self.strength_validator = strength_validator
        self.clear_other_sessions = clear_other_sessions

    async def execute(
        self, account_id: UUID, session_id: str, command: ChangePasswordCommand
    ) -> Result[ChangePasswordResponse]:
        async with self.uow:
            credential = await self.uow.credentials.get_by_id(account_id)
            if credential is None or not credential.is_active:
                return Return.err(invalid_credentials())

            current = await asyncio.to_thread(
                self.hasher.verify, command.current_password, credential.password_hash
            )
            if not current.matched:
                return Return.err(
                    Error(INVALID_CURRENT_PASSWORD, "Current password is incorrect")
                )

            same = await asyncio.to_thread(
                self.hasher.verify, command.new_password, credential.password_hash
            )
            if same.matched:
                return Return.err(
                    Error(
                        SAME_AS_CURRENT_PASSWORD,
                        "New password must be different from current password",
                    )
                )

            report = self.strength_validator.validate(
                command.new_password,
                AccountContext(
                    name=credential.name, email=credential.email, phone=credential.phone
                ),
            )
            if not report.valid:
                return Return.err(
                    weak_password(report.failed_rules, report.feedback, report.score)
                )

            expected_version = credential.version
            had_pending_reset = credential.has_pending_reset()

            credential.password_hash = await asyncio.to_thread(
                self.hasher.hash, command.new_password
            )
            credential.legacy_hash = None
            if had_pending_reset:
                credential.clear_reset_token()

            if not await self.uow.credentials.conditional_save(credential, expected_version):
                return Return.err(concurrent_update())

            cleared = 0
            if self.clear_other_sessions:
                cleared = await self.uow.sessions.clear_all(
                    account_id, except_session_id=session_id
                )

            await self.uow.audit_events.create(
                AuditEvent(
                    account_id=account_id,
                    action="password_changed",
                    event_metadata={
                        "sessions_cleared": cleared,
                        "reset_token_cancelled": had_pending_reset,
                    },
                )
            )
            await self.uow.commit()

        logger.info(f"Password changed for account {account_id}, {cleared} other session(s) cleared")

        return Return.ok(
            ChangePasswordResponse(
                status="success",
                message="Password changed successfully",
                password_strength=report.label,
                sessions_cleared=cleared,
            )
        )
