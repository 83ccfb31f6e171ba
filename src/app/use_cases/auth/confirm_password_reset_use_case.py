"""
Confirm Password Reset Use Case

Completes a reset: checks the token, enforces the password policy, swaps
the hash and signs every device out.
"""

import asyncio
import logging

from src.app.services.notification import NotificationJob, NotificationOutbox
from src.app.services.password_hasher import IPasswordHasher
from src.app.services.password_strength import AccountContext, PasswordStrengthValidator
from src.app.services.reset_token_manager import ResetTokenManager
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, NotificationKind
from src.libs.result import Result, Return
from .dtos import ResetPasswordCommand, ResetPasswordResponse
from .errors import invalid_or_expired_token, weak_password

logger = logging.getLogger(__name__)

CONSUME_ATTEMPTS = 3


class ConfirmPasswordResetUseCase:
    """
    Use case for confirming password reset.

    Business Rules:
    - Token must match, be unused, unexpired, and belong to an active account
    - New password must pass the strength validator for that account
    - Hash swap and token retirement are one conditional write; a token
      consumed concurrently reports INVALID_OR_EXPIRED_TOKEN, while a version
      bump that left the token valid is retried
    - All sessions of the account are cleared
    - A "password changed" notice is queued after commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        token_manager: ResetTokenManager,
        hasher: IPasswordHasher,
        strength_validator: PasswordStrengthValidator,
        outbox: NotificationOutbox,
    ):
        self.uow = uow
        self.token_manager = token_manager
        self.hasher = hasher
        self.strength_validator = strength_validator
        self.outbox = outbox

    async def execute(self, command: ResetPasswordCommand) -> Result[ResetPasswordResponse]:
        async with self.uow:
            credential = await self.token_manager.validate(self.uow.credentials, command.token)
            if credential is None:
                return Return.err(invalid_or_expired_token())

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

            new_hash = await asyncio.to_thread(self.hasher.hash, command.new_password)

            account_id = credential.id
            for _ in range(CONSUME_ATTEMPTS):
                if await self.token_manager.consume(self.uow.credentials, credential, new_hash):
                    break
                # Version moved under us: retry only while the token is still valid
                credential = await self.token_manager.validate(
                    self.uow.credentials, command.token
                )
                if credential is None:
                    logger.warning(f"Reset token for account {account_id} was consumed concurrently")
                    return Return.err(invalid_or_expired_token())
            else:
                logger.warning(f"Reset for account {account_id} kept losing write races")
                return Return.err(invalid_or_expired_token())

            cleared = await self.uow.sessions.clear_all(credential.id)

            await self.uow.audit_events.create(
                AuditEvent(
                    account_id=credential.id,
                    action="password_reset_confirmed",
                    event_metadata={"sessions_cleared": cleared},
                )
            )
            await self.uow.commit()

        self.outbox.enqueue(
            NotificationJob(
                kind=NotificationKind.password_changed,
                address=credential.email,
                name=credential.name,
            )
        )
        logger.info(f"Password reset completed for account {credential.id}, {cleared} session(s) cleared")

        return Return.ok(
            ResetPasswordResponse(
                status="success",
                message="Password has been reset successfully. Please log in with your new password.",
                password_strength=report.label,
            )
        )
