"""
Register Use Case

Creates a new account with an Argon2id password hash.
"""

import asyncio
import logging

from src.app.services.password_hasher import IPasswordHasher
from src.app.services.password_strength import AccountContext, PasswordStrengthValidator
from src.app.services.unit_of_work import UnitOfWork
from src.app.utils.masking import mask_email
from src.domain.entities import AuditEvent, Credential
from src.domain.exceptions import DuplicateIdentity
from src.libs.result import Error, Result, Return
from .dtos import AccountInfo, RegisterCommand, RegisterResponse
from .errors import ACCOUNT_ALREADY_EXISTS, weak_password

logger = logging.getLogger(__name__)


class RegisterUseCase:
    """
    Use case for account registration.

    Business Rules:
    - Email is normalised (trimmed, lower-cased) and must be unique
    - Phone, when given, must be unique
    - Password must pass the strength validator with the account's own attributes
    - Password is stored as Argon2id
    """

    def __init__(
        self,
        uow: UnitOfWork,
        hasher: IPasswordHasher,
        strength_validator: PasswordStrengthValidator,
    ):
        self.uow = uow
        self.hasher = hasher
        self.strength_validator = strength_validator

    async def execute(self, command: RegisterCommand) -> Result[RegisterResponse]:
        report = self.strength_validator.validate(
            command.password,
            AccountContext(name=command.name, email=command.email, phone=command.phone),
        )
        if not report.valid:
            return Return.err(weak_password(report.failed_rules, report.feedback, report.score))

        async with self.uow:
            if await self.uow.credentials.exists(command.email, command.phone):
                return Return.err(
                    Error(
                        ACCOUNT_ALREADY_EXISTS,
                        "An account with this email or phone already exists",
                    )
                )

            credential = Credential(
                email=command.email,
                phone=command.phone,
                name=command.name,
                password_hash=await asyncio.to_thread(self.hasher.hash, command.password),
            )
            try:
                credential = await self.uow.credentials.create(credential)
            except DuplicateIdentity:
                return Return.err(
                    Error(
                        ACCOUNT_ALREADY_EXISTS,
                        "An account with this email or phone already exists",
                    )
                )

            await self.uow.audit_events.create(
                AuditEvent(
                    account_id=credential.id,
                    action="account_registered",
                    event_metadata={"email": mask_email(credential.email)},
                )
            )
            await self.uow.commit()

        logger.info(f"Registered account {credential.id} ({mask_email(credential.email)})")

        return Return.ok(
            RegisterResponse(
                account=AccountInfo(
                    id=str(credential.id),
                    name=credential.name,
                    email=credential.email,
                    phone=credential.phone,
                ),
                password_strength=report.label,
            )
        )
