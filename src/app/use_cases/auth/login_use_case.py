"""
Login Use Case

Authenticates by email or phone, migrates legacy hashes and opens a session.
"""

import asyncio
import logging
import math
import secrets
from datetime import datetime
from typing import Callable, Tuple

from src.api.utils.jwt import generate_jwt
from src.app.services.password_hasher import IPasswordHasher
from src.app.services.rate_limiter import RateLimiter
from src.app.services.unit_of_work import UnitOfWork
from src.app.utils.masking import mask_identifier
from src.domain.base import utcnow
from src.domain.entities import AuditEvent, Credential
from src.libs.result import Result, Return
from .dtos import AccountInfo, LoginCommand, LoginResponse
from .errors import concurrent_update, invalid_credentials, too_many_attempts

logger = logging.getLogger(__name__)

MIGRATION_ATTEMPTS = 3


class LoginUseCase:
    """
    Use case for login and JWT issuance.

    Business Rules:
    - Throttled per origin address and per identity; the throttled response
      is identical for known and unknown identities
    - Unknown identities still pay for one hash verification
    - Inactive accounts and wrong passwords get the same INVALID_CREDENTIALS
    - A match against a legacy (or outdated Argon2) hash is re-hashed and
      persisted before success is reported; only this write is version-checked
    - last_login_at is a plain update, so concurrent logins never conflict
    - Each login appends a session; the JWT is bound to that session
    """

    def __init__(
        self,
        uow: UnitOfWork,
        hasher: IPasswordHasher,
        rate_limiter: RateLimiter,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.hasher = hasher
        self.rate_limiter = rate_limiter
        self.clock = clock

    async def execute(self, command: LoginCommand) -> Result[LoginResponse]:
        decision = await self.rate_limiter.check_login(command.origin_address, command.identity)
        if not decision.allowed:
            logger.warning(
                f"Login throttled for {mask_identifier(command.identity)} "
                f"from {command.origin_address}"
            )
            denied = [d for d in (decision.by_origin, decision.by_identity) if not d.allowed]
            retry_after = max(
                0, math.ceil(max(d.reset_at for d in denied) - self.rate_limiter.clock())
            )
            return Return.err(too_many_attempts(retry_after))

        async with self.uow:
            credential = await self.uow.credentials.get_by_identity(command.identity)

            if credential is None:
                await asyncio.to_thread(self.hasher.dummy_verify, command.password)
                return Return.err(invalid_credentials())

            verification = await asyncio.to_thread(
                self.hasher.verify, command.password, credential.password_hash
            )
            if not verification.matched or not credential.is_active:
                await self.uow.audit_events.create(
                    AuditEvent(
                        account_id=credential.id,
                        action="login_failed",
                        event_metadata={"origin": command.origin_address},
                    )
                )
                await self.uow.commit()
                return Return.err(invalid_credentials())

            migrated = False
            if verification.needs_migration:
                migration = await self._migrate_hash(credential, command.password)
                if migration.is_err():
                    return migration
                credential, migrated = migration.value

            credential.last_login_at = self.clock()
            await self.uow.credentials.record_login(credential.id, credential.last_login_at)

            session_id = secrets.token_urlsafe(24)
            await self.uow.sessions.add_session(
                credential.id,
                session_id,
                origin_address=command.origin_address,
                client_agent=command.client_agent,
            )

            await self.uow.audit_events.create(
                AuditEvent(
                    account_id=credential.id,
                    action="login",
                    event_metadata={
                        "origin": command.origin_address,
                        "hash_migrated": migrated,
                    },
                )
            )
            await self.uow.commit()

        if migrated:
            logger.info(f"Migrated password hash of account {credential.id} to Argon2id")

        return Return.ok(
            LoginResponse(
                access_token=generate_jwt(credential.id, session_id),
                session_id=session_id,
                account=AccountInfo(
                    id=str(credential.id),
                    name=credential.name,
                    email=credential.email,
                    phone=credential.phone,
                ),
            )
        )

    async def _migrate_hash(
        self, credential: Credential, password: str
    ) -> Result[Tuple[Credential, bool]]:
        """
        Re-hash with the preferred algorithm under a version check.

        A lost race reloads the record and verifies again: a concurrent login
        may already have migrated it, or a reset may have replaced the password.
        """
        for _ in range(MIGRATION_ATTEMPTS):
            expected_version = credential.version
            credential.password_hash = await asyncio.to_thread(self.hasher.hash, password)
            credential.legacy_hash = None
            if await self.uow.credentials.conditional_save(credential, expected_version):
                return Return.ok((credential, True))

            credential = await self.uow.credentials.get_by_id(credential.id)
            if credential is None or not credential.is_active:
                return Return.err(invalid_credentials())
            verification = await asyncio.to_thread(
                self.hasher.verify, password, credential.password_hash
            )
            if not verification.matched:
                return Return.err(invalid_credentials())
            if not verification.needs_migration:
                return Return.ok((credential, False))

        logger.warning(f"Hash migration for account {credential.id} kept losing write races")
        return Return.err(concurrent_update())
