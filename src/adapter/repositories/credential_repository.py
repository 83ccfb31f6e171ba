from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.credential_repository import ICredentialRepository
from src.domain.base import utcnow
from src.domain.entities import Credential
from src.domain.exceptions import DuplicateIdentity

# Columns a conditional save may never rewrite
_IMMUTABLE_COLUMNS = {"id", "created_at", "version"}


class CredentialRepository(ICredentialRepository):
    """Credential repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _one_detached(self, stmt) -> Optional[Credential]:
        # populate_existing: always reflect the row as stored, never a stale
        # identity-map copy; expunge: writes go through conditional_save only
        result = await self.session.exec(stmt.execution_options(populate_existing=True))
        credential = result.first()
        if credential is not None:
            self.session.expunge(credential)
        return credential

    async def get_by_id(self, account_id: UUID) -> Optional[Credential]:
        """Get credential by account ID"""
        stmt = select(Credential).where(Credential.id == account_id)
        return await self._one_detached(stmt)

    async def get_by_email(self, email: str) -> Optional[Credential]:
        """Get credential by normalised email"""
        stmt = select(Credential).where(Credential.email == email)
        return await self._one_detached(stmt)

    async def get_by_identity(self, identity: str) -> Optional[Credential]:
        """Get credential by email or phone number"""
        stmt = select(Credential).where(
            or_(Credential.email == identity, Credential.phone == identity)
        )
        return await self._one_detached(stmt)

    async def get_by_token_digest(self, token_digest: str) -> Optional[Credential]:
        """Get credential by pending reset token digest (indexed lookup)"""
        stmt = select(Credential).where(Credential.reset_token_hash == token_digest)
        return await self._one_detached(stmt)

    async def exists(self, email: str, phone: Optional[str]) -> bool:
        """True if an account already uses the email or phone"""
        condition = Credential.email == email
        if phone:
            condition = or_(condition, Credential.phone == phone)
        result = await self.session.exec(select(Credential.id).where(condition))
        return result.first() is not None

    async def create(self, credential: Credential) -> Credential:
        """Create a new credential record"""
        self.session.add(credential)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateIdentity("Email or phone already registered") from e
        await self.session.refresh(credential)
        self.session.expunge(credential)
        return credential

    async def conditional_save(self, credential: Credential, expected_version: int) -> bool:
        """Compare-and-set on the version column"""
        values = credential.model_dump(exclude=_IMMUTABLE_COLUMNS)
        values["updated_at"] = utcnow()
        values["version"] = expected_version + 1

        stmt = (
            update(Credential)
            .where(Credential.id == credential.id, Credential.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()

        if result.rowcount != 1:
            return False

        credential.version = expected_version + 1
        credential.updated_at = values["updated_at"]
        return True

    async def record_login(self, account_id: UUID, at: datetime) -> None:
        """Stamp last_login_at without a version check"""
        stmt = (
            update(Credential)
            .where(Credential.id == account_id)
            .values(last_login_at=at)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def increment_failed_reset_requests(self, account_id: UUID) -> None:
        """failed_reset_requests + 1 in SQL, so racing increments all count"""
        stmt = (
            update(Credential)
            .where(Credential.id == account_id)
            .values(failed_reset_requests=Credential.failed_reset_requests + 1)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def purge_expired_reset_tokens(self, now: datetime) -> int:
        """Clear pending reset tokens that expired before now"""
        stmt = (
            update(Credential)
            .where(
                Credential.reset_token_hash.is_not(None),
                Credential.reset_token_expires_at < now,
            )
            .values(
                reset_token_hash=None,
                reset_token_expires_at=None,
                version=Credential.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount
