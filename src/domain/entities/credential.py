"""
Credential Entity

One record per account holding everything the auth subsystem owns.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow


class Credential(SQLModel, table=True):
    """
    Credential entity - password verifier, reset-token state and identity
    attributes of a single account.

    Business Rules:
    - password_hash is a tagged hash (Argon2id or legacy bcrypt), never plaintext
    - legacy_hash is only set for accounts imported before the Argon2 migration
      and is cleared by the first successful login
    - reset_token_hash is the SHA-256 hex digest of the outstanding reset token
    - At most one outstanding reset token; issuing a new one overwrites it
    - version is bumped by every conditional write (optimistic concurrency)
    """

    __tablename__ = "credentials"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    # Identity
    email: str = Field(unique=True, index=True, max_length=255)
    phone: Optional[str] = Field(default=None, unique=True, index=True, max_length=20)
    name: str = Field(default="", max_length=50)
    is_active: bool = Field(default=True)

    # Password verifier
    password_hash: str = Field(max_length=255)
    legacy_hash: Optional[str] = Field(default=None, max_length=255)

    # Password reset (UC: forgot / reset password)
    reset_token_hash: Optional[str] = Field(default=None, index=True, max_length=64)
    reset_token_expires_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )
    reset_token_used: bool = Field(default=False)
    reset_request_ip: Optional[str] = Field(default=None, max_length=64)
    failed_reset_requests: int = Field(default=0)
    last_reset_request_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )
    last_password_reset_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )

    # Optimistic concurrency guard
    version: int = Field(default=1)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    last_login_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_credential_reset_expires_at", "reset_token_expires_at"),
    )

    def has_pending_reset(self) -> bool:
        return self.reset_token_hash is not None and self.reset_token_expires_at is not None

    def clear_reset_token(self) -> None:
        """Drop the pending token; the used flag makes any copy of it dead."""
        self.reset_token_hash = None
        self.reset_token_expires_at = None
        self.reset_token_used = True
