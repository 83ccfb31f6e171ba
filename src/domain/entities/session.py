"""
ActiveSession Entity

Tracks devices currently logged in to an account.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow


class ActiveSession(SQLModel, table=True):
    """
    ActiveSession entity - one row per logged-in device.

    Business Rules:
    - Appended on login, removed on logout
    - All rows of an account are removed on password reset
    - All rows except the caller's are removed on password change (configurable)
    - An access token is only honoured while its session row exists
    """

    __tablename__ = "active_sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    account_id: UUID = Field(foreign_key="credentials.id", nullable=False, index=True)
    session_id: str = Field(max_length=64)

    origin_address: Optional[str] = Field(default=None, max_length=64)
    client_agent: Optional[str] = Field(default=None, max_length=512)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    last_accessed_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_active_session_account_session", "account_id", "session_id", unique=True),
    )
