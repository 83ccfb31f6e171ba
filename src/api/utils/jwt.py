from datetime import UTC, datetime, timedelta
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

from config import ApplicationConfig


def generate_jwt(
    account_id: UUID, session_id: str, expires_minutes: Optional[int] = None
) -> str:
    """
    Generate JWT access token

    Args:
        account_id: Account UUID
        session_id: Session registry ID the token is bound to
        expires_minutes: Override for JWT_EXPIRES_MINUTES

    Returns:
        JWT token string (HS256)
    """
    if expires_minutes is None:
        expires_minutes = ApplicationConfig.JWT_EXPIRES_MINUTES
    now = datetime.now(UTC)
    payload = {
        "account_id": str(account_id),
        "session_id": session_id,
        "exp": now + timedelta(minutes=expires_minutes),
        "iat": now,
    }
    return jwt.encode(payload, ApplicationConfig.JWT_SECRET, algorithm="HS256")


def verify_jwt(token: str) -> Optional[dict]:
    """
    Verify and decode JWT token

    Args:
        token: JWT token string

    Returns:
        Decoded payload dict or None if invalid
    """
    try:
        payload = jwt.decode(
            token, ApplicationConfig.JWT_SECRET, algorithms=["HS256"]
        )
        return payload
    except JWTError:
        return None
