import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.services.notification_senders import (
    LoggingNotificationSender,
    SmtpNotificationSender,
)
from src.adapter.services.password_hasher import Argon2PasswordHasher
from src.adapter.services.rate_limiter_backends import (
    InMemoryRateLimiterBackend,
    RedisRateLimiterBackend,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.utils.jwt import verify_jwt
from src.app.services.latency import LatencyEqualizer
from src.app.services.notification import NotificationOutbox
from src.app.services.password_hasher import IPasswordHasher
from src.app.services.password_strength import PasswordStrengthValidator
from src.app.services.rate_limiter import RateLimiter
from src.app.services.reset_token_manager import ResetTokenManager
from src.app.services.unit_of_work import UnitOfWork

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

security = HTTPBearer()


@dataclass
class AuthServices:
    """Process-wide collaborators of the auth use cases"""

    hasher: IPasswordHasher
    token_manager: ResetTokenManager
    rate_limiter: RateLimiter
    strength_validator: PasswordStrengthValidator
    outbox: NotificationOutbox
    latency: LatencyEqualizer
    reset_url_template: str
    clear_sessions_on_password_change: bool = True
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep


@dataclass
class AuthContext:
    """The authenticated caller"""

    account_id: UUID
    session_id: str


def build_auth_services(config) -> AuthServices:
    """Construct every auth service from configuration"""
    if config.RATE_LIMIT_BACKEND == "redis":
        backend = RedisRateLimiterBackend(
            config.REDIS_URL, timeout_seconds=config.REDIS_TIMEOUT_SECONDS
        )
    else:
        backend = InMemoryRateLimiterBackend()

    if config.NOTIFY_BACKEND == "smtp":
        sender = SmtpNotificationSender(
            hostname=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USERNAME,
            password=config.SMTP_PASSWORD,
            use_tls=config.SMTP_USE_TLS,
            start_tls=config.SMTP_START_TLS,
            timeout=config.SMTP_TIMEOUT_SECONDS,
            mail_from=config.MAIL_FROM,
        )
    else:
        sender = LoggingNotificationSender()

    return AuthServices(
        hasher=Argon2PasswordHasher(
            time_cost=config.ARGON2_TIME_COST,
            memory_cost=config.ARGON2_MEMORY_COST,
            parallelism=config.ARGON2_PARALLELISM,
            hash_len=config.ARGON2_HASH_LENGTH,
            salt_len=config.ARGON2_SALT_LENGTH,
        ),
        token_manager=ResetTokenManager(ttl_minutes=config.RESET_TOKEN_TTL_MINUTES),
        rate_limiter=RateLimiter(
            backend,
            window_minutes=config.RATE_LIMIT_WINDOW_MINUTES,
            reset_max_per_ip=config.RESET_MAX_ATTEMPTS_PER_IP,
            reset_max_per_email=config.RESET_MAX_ATTEMPTS_PER_EMAIL,
            login_max_per_ip=config.LOGIN_MAX_ATTEMPTS_PER_IP,
            login_max_per_identity=config.LOGIN_MAX_ATTEMPTS_PER_IDENTITY,
            backoff_base_seconds=config.BACKOFF_BASE_SECONDS,
            backoff_max_seconds=config.BACKOFF_MAX_SECONDS,
            backoff_reset_seconds=config.BACKOFF_RESET_SECONDS,
        ),
        strength_validator=PasswordStrengthValidator(
            min_length=config.PASSWORD_MIN_LENGTH,
            max_length=config.PASSWORD_MAX_LENGTH,
            min_score=config.PASSWORD_MIN_SCORE,
            blocklist=config.PASSWORD_BLOCKLIST,
            blocked_terms=config.PASSWORD_BLOCKED_TERMS,
        ),
        outbox=NotificationOutbox(
            sender,
            max_attempts=config.NOTIFY_MAX_ATTEMPTS,
            retry_base_seconds=config.NOTIFY_RETRY_BASE_SECONDS,
            queue_size=config.NOTIFY_QUEUE_SIZE,
        ),
        latency=LatencyEqualizer(
            min_ms=config.ENUMERATION_DELAY_MIN_MS,
            max_ms=config.ENUMERATION_DELAY_MAX_MS,
        ),
        reset_url_template=config.RESET_URL_TEMPLATE,
        clear_sessions_on_password_change=config.CLEAR_SESSIONS_ON_PASSWORD_CHANGE,
    )


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_auth_services(request: Request) -> AuthServices:
    return request.app.state.auth_services


async def get_current_account(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> AuthContext:
    """
    Dependency to extract and verify JWT token from Authorization header.

    The token is only honoured while its session is still registered, so
    clearing sessions (password reset, logout) really signs devices out.

    Raises:
        HTTPException: 401 if token is invalid, expired or its session is gone
    """
    payload = verify_jwt(credentials.credentials)

    if payload is None or "account_id" not in payload or "session_id" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    try:
        account_id = UUID(payload["account_id"])
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    session_id = payload["session_id"]

    async with uow:
        if not await uow.sessions.touch(account_id, session_id):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Session has ended, please log in again",
            )
        await uow.commit()

    return AuthContext(account_id=account_id, session_id=session_id)
