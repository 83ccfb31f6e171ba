import pytest
from unittest.mock import AsyncMock, MagicMock

from src.adapter.services.password_hasher import Argon2PasswordHasher
from src.adapter.services.rate_limiter_backends import InMemoryRateLimiterBackend
from src.app.services.password_strength import PasswordStrengthValidator
from src.app.services.rate_limiter import RateLimiter


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    uow.credentials = MagicMock()
    uow.credentials.get_by_id = AsyncMock(return_value=None)
    uow.credentials.get_by_email = AsyncMock(return_value=None)
    uow.credentials.get_by_identity = AsyncMock(return_value=None)
    uow.credentials.get_by_token_digest = AsyncMock(return_value=None)
    uow.credentials.exists = AsyncMock(return_value=False)
    uow.credentials.create = AsyncMock(side_effect=lambda c: c)
    uow.credentials.conditional_save = AsyncMock(return_value=True)
    uow.credentials.record_login = AsyncMock()
    uow.credentials.increment_failed_reset_requests = AsyncMock()
    uow.credentials.purge_expired_reset_tokens = AsyncMock(return_value=0)

    uow.sessions = MagicMock()
    uow.sessions.add_session = AsyncMock()
    uow.sessions.remove_session = AsyncMock(return_value=True)
    uow.sessions.clear_all = AsyncMock(return_value=0)

    uow.audit_events = MagicMock()
    uow.audit_events.create = AsyncMock()
    return uow


@pytest.fixture
def hasher():
    """Argon2id with tiny costs so tests stay fast"""
    return Argon2PasswordHasher(
        time_cost=1, memory_cost=1024, parallelism=1
    )


@pytest.fixture
def strength_validator():
    return PasswordStrengthValidator(blocked_terms=["promiserealty", "promise", "realty"])


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter(InMemoryRateLimiterBackend(), clock=clock, jitter=lambda: 0.0)


@pytest.fixture
def no_sleep():
    return AsyncMock()
