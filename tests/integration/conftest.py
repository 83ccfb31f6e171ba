import asyncio

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.services.password_hasher import Argon2PasswordHasher
from src.adapter.services.rate_limiter_backends import InMemoryRateLimiterBackend
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.latency import LatencyEqualizer
from src.app.services.notification import (
    INotificationSender,
    NotificationJob,
    NotificationOutbox,
)
from src.app.services.password_strength import PasswordStrengthValidator
from src.app.services.rate_limiter import RateLimiter
from src.app.services.reset_token_manager import ResetTokenManager
from src.depends import AuthServices, get_unit_of_work
from src.domain.entities import Credential
from tests.fixtures.legacy_hash import bcrypt_hash


class RecordingSender(INotificationSender):
    def __init__(self):
        self.sent = []

    async def send(self, job: NotificationJob) -> None:
        self.sent.append(job)

    def last_reset_token(self) -> str:
        url = [j for j in self.sent if j.kind.value == "password_reset"][-1].context["reset_url"]
        return url.split("token=", 1)[1]


async def no_sleep(seconds: float) -> None:
    await asyncio.sleep(0)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def services(sender):
    return AuthServices(
        hasher=Argon2PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1),
        token_manager=ResetTokenManager(ttl_minutes=15),
        rate_limiter=RateLimiter(InMemoryRateLimiterBackend(), jitter=lambda: 0.0),
        strength_validator=PasswordStrengthValidator(
            blocked_terms=["promiserealty", "promise", "realty"]
        ),
        outbox=NotificationOutbox(sender, sleep=no_sleep),
        latency=LatencyEqualizer(min_ms=0, max_ms=0),
        reset_url_template="https://app.test/reset-password?token={token}",
        sleep=no_sleep,
    )


@pytest_asyncio.fixture
async def client(session_factory, services):
    from httpx import ASGITransport
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig, services=services)

    async def override_get_unit_of_work():
        async with session_factory() as session:
            yield SqlAlchemyUnitOfWork(session)

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def create_account(db_session, services):
    """Insert an account directly; legacy=True stores a pre-migration bcrypt hash"""

    async def _create(
        email="jane.doe@example.com",
        password="Old#Meadow4Lark",
        name="Jane Doe",
        phone=None,
        legacy=False,
        is_active=True,
    ) -> Credential:
        if legacy:
            encoded = bcrypt_hash(password)
        else:
            encoded = services.hasher.hash(password)
        credential = Credential(
            email=email,
            name=name,
            phone=phone,
            password_hash=encoded,
            legacy_hash=encoded if legacy else None,
            is_active=is_active,
        )
        db_session.add(credential)
        await db_session.commit()
        await db_session.refresh(credential)
        return credential

    return _create


@pytest.fixture
def load_account(session_factory):
    """Read an account through a fresh session"""

    async def _load(account_id):
        async with session_factory() as session:
            return await session.get(Credential, account_id)

    return _load
