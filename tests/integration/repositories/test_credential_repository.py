"""
Integration tests for CredentialRepository and SessionRepository on SQLite
"""
from datetime import timedelta

import pytest

from src.adapter.repositories.credential_repository import CredentialRepository
from src.adapter.repositories.session_repository import SessionRepository
from src.app.services.reset_token_manager import ResetTokenManager
from src.domain.base import utcnow
from src.domain.entities import Credential
from src.domain.exceptions import DuplicateIdentity


@pytest.mark.asyncio
async def test_concurrent_consume_only_one_wins(session_factory, create_account, services):
    account = await create_account()
    manager = ResetTokenManager()

    async with session_factory() as session:
        repo = CredentialRepository(session)
        credential = await repo.get_by_id(account.id)
        token = await manager.issue_token(repo, credential)
        await session.commit()

    async with session_factory() as first, session_factory() as second:
        first_repo = CredentialRepository(first)
        second_repo = CredentialRepository(second)
        first_copy = await manager.validate(first_repo, token)
        second_copy = await manager.validate(second_repo, token)
        assert first_copy is not None and second_copy is not None

        assert await manager.consume(first_repo, first_copy, services.hasher.hash("Violet#Harbor7Plume"))
        await first.commit()

        assert not await manager.consume(second_repo, second_copy, services.hasher.hash("Maple!Orbit82Canyon"))
        await second.rollback()

    async with session_factory() as session:
        stored = await CredentialRepository(session).get_by_id(account.id)
    assert stored.reset_token_hash is None
    assert services.hasher.verify("Violet#Harbor7Plume", stored.password_hash).matched


@pytest.mark.asyncio
async def test_stale_version_is_rejected(db_session, create_account):
    account = await create_account()
    repo = CredentialRepository(db_session)
    credential = await repo.get_by_id(account.id)

    credential.name = "Janet Doe"
    assert await repo.conditional_save(credential, credential.version)
    assert credential.version == account.version + 1

    credential.name = "Someone Else"
    assert not await repo.conditional_save(credential, account.version)
    await db_session.commit()

    stored = await repo.get_by_id(account.id)
    assert stored.name == "Janet Doe"


@pytest.mark.asyncio
async def test_lookup_by_token_digest(db_session, create_account):
    account = await create_account()
    repo = CredentialRepository(db_session)
    credential = await repo.get_by_id(account.id)
    token = await ResetTokenManager().issue_token(repo, credential)
    await db_session.commit()

    found = await repo.get_by_token_digest(ResetTokenManager.digest(token))
    missing = await repo.get_by_token_digest(ResetTokenManager.digest("other"))

    assert found.id == account.id
    assert missing is None


@pytest.mark.asyncio
async def test_purge_expired_reset_tokens(db_session, create_account):
    expired = await create_account(email="old@example.com")
    fresh = await create_account(email="new@example.com")
    repo = CredentialRepository(db_session)
    now = utcnow()

    for account, expires_at in ((expired, now - timedelta(minutes=1)), (fresh, now + timedelta(minutes=10))):
        credential = await repo.get_by_id(account.id)
        credential.reset_token_hash = ResetTokenManager.digest(account.email)
        credential.reset_token_expires_at = expires_at
        assert await repo.conditional_save(credential, credential.version)
    await db_session.commit()

    purged = await repo.purge_expired_reset_tokens(now)
    await db_session.commit()

    assert purged == 1
    assert (await repo.get_by_id(expired.id)).reset_token_hash is None
    assert (await repo.get_by_id(fresh.id)).reset_token_hash is not None


@pytest.mark.asyncio
async def test_create_duplicate_email_raises(db_session, create_account):
    await create_account()
    repo = CredentialRepository(db_session)

    with pytest.raises(DuplicateIdentity):
        await repo.create(Credential(email="jane.doe@example.com", password_hash="$argon2id$x"))


@pytest.mark.asyncio
async def test_clear_all_spares_current_session(db_session, create_account):
    account = await create_account()
    repo = SessionRepository(db_session)
    for session_id in ("a", "b", "c"):
        await repo.add_session(account.id, session_id, origin_address="127.0.0.1")
    await db_session.commit()

    cleared = await repo.clear_all(account.id, except_session_id="b")
    await db_session.commit()

    assert cleared == 2
    remaining = await repo.list_by_account(account.id)
    assert [s.session_id for s in remaining] == ["b"]
    assert (await repo.get_session(account.id, "b")).origin_address == "127.0.0.1"
    assert await repo.get_session(account.id, "a") is None
    assert await repo.touch(account.id, "b")
    assert not await repo.touch(account.id, "a")


@pytest.mark.asyncio
async def test_narrow_updates_leave_version_alone(db_session, create_account):
    account = await create_account()
    repo = CredentialRepository(db_session)
    at = utcnow()

    await repo.record_login(account.id, at)
    await repo.increment_failed_reset_requests(account.id)
    await repo.increment_failed_reset_requests(account.id)
    await db_session.commit()

    stored = await repo.get_by_id(account.id)
    assert stored.version == account.version
    assert stored.failed_reset_requests == account.failed_reset_requests + 2
    assert stored.last_login_at is not None
