"""
Unit tests for ValidateResetTokenUseCase, LogoutUseCase and CheckPasswordStrengthUseCase
"""
from uuid import uuid4

import pytest

from src.app.services.reset_token_manager import ResetTokenManager
from src.app.use_cases.auth import (
    CheckPasswordStrengthUseCase,
    LogoutUseCase,
    PasswordStrengthCommand,
    ValidateResetTokenUseCase,
)
from src.app.use_cases.auth.errors import SESSION_NOT_FOUND
from src.domain.entities import Credential


@pytest.mark.asyncio
async def test_preflight_valid_token(mock_uow):
    manager = ResetTokenManager()
    credential = Credential(email="jane.doe@example.com", password_hash="$argon2id$x")
    token = await manager.issue_token(mock_uow.credentials, credential)
    mock_uow.credentials.get_by_token_digest.return_value = credential

    result = await ValidateResetTokenUseCase(mock_uow, manager).execute(token)

    assert result.value.model_dump() == {"valid": True}


@pytest.mark.asyncio
async def test_preflight_invalid_token(mock_uow):
    result = await ValidateResetTokenUseCase(mock_uow, ResetTokenManager()).execute("nope")

    assert result.value.model_dump() == {"valid": False}


@pytest.mark.asyncio
async def test_logout_removes_own_session(mock_uow):
    account_id = uuid4()

    result = await LogoutUseCase(mock_uow).execute(account_id, "sess-1")

    assert result.is_ok()
    mock_uow.sessions.remove_session.assert_awaited_once_with(account_id, "sess-1")
    mock_uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_logout_unknown_session(mock_uow):
    mock_uow.sessions.remove_session.return_value = False

    result = await LogoutUseCase(mock_uow).execute(uuid4(), "gone")

    assert result.error.code == SESSION_NOT_FOUND


@pytest.mark.asyncio
async def test_strength_check_reports_label(strength_validator):
    use_case = CheckPasswordStrengthUseCase(strength_validator)

    result = await use_case.execute(
        PasswordStrengthCommand(password="password", name="Jane Doe")
    )

    assert result.value.valid is False
    assert result.value.strength in ("Very Weak", "Weak")
    assert "not_common" in result.value.failed_rules
