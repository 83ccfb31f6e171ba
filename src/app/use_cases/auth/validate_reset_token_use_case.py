from src.app.services.reset_token_manager import ResetTokenManager
from src.app.services.unit_of_work import UnitOfWork
from src.libs.result import Result, Return
from .dtos import ValidateResetTokenResponse


class ValidateResetTokenUseCase:
    """
    Preflight check for the reset form.

    Answers only valid/invalid; nothing about the owning account is returned.
    """

    def __init__(self, uow: UnitOfWork, token_manager: ResetTokenManager):
        self.uow = uow
        self.token_manager = token_manager

    async def execute(self, token: str) -> Result[ValidateResetTokenResponse]:
        async with self.uow:
            credential = await self.token_manager.validate(self.uow.credentials, token)
        return Return.ok(ValidateResetTokenResponse(valid=credential is not None))
