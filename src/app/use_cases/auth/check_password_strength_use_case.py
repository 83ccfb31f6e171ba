from src.app.services.password_strength import AccountContext, PasswordStrengthValidator
from src.libs.result import Result, Return
from .dtos import PasswordStrengthCommand, PasswordStrengthResponse


class CheckPasswordStrengthUseCase:
    """Backs the strength meter on registration and reset forms"""

    def __init__(self, strength_validator: PasswordStrengthValidator):
        self.strength_validator = strength_validator

    async def execute(self, command: PasswordStrengthCommand) -> Result[PasswordStrengthResponse]:
        report = self.strength_validator.validate(
            command.password,
            AccountContext(name=command.name, email=command.email, phone=command.phone),
        )
        return Return.ok(
            PasswordStrengthResponse(
                valid=report.valid,
                score=report.score,
                strength=report.label,
                failed_rules=report.failed_rules,
                feedback=report.feedback,
            )
        )
