"""
Authentication Use Cases

All credential and password-reset business logic.
"""

from .register_use_case import RegisterUseCase
from .login_use_case import LoginUseCase
from .logout_use_case import LogoutUseCase
from .request_password_reset_use_case import RequestPasswordResetUseCase
from .validate_reset_token_use_case import ValidateResetTokenUseCase
from .confirm_password_reset_use_case import ConfirmPasswordResetUseCase
from .change_password_use_case import ChangePasswordUseCase
from .check_password_strength_use_case import CheckPasswordStrengthUseCase
from .dtos import (
    AccountInfo,
    ChangePasswordCommand,
    ChangePasswordResponse,
    LoginCommand,
    LoginResponse,
    LogoutResponse,
    PasswordStrengthCommand,
    PasswordStrengthResponse,
    RegisterCommand,
    RegisterResponse,
    RequestPasswordResetCommand,
    RequestPasswordResetResponse,
    ResetPasswordCommand,
    ResetPasswordResponse,
    ValidateResetTokenResponse,
)

__all__ = [
    # Use Cases
    "RegisterUseCase",
    "LoginUseCase",
    "LogoutUseCase",
    "RequestPasswordResetUseCase",
    "ValidateResetTokenUseCase",
    "ConfirmPasswordResetUseCase",
    "ChangePasswordUseCase",
    "CheckPasswordStrengthUseCase",
    # DTOs - Commands
    "RegisterCommand",
    "LoginCommand",
    "RequestPasswordResetCommand",
    "ResetPasswordCommand",
    "ChangePasswordCommand",
    "PasswordStrengthCommand",
    # DTOs - Responses
    "AccountInfo",
    "RegisterResponse",
    "LoginResponse",
    "LogoutResponse",
    "RequestPasswordResetResponse",
    "ValidateResetTokenResponse",
    "ResetPasswordResponse",
    "ChangePasswordResponse",
    "PasswordStrengthResponse",
]
