"""
Authentication Use Case DTOs (Data Transfer Objects)

All Command and Response classes for auth domain.
Provides type safety and clear contracts between layers.
"""

from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

GENERIC_RESET_MESSAGE = (
    "If that email exists in our system, we have sent a password reset link to "
    "that email address. Please check your email and follow the instructions."
)


# ============================================================================
# Command DTOs
# ============================================================================


class RegisterCommand(BaseModel):
    """Command for account registration"""

    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    phone: Optional[str] = Field(default=None, pattern=r"^\+?[0-9]{10,15}$")
    password: str = Field(min_length=1, max_length=1024)

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class LoginCommand(BaseModel):
    """Command for login by email or phone"""

    identity: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=1024)
    origin_address: str = "unknown"
    client_agent: Optional[str] = None

    @field_validator("identity")
    @classmethod
    def normalise_identity(cls, v: str) -> str:
        v = v.strip()
        return v.lower() if "@" in v else v


class RequestPasswordResetCommand(BaseModel):
    """Command for forgot-password"""

    email: EmailStr
    origin_address: str = "unknown"
    client_agent: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return v.strip().lower()


class ResetPasswordCommand(BaseModel):
    """Command for completing a reset with a token"""

    token: str = Field(min_length=1, max_length=256)
    new_password: str = Field(min_length=1, max_length=1024)


class ChangePasswordCommand(BaseModel):
    """Command for an authenticated password change"""

    current_password: str = Field(min_length=1, max_length=1024)
    new_password: str = Field(min_length=1, max_length=1024)


class PasswordStrengthCommand(BaseModel):
    password: str = Field(max_length=1024)
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


# ============================================================================
# Response DTOs
# ============================================================================


class AccountInfo(BaseModel):
    """Public view of an account"""

    id: str
    name: str
    email: str
    phone: Optional[str] = None


class RegisterResponse(BaseModel):
    account: AccountInfo
    password_strength: str


class LoginResponse(BaseModel):
    """Response for login use case"""

    access_token: str
    token_type: str = "bearer"
    session_id: str
    account: AccountInfo


class LogoutResponse(BaseModel):
    status: str
    message: str


class RequestPasswordResetResponse(BaseModel):
    """Response for request password reset use case; identical for every email"""

    status: str = "sent"
    message: str = GENERIC_RESET_MESSAGE


class ValidateResetTokenResponse(BaseModel):
    valid: bool


class ResetPasswordResponse(BaseModel):
    """Response for completing a password reset"""

    status: str
    message: str
    password_strength: str


class ChangePasswordResponse(BaseModel):
    status: str
    message: str
    password_strength: str
    sessions_cleared: int


class PasswordStrengthResponse(BaseModel):
    valid: bool
    score: int
    strength: str
    failed_rules: List[str]
    feedback: List[str]
