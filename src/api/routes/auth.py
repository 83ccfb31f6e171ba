from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, EmailStr, Field

from src.api.error import ClientError, ServerError
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth import (
    ChangePasswordCommand,
    ChangePasswordResponse,
    ChangePasswordUseCase,
    CheckPasswordStrengthUseCase,
    ConfirmPasswordResetUseCase,
    LoginCommand,
    LoginResponse,
    LoginUseCase,
    LogoutResponse,
    LogoutUseCase,
    PasswordStrengthCommand,
    PasswordStrengthResponse,
    RegisterCommand,
    RegisterResponse,
    RegisterUseCase,
    RequestPasswordResetCommand,
    RequestPasswordResetResponse,
    RequestPasswordResetUseCase,
    ResetPasswordCommand,
    ResetPasswordResponse,
    ValidateResetTokenResponse,
    ValidateResetTokenUseCase,
)
from src.app.use_cases.auth import errors
from src.depends import (
    AuthContext,
    AuthServices,
    get_auth_services,
    get_current_account,
    get_unit_of_work,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])

# Error code -> HTTP status; anything unlisted is a server error
STATUS_BY_CODE = {
    errors.WEAK_PASSWORD: status.HTTP_400_BAD_REQUEST,
    errors.INVALID_OR_EXPIRED_TOKEN: status.HTTP_400_BAD_REQUEST,
    errors.INVALID_CURRENT_PASSWORD: status.HTTP_400_BAD_REQUEST,
    errors.SAME_AS_CURRENT_PASSWORD: status.HTTP_400_BAD_REQUEST,
    errors.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    errors.SESSION_NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    errors.ACCOUNT_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    errors.CONCURRENT_UPDATE: status.HTTP_409_CONFLICT,
    errors.TOO_MANY_ATTEMPTS: status.HTTP_429_TOO_MANY_REQUESTS,
}


def raise_for_error(result) -> None:
    if result.is_err():
        error = result.error
        if error.code in STATUS_BY_CODE:
            raise ClientError(error, status_code=STATUS_BY_CODE[error.code])
        raise ServerError(error)


def origin_of(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: Optional[str] = Field(
        default=None, pattern=r"^\+?[0-9]{10,15}$", description="10-15 digits, optional leading +"
    )
    password: str = Field(..., min_length=1, max_length=1024)


class LoginRequest(BaseModel):
    identity: str = Field(..., min_length=1, max_length=255, description="Email or phone")
    password: str = Field(..., min_length=1, max_length=1024)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=256)
    new_password: str = Field(..., min_length=1, max_length=1024)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=1024)
    new_password: str = Field(..., min_length=1, max_length=1024)


class PasswordStrengthRequest(BaseModel):
    password: str = Field(..., max_length=1024)
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=RegisterResponse)
async def register(
    request: RegisterRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    services: AuthServices = Depends(get_auth_services),
):
    """
    Create an account.

    Raises:
        - 400 Bad Request: Password too weak (details list failed rules)
        - 409 Conflict: Email or phone already registered
        - 422 Unprocessable Entity: Invalid input (handled by FastAPI)
    """
    command = RegisterCommand(
        name=request.name, email=request.email, phone=request.phone, password=request.password
    )
    use_case = RegisterUseCase(uow, services.hasher, services.strength_validator)
    result = await use_case.execute(command)
    raise_for_error(result)
    return result.value


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    services: AuthServices = Depends(get_auth_services),
):
    """
    Log in by email or phone.

    Raises:
        - 401 Unauthorized: Invalid credentials
        - 409 Conflict: Account modified concurrently
        - 429 Too Many Requests: Throttled
    """
    command = LoginCommand(
        identity=body.identity,
        password=body.password,
        origin_address=origin_of(request),
        client_agent=request.headers.get("user-agent"),
    )
    use_case = LoginUseCase(uow, services.hasher, services.rate_limiter)
    result = await use_case.execute(command)
    raise_for_error(result)
    return result.value


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    auth: AuthContext = Depends(get_current_account),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    use_case = LogoutUseCase(uow)
    result = await use_case.execute(auth.account_id, auth.session_id)
    raise_for_error(result)
    return result.value


@router.post("/forgot-password", response_model=RequestPasswordResetResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    services: AuthServices = Depends(get_auth_services),
):
    """
    Request a password reset link.

    Always 200 with the same message, whether or not the email is registered.
    """
    command = RequestPasswordResetCommand(
        email=body.email,
        origin_address=origin_of(request),
        client_agent=request.headers.get("user-agent"),
    )
    use_case = RequestPasswordResetUseCase(
        uow,
        services.token_manager,
        services.rate_limiter,
        services.outbox,
        services.latency,
        services.reset_url_template,
        sleep=services.sleep,
    )
    result = await use_case.execute(command)
    return result.value


@router.get("/reset-password/validate", response_model=ValidateResetTokenResponse)
async def validate_reset_token(
    token: str = Query(..., min_length=1, max_length=256),
    uow: UnitOfWork = Depends(get_unit_of_work),
    services: AuthServices = Depends(get_auth_services),
):
    use_case = ValidateResetTokenUseCase(uow, services.token_manager)
    result = await use_case.execute(token)
    return result.value


@router.post("/reset-password", response_model=ResetPasswordResponse)
async def reset_password(
    body: ResetPasswordRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    services: AuthServices = Depends(get_auth_services),
):
    """
    Set a new password with a reset token. Signs out every device.

    Raises:
        - 400 Bad Request: Invalid/expired token, or password too weak
    """
    command = ResetPasswordCommand(token=body.token, new_password=body.new_password)
    use_case = ConfirmPasswordResetUseCase(
        uow,
        services.token_manager,
        services.hasher,
        services.strength_validator,
        services.outbox,
    )
    result = await use_case.execute(command)
    raise_for_error(result)
    return result.value


@router.post("/change-password", response_model=ChangePasswordResponse)
async def change_password(
    body: ChangePasswordRequest,
    auth: AuthContext = Depends(get_current_account),
    uow: UnitOfWork = Depends(get_unit_of_work),
    services: AuthServices = Depends(get_auth_services),
):
    """
    Change password while logged in.

    Raises:
        - 400 Bad Request: Wrong current password, same as current, or too weak
        - 401 Unauthorized: Missing/invalid token or ended session
        - 409 Conflict: Account modified concurrently
    """
    command = ChangePasswordCommand(
        current_password=body.current_password, new_password=body.new_password
    )
    use_case = ChangePasswordUseCase(
        uow,
        services.hasher,
        services.strength_validator,
        clear_other_sessions=services.clear_sessions_on_password_change,
    )
    result = await use_case.execute(auth.account_id, auth.session_id, command)
    raise_for_error(result)
    return result.value


@router.post("/password-strength", response_model=PasswordStrengthResponse)
async def password_strength(
    body: PasswordStrengthRequest,
    services: AuthServices = Depends(get_auth_services),
):
    command = PasswordStrengthCommand(
        password=body.password, name=body.name, email=body.email, phone=body.phone
    )
    use_case = CheckPasswordStrengthUseCase(services.strength_validator)
    result = await use_case.execute(command)
    return result.value
