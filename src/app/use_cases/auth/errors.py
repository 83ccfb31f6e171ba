"""
Authentication error codes.

Each code maps to one HTTP status in src/api/routes/auth.py.
"""

from typing import List, Optional

from src.libs.result import Error

VALIDATION_ERROR = "VALIDATION_ERROR"
RATE_LIMITED = "RATE_LIMITED"
TOO_MANY_ATTEMPTS = "TOO_MANY_ATTEMPTS"
INVALID_OR_EXPIRED_TOKEN = "INVALID_OR_EXPIRED_TOKEN"
WEAK_PASSWORD = "WEAK_PASSWORD"
INVALID_CURRENT_PASSWORD = "INVALID_CURRENT_PASSWORD"
SAME_AS_CURRENT_PASSWORD = "SAME_AS_CURRENT_PASSWORD"
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
ACCOUNT_ALREADY_EXISTS = "ACCOUNT_ALREADY_EXISTS"
CONCURRENT_UPDATE = "CONCURRENT_UPDATE"
SESSION_NOT_FOUND = "SESSION_NOT_FOUND"


def invalid_or_expired_token() -> Error:
    return Error(INVALID_OR_EXPIRED_TOKEN, "Invalid or expired password reset token")


def weak_password(failed_rules: List[str], feedback: List[str], score: int) -> Error:
    return Error(
        WEAK_PASSWORD,
        "Password does not meet security requirements",
        details={"failed_rules": failed_rules, "feedback": feedback, "score": score},
    )


def invalid_credentials() -> Error:
    return Error(INVALID_CREDENTIALS, "Invalid email/phone or password")


def too_many_attempts(retry_after: Optional[int] = None) -> Error:
    details = {"retry_after": retry_after} if retry_after is not None else None
    return Error(TOO_MANY_ATTEMPTS, "Too many attempts. Please try again later", details)


def concurrent_update() -> Error:
    return Error(CONCURRENT_UPDATE, "Account was modified concurrently, please retry")
