"""
Partial redaction of identifiers for logs and audit metadata.

Tokens and passwords are never passed here; they are never logged at all.
"""

from typing import Optional


def mask_email(email: Optional[str]) -> str:
    """jane.doe@example.com -> ja***@example.com"""
    if not email:
        return "<none>"
    local, sep, domain = email.partition("@")
    if not sep:
        return mask_identifier(email)
    visible = local[:2] if len(local) > 2 else local[:1]
    return f"{visible}***@{domain}"


def mask_identifier(value: Optional[str], visible: int = 2) -> str:
    """9876543210 -> 98***10"""
    if not value:
        return "<none>"
    if "@" in value:
        return mask_email(value)
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}***{value[-visible:]}"
