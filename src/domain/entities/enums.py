"""
Auth Service Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class HashAlgorithm(str, Enum):
    """Password hash generation, derived from the stored hash tag"""

    argon2id = "argon2id"
    bcrypt = "bcrypt"


class NotificationKind(str, Enum):
    """Out-of-band messages the auth flows can emit"""

    password_reset = "password_reset"
    password_changed = "password_changed"
