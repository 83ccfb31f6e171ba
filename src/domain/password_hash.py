"""
Stored Password Hash

A stored hash string is parsed once into a tagged record so callers
branch on a type, not on string prefixes.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from .entities.enums import HashAlgorithm

ARGON2ID_PREFIX = "$argon2id$"
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


class PreferredHashRecord(BaseModel):
    """Argon2id hash - the current generation"""

    model_config = ConfigDict(frozen=True)

    encoded: str
    algorithm: HashAlgorithm = HashAlgorithm.argon2id


class LegacyHashRecord(BaseModel):
    """bcrypt hash - accepted for verification, migrated on next login"""

    model_config = ConfigDict(frozen=True)

    encoded: str
    algorithm: HashAlgorithm = HashAlgorithm.bcrypt


StoredHash = Union[PreferredHashRecord, LegacyHashRecord]


def parse_stored_hash(encoded: Optional[str]) -> Optional[StoredHash]:
    """
    Classify a stored hash by its tag.

    Returns None for empty values and unknown tags; callers treat None as
    "does not verify".
    """
    if not encoded:
        return None
    if encoded.startswith(ARGON2ID_PREFIX):
        return PreferredHashRecord(encoded=encoded)
    if encoded.startswith(BCRYPT_PREFIXES):
        return LegacyHashRecord(encoded=encoded)
    return None
