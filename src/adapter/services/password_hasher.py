import logging
from typing import Optional

import bcrypt
from argon2 import PasswordHasher, Type
from argon2.exceptions import (
    HashingError as Argon2HashingError,
    InvalidHashError,
    VerificationError,
    VerifyMismatchError,
)

from src.app.services.password_hasher import IPasswordHasher, VerificationResult
from src.domain.exceptions import HashingError
from src.domain.password_hash import (
    LegacyHashRecord,
    PreferredHashRecord,
    StoredHash,
    parse_stored_hash,
)

logger = logging.getLogger(__name__)


class Argon2PasswordHasher(IPasswordHasher):
    """
    Argon2id hasher that still verifies legacy bcrypt hashes.

    Cost parameters come from configuration; hashes made with weaker
    parameters than the current ones report needs_migration as well.
    """

    def __init__(
        self,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 4,
        hash_len: int = 32,
        salt_len: int = 16,
    ):
        self._argon2 = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=hash_len,
            salt_len=salt_len,
            type=Type.ID,
        )
        self._dummy_hash: Optional[str] = None

    def hash(self, plaintext: str) -> str:
        try:
            return self._argon2.hash(plaintext)
        except (Argon2HashingError, MemoryError) as exc:
            logger.error(f"Argon2 hashing failed: {type(exc).__name__}")
            raise HashingError("Password hashing failed") from exc

    def verify(self, plaintext: str, stored_hash: str) -> VerificationResult:
        record = parse_stored_hash(stored_hash)
        if record is None:
            logger.warning("Refusing to verify against an unrecognised hash format")
            return VerificationResult(matched=False)
        return self._verify_record(plaintext, record)

    def _verify_record(self, plaintext: str, record: StoredHash) -> VerificationResult:
        if isinstance(record, PreferredHashRecord):
            try:
                self._argon2.verify(record.encoded, plaintext)
            except VerifyMismatchError:
                return VerificationResult(matched=False)
            except (InvalidHashError, VerificationError):
                logger.warning("Stored Argon2 hash could not be verified")
                return VerificationResult(matched=False)
            return VerificationResult(
                matched=True,
                needs_migration=self._argon2.check_needs_rehash(record.encoded),
            )

        if isinstance(record, LegacyHashRecord):
            try:
                matched = bcrypt.checkpw(
                    plaintext.encode("utf-8"), record.encoded.encode("utf-8")
                )
            except ValueError:
                # Malformed hash or over-long password
                return VerificationResult(matched=False)
            return VerificationResult(matched=matched, needs_migration=matched)

        return VerificationResult(matched=False)

    def dummy_verify(self, plaintext: str) -> None:
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("dummy-password-for-timing")
        try:
            self._argon2.verify(self._dummy_hash, plaintext)
        except VerificationError:
            pass
