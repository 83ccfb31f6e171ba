"""
Reset Token Manager

Issues, validates and consumes single-use password reset tokens.
Only the SHA-256 digest of a token is ever stored.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from src.app.repositories.credential_repository import ICredentialRepository
from src.domain.base import utcnow
from src.domain.entities import Credential

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits of entropy


class ResetTokenManager:
    """
    Business Rules:
    - Token is secrets.token_urlsafe(32), returned to the caller exactly once
    - Stored as SHA-256 hex digest with an absolute expiry (default 15 minutes)
    - Valid iff digest matches, not used, not expired and account is active
    - Consuming writes the new password hash and kills the token in one
      conditional write; of several racing consumers only one wins
    """

    def __init__(
        self,
        ttl_minutes: int = 15,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ttl = timedelta(minutes=ttl_minutes)
        self.clock = clock

    @staticmethod
    def digest(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    async def issue_token(
        self,
        credentials: ICredentialRepository,
        credential: Credential,
        origin_address: Optional[str] = None,
    ) -> Optional[str]:
        """
        Issue a fresh token for the account, replacing any outstanding one.

        Returns the plaintext token, or None if the record changed under us
        (the caller must not send anything in that case).
        """
        token = secrets.token_urlsafe(TOKEN_BYTES)
        now = self.clock()

        expected_version = credential.version
        credential.reset_token_hash = self.digest(token)
        credential.reset_token_expires_at = now + self.ttl
        credential.reset_token_used = False
        credential.reset_request_ip = origin_address
        credential.last_reset_request_at = now

        saved = await credentials.conditional_save(credential, expected_version)
        if not saved:
            logger.warning(f"Reset token issuance lost a write race for account {credential.id}")
            return None
        return token

    def is_valid_for(self, credential: Credential, token: str) -> bool:
        """Check a presented token against a loaded record"""
        if not token or credential.reset_token_hash is None:
            return False
        if credential.reset_token_expires_at is None:
            return False
        if not hmac.compare_digest(credential.reset_token_hash, self.digest(token)):
            return False
        if credential.reset_token_used or not credential.is_active:
            return False
        return self.clock() < credential.reset_token_expires_at

    async def validate(
        self, credentials: ICredentialRepository, token: str
    ) -> Optional[Credential]:
        """Look the token up by digest. Returns the owning record or None."""
        if not token:
            return None
        credential = await credentials.get_by_token_digest(self.digest(token))
        if credential is None or not self.is_valid_for(credential, token):
            return None
        return credential

    async def consume(
        self,
        credentials: ICredentialRepository,
        credential: Credential,
        new_password_hash: str,
    ) -> bool:
        """
        Swap in the new password hash and retire the token.

        The write is conditioned on the version read during validation, so
        it only lands if the token was still unused at write time.
        """
        expected_version = credential.version
        now = self.clock()

        credential.password_hash = new_password_hash
        credential.legacy_hash = None
        credential.clear_reset_token()
        credential.last_password_reset_at = now
        credential.failed_reset_requests = 0

        return await credentials.conditional_save(credential, expected_version)

    async def purge_expired(self, credentials: ICredentialRepository) -> int:
        """Clear expired pending tokens in bulk"""
        count = await credentials.purge_expired_reset_tokens(self.clock())
        if count:
            logger.info(f"Purged {count} expired password reset token(s)")
        return count
