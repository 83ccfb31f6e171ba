"""
Request Password Reset Use Case

Issues a reset token and queues the reset e-mail.
The caller always gets the same generic answer.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

from src.app.services.latency import LatencyEqualizer
from src.app.services.notification import NotificationJob, NotificationOutbox
from src.app.services.rate_limiter import DualKeyDecision, RateLimiter
from src.app.services.reset_token_manager import ResetTokenManager
from src.app.services.unit_of_work import UnitOfWork
from src.app.utils.masking import mask_email
from src.domain.entities import AuditEvent, NotificationKind
from src.libs.result import Result, Return
from .dtos import RequestPasswordResetCommand, RequestPasswordResetResponse

logger = logging.getLogger(__name__)


class RequestPasswordResetUseCase:
    """
    Use case for requesting password reset.

    Business Rules:
    - No email enumeration: every outcome returns the same generic response
      (unknown, inactive, throttled, or an internal failure)
    - Throttled per origin address and per email; both keys always recorded
    - Throttled requests are audited, counted on the account when it exists,
      and answered after a progressive backoff delay
    - Unknown or inactive accounts are answered after a delay resembling the
      real path
    - The e-mail is queued only after the token is committed
    """

    def __init__(
        self,
        uow: UnitOfWork,
        token_manager: ResetTokenManager,
        rate_limiter: RateLimiter,
        outbox: NotificationOutbox,
        latency: LatencyEqualizer,
        reset_url_template: str,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.uow = uow
        self.token_manager = token_manager
        self.rate_limiter = rate_limiter
        self.outbox = outbox
        self.latency = latency
        self.reset_url_template = reset_url_template
        self.sleep = sleep
        self.monotonic = monotonic

    async def execute(
        self, command: RequestPasswordResetCommand
    ) -> Result[RequestPasswordResetResponse]:
        try:
            decision = await self.rate_limiter.check_password_reset(
                command.origin_address, command.email
            )
            if not decision.allowed:
                await self._handle_throttled(command, decision)
            else:
                await self._handle_allowed(command)
        except Exception as e:
            logger.exception(
                f"Password reset request for {mask_email(command.email)} failed: "
                f"{type(e).__name__}"
            )

        return Return.ok(RequestPasswordResetResponse())

    async def _handle_throttled(
        self, command: RequestPasswordResetCommand, decision: DualKeyDecision
    ) -> None:
        logger.warning(
            f"Password reset throttled for {mask_email(command.email)} from "
            f"{command.origin_address} (ip={decision.by_origin.count}, "
            f"email={decision.by_identity.count})"
        )

        async with self.uow:
            credential = await self.uow.credentials.get_by_email(command.email)
            if credential is not None:
                await self.uow.credentials.increment_failed_reset_requests(credential.id)

            await self.uow.audit_events.create(
                AuditEvent(
                    account_id=credential.id if credential else None,
                    action="password_reset_rate_limited",
                    event_metadata={
                        "email": mask_email(command.email),
                        "origin": command.origin_address,
                        "ip_attempts": decision.by_origin.count,
                        "email_attempts": decision.by_identity.count,
                    },
                )
            )
            await self.uow.commit()

        await self.sleep(await self.rate_limiter.backoff_delay(command.origin_address))

    async def _handle_allowed(self, command: RequestPasswordResetCommand) -> None:
        started = self.monotonic()

        async with self.uow:
            credential = await self.uow.credentials.get_by_email(command.email)

            if credential is None or not credential.is_active:
                logger.info(
                    f"Password reset requested for unknown or inactive {mask_email(command.email)}"
                )
                await self.sleep(self.latency.sample())
                return

            token = await self.token_manager.issue_token(
                self.uow.credentials, credential, command.origin_address
            )
            if token is None:
                return

            await self.uow.audit_events.create(
                AuditEvent(
                    account_id=credential.id,
                    action="password_reset_requested",
                    event_metadata={
                        "email": mask_email(credential.email),
                        "origin": command.origin_address,
                        "client_agent": command.client_agent,
                    },
                )
            )
            await self.uow.commit()

        self.outbox.enqueue(
            NotificationJob(
                kind=NotificationKind.password_reset,
                address=credential.email,
                name=credential.name,
                context={
                    "reset_url": self.reset_url_template.format(token=token),
                    "expires_minutes": str(int(self.token_manager.ttl.total_seconds() // 60)),
                },
            )
        )
        self.latency.observe(self.monotonic() - started)
        logger.info(f"Password reset token issued for account {credential.id}")
