"""
Notification Outbox

Account e-mails are queued in process and delivered by a background worker,
so the request path never waits on (or fails because of) the mail transport.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, Field

from src.app.utils.masking import mask_email
from src.domain.entities.enums import NotificationKind

logger = logging.getLogger(__name__)


class NotificationJob(BaseModel):
    kind: NotificationKind
    address: str
    name: str = ""
    # e.g. {"reset_url": ..., "expires_minutes": 15}; lives in memory only
    context: Dict[str, str] = Field(default_factory=dict)
    attempts: int = 0


class INotificationSender(ABC):
    @abstractmethod
    async def send(self, job: NotificationJob) -> None:
        """Deliver one notification. Raise on failure."""
        pass


class NotificationOutbox:
    """
    Bounded queue plus a single delivery worker.

    - enqueue never blocks; a full queue drops the job with a log line
    - a failed delivery is retried up to max_attempts with exponential pauses
    - stop() drains whatever is still queued before returning
    """

    def __init__(
        self,
        sender: INotificationSender,
        max_attempts: int = 3,
        retry_base_seconds: float = 2.0,
        queue_size: int = 1000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.sender = sender
        self.max_attempts = max_attempts
        self.retry_base_seconds = retry_base_seconds
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.sleep = sleep
        self._worker: Optional[asyncio.Task] = None

    def enqueue(self, job: NotificationJob) -> bool:
        try:
            self.queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.error(
                f"Notification queue full, dropping {job.kind.value} for {mask_email(job.address)}"
            )
            return False
        return True

    async def deliver(self, job: NotificationJob) -> bool:
        """Try a job until it succeeds or runs out of attempts"""
        while job.attempts < self.max_attempts:
            job.attempts += 1
            try:
                await self.sender.send(job)
                logger.info(
                    f"Delivered {job.kind.value} to {mask_email(job.address)} "
                    f"(attempt {job.attempts})"
                )
                return True
            except Exception as e:
                logger.warning(
                    f"Delivery of {job.kind.value} to {mask_email(job.address)} failed "
                    f"(attempt {job.attempts}/{self.max_attempts}): {e}"
                )
                if job.attempts < self.max_attempts:
                    await self.sleep(self.retry_base_seconds * (2 ** (job.attempts - 1)))

        logger.error(f"Giving up on {job.kind.value} for {mask_email(job.address)}")
        return False

    async def drain(self) -> int:
        """Deliver everything currently queued. Returns the number of jobs handled."""
        handled = 0
        while not self.queue.empty():
            job = self.queue.get_nowait()
            try:
                await self.deliver(job)
            finally:
                self.queue.task_done()
            handled += 1
        return handled

    async def _run(self) -> None:
        while True:
            job = await self.queue.get()
            try:
                await self.deliver(job)
            finally:
                self.queue.task_done()

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        pending = await self.drain()
        if pending:
            logger.info(f"Drained {pending} notification(s) on shutdown")
