import logging
from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from src.app.services.notification import INotificationSender, NotificationJob
from src.app.utils.masking import mask_email
from src.domain.entities.enums import NotificationKind

logger = logging.getLogger(__name__)

SUBJECTS = {
    NotificationKind.password_reset: "Password Reset Request",
    NotificationKind.password_changed: "Your password was changed",
}


def render_body(job: NotificationJob) -> str:
    greeting = f"Hello {job.name}," if job.name else "Hello,"
    if job.kind == NotificationKind.password_reset:
        return (
            f"{greeting}\n\n"
            "You requested a password reset. Use the link below to choose a new password:\n\n"
            f"{job.context.get('reset_url', '')}\n\n"
            f"This link expires in {job.context.get('expires_minutes', '15')} minutes "
            "and can be used once.\n"
            "If you did not request this, you can ignore this e-mail.\n"
        )
    return (
        f"{greeting}\n\n"
        "The password for your account was just changed and other devices were signed out.\n"
        "If this was not you, reset your password immediately.\n"
    )


class LoggingNotificationSender(INotificationSender):
    """Development sender: logs a masked summary, never the link itself"""

    async def send(self, job: NotificationJob) -> None:
        logger.info(f"[notification] {job.kind.value} -> {mask_email(job.address)}")


class SmtpNotificationSender(INotificationSender):
    def __init__(
        self,
        hostname: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = False,
        start_tls: bool = True,
        timeout: float = 10,
        mail_from: str = "noreply@example.com",
    ):
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.start_tls = start_tls
        self.timeout = timeout
        self.mail_from = mail_from

    def build_message(self, job: NotificationJob) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = SUBJECTS[job.kind]
        message["From"] = self.mail_from
        message["To"] = job.address
        message.set_content(render_body(job))
        return message

    async def send(self, job: NotificationJob) -> None:
        await aiosmtplib.send(
            self.build_message(job),
            hostname=self.hostname,
            port=self.port,
            username=self.username,
            password=self.password,
            use_tls=self.use_tls,
            start_tls=self.start_tls if not self.use_tls else False,
            timeout=self.timeout,
        )
