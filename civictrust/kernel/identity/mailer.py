"""
Outbound email for verification codes.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Optional

from civictrust.config import Settings, get_settings
from civictrust.kernel.errors import DependencyError
from civictrust.logging_config import get_logger

logger = get_logger(__name__)


class EmailSender:
    """SMTP sender. The blocking smtplib session runs in a worker thread."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def configured(self) -> bool:
        return bool(self.settings.smtp_host)

    async def send_verification_code(self, to_email: str, code: str) -> bool:
        """
        Send a verification code.

        Returns:
            False when SMTP is not configured (nothing was sent)

        Raises:
            DependencyError: If the SMTP server cannot be reached
        """
        if not self.configured:
            logger.warning(
                "SMTP not configured; verification email not sent",
                extra={"to_domain": to_email.rsplit("@", 1)[-1]},
            )
            return False

        message = EmailMessage()
        message["From"] = self.settings.smtp_from_email
        message["To"] = to_email
        message["Subject"] = "Your verification code"
        message.set_content(
            f"Your verification code is {code}.\n\n"
            f"It expires in {self.settings.email_code_ttl_minutes} minutes."
        )

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Verification email delivery failed: %s", type(e).__name__)
            raise DependencyError("Email delivery is unavailable") from e
        return True

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=10) as smtp:
            smtp.starttls()
            if self.settings.smtp_user:
                smtp.login(self.settings.smtp_user, self.settings.smtp_password)
            smtp.send_message(message)
