"""Outbound message delivery over SMTP."""

import asyncio
import logging
import smtplib
import uuid
from datetime import datetime
from dataclasses import dataclass, field
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Protocol, Sequence

from core.config import settings
from core.exceptions import DeliveryError
from core.utils.datetime import now
from core.utils.formatting import mask_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    """In-memory file attached to a message."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class DeliveryReceipt:
    """Proof that a message was handed to the transport."""

    message_id: str
    recipient: str
    accepted_at: datetime = field(default_factory=now)


class MessageSender(Protocol):
    """Anything able to deliver a message to one recipient."""

    async def send_message(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> DeliveryReceipt:
        ...


class EmailService:
    """Email service for sending messages via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        """
        Initialize email service. Unset arguments fall back to settings.

        Args:
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            use_tls: Upgrade the connection with STARTTLS
            from_email: Sender address
            from_name: Sender display name
        """
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name

    def build_message(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to
        msg['Subject'] = subject
        msg['Message-ID'] = f"<{uuid.uuid4()}@{self.from_email.split('@')[-1]}>"
        msg.attach(MIMEText(body, 'plain'))

        for attachment in attachments or ():
            subtype = attachment.content_type.partition('/')[2]
            part = MIMEApplication(attachment.content, _subtype=subtype or 'octet-stream')
            part.add_header(
                'Content-Disposition', 'attachment', filename=attachment.filename
            )
            msg.attach(part)
        return msg

    def _deliver(self, msg: MIMEMultipart, to: str) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
            if self.use_tls:
                server.starttls()
            if self.smtp_user and self.smtp_password:
                server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg, from_addr=self.from_email, to_addrs=[to])

    async def send_message(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> DeliveryReceipt:
        """
        Send one message.

        Args:
            to: Recipient address
            subject: Subject line
            body: Plain-text body
            attachments: Optional in-memory attachments

        Returns:
            DeliveryReceipt for the accepted message

        Raises:
            DeliveryError: If the SMTP exchange fails
        """
        if not to:
            raise DeliveryError("Recipient address is empty")

        msg = self.build_message(to, subject, body, attachments)
        try:
            # smtplib blocks; keep it off the event loop
            await asyncio.to_thread(self._deliver, msg, to)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"Failed to send email to {mask_email(to)}: {e}")
            raise DeliveryError(f"SMTP delivery to {mask_email(to)} failed") from e

        logger.info(f"Email sent to {mask_email(to)}")
        return DeliveryReceipt(message_id=msg['Message-ID'], recipient=to)


def get_message_sender() -> MessageSender:
    """Dependency returning the configured sender."""
    return EmailService()
