import asyncio
import smtplib
from email.mime.text import MIMEText
from typing import Any, Optional

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.notifications.providers.interface import NotificationDispatcherInterface
from packages.notifications.templates import TemplateKind, render

logger = get_logger(__name__)


class SmtpDispatcher(NotificationDispatcherInterface):
    """Email over SMTP. smtplib blocks, so each send runs in a worker thread."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        from_email: Optional[str] = None,
    ):
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.username = username or settings.smtp_username
        self.password = password or settings.smtp_password
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls
        self.from_email = from_email or settings.notification_from_email

    def _deliver(self, message: MIMEText) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=30) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(message)

    @trace_span
    async def send(
        self, recipient_ref: str, template_kind: TemplateKind, data: dict[str, Any]
    ) -> bool:
        if not self.host:
            logger.warning("SMTP not configured, dropping notification")
            return False

        subject, body = render(template_kind, data)
        message = MIMEText(body, "plain", "utf-8")
        message["From"] = self.from_email
        message["To"] = recipient_ref
        message["Subject"] = subject

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                f"SMTP delivery failed: {e}",
                extra={"recipient": recipient_ref, "error": str(e)},
            )
            return False

        logger.info(
            "Sent notification email",
            extra={
                "recipient": recipient_ref,
                "template_kind": TemplateKind(template_kind).value,
            },
        )
        return True
