from typing import Any

from common.core.otel_axiom_exporter import get_logger
from packages.notifications.providers.interface import NotificationDispatcherInterface
from packages.notifications.templates import TemplateKind, render

logger = get_logger(__name__)


class LoggingDispatcher(NotificationDispatcherInterface):
    """Writes the rendered message to the log instead of sending it."""

    async def send(
        self, recipient_ref: str, template_kind: TemplateKind, data: dict[str, Any]
    ) -> bool:
        subject, _ = render(template_kind, data)
        logger.info(
            f"Notification: {subject}",
            extra={
                "recipient": recipient_ref,
                "template_kind": TemplateKind(template_kind).value,
                "tenant_id": data.get("tenant_id"),
            },
        )
        return True
