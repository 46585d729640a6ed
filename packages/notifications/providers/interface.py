from abc import ABC, abstractmethod
from typing import Any

from packages.notifications.templates import TemplateKind


class NotificationDispatcherInterface(ABC):
    """Outbound delivery of templated messages."""

    @abstractmethod
    async def send(
        self, recipient_ref: str, template_kind: TemplateKind, data: dict[str, Any]
    ) -> bool:
        """
        Deliver one message.

        Returns:
            True if the message was handed off, False if delivery failed
        """
        pass
