from common.core.config import settings
from common.core.constants import NotificationProviderType
from packages.notifications.providers.interface import NotificationDispatcherInterface
from packages.notifications.providers.logging_dispatcher import LoggingDispatcher
from packages.notifications.providers.smtp_dispatcher import SmtpDispatcher


def get_notification_dispatcher() -> NotificationDispatcherInterface:
    """Dispatcher selected by ``settings.notification_provider``."""
    if settings.notification_provider == NotificationProviderType.SMTP:
        return SmtpDispatcher()
    return LoggingDispatcher()
