from timebank.core.notifications.repository import NotificationRepository
from timebank.core.notifications.service import NotificationService

__all__ = ["NotificationRepository", "NotificationService"]
