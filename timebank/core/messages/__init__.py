from timebank.core.messages.repository import MessageRepository
from timebank.core.messages.service import MessageService

__all__ = ["MessageRepository", "MessageService"]
