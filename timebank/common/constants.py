# timebank/common/constants.py
"""
Общие константы и перечисления.
"""

from decimal import Decimal
from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class BookingStatus(str, Enum):
    """Статусы бронирования."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    def __str__(self) -> str:
        return self.value


class BookingRole(str, Enum):
    """Фильтр списка бронирований по роли пользователя."""
    PROVIDER = "provider"
    RECEIVER = "receiver"
    ANY = "any"


class LedgerType(str, Enum):
    """Направление записи в леджере."""
    EARNED = "EARNED"
    SPENT = "SPENT"

    def __str__(self) -> str:
        return self.value


class TransactionType(str, Enum):
    """Типы транзакций."""
    EARNED = "EARNED"
    SPENT = "SPENT"
    TRANSFER = "TRANSFER"
    BONUS = "BONUS"

    def __str__(self) -> str:
        return self.value


class TransactionStatus(str, Enum):
    """Статусы транзакций."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    def __str__(self) -> str:
        return self.value


class NotificationKind(str, Enum):
    """Типы уведомлений."""
    BOOKING_REQUEST = "BOOKING_REQUEST"
    BOOKING_ACCEPTED = "BOOKING_ACCEPTED"
    BOOKING_DECLINED = "BOOKING_DECLINED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    BOOKING_COMPLETED = "BOOKING_COMPLETED"
    CREDIT_EARNED = "CREDIT_EARNED"
    CREDIT_SPENT = "CREDIT_SPENT"
    NEW_MESSAGE = "NEW_MESSAGE"
    NEW_RATING = "NEW_RATING"

    def __str__(self) -> str:
        return self.value


class MessageType(str, Enum):
    """Типы сообщений чата."""
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    FILE = "FILE"


class ReputationBadge(str, Enum):
    """Бейдж репутации."""
    GOLD = "Gold"
    SILVER = "Silver"
    BRONZE = "Bronze"


class PresenceStatus(str, Enum):
    """Статус присутствия пользователя в realtime-канале."""
    ONLINE = "online"
    AWAY = "away"
    BUSY = "busy"
    OFFLINE = "offline"


# Точность денежных величин (часы/кредиты)
HOURS_QUANT = Decimal("0.01")

# Префиксы комнат realtime-канала
USER_ROOM_PREFIX = "user"
REQUEST_ROOM_PREFIX = "request"


def user_room(user_id: object) -> str:
    """Комната персональных событий пользователя."""
    return f"{USER_ROOM_PREFIX}:{user_id}"


def request_room(booking_id: object) -> str:
    """Комната чата бронирования."""
    return f"{REQUEST_ROOM_PREFIX}:{booking_id}"
