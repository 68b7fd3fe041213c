# timebank/api/dependencies.py
"""
Зависимости приложения.
Инициализация и управление ресурсами и сервисами.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from timebank.common.constants import TypeMsg
from timebank.common.logger import log_info
from timebank.config import settings
from timebank.core.booking import BookingRepository, BookingService
from timebank.core.ledger import LedgerRepository, LedgerService, TransferService
from timebank.core.matching import MatchingService
from timebank.core.messages import MessageRepository, MessageService
from timebank.core.notifications import NotificationRepository, NotificationService
from timebank.core.ratings import RatingRepository, RatingService
from timebank.core.users import UserRepository
from timebank.infra.database import DatabaseManager
from timebank.infra.redis_client import RedisClient
from timebank.realtime.connection_manager import ConnectionManager


# Глобальные экземпляры ресурсов
_db: Optional[DatabaseManager] = None
_redis: Optional[RedisClient] = None
_realtime: Optional[ConnectionManager] = None

# Сервисы
_user_repo: Optional[UserRepository] = None
_booking_service: Optional[BookingService] = None
_ledger_service: Optional[LedgerService] = None
_transfer_service: Optional[TransferService] = None
_notification_service: Optional[NotificationService] = None
_message_service: Optional[MessageService] = None
_rating_service: Optional[RatingService] = None
_matching_service: Optional[MatchingService] = None


async def init_dependencies(
    db: DatabaseManager,
    redis: Optional[RedisClient],
    realtime: ConnectionManager,
) -> None:
    """Собирает репозитории и сервисы поверх единого пула БД."""
    global _db, _redis, _realtime, _user_repo
    global _booking_service, _ledger_service, _transfer_service, _notification_service
    global _message_service, _rating_service, _matching_service

    _db = db
    _redis = redis
    _realtime = realtime

    user_repo = UserRepository(db)
    booking_repo = BookingRepository(db)
    ledger_repo = LedgerRepository(db)
    message_repo = MessageRepository(db)
    _user_repo = user_repo

    _notification_service = NotificationService(NotificationRepository(db), realtime)
    _ledger_service = LedgerService(db, ledger_repo, user_repo, booking_repo)
    _transfer_service = TransferService(
        db, ledger_repo, user_repo, _ledger_service,
        max_purchase=Decimal(str(settings.booking.MAX_CREDIT_PURCHASE)),
    )
    _booking_service = BookingService(
        db,
        booking_repo,
        user_repo,
        ledger_repo,
        message_repo,
        _ledger_service,
        _notification_service,
        realtime,
        list_limit=settings.booking.LIST_LIMIT,
        provider_bonus=settings.booking.PROVIDER_REPUTATION_BONUS,
        receiver_bonus=settings.booking.RECEIVER_REPUTATION_BONUS,
    )
    _message_service = MessageService(db, message_repo, booking_repo, user_repo, _notification_service, realtime)
    _rating_service = RatingService(RatingRepository(db), user_repo, booking_repo, _notification_service)
    _matching_service = MatchingService(user_repo)

    await log_info("Сервисы TimeBank инициализированы", type_msg=TypeMsg.DEBUG)


async def cleanup_dependencies() -> None:
    """Сбрасывает ссылки на сервисы. Пулы закрываются в lifespan."""
    global _db, _redis, _realtime, _user_repo
    global _booking_service, _ledger_service, _transfer_service, _notification_service
    global _message_service, _rating_service, _matching_service

    _db = _redis = _realtime = None
    _user_repo = None
    _booking_service = _ledger_service = _transfer_service = _notification_service = None
    _message_service = _rating_service = _matching_service = None


def _require(value, name: str):
    if value is None:
        raise RuntimeError(f"{name} не инициализирован")
    return value


def get_db() -> DatabaseManager:
    return _require(_db, "DatabaseManager")


def get_redis_client() -> Optional[RedisClient]:
    """Redis может отсутствовать: ограничение частоты тогда отключено."""
    return _redis


def get_realtime() -> ConnectionManager:
    return _require(_realtime, "ConnectionManager")


def get_user_repository() -> UserRepository:
    return _require(_user_repo, "UserRepository")


def get_booking_service() -> BookingService:
    return _require(_booking_service, "BookingService")


def get_ledger_service() -> LedgerService:
    return _require(_ledger_service, "LedgerService")


def get_transfer_service() -> TransferService:
    return _require(_transfer_service, "TransferService")


def get_notification_service() -> NotificationService:
    return _require(_notification_service, "NotificationService")


def get_message_service() -> MessageService:
    return _require(_message_service, "MessageService")


def get_rating_service() -> RatingService:
    return _require(_rating_service, "RatingService")


def get_matching_service() -> MatchingService:
    return _require(_matching_service, "MatchingService")
