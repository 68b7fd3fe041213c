# timebank/core/notifications/service.py
"""
Сервис уведомлений.

Уведомления пишутся в БД (в т.ч. внутри транзакции вызывающего сервиса),
а в realtime-канал отправляются только после коммита через publish().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable
from uuid import UUID

from asyncpg import Connection
from pydantic import BaseModel

from timebank.common.exceptions import NotFoundError
from timebank.common.logger import log_warning
from timebank.shared.models.common import Page, PaginationParams
from timebank.shared.models.notification import NotificationDTO, payload_to_json

if TYPE_CHECKING:
    from timebank.core.notifications.repository import NotificationRepository
    from timebank.realtime.connection_manager import ConnectionManager

NOTIFICATION_EVENT = "notification"


class NotificationService:
    def __init__(self, repository: "NotificationRepository", realtime: "ConnectionManager") -> None:
        self.repository = repository
        self.realtime = realtime

    async def create(
        self,
        user_id: UUID,
        payload: BaseModel,
        conn: Connection | None = None,
    ) -> NotificationDTO:
        """Сохраняет уведомление; payload: одна из моделей NotificationPayload."""
        kind = getattr(payload, "kind")
        row = await self.repository.insert(user_id, kind, payload_to_json(payload), conn=conn)
        return NotificationDTO.from_row(row)

    async def publish(self, notifications: Iterable[NotificationDTO]) -> None:
        """Доставляет уведомления в комнаты получателей. Ошибки доставки не фатальны."""
        for notification in notifications:
            try:
                await self.realtime.emit_to_user(
                    notification.user_id,
                    NOTIFICATION_EVENT,
                    notification.model_dump(mode="json"),
                )
            except Exception as e:
                await log_warning(f"Не удалось доставить уведомление {notification.id}: {e}")

    async def notify(self, user_id: UUID, payload: BaseModel) -> NotificationDTO:
        """Создать и сразу доставить (вне транзакции)."""
        notification = await self.create(user_id, payload)
        await self.publish([notification])
        return notification

    async def list_for_user(self, user_id: UUID, pagination: PaginationParams) -> Page[NotificationDTO]:
        rows = await self.repository.list_for_user(user_id, pagination.limit, pagination.offset)
        total = await self.repository.count_for_user(user_id)
        return Page[NotificationDTO].create([NotificationDTO.from_row(r) for r in rows], total, pagination)

    async def mark_read(self, user_id: UUID, notification_id: UUID) -> NotificationDTO:
        row = await self.repository.mark_read(notification_id, user_id)
        if row is None:
            raise NotFoundError("Notification not found")
        return NotificationDTO.from_row(row)

    async def mark_all_read(self, user_id: UUID) -> int:
        return await self.repository.mark_all_read(user_id)
