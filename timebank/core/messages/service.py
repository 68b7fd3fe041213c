# timebank/core/messages/service.py
"""
Сервис сообщений: личные сообщения и чаты бронирований.

Используется и HTTP-роутами, и обработчиками WebSocket.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

from timebank.common.constants import request_room, user_room
from timebank.common.exceptions import BadRequestError, ForbiddenError, NotFoundError
from timebank.common.logger import log_debug
from timebank.shared.models.booking import BookingDTO
from timebank.shared.models.message import (
    ConversationDTO,
    LastMessage,
    MessageCreateRequest,
    MessageDTO,
)
from timebank.shared.models.notification import NewMessagePayload
from timebank.shared.models.user import UserSummary

if TYPE_CHECKING:
    from timebank.core.booking.repository import BookingRepository
    from timebank.core.messages.repository import MessageRepository
    from timebank.core.notifications.service import NotificationService
    from timebank.core.users.repository import UserRepository
    from timebank.infra.database import DatabaseManager
    from timebank.realtime.connection_manager import ConnectionManager

NEW_MESSAGE_EVENT = "new-message"


def message_from_row(row: Any) -> MessageDTO:
    """Сообщение из строки MESSAGE_SELECT (с полями sender_*)."""
    data = dict(row)
    data["sender"] = UserSummary(
        id=data["sender_id"],
        name=data.get("sender_name") or "",
        display_name=data.get("sender_display_name"),
    )
    return MessageDTO.model_validate(data)


class MessageService:
    def __init__(
        self,
        db: "DatabaseManager",
        message_repo: "MessageRepository",
        booking_repo: "BookingRepository",
        user_repo: "UserRepository",
        notifications: "NotificationService",
        realtime: "ConnectionManager",
    ) -> None:
        self.db = db
        self.message_repo = message_repo
        self.booking_repo = booking_repo
        self.user_repo = user_repo
        self.notifications = notifications
        self.realtime = realtime

    async def _participant_booking(self, user_id: UUID, booking_id: UUID) -> BookingDTO:
        row = await self.booking_repo.get(booking_id)
        if row is None:
            raise NotFoundError("Booking not found")
        booking = BookingDTO.model_validate(dict(row))
        if not booking.is_participant(user_id):
            raise ForbiddenError("Not a participant of this booking")
        return booking

    async def _ensure_other_user(self, user_id: UUID, other_id: UUID, missing: str) -> None:
        if other_id == user_id:
            raise BadRequestError("Cannot message yourself")
        if not await self.user_repo.exists(other_id):
            raise NotFoundError(missing)

    # === ОТПРАВКА ===

    async def send(self, sender_id: UUID, request: MessageCreateRequest) -> MessageDTO:
        """
        Отправить сообщение.

        booking_id: сообщение в чат бронирования, получатель: второй участник.
        receiver_id: личное сообщение.
        """
        thread_id: UUID | None = None
        if request.booking_id is not None:
            booking = await self._participant_booking(sender_id, request.booking_id)
            receiver_id = booking.counterpart_of(sender_id)
            thread_id = await self.message_repo.get_or_create_thread_id(booking.id)
        else:
            receiver_id = request.receiver_id
            await self._ensure_other_user(sender_id, receiver_id, "Receiver not found")

        sender = await self.user_repo.get_by_id(sender_id)
        if sender is None:
            raise NotFoundError("User not found")
        sender_summary = UserSummary(id=sender["id"], name=sender["name"], display_name=sender["display_name"])

        async with self.db.transaction() as conn:
            row = await self.message_repo.insert(
                sender_id, receiver_id, request.content, request.message_type, thread_id=thread_id, conn=conn,
            )
            message = MessageDTO.model_validate({**dict(row), "booking_id": request.booking_id, "sender": sender_summary})
            notification = await self.notifications.create(
                receiver_id,
                NewMessagePayload(
                    message_id=message.id,
                    sender_id=sender_id,
                    sender_name=sender_summary.display_name or sender_summary.name,
                    content=message.content,
                    booking_id=request.booking_id,
                ),
                conn=conn,
            )

        room = request_room(request.booking_id) if request.booking_id else user_room(receiver_id)
        await self.realtime.emit(room, NEW_MESSAGE_EVENT, message.model_dump(mode="json"))
        await self.notifications.publish([notification])
        await log_debug(f"Сообщение {message.id}: {sender_id} -> {receiver_id}")
        return message

    # === ЧТЕНИЕ ===

    async def direct_conversation(self, user_id: UUID, other_id: UUID) -> list[MessageDTO]:
        """Личная переписка по возрастанию времени; входящие помечаются прочитанными."""
        await self._ensure_other_user(user_id, other_id, "User not found")
        rows = await self.message_repo.list_direct(user_id, other_id)
        await self.message_repo.mark_direct_read(user_id, other_id)
        return [message_from_row(r) for r in rows]

    async def booking_messages(self, user_id: UUID, booking_id: UUID) -> list[MessageDTO]:
        await self._participant_booking(user_id, booking_id)
        thread_id = await self.message_repo.get_thread_id(booking_id)
        if thread_id is None:
            return []
        rows = await self.message_repo.list_thread(thread_id)
        return [message_from_row(r) for r in rows]

    async def mark_booking_read(self, user_id: UUID, booking_id: UUID) -> int:
        await self._participant_booking(user_id, booking_id)
        thread_id = await self.message_repo.get_thread_id(booking_id)
        if thread_id is None:
            return 0
        return await self.message_repo.mark_thread_read(thread_id, user_id)

    async def senders(self, user_id: UUID) -> list[UserSummary]:
        rows = await self.message_repo.direct_senders(user_id)
        return [UserSummary.from_row(r) for r in rows]

    async def conversations(self, user_id: UUID) -> list[ConversationDTO]:
        rows = await self.message_repo.conversations(user_id)
        result = []
        for row in rows:
            last_message = None
            if row["last_content"] is not None:
                last_message = LastMessage(
                    content=row["last_content"],
                    sender_name=row["last_sender_name"] or "",
                    created_at=row["last_created_at"],
                )
            result.append(
                ConversationDTO(
                    booking_id=row["booking_id"],
                    category=row["category"],
                    status=row["status"],
                    other_user=UserSummary.from_row(row, prefix="other_"),
                    last_message=last_message,
                    unread_count=row["unread_count"],
                )
            )
        return result
