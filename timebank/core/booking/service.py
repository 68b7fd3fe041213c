# timebank/core/booking/service.py
"""
Жизненный цикл бронирования времени.

PENDING -> ACCEPTED | DECLINED | CANCELLED
ACCEPTED -> COMPLETED | CANCELLED

Все записи одной операции выполняются в одной транзакции;
realtime-события отправляются только после коммита.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from timebank.common.constants import (
    BookingRole,
    BookingStatus,
    LedgerType,
    TransactionType,
    request_room,
)
from timebank.common.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from timebank.common.logger import log_info
from timebank.core.booking.state_machine import BookingStateMachine
from timebank.shared.models.booking import BookingCreateRequest, BookingDTO
from timebank.shared.models.notification import (
    BookingAcceptedPayload,
    BookingCancelledPayload,
    BookingCompletedPayload,
    BookingDeclinedPayload,
    BookingRequestPayload,
    CreditEarnedPayload,
    CreditSpentPayload,
    NotificationDTO,
)

if TYPE_CHECKING:
    from timebank.core.booking.repository import BookingRepository
    from timebank.core.ledger.repository import LedgerRepository
    from timebank.core.ledger.service import LedgerService
    from timebank.core.messages.repository import MessageRepository
    from timebank.core.notifications.service import NotificationService
    from timebank.core.users.repository import UserRepository
    from timebank.infra.database import DatabaseManager
    from timebank.realtime.connection_manager import ConnectionManager

STATUS_CHANGED_EVENT = "request-status-changed"
COMPLETION_LEDGER_DESCRIPTION = "Session completed"


class BookingService:
    def __init__(
        self,
        db: "DatabaseManager",
        booking_repo: "BookingRepository",
        user_repo: "UserRepository",
        ledger_repo: "LedgerRepository",
        message_repo: "MessageRepository",
        ledger_service: "LedgerService",
        notifications: "NotificationService",
        realtime: "ConnectionManager",
        list_limit: int = 100,
        provider_bonus: int = 10,
        receiver_bonus: int = 5,
    ) -> None:
        self.db = db
        self.booking_repo = booking_repo
        self.user_repo = user_repo
        self.ledger_repo = ledger_repo
        self.message_repo = message_repo
        self.ledger_service = ledger_service
        self.notifications = notifications
        self.realtime = realtime
        self.list_limit = list_limit
        self.provider_bonus = provider_bonus
        self.receiver_bonus = receiver_bonus

    async def _load(self, booking_id: UUID) -> BookingDTO:
        row = await self.booking_repo.get(booking_id)
        if row is None:
            raise NotFoundError("Booking not found")
        return BookingDTO.model_validate(dict(row))

    async def _after_commit(
        self,
        notifications: list[NotificationDTO],
        booking: BookingDTO | None = None,
        updated_by: UUID | None = None,
    ) -> None:
        await self.notifications.publish(notifications)
        if booking is not None:
            await self.realtime.emit(
                request_room(booking.id),
                STATUS_CHANGED_EVENT,
                {"booking_id": booking.id, "status": booking.status.value, "updated_by": updated_by},
            )

    # === СОЗДАНИЕ ===

    async def create(self, receiver_id: UUID, request: BookingCreateRequest) -> BookingDTO:
        """
        Запрос времени у провайдера.

        Создаёт бронирование PENDING, чат бронирования и (если есть note)
        первое сообщение в нём; провайдер получает BOOKING_REQUEST.
        """
        if request.provider_id == receiver_id:
            raise BadRequestError("Cannot request yourself")
        if not await self.user_repo.exists(request.provider_id):
            raise NotFoundError("Provider not found")

        async with self.db.transaction() as conn:
            row = await self.booking_repo.create(
                request.provider_id, receiver_id, request.hours, request.category, request.note, conn=conn,
            )
            booking = BookingDTO.model_validate(dict(row))
            thread = await self.message_repo.create_thread(booking.id, conn=conn)
            if request.note:
                await self.message_repo.insert(
                    receiver_id, booking.provider_id, request.note, thread_id=thread["id"], conn=conn,
                )
            notification = await self.notifications.create(
                booking.provider_id,
                BookingRequestPayload(booking_id=booking.id, hours=booking.hours, category=booking.category),
                conn=conn,
            )

        await self._after_commit([notification])
        await log_info(
            f"Бронирование {booking.id} создано: {receiver_id} -> {booking.provider_id}, {booking.hours} ч",
            extra={"booking_id": str(booking.id)},
        )
        return booking

    # === ЧТЕНИЕ ===

    async def get(self, user_id: UUID, booking_id: UUID) -> BookingDTO:
        booking = await self._load(booking_id)
        if not booking.is_participant(user_id):
            raise ForbiddenError("Not a participant of this booking")
        return booking

    async def list_for_user(
        self,
        user_id: UUID,
        role: BookingRole = BookingRole.ANY,
        status: BookingStatus | None = None,
    ) -> list[BookingDTO]:
        rows = await self.booking_repo.list_for_user(user_id, role, status, self.list_limit)
        return [BookingDTO.model_validate(dict(r)) for r in rows]

    # === ПЕРЕХОДЫ ===

    async def accept(self, user_id: UUID, booking_id: UUID, slot: datetime | None = None) -> BookingDTO:
        booking = await self._load(booking_id)
        if booking.provider_id != user_id:
            raise ForbiddenError("Only the provider can accept")
        if not BookingStateMachine.can_transition(booking.status, BookingStatus.ACCEPTED):
            raise ConflictError("Invalid state")

        async with self.db.transaction() as conn:
            row = await self.booking_repo.transition(booking_id, BookingStatus.ACCEPTED, start_at=slot, conn=conn)
            if row is None:
                raise ConflictError("Invalid state")
            updated = BookingDTO.model_validate(dict(row))
            notification = await self.notifications.create(
                updated.receiver_id,
                BookingAcceptedPayload(booking_id=updated.id, slot=slot),
                conn=conn,
            )

        await self._after_commit([notification], updated, user_id)
        await log_info(f"Бронирование {booking_id} принято")
        return updated

    async def decline(self, user_id: UUID, booking_id: UUID) -> BookingDTO:
        booking = await self._load(booking_id)
        if booking.provider_id != user_id:
            raise ForbiddenError("Only the provider can decline")
        if not BookingStateMachine.can_transition(booking.status, BookingStatus.DECLINED):
            raise ConflictError("Invalid state")

        async with self.db.transaction() as conn:
            row = await self.booking_repo.transition(booking_id, BookingStatus.DECLINED, conn=conn)
            if row is None:
                raise ConflictError("Invalid state")
            updated = BookingDTO.model_validate(dict(row))
            notification = await self.notifications.create(
                updated.receiver_id, BookingDeclinedPayload(booking_id=updated.id), conn=conn,
            )

        await self._after_commit([notification], updated, user_id)
        await log_info(f"Бронирование {booking_id} отклонено")
        return updated

    async def cancel(self, user_id: UUID, booking_id: UUID) -> BookingDTO:
        """Отмена любым участником из PENDING или ACCEPTED."""
        booking = await self._load(booking_id)
        if not booking.is_participant(user_id):
            raise ForbiddenError("Not a participant of this booking")
        if not BookingStateMachine.can_transition(booking.status, BookingStatus.CANCELLED):
            raise ConflictError("Invalid state")

        async with self.db.transaction() as conn:
            row = await self.booking_repo.transition(booking_id, BookingStatus.CANCELLED, conn=conn)
            if row is None:
                raise ConflictError("Invalid state")
            updated = BookingDTO.model_validate(dict(row))
            notification = await self.notifications.create(
                updated.counterpart_of(user_id), BookingCancelledPayload(booking_id=updated.id), conn=conn,
            )

        await self._after_commit([notification], updated, user_id)
        await log_info(f"Бронирование {booking_id} отменено пользователем {user_id}")
        return updated

    async def complete(self, user_id: UUID, booking_id: UUID) -> BookingDTO:
        """
        Подтверждение завершения сессии.

        1. Блокирует строку получателя и пересчитывает его баланс по леджеру
        2. Условно переводит бронирование ACCEPTED -> COMPLETED
        3. Пишет записи леджера, транзакции, репутацию и уведомления
        4. Обновляет проекции балансов обоих участников

        Повторный или параллельный вызов получает "Booking not accepted",
        кредиты двигаются ровно один раз.
        """
        booking = await self._load(booking_id)
        if not BookingStateMachine.can_transition(booking.status, BookingStatus.COMPLETED):
            raise ConflictError("Booking not accepted")
        if not booking.is_participant(user_id):
            raise ForbiddenError("Not a participant of this booking")

        provider_id = booking.provider_id
        receiver_id = booking.receiver_id
        hours = booking.hours

        async with self.db.transaction() as conn:
            await self.user_repo.lock(receiver_id, conn)
            balance = await self.ledger_service.get_balance(receiver_id, conn=conn)
            if balance.balance - hours < 0:
                raise ConflictError("Insufficient balance", details={"balance": str(balance.balance)})

            row = await self.booking_repo.transition(booking_id, BookingStatus.COMPLETED, conn=conn)
            if row is None:
                raise ConflictError("Booking not accepted")
            updated = BookingDTO.model_validate(dict(row))

            await self.ledger_repo.add_entry(
                provider_id, hours, LedgerType.EARNED, COMPLETION_LEDGER_DESCRIPTION,
                ref_booking_id=booking_id, conn=conn,
            )
            await self.ledger_repo.add_entry(
                receiver_id, hours, LedgerType.SPENT, COMPLETION_LEDGER_DESCRIPTION,
                ref_booking_id=booking_id, conn=conn,
            )

            description = f"Time session: {booking.category}"
            for tx_type in (TransactionType.SPENT, TransactionType.EARNED):
                await self.ledger_repo.add_transaction(
                    receiver_id, provider_id, hours, tx_type, description,
                    reference_id=booking_id, conn=conn,
                )

            await self.user_repo.add_reputation(provider_id, self.provider_bonus, conn=conn)
            await self.user_repo.add_reputation(receiver_id, self.receiver_bonus, conn=conn)

            notifications = [
                await self.notifications.create(provider_id, BookingCompletedPayload(booking_id=booking_id), conn=conn),
                await self.notifications.create(receiver_id, BookingCompletedPayload(booking_id=booking_id), conn=conn),
                await self.notifications.create(provider_id, CreditEarnedPayload(hours=hours), conn=conn),
                await self.notifications.create(receiver_id, CreditSpentPayload(hours=hours), conn=conn),
            ]

            await self.ledger_service.refresh_projection(provider_id, conn)
            await self.ledger_service.refresh_projection(receiver_id, conn)

        await self._after_commit(notifications, updated, user_id)
        await log_info(
            f"Бронирование {booking_id} завершено: {hours} ч {receiver_id} -> {provider_id}",
            extra={"booking_id": str(booking_id)},
        )
        return updated
