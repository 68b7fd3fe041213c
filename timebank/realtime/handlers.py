# timebank/realtime/handlers.py
"""
Обработчики клиентских событий WebSocket.

Входящий кадр: {"event": <имя>, "data": {...}}.
Ошибка обработки события отправляется клиенту событием "error",
соединение при этом не закрывается.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID

from pydantic import ValidationError

from timebank.common.constants import MessageType, PresenceStatus, request_room, user_room
from timebank.common.exceptions import AppError, BadRequestError
from timebank.common.logger import log_error
from timebank.shared.models.message import MessageCreateRequest

if TYPE_CHECKING:
    from timebank.core.booking.service import BookingService
    from timebank.core.messages.service import MessageService
    from timebank.core.users.repository import UserRepository
    from timebank.realtime.connection_manager import ConnectionManager

ERROR_EVENT = "error"
STATUS_CHANGED_EVENT = "user-status-changed"


@dataclass(frozen=True)
class ClientSession:
    """Аутентифицированный клиент WebSocket."""
    user_id: UUID
    name: str


def _booking_id(data: dict[str, Any]) -> UUID:
    try:
        return UUID(str(data["booking_id"]))
    except (KeyError, ValueError):
        raise BadRequestError("booking_id is required")


class RealtimeHandlers:
    def __init__(
        self,
        manager: "ConnectionManager",
        messages: "MessageService",
        bookings: "BookingService",
        user_repo: "UserRepository",
    ) -> None:
        self.manager = manager
        self.messages = messages
        self.bookings = bookings
        self.user_repo = user_repo

    async def dispatch(self, session: ClientSession, frame: Any) -> None:
        """Выполняет событие; любые ошибки превращаются в событие error."""
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            await self._error(session, "Malformed frame")
            return
        event = frame["event"]
        data = frame.get("data") or {}
        if not isinstance(data, dict):
            await self._error(session, "Malformed frame", event)
            return

        try:
            await self._handle(session, event, data)
        except AppError as e:
            await self._error(session, e.message, event)
        except ValidationError as e:
            details = e.errors(include_url=False, include_context=False, include_input=False)
            await self._error(session, "Invalid input", event, details=details)
        except Exception as e:
            await log_error(f"Ошибка обработки события {event} от {session.user_id}: {e}", exc_info=True)
            await self._error(session, f"Failed to handle {event}", event)

    async def _handle(self, session: ClientSession, event: str, data: dict[str, Any]) -> None:
        user_id = session.user_id

        match event:
            case "join-request":
                booking = await self.bookings.get(user_id, _booking_id(data))
                self.manager.join(user_id, request_room(booking.id))
                await self.manager.send_personal(user_id, "joined-request", {"booking_id": booking.id})

            case "leave-request":
                self.manager.leave(user_id, request_room(_booking_id(data)))

            case "send-message":
                await self.messages.send(
                    user_id,
                    MessageCreateRequest(
                        booking_id=_booking_id(data),
                        content=data.get("content", ""),
                        message_type=data.get("message_type", MessageType.TEXT),
                    ),
                )

            case "send-direct-message":
                await self.messages.send(
                    user_id,
                    MessageCreateRequest(
                        receiver_id=data.get("receiver_id"),
                        content=data.get("content", ""),
                        message_type=data.get("message_type", MessageType.TEXT),
                    ),
                )

            case "typing-start":
                await self.manager.emit(
                    request_room(_booking_id(data)),
                    "user-typing",
                    {"user_id": user_id, "user_name": session.name},
                    exclude=user_id,
                )

            case "typing-stop":
                await self.manager.emit(
                    request_room(_booking_id(data)),
                    "user-stopped-typing",
                    {"user_id": user_id},
                    exclude=user_id,
                )

            case "request-status-update":
                booking = await self.bookings.get(user_id, _booking_id(data))
                payload = {"booking_id": booking.id, "status": data.get("status"), "updated_by": user_id}
                await self.manager.emit(request_room(booking.id), "request-status-changed", payload)
                counterpart = booking.counterpart_of(user_id)
                if not self.manager.is_in_room(counterpart, request_room(booking.id)):
                    await self.manager.emit(user_room(counterpart), "request-status-changed", payload)

            case "update-status":
                try:
                    status = PresenceStatus(data.get("status"))
                except ValueError:
                    raise BadRequestError("Unknown status")
                if status == PresenceStatus.OFFLINE:
                    raise BadRequestError("Unknown status")
                await self.user_repo.touch_last_active(user_id)
                await self.manager.broadcast_all(
                    STATUS_CHANGED_EVENT,
                    {"user_id": user_id, "status": status.value},
                    exclude=user_id,
                )

            case "ping":
                await self.manager.send_personal(
                    user_id, "pong", {"timestamp": datetime.now(timezone.utc).isoformat()}
                )

            case _:
                raise BadRequestError(f"Unknown event: {event}")

    async def on_disconnect(self, session: ClientSession) -> None:
        await self.manager.broadcast_all(
            STATUS_CHANGED_EVENT,
            {"user_id": session.user_id, "status": PresenceStatus.OFFLINE.value},
            exclude=session.user_id,
        )

    async def _error(
        self,
        session: ClientSession,
        message: str,
        event: str | None = None,
        details: Any = None,
    ) -> None:
        data: dict[str, Any] = {"message": message}
        if event:
            data["event"] = event
        if details is not None:
            data["details"] = details
        await self.manager.send_personal(session.user_id, ERROR_EVENT, data)
