# timebank/realtime/connection_manager.py
"""
Менеджер WebSocket соединений.
Управляет комнатами и рассылкой событий.

Кадр в обе стороны: {"event": <имя>, "data": {...}}.
Комнаты: user:<id> (персональные события) и request:<booking_id> (чат бронирования).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from timebank.common.constants import user_room
from timebank.common.logger import log_debug


@dataclass
class ConnectionInfo:
    """Информация о соединении."""
    websocket: WebSocket
    user_id: UUID
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    rooms: set[str] = field(default_factory=set)


def make_frame(event: str, data: Any) -> dict[str, Any]:
    return {"event": event, "data": jsonable_encoder(data)}


class ConnectionManager:
    """
    Менеджер WebSocket соединений.

    Одно соединение на пользователя: новое подключение закрывает предыдущее.
    """

    def __init__(self) -> None:
        # user_id -> ConnectionInfo
        self._connections: dict[UUID, ConnectionInfo] = {}
        # room -> set of user_ids
        self._rooms: dict[str, set[UUID]] = {}

    @property
    def active_connections(self) -> int:
        return len(self._connections)

    def is_online(self, user_id: UUID) -> bool:
        return user_id in self._connections

    async def connect(self, websocket: WebSocket, user_id: UUID) -> None:
        """Принимает соединение и подписывает на комнату user:<id>."""
        previous = self._connections.get(user_id)
        if previous is not None:
            self._drop(user_id)
            await self._close_connection(previous)

        await websocket.accept()

        self._connections[user_id] = ConnectionInfo(websocket=websocket, user_id=user_id)
        self.join(user_id, user_room(user_id))

    def disconnect(self, user_id: UUID, websocket: WebSocket | None = None) -> bool:
        """
        Отключает клиента.

        Если передан websocket, отключение произойдёт только для этого сокета
        (старое соединение не должно снять новое после переподключения).
        """
        conn = self._connections.get(user_id)
        if conn is None:
            return False
        if websocket is not None and conn.websocket is not websocket:
            return False
        self._drop(user_id)
        return True

    def release(self, user_id: UUID, websocket: WebSocket) -> bool:
        """
        Снимает сокет при завершении цикла приёма.

        Returns:
            True если у пользователя не осталось живого соединения
            (в том числе когда сокет уже снят после ошибки отправки)
        """
        if self.disconnect(user_id, websocket):
            return True
        return not self.is_online(user_id)

    def _drop(self, user_id: UUID) -> None:
        conn = self._connections.pop(user_id, None)
        if conn is None:
            return
        for room in list(conn.rooms):
            self._leave_room(user_id, room)

    def join(self, user_id: UUID, room: str) -> None:
        if user_id not in self._connections:
            return
        self._connections[user_id].rooms.add(room)
        self._rooms.setdefault(room, set()).add(user_id)

    def leave(self, user_id: UUID, room: str) -> None:
        if user_id in self._connections:
            self._connections[user_id].rooms.discard(room)
        self._leave_room(user_id, room)

    def _leave_room(self, user_id: UUID, room: str) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(user_id)
        if not members:
            del self._rooms[room]

    def is_in_room(self, user_id: UUID, room: str) -> bool:
        return user_id in self._rooms.get(room, set())

    async def send_personal(self, user_id: UUID, event: str, data: Any) -> bool:
        """
        Отправить событие конкретному сокету пользователя.

        Returns:
            True если отправлено, False если пользователь не подключен
        """
        conn = self._connections.get(user_id)
        if conn is None:
            return False
        try:
            await conn.websocket.send_json(make_frame(event, data))
        except Exception:
            # Соединение разорвано
            self._drop(user_id)
            return False
        return True

    async def emit(self, room: str, event: str, data: Any, exclude: UUID | None = None) -> int:
        """
        Отправить событие всем участникам комнаты.

        Returns:
            Количество успешно отправленных сообщений
        """
        members = self._rooms.get(room)
        if not members:
            return 0

        frame = make_frame(event, data)
        sent_count = 0
        failed_users: list[UUID] = []

        for user_id in list(members):
            if user_id == exclude or user_id not in self._connections:
                continue
            try:
                await self._connections[user_id].websocket.send_json(frame)
                sent_count += 1
            except Exception:
                failed_users.append(user_id)

        for user_id in failed_users:
            self._drop(user_id)

        await log_debug(f"WS {event} -> {room}: {sent_count}")
        return sent_count

    async def emit_to_user(self, user_id: UUID, event: str, data: Any) -> int:
        return await self.emit(user_room(user_id), event, data)

    async def broadcast_all(self, event: str, data: Any, exclude: UUID | None = None) -> int:
        """Отправить событие всем подключенным клиентам."""
        frame = make_frame(event, data)
        sent_count = 0
        failed_users: list[UUID] = []

        for user_id, conn in list(self._connections.items()):
            if user_id == exclude:
                continue
            try:
                await conn.websocket.send_json(frame)
                sent_count += 1
            except Exception:
                failed_users.append(user_id)

        for user_id in failed_users:
            self._drop(user_id)

        return sent_count

    async def _close_connection(self, conn: ConnectionInfo) -> None:
        try:
            await conn.websocket.close()
        except Exception:
            # Сокет уже закрыт клиентом
            pass


# Глобальный экземпляр
manager = ConnectionManager()
