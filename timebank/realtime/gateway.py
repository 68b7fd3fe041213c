# timebank/realtime/gateway.py
"""
WebSocket endpoint /ws?token=<token>.

Неверный токен или неизвестный пользователь: соединение закрывается
с кодом 4401 до подписки на какие-либо комнаты.
"""

from __future__ import annotations

import json
from typing import Annotated

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from timebank.api.auth import decode_access_token
from timebank.api.dependencies import (
    get_booking_service,
    get_message_service,
    get_realtime,
    get_user_repository,
)
from timebank.common.logger import log_info
from timebank.core.booking.service import BookingService
from timebank.core.messages.service import MessageService
from timebank.core.users.repository import UserRepository
from timebank.realtime.connection_manager import ConnectionManager
from timebank.realtime.handlers import ClientSession, RealtimeHandlers

WS_UNAUTHORIZED = 4401

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    manager: Annotated[ConnectionManager, Depends(get_realtime)],
    messages: Annotated[MessageService, Depends(get_message_service)],
    bookings: Annotated[BookingService, Depends(get_booking_service)],
    user_repo: Annotated[UserRepository, Depends(get_user_repository)],
    token: str | None = Query(default=None),
) -> None:
    auth = decode_access_token(token) if token else None
    user = await user_repo.get_by_id(auth.user_id) if auth else None
    if user is None:
        await websocket.accept()
        await websocket.close(code=WS_UNAUTHORIZED, reason="Authentication error")
        return

    session = ClientSession(user_id=user["id"], name=user["display_name"] or user["name"])
    handlers = RealtimeHandlers(manager, messages, bookings, user_repo)

    await manager.connect(websocket, session.user_id)
    await log_info(f"WebSocket: пользователь {session.user_id} подключён")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                frame = None
            await handlers.dispatch(session, frame)
    except WebSocketDisconnect:
        pass
    finally:
        if manager.release(session.user_id, websocket):
            await handlers.on_disconnect(session)
            await log_info(f"WebSocket: пользователь {session.user_id} отключён")
