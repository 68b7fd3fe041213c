# tests/realtime/test_gateway.py
"""
Тесты WebSocket endpoint /ws.
"""

from __future__ import annotations

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from timebank.api.app import create_app
from timebank.api.auth import create_access_token
from timebank.api.dependencies import (
    get_booking_service,
    get_message_service,
    get_realtime,
    get_user_repository,
)
from timebank.common.constants import user_room
from timebank.realtime.connection_manager import ConnectionManager
from timebank.realtime.gateway import WS_UNAUTHORIZED, websocket_endpoint


class TestWebSocketGateway:
    """Тесты для /ws."""

    @pytest.fixture
    def manager(self) -> ConnectionManager:
        return ConnectionManager()

    @pytest.fixture
    def user_repo(self, make_user_row) -> AsyncMock:
        repo = AsyncMock()
        repo.get_by_id = AsyncMock(side_effect=lambda uid, conn=None: make_user_row(uid))
        return repo

    @pytest.fixture
    def client(self, manager, user_repo):
        app = create_app(use_lifespan=False)
        app.dependency_overrides[get_realtime] = lambda: manager
        app.dependency_overrides[get_message_service] = lambda: AsyncMock()
        app.dependency_overrides[get_booking_service] = lambda: AsyncMock()
        app.dependency_overrides[get_user_repository] = lambda: user_repo
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_invalid_token_closed(self, client: TestClient, manager: ConnectionManager) -> None:
        with client.websocket_connect("/ws?token=garbage") as ws:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_text()

        assert exc_info.value.code == WS_UNAUTHORIZED
        assert manager.active_connections == 0

    def test_unknown_user_closed(self, client: TestClient, user_repo: AsyncMock) -> None:
        """Валидный токен удалённого пользователя не даёт подключиться."""
        user_repo.get_by_id = AsyncMock(return_value=None)
        token = create_access_token(uuid4(), "ghost@example.com")

        with client.websocket_connect(f"/ws?token={token}") as ws:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_text()

        assert exc_info.value.code == WS_UNAUTHORIZED

    def test_ping_pong(self, client: TestClient, manager: ConnectionManager) -> None:
        user_id = uuid4()
        token = create_access_token(user_id, "alice@example.com")

        with client.websocket_connect(f"/ws?token={token}") as ws:
            ws.send_json({"event": "ping"})
            frame = ws.receive_json()
            online = manager.is_online(user_id)

        assert frame["event"] == "pong"
        assert "timestamp" in frame["data"]
        assert online

    def test_invalid_json_reported(self, client: TestClient) -> None:
        token = create_access_token(uuid4(), "alice@example.com")

        with client.websocket_connect(f"/ws?token={token}") as ws:
            ws.send_text("{not json")
            frame = ws.receive_json()

        assert frame == {"event": "error", "data": {"message": "Malformed frame"}}

    @pytest.mark.asyncio
    async def test_offline_broadcast_after_failed_send(
        self, manager: ConnectionManager, user_repo: AsyncMock
    ) -> None:
        """Сокет, снятый после ошибки отправки, при закрытии оповещает остальных."""
        user_id, observer_id = uuid4(), uuid4()
        observer_ws = AsyncMock()
        await manager.connect(observer_ws, observer_id)

        websocket = AsyncMock()
        websocket.send_json = AsyncMock(side_effect=RuntimeError("closed"))
        websocket.receive_text = AsyncMock(side_effect=['{"event": "ping"}', WebSocketDisconnect()])

        await websocket_endpoint(
            websocket=websocket,
            manager=manager,
            messages=AsyncMock(),
            bookings=AsyncMock(),
            user_repo=user_repo,
            token=create_access_token(user_id, "alice@example.com"),
        )

        assert not manager.is_online(user_id)
        assert not manager.is_in_room(user_id, user_room(user_id))
        observer_ws.send_json.assert_awaited_once_with(
            {"event": "user-status-changed", "data": {"user_id": str(user_id), "status": "offline"}}
        )
