# tests/core/test_messages_service.py
"""
Тесты для сервиса сообщений.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from timebank.common.constants import request_room, user_room
from timebank.common.exceptions import BadRequestError, ForbiddenError, NotFoundError
from timebank.core.messages.service import NEW_MESSAGE_EVENT, MessageService, message_from_row
from timebank.shared.models.message import MessageCreateRequest


def _message_row(sender_id: UUID, receiver_id: UUID, thread_id: UUID | None = None, **extra: Any) -> dict:
    row = {
        "id": uuid4(),
        "thread_id": thread_id,
        "sender_id": sender_id,
        "receiver_id": receiver_id,
        "content": "Hello",
        "message_type": "TEXT",
        "read_at": None,
        "created_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
    }
    row.update(extra)
    return row


class TestMessageFromRow:
    def test_sender_summary(self) -> None:
        sender_id = uuid4()
        row = _message_row(sender_id, uuid4(), sender_name="Alice", sender_display_name="Ali", booking_id=None)

        message = message_from_row(row)

        assert message.sender.id == sender_id
        assert message.sender.display_name == "Ali"


class TestMessageService:
    """Тесты для MessageService."""

    @pytest.fixture
    def message_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def booking_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def user_repo(self, make_user_row) -> AsyncMock:
        repo = AsyncMock()
        repo.exists = AsyncMock(return_value=True)
        repo.get_by_id = AsyncMock(side_effect=lambda uid, conn=None: make_user_row(uid, name="Sender"))
        return repo

    @pytest.fixture
    def service(
        self, mock_db, message_repo, booking_repo, user_repo, mock_notifications, mock_realtime
    ) -> MessageService:
        return MessageService(mock_db, message_repo, booking_repo, user_repo, mock_notifications, mock_realtime)

    @pytest.mark.asyncio
    async def test_direct_to_self(self, service: MessageService) -> None:
        user_id = uuid4()
        with pytest.raises(BadRequestError, match="Cannot message yourself"):
            await service.send(user_id, MessageCreateRequest(receiver_id=user_id, content="hi"))

    @pytest.mark.asyncio
    async def test_direct_unknown_receiver(self, service: MessageService, user_repo: AsyncMock) -> None:
        user_repo.exists = AsyncMock(return_value=False)
        with pytest.raises(NotFoundError, match="Receiver not found"):
            await service.send(uuid4(), MessageCreateRequest(receiver_id=uuid4(), content="hi"))

    @pytest.mark.asyncio
    async def test_direct_message_delivered_to_user_room(
        self,
        service: MessageService,
        message_repo: AsyncMock,
        mock_notifications: AsyncMock,
        mock_realtime: MagicMock,
    ) -> None:
        sender_id, receiver_id = uuid4(), uuid4()
        message_repo.insert = AsyncMock(return_value=_message_row(sender_id, receiver_id))

        message = await service.send(sender_id, MessageCreateRequest(receiver_id=receiver_id, content="Hello"))

        assert message.sender.name == "Sender"
        assert message.booking_id is None
        assert message_repo.insert.call_args.kwargs["thread_id"] is None

        room, event, _ = mock_realtime.emit.call_args.args
        assert room == user_room(receiver_id)
        assert event == NEW_MESSAGE_EVENT

        notified_user, payload = mock_notifications.create.call_args.args
        assert notified_user == receiver_id
        assert payload.kind == "NEW_MESSAGE"
        mock_notifications.publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_booking_message_goes_to_counterpart(
        self,
        service: MessageService,
        message_repo: AsyncMock,
        booking_repo: AsyncMock,
        mock_realtime: MagicMock,
        make_booking_row,
        provider_id: UUID,
        receiver_id: UUID,
    ) -> None:
        """Получатель сообщения в чате бронирования: второй участник."""
        booking = make_booking_row("ACCEPTED")
        thread_id = uuid4()
        booking_repo.get = AsyncMock(return_value=booking)
        message_repo.get_or_create_thread_id = AsyncMock(return_value=thread_id)
        message_repo.insert = AsyncMock(return_value=_message_row(receiver_id, provider_id, thread_id))

        message = await service.send(receiver_id, MessageCreateRequest(booking_id=booking["id"], content="Hello"))

        assert message_repo.insert.call_args.args[1] == provider_id
        assert message_repo.insert.call_args.kwargs["thread_id"] == thread_id
        assert message.booking_id == booking["id"]
        assert mock_realtime.emit.call_args.args[0] == request_room(booking["id"])

    @pytest.mark.asyncio
    async def test_booking_message_non_participant(
        self, service: MessageService, booking_repo: AsyncMock, make_booking_row
    ) -> None:
        booking = make_booking_row()
        booking_repo.get = AsyncMock(return_value=booking)
        with pytest.raises(ForbiddenError):
            await service.send(uuid4(), MessageCreateRequest(booking_id=booking["id"], content="hi"))

    @pytest.mark.asyncio
    async def test_direct_conversation_marks_read(
        self, service: MessageService, message_repo: AsyncMock
    ) -> None:
        me, other = uuid4(), uuid4()
        message_repo.list_direct = AsyncMock(return_value=[
            _message_row(other, me, sender_name="Other", sender_display_name=None, booking_id=None),
        ])

        messages = await service.direct_conversation(me, other)

        assert len(messages) == 1
        message_repo.mark_direct_read.assert_awaited_once_with(me, other)

    @pytest.mark.asyncio
    async def test_booking_messages_without_thread(
        self, service: MessageService, booking_repo: AsyncMock, message_repo: AsyncMock,
        make_booking_row, provider_id: UUID,
    ) -> None:
        booking_repo.get = AsyncMock(return_value=make_booking_row())
        message_repo.get_thread_id = AsyncMock(return_value=None)

        assert await service.booking_messages(provider_id, uuid4()) == []
        assert await service.mark_booking_read(provider_id, uuid4()) == 0

    @pytest.mark.asyncio
    async def test_conversations(self, service: MessageService, message_repo: AsyncMock) -> None:
        other_id = uuid4()
        message_repo.conversations = AsyncMock(return_value=[
            {
                "booking_id": uuid4(),
                "category": "Music",
                "status": "ACCEPTED",
                "other_id": other_id,
                "other_name": "Bob",
                "other_display_name": None,
                "last_content": None,
                "last_created_at": None,
                "last_sender_name": None,
                "unread_count": 0,
            },
            {
                "booking_id": uuid4(),
                "category": "Cooking",
                "status": "PENDING",
                "other_id": other_id,
                "other_name": "Bob",
                "other_display_name": "Bobby",
                "last_content": "See you",
                "last_created_at": datetime(2026, 3, 2, tzinfo=timezone.utc),
                "last_sender_name": "Bob",
                "unread_count": 2,
            },
        ])

        conversations = await service.conversations(uuid4())

        assert conversations[0].last_message is None
        assert conversations[1].last_message.content == "See you"
        assert conversations[1].unread_count == 2
        assert conversations[1].other_user.display_name == "Bobby"
