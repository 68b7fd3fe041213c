# tests/core/test_booking_state.py
"""
Тесты машины состояний и репозитория бронирований.
"""

from __future__ import annotations

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from timebank.common.constants import BookingRole, BookingStatus
from timebank.core.booking.repository import BookingRepository
from timebank.core.booking.state_machine import BookingStateMachine


class TestBookingStateMachine:
    """Тесты разрешённых переходов."""

    @pytest.mark.parametrize(
        "current, new, allowed",
        [
            ("PENDING", "ACCEPTED", True),
            ("PENDING", "DECLINED", True),
            ("PENDING", "CANCELLED", True),
            ("PENDING", "COMPLETED", False),
            ("ACCEPTED", "COMPLETED", True),
            ("ACCEPTED", "CANCELLED", True),
            ("ACCEPTED", "DECLINED", False),
            ("COMPLETED", "CANCELLED", False),
            ("DECLINED", "ACCEPTED", False),
            ("UNKNOWN", "ACCEPTED", False),
        ],
    )
    def test_can_transition(self, current: str, new: str, allowed: bool) -> None:
        assert BookingStateMachine.can_transition(current, new) is allowed

    def test_sources_for_cancelled(self) -> None:
        """Отмена возможна из PENDING и ACCEPTED."""
        assert BookingStateMachine.sources_for(BookingStatus.CANCELLED) == [
            BookingStatus.PENDING,
            BookingStatus.ACCEPTED,
        ]

    def test_sources_for_completed(self) -> None:
        assert BookingStateMachine.sources_for(BookingStatus.COMPLETED) == [BookingStatus.ACCEPTED]


class TestBookingRepository:
    """Тесты SQL-обёрток репозитория."""

    @pytest.mark.asyncio
    async def test_transition_is_conditional(self, mock_db: AsyncMock, mock_conn: AsyncMock) -> None:
        """Обновление ограничено допустимыми исходными статусами."""
        repo = BookingRepository(mock_db)
        booking_id = uuid4()

        result = await repo.transition(booking_id, BookingStatus.COMPLETED, conn=mock_conn)

        assert result is None
        query, *args = mock_conn.fetchrow.call_args.args
        assert "status = ANY(" in query
        assert "completed_at = NOW()" in query
        assert booking_id in args
        assert ["ACCEPTED"] in args

    @pytest.mark.asyncio
    async def test_list_for_provider_role(self, mock_db: AsyncMock) -> None:
        repo = BookingRepository(mock_db)
        user_id = uuid4()

        await repo.list_for_user(user_id, BookingRole.PROVIDER, BookingStatus.PENDING, 100)

        query, *args = mock_db.fetch.call_args.args
        assert "provider_id = $1" in query
        assert "receiver_id = $1" not in query
        assert "PENDING" in args
