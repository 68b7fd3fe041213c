from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from asyncpg import Connection, Record

from timebank.common.constants import BookingRole, BookingStatus
from timebank.core.booking.state_machine import BookingStateMachine
from timebank.infra.database import DatabaseManager

# Колонка времени, проставляемая при переходе в статус
_STATUS_TIMESTAMP = {
    BookingStatus.ACCEPTED: "accepted_at",
    BookingStatus.CANCELLED: "cancelled_at",
    BookingStatus.COMPLETED: "completed_at",
}


class BookingRepository:
    def __init__(self, db: DatabaseManager):
        self.db = db

    def _executor(self, conn: Optional[Connection]) -> Any:
        return conn if conn is not None else self.db

    async def create(
        self,
        provider_id: UUID,
        receiver_id: UUID,
        hours: Decimal,
        category: str,
        note: Optional[str],
        conn: Optional[Connection] = None,
    ) -> Record:
        """Creates a PENDING booking."""
        return await self._executor(conn).fetchrow(
            """
            INSERT INTO bookings (provider_id, receiver_id, hours, category, note, status)
            VALUES ($1, $2, $3, $4, $5, 'PENDING')
            RETURNING *
            """,
            provider_id,
            receiver_id,
            hours,
            category,
            note,
        )

    async def get(self, booking_id: UUID, conn: Optional[Connection] = None) -> Optional[Record]:
        return await self._executor(conn).fetchrow("SELECT * FROM bookings WHERE id = $1", booking_id)

    async def list_for_user(
        self,
        user_id: UUID,
        role: BookingRole,
        status: Optional[BookingStatus],
        limit: int,
    ) -> List[Record]:
        """Bookings where the user is provider, receiver or either; newest first."""
        if role == BookingRole.PROVIDER:
            who = "provider_id = $1"
        elif role == BookingRole.RECEIVER:
            who = "receiver_id = $1"
        else:
            who = "(provider_id = $1 OR receiver_id = $1)"
        query = f"""
            SELECT * FROM bookings
            WHERE {who} AND ($2::text IS NULL OR status = $2)
            ORDER BY created_at DESC
            LIMIT $3
        """
        return await self.db.fetch(query, user_id, status.value if status else None, limit)

    async def transition(
        self,
        booking_id: UUID,
        new_status: BookingStatus,
        start_at: Optional[datetime] = None,
        conn: Optional[Connection] = None,
    ) -> Optional[Record]:
        """
        Conditional status update.

        Succeeds only if the current status is one of the allowed sources for
        new_status; returns None otherwise (already moved by someone else).
        """
        sources = [s.value for s in BookingStateMachine.sources_for(new_status)]
        assignments = ["status = $2"]
        ts_column = _STATUS_TIMESTAMP.get(new_status)
        if ts_column:
            assignments.append(f"{ts_column} = NOW()")
        args: list[Any] = [booking_id, new_status.value, sources]
        if start_at is not None:
            args.append(start_at)
            assignments.append(f"start_at = ${len(args)}")

        query = f"""
            UPDATE bookings SET {", ".join(assignments)}
            WHERE id = $1 AND status = ANY($3::text[])
            RETURNING *
        """
        return await self._executor(conn).fetchrow(query, *args)

    async def completed_participants(self, user_id: UUID) -> List[Record]:
        return await self.db.fetch(
            """
            SELECT provider_id, receiver_id FROM bookings
            WHERE status = 'COMPLETED' AND (provider_id = $1 OR receiver_id = $1)
            """,
            user_id,
        )
