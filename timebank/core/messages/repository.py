# timebank/core/messages/repository.py
"""
Репозиторий сообщений и чатов бронирований.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from asyncpg import Connection, Record

from timebank.common.constants import MessageType
from timebank.infra.database import DatabaseManager

MESSAGE_SELECT = """
    SELECT m.*, t.booking_id, s.name AS sender_name, sp.display_name AS sender_display_name
    FROM messages m
    LEFT JOIN message_threads t ON t.id = m.thread_id
    JOIN users s ON s.id = m.sender_id
    LEFT JOIN profiles sp ON sp.user_id = s.id
"""


class MessageRepository:
    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    def _executor(self, conn: Connection | None) -> Any:
        return conn if conn is not None else self.db

    # =========================================================================
    # ЧАТЫ БРОНИРОВАНИЙ
    # =========================================================================

    async def create_thread(self, booking_id: UUID, conn: Connection | None = None) -> Record:
        return await self._executor(conn).fetchrow(
            "INSERT INTO message_threads (booking_id) VALUES ($1) RETURNING *",
            booking_id,
        )

    async def get_thread_id(self, booking_id: UUID, conn: Connection | None = None) -> UUID | None:
        return await self._executor(conn).fetchval(
            "SELECT id FROM message_threads WHERE booking_id = $1",
            booking_id,
        )

    async def get_or_create_thread_id(self, booking_id: UUID) -> UUID:
        """Чат создаётся вместе с бронированием; для старых записей создаём лениво."""
        return await self.db.fetchval(
            """
            INSERT INTO message_threads (booking_id) VALUES ($1)
            ON CONFLICT (booking_id) DO UPDATE SET booking_id = EXCLUDED.booking_id
            RETURNING id
            """,
            booking_id,
        )

    # =========================================================================
    # СООБЩЕНИЯ
    # =========================================================================

    async def insert(
        self,
        sender_id: UUID,
        receiver_id: UUID,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        thread_id: UUID | None = None,
        conn: Connection | None = None,
    ) -> Record:
        return await self._executor(conn).fetchrow(
            """
            INSERT INTO messages (thread_id, sender_id, receiver_id, content, message_type)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *
            """,
            thread_id,
            sender_id,
            receiver_id,
            content,
            message_type.value,
        )

    async def list_thread(self, thread_id: UUID) -> list[Record]:
        return await self.db.fetch(
            MESSAGE_SELECT + " WHERE m.thread_id = $1 ORDER BY m.created_at ASC",
            thread_id,
        )

    async def list_direct(self, user_id: UUID, other_id: UUID) -> list[Record]:
        return await self.db.fetch(
            MESSAGE_SELECT
            + """
            WHERE m.thread_id IS NULL
              AND ((m.sender_id = $1 AND m.receiver_id = $2) OR (m.sender_id = $2 AND m.receiver_id = $1))
            ORDER BY m.created_at ASC
            """,
            user_id,
            other_id,
        )

    async def mark_direct_read(self, user_id: UUID, sender_id: UUID) -> int:
        status = await self.db.execute(
            """
            UPDATE messages SET read_at = NOW()
            WHERE thread_id IS NULL AND receiver_id = $1 AND sender_id = $2 AND read_at IS NULL
            """,
            user_id,
            sender_id,
        )
        return int(status.split()[-1]) if status else 0

    async def mark_thread_read(self, thread_id: UUID, user_id: UUID) -> int:
        status = await self.db.execute(
            """
            UPDATE messages SET read_at = NOW()
            WHERE thread_id = $1 AND receiver_id = $2 AND read_at IS NULL
            """,
            thread_id,
            user_id,
        )
        return int(status.split()[-1]) if status else 0

    async def direct_senders(self, user_id: UUID) -> list[Record]:
        """Отправители личных сообщений пользователю, последние первыми."""
        return await self.db.fetch(
            """
            SELECT u.id, u.name, p.display_name, MAX(m.created_at) AS last_at
            FROM messages m
            JOIN users u ON u.id = m.sender_id
            LEFT JOIN profiles p ON p.user_id = u.id
            WHERE m.receiver_id = $1 AND m.thread_id IS NULL
            GROUP BY u.id, u.name, p.display_name
            ORDER BY last_at DESC
            """,
            user_id,
        )

    async def conversations(self, user_id: UUID) -> list[Record]:
        """Бронирования пользователя с последним сообщением чата и числом непрочитанных."""
        return await self.db.fetch(
            """
            SELECT b.id AS booking_id, b.category, b.status,
                   o.id AS other_id, o.name AS other_name, op.display_name AS other_display_name,
                   lm.content AS last_content, lm.created_at AS last_created_at,
                   ls.name AS last_sender_name,
                   COALESCE(unread.cnt, 0) AS unread_count,
                   COALESCE(lm.created_at, b.created_at) AS activity_at
            FROM bookings b
            JOIN users o ON o.id = CASE WHEN b.provider_id = $1 THEN b.receiver_id ELSE b.provider_id END
            LEFT JOIN profiles op ON op.user_id = o.id
            LEFT JOIN message_threads t ON t.booking_id = b.id
            LEFT JOIN LATERAL (
                SELECT m.content, m.created_at, m.sender_id FROM messages m
                WHERE m.thread_id = t.id
                ORDER BY m.created_at DESC LIMIT 1
            ) lm ON TRUE
            LEFT JOIN users ls ON ls.id = lm.sender_id
            LEFT JOIN LATERAL (
                SELECT COUNT(*) AS cnt FROM messages m
                WHERE m.thread_id = t.id AND m.receiver_id = $1 AND m.read_at IS NULL
            ) unread ON TRUE
            WHERE b.provider_id = $1 OR b.receiver_id = $1
            ORDER BY activity_at DESC
            """,
            user_id,
        )
