# timebank/core/notifications/repository.py
"""
Репозиторий уведомлений.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from asyncpg import Connection, Record

from timebank.infra.database import DatabaseManager


class NotificationRepository:
    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    async def insert(
        self,
        user_id: UUID,
        kind: str,
        payload: dict[str, Any],
        conn: Connection | None = None,
    ) -> Record:
        executor = conn if conn is not None else self.db
        return await executor.fetchrow(
            """
            INSERT INTO notifications (user_id, kind, payload)
            VALUES ($1, $2, $3)
            RETURNING *
            """,
            user_id,
            kind,
            payload,
        )

    async def list_for_user(self, user_id: UUID, limit: int, offset: int) -> list[Record]:
        return await self.db.fetch(
            """
            SELECT * FROM notifications
            WHERE user_id = $1
            ORDER BY created_at DESC
            LIMIT $2 OFFSET $3
            """,
            user_id,
            limit,
            offset,
        )

    async def count_for_user(self, user_id: UUID) -> int:
        return await self.db.fetchval("SELECT COUNT(*) FROM notifications WHERE user_id = $1", user_id)

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> Record | None:
        """Отмечает прочитанным; None если уведомление чужое или не существует."""
        return await self.db.fetchrow(
            """
            UPDATE notifications SET read_at = COALESCE(read_at, NOW())
            WHERE id = $1 AND user_id = $2
            RETURNING *
            """,
            notification_id,
            user_id,
        )

    async def mark_all_read(self, user_id: UUID) -> int:
        status = await self.db.execute(
            "UPDATE notifications SET read_at = NOW() WHERE user_id = $1 AND read_at IS NULL",
            user_id,
        )
        # asyncpg возвращает статус вида "UPDATE 3"
        return int(status.split()[-1]) if status else 0
