from __future__ import annotations

from uuid import UUID

from asyncpg import Record

from timebank.infra.database import DatabaseManager


class RatingRepository:
    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    async def insert(
        self,
        rater_id: UUID,
        rated_id: UUID,
        booking_id: UUID | None,
        score: int,
        comment: str | None,
    ) -> Record:
        return await self.db.fetchrow(
            """
            INSERT INTO ratings (rater_id, rated_id, booking_id, score, comment)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *
            """,
            rater_id,
            rated_id,
            booking_id,
            score,
            comment,
        )

    async def exists(self, rater_id: UUID, rated_id: UUID, booking_id: UUID | None) -> bool:
        return bool(
            await self.db.fetchval(
                """
                SELECT EXISTS(
                    SELECT 1 FROM ratings
                    WHERE rater_id = $1 AND rated_id = $2 AND booking_id IS NOT DISTINCT FROM $3
                )
                """,
                rater_id,
                rated_id,
                booking_id,
            )
        )

    async def list_for_user(self, rated_id: UUID, limit: int, offset: int) -> list[Record]:
        return await self.db.fetch(
            """
            SELECT r.*, u.name AS rater_name, p.display_name AS rater_display_name
            FROM ratings r
            JOIN users u ON u.id = r.rater_id
            LEFT JOIN profiles p ON p.user_id = u.id
            WHERE r.rated_id = $1
            ORDER BY r.created_at DESC
            LIMIT $2 OFFSET $3
            """,
            rated_id,
            limit,
            offset,
        )

    async def count_for_user(self, rated_id: UUID) -> int:
        return await self.db.fetchval("SELECT COUNT(*) FROM ratings WHERE rated_id = $1", rated_id)

    async def aggregate(self, rated_id: UUID) -> tuple[float, int]:
        """Средняя оценка и количество оценок пользователя."""
        row = await self.db.fetchrow(
            "SELECT AVG(score)::float AS avg, COUNT(*) AS cnt FROM ratings WHERE rated_id = $1",
            rated_id,
        )
        if row is None or not row["cnt"]:
            return 0.0, 0
        return float(row["avg"]), int(row["cnt"])

    async def recent_scores(self, rated_id: UUID, limit: int = 10) -> list[int]:
        rows = await self.db.fetch(
            "SELECT score FROM ratings WHERE rated_id = $1 ORDER BY created_at DESC LIMIT $2",
            rated_id,
            limit,
        )
        return [r["score"] for r in rows]
