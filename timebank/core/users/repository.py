# timebank/core/users/repository.py
"""
Репозиторий пользователей и профилей.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from asyncpg import Connection, Record

from timebank.infra.database import DatabaseManager

PROFILE_SELECT = """
    SELECT p.user_id, p.display_name, u.name, p.skills, p.categories, p.location,
           p.rating_avg, p.total_ratings, u.reputation
    FROM profiles p
    JOIN users u ON u.id = p.user_id
"""


class UserRepository:
    """Доступ к таблицам users и profiles."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    def _executor(self, conn: Connection | None) -> Any:
        return conn if conn is not None else self.db

    # =========================================================================
    # ПОЛЬЗОВАТЕЛИ
    # =========================================================================

    async def get_by_id(self, user_id: UUID, conn: Connection | None = None) -> Record | None:
        """Пользователь с отображаемым именем из профиля."""
        return await self._executor(conn).fetchrow(
            """
            SELECT u.id, u.email, u.name, u.credits, u.reputation, u.last_active_at,
                   u.created_at, p.display_name
            FROM users u
            LEFT JOIN profiles p ON p.user_id = u.id
            WHERE u.id = $1
            """,
            user_id,
        )

    async def exists(self, user_id: UUID, conn: Connection | None = None) -> bool:
        return bool(
            await self._executor(conn).fetchval("SELECT EXISTS(SELECT 1 FROM users WHERE id = $1)", user_id)
        )

    async def lock(self, user_id: UUID, conn: Connection) -> bool:
        """Блокирует строку пользователя до конца транзакции."""
        row = await conn.fetchrow("SELECT id FROM users WHERE id = $1 FOR UPDATE", user_id)
        return row is not None

    async def set_credits(self, user_id: UUID, credits: Decimal, conn: Connection | None = None) -> None:
        """Обновляет кэшированный баланс (проекция леджера)."""
        await self._executor(conn).execute("UPDATE users SET credits = $2 WHERE id = $1", user_id, credits)

    async def add_reputation(self, user_id: UUID, delta: int, conn: Connection | None = None) -> None:
        await self._executor(conn).execute(
            "UPDATE users SET reputation = reputation + $2 WHERE id = $1", user_id, delta
        )

    async def set_reputation(self, user_id: UUID, reputation: int, conn: Connection | None = None) -> None:
        await self._executor(conn).execute("UPDATE users SET reputation = $2 WHERE id = $1", user_id, reputation)

    async def touch_last_active(self, user_id: UUID) -> None:
        await self.db.execute("UPDATE users SET last_active_at = NOW() WHERE id = $1", user_id)

    async def create(self, email: str, name: str, password_hash: str) -> Record:
        return await self.db.fetchrow(
            """
            INSERT INTO users (email, name, password_hash)
            VALUES ($1, $2, $3)
            RETURNING id, email, name, credits, reputation, last_active_at, created_at
            """,
            email,
            name,
            password_hash,
        )

    async def get_by_email(self, email: str) -> Record | None:
        return await self.db.fetchrow(
            "SELECT id, email, name, credits, reputation, last_active_at, created_at FROM users WHERE email = $1",
            email,
        )

    # =========================================================================
    # ПРОФИЛИ
    # =========================================================================

    async def create_profile(
        self,
        user_id: UUID,
        display_name: str | None,
        skills: list[str],
        categories: list[str],
        location: str | None = None,
    ) -> None:
        await self.db.execute(
            """
            INSERT INTO profiles (user_id, display_name, skills, categories, location)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (user_id) DO NOTHING
            """,
            user_id,
            display_name,
            skills,
            categories,
            location,
        )

    async def get_profile(self, user_id: UUID) -> Record | None:
        return await self.db.fetchrow(PROFILE_SELECT + " WHERE p.user_id = $1", user_id)

    async def update_rating_stats(self, user_id: UUID, rating_avg: float, total_ratings: int) -> None:
        await self.db.execute(
            "UPDATE profiles SET rating_avg = $2, total_ratings = $3 WHERE user_id = $1",
            user_id,
            rating_avg,
            total_ratings,
        )

    async def search_profiles(
        self,
        skills: list[str],
        location: str | None,
        min_reputation: int,
        limit: int,
    ) -> list[Record]:
        """Поиск по пересечению навыков, подстроке локации и минимальной репутации."""
        conditions = ["u.reputation >= $1"]
        args: list[Any] = [min_reputation]
        if skills:
            args.append(skills)
            conditions.append(f"p.skills && ${len(args)}::text[]")
        if location:
            args.append(f"%{location}%")
            conditions.append(f"p.location ILIKE ${len(args)}")
        args.append(limit)
        query = (
            PROFILE_SELECT
            + " WHERE " + " AND ".join(conditions)
            + f" ORDER BY p.rating_avg DESC LIMIT ${len(args)}"
        )
        return await self.db.fetch(query, *args)

    async def candidate_profiles(
        self,
        category: str,
        skills: list[str],
        exclude_user_id: UUID,
        limit: int = 50,
    ) -> list[Record]:
        """Кандидаты с нужной категорией (и хотя бы одним навыком, если навыки заданы)."""
        query = PROFILE_SELECT + " WHERE $1 = ANY(p.categories) AND p.user_id <> $2"
        args: list[Any] = [category, exclude_user_id]
        if skills:
            args.append(skills)
            query += f" AND p.skills && ${len(args)}::text[]"
        args.append(limit)
        query += f" ORDER BY p.created_at LIMIT ${len(args)}"
        return await self.db.fetch(query, *args)

    async def other_profiles(self, exclude_user_id: UUID, limit: int = 200) -> list[Record]:
        return await self.db.fetch(
            PROFILE_SELECT + " WHERE p.user_id <> $1 ORDER BY p.created_at LIMIT $2",
            exclude_user_id,
            limit,
        )
