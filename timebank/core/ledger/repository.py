# timebank/core/ledger/repository.py
"""
Репозиторий леджера и журнала транзакций.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from asyncpg import Connection, Record

from timebank.common.constants import LedgerType, TransactionStatus, TransactionType
from timebank.infra.database import DatabaseManager


class LedgerRepository:
    """Доступ к таблицам ledger_entries и transactions."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    def _executor(self, conn: Connection | None) -> Any:
        return conn if conn is not None else self.db

    # =========================================================================
    # ЛЕДЖЕР
    # =========================================================================

    async def totals(self, user_id: UUID, conn: Connection | None = None) -> tuple[Decimal, Decimal]:
        """Суммы EARNED и SPENT пользователя."""
        row = await self._executor(conn).fetchrow(
            """
            SELECT COALESCE(SUM(hours) FILTER (WHERE type = 'EARNED'), 0) AS earned,
                   COALESCE(SUM(hours) FILTER (WHERE type = 'SPENT'), 0) AS spent
            FROM ledger_entries
            WHERE user_id = $1
            """,
            user_id,
        )
        if row is None:
            return Decimal("0"), Decimal("0")
        return Decimal(row["earned"]), Decimal(row["spent"])

    async def add_entry(
        self,
        user_id: UUID,
        hours: Decimal,
        entry_type: LedgerType,
        description: str | None,
        ref_booking_id: UUID | None = None,
        conn: Connection | None = None,
    ) -> Record:
        return await self._executor(conn).fetchrow(
            """
            INSERT INTO ledger_entries (user_id, hours, type, description, ref_booking_id)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *
            """,
            user_id,
            hours,
            entry_type.value,
            description,
            ref_booking_id,
        )

    async def list_entries(
        self,
        user_id: UUID,
        entry_type: LedgerType | None,
        limit: int,
        offset: int,
    ) -> list[Record]:
        return await self.db.fetch(
            """
            SELECT * FROM ledger_entries
            WHERE user_id = $1 AND ($2::text IS NULL OR type = $2)
            ORDER BY created_at DESC
            LIMIT $3 OFFSET $4
            """,
            user_id,
            entry_type.value if entry_type else None,
            limit,
            offset,
        )

    async def count_entries(self, user_id: UUID, entry_type: LedgerType | None) -> int:
        return await self.db.fetchval(
            "SELECT COUNT(*) FROM ledger_entries WHERE user_id = $1 AND ($2::text IS NULL OR type = $2)",
            user_id,
            entry_type.value if entry_type else None,
        )

    async def entries_since(self, user_id: UUID, since: datetime) -> list[Record]:
        return await self.db.fetch(
            """
            SELECT created_at, hours, type FROM ledger_entries
            WHERE user_id = $1 AND created_at >= $2
            ORDER BY created_at ASC
            """,
            user_id,
            since,
        )

    # =========================================================================
    # ТРАНЗАКЦИИ
    # =========================================================================

    async def add_transaction(
        self,
        sender_id: UUID,
        receiver_id: UUID,
        amount: Decimal,
        tx_type: TransactionType,
        description: str | None,
        reference_id: UUID | None = None,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        conn: Connection | None = None,
    ) -> Record:
        return await self._executor(conn).fetchrow(
            """
            INSERT INTO transactions
                (sender_id, receiver_id, amount, type, status, description, reference_id, completed_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7,
                    CASE WHEN $5 = 'COMPLETED' THEN NOW() END)
            RETURNING *
            """,
            sender_id,
            receiver_id,
            amount,
            tx_type.value,
            status.value,
            description,
            reference_id,
        )

    async def list_transactions(
        self,
        user_id: UUID,
        tx_type: TransactionType | None,
        limit: int,
        offset: int,
    ) -> list[Record]:
        """Транзакции пользователя (отправитель или получатель) с именами сторон."""
        return await self.db.fetch(
            """
            SELECT t.*,
                   s.name AS sender_name, sp.display_name AS sender_display_name,
                   r.name AS receiver_name, rp.display_name AS receiver_display_name
            FROM transactions t
            JOIN users s ON s.id = t.sender_id
            LEFT JOIN profiles sp ON sp.user_id = s.id
            JOIN users r ON r.id = t.receiver_id
            LEFT JOIN profiles rp ON rp.user_id = r.id
            WHERE (t.sender_id = $1 OR t.receiver_id = $1)
              AND ($2::text IS NULL OR t.type = $2)
            ORDER BY t.created_at DESC
            LIMIT $3 OFFSET $4
            """,
            user_id,
            tx_type.value if tx_type else None,
            limit,
            offset,
        )

    async def count_transactions(
        self,
        user_id: UUID,
        tx_type: TransactionType | None = None,
        status: TransactionStatus | None = None,
    ) -> int:
        return await self.db.fetchval(
            """
            SELECT COUNT(*) FROM transactions
            WHERE (sender_id = $1 OR receiver_id = $1)
              AND ($2::text IS NULL OR type = $2)
              AND ($3::text IS NULL OR status = $3)
            """,
            user_id,
            tx_type.value if tx_type else None,
            status.value if status else None,
        )
