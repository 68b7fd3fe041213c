# timebank/core/ledger/service.py
"""
Бизнес-логика кредитов.

Источник истины для баланса: леджер, balance = Σ EARNED − Σ SPENT.
Поле users.credits хранит проекцию леджера и пересчитывается в той же
транзакции, в которой пишутся записи леджера.
"""

from __future__ import annotations

import calendar
from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from asyncpg import Connection

from timebank.common.constants import LedgerType, TransactionStatus, TransactionType
from timebank.common.exceptions import BadRequestError, ConflictError, NotFoundError
from timebank.common.logger import log_info
from timebank.shared.models.booking import quantize_hours
from timebank.shared.models.common import Page, PaginationInfo, PaginationParams
from timebank.shared.models.user import UserSummary
from timebank.shared.models.wallet import (
    BalanceResponse,
    BuyCreditsRequest,
    CollaboratorCount,
    CollaboratorsResponse,
    CreditOperationResponse,
    CreditSeriesPoint,
    CreditSeriesResponse,
    LedgerEntryDTO,
    TransactionDTO,
    TransactionHistoryItem,
    TransactionHistoryResponse,
    TransactionStats,
    TransferRequest,
    WalletSummary,
)

if TYPE_CHECKING:
    from timebank.core.booking.repository import BookingRepository
    from timebank.core.ledger.repository import LedgerRepository
    from timebank.core.users.repository import UserRepository
    from timebank.infra.database import DatabaseManager

ANALYTICS_MONTHS = 6
TOP_COLLABORATORS = 3


def months_ago(now: datetime, months: int) -> datetime:
    """Та же дата N месяцев назад (день обрезается по длине месяца)."""
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


class LedgerService:
    """
    Баланс, история леджера и аналитика кошелька.
    """

    def __init__(
        self,
        db: "DatabaseManager",
        ledger_repo: "LedgerRepository",
        user_repo: "UserRepository",
        booking_repo: "BookingRepository",
    ) -> None:
        self.db = db
        self.ledger_repo = ledger_repo
        self.user_repo = user_repo
        self.booking_repo = booking_repo

    async def get_balance(self, user_id: UUID, conn: Connection | None = None) -> BalanceResponse:
        """Баланс по леджеру, округлённый до двух знаков."""
        earned, spent = await self.ledger_repo.totals(user_id, conn=conn)
        return BalanceResponse(
            balance=quantize_hours(earned - spent),
            earned=quantize_hours(earned),
            spent=quantize_hours(spent),
        )

    async def refresh_projection(self, user_id: UUID, conn: Connection) -> Decimal:
        """Пересчитывает users.credits по леджеру внутри текущей транзакции."""
        balance = (await self.get_balance(user_id, conn=conn)).balance
        await self.user_repo.set_credits(user_id, balance, conn=conn)
        return balance

    async def get_history(
        self,
        user_id: UUID,
        pagination: PaginationParams,
        entry_type: LedgerType | None = None,
    ) -> Page[LedgerEntryDTO]:
        rows = await self.ledger_repo.list_entries(user_id, entry_type, pagination.limit, pagination.offset)
        total = await self.ledger_repo.count_entries(user_id, entry_type)
        items = [LedgerEntryDTO.model_validate(dict(r)) for r in rows]
        return Page[LedgerEntryDTO].create(items, total, pagination)

    async def credit_series(self, user_id: UUID, now: datetime | None = None) -> CreditSeriesResponse:
        """Заработано/потрачено по месяцам за последние полгода."""
        since = months_ago(now or datetime.now(timezone.utc), ANALYTICS_MONTHS)
        rows = await self.ledger_repo.entries_since(user_id, since)

        buckets: dict[str, dict[str, Decimal]] = {}
        for row in rows:
            period = f"{row['created_at'].year}-{row['created_at'].month:02d}"
            bucket = buckets.setdefault(period, {"earned": Decimal("0"), "spent": Decimal("0")})
            key = "earned" if row["type"] == LedgerType.EARNED.value else "spent"
            bucket[key] += Decimal(row["hours"])

        series = [
            CreditSeriesPoint(
                period=period,
                earned=quantize_hours(values["earned"]),
                spent=quantize_hours(values["spent"]),
            )
            for period, values in sorted(buckets.items())
        ]
        return CreditSeriesResponse(series=series)

    async def top_collaborators(self, user_id: UUID) -> CollaboratorsResponse:
        """Три контрагента с наибольшим числом завершённых бронирований."""
        rows = await self.booking_repo.completed_participants(user_id)
        counter: Counter[UUID] = Counter()
        for row in rows:
            counterpart = row["receiver_id"] if row["provider_id"] == user_id else row["provider_id"]
            counter[counterpart] += 1
        return CollaboratorsResponse(
            top=[CollaboratorCount(user_id=uid, count=count) for uid, count in counter.most_common(TOP_COLLABORATORS)]
        )


class TransferService:
    """
    Прямые операции с кредитами: перевод, покупка, журнал транзакций.
    """

    def __init__(
        self,
        db: "DatabaseManager",
        ledger_repo: "LedgerRepository",
        user_repo: "UserRepository",
        ledger_service: LedgerService,
        max_purchase: Decimal = Decimal("1000"),
    ) -> None:
        self.db = db
        self.ledger_repo = ledger_repo
        self.user_repo = user_repo
        self.ledger_service = ledger_service
        self.max_purchase = max_purchase

    # === ПЕРЕВОД ===

    async def transfer(self, sender_id: UUID, request: TransferRequest) -> CreditOperationResponse:
        """
        Перевести кредиты другому пользователю.

        1. Блокирует строки обоих пользователей (в порядке id)
        2. Проверяет баланс отправителя по леджеру
        3. Пишет две TRANSFER-транзакции и две записи леджера
        4. Обновляет проекции балансов
        """
        receiver_id = request.receiver_id
        amount = request.amount

        if receiver_id == sender_id:
            raise BadRequestError("Cannot transfer to yourself")
        if not await self.user_repo.exists(receiver_id):
            raise NotFoundError("Receiver not found")

        async with self.db.transaction() as conn:
            for uid in sorted((sender_id, receiver_id), key=str):
                await self.user_repo.lock(uid, conn)

            balance = await self.ledger_service.get_balance(sender_id, conn=conn)
            if balance.balance < amount:
                raise ConflictError("Insufficient credits", details={"balance": str(balance.balance)})

            await self.ledger_repo.add_transaction(
                sender_id, receiver_id, amount, TransactionType.TRANSFER,
                request.description or "Credit transfer", conn=conn,
            )
            await self.ledger_repo.add_transaction(
                sender_id, receiver_id, amount, TransactionType.TRANSFER,
                request.description or "Credit received", conn=conn,
            )
            await self.ledger_repo.add_entry(
                sender_id, amount, LedgerType.SPENT,
                request.description or f"Transfer to user {str(receiver_id)[:8]}", conn=conn,
            )
            await self.ledger_repo.add_entry(
                receiver_id, amount, LedgerType.EARNED,
                request.description or f"Transfer from user {str(sender_id)[:8]}", conn=conn,
            )

            new_balance = await self.ledger_service.refresh_projection(sender_id, conn)
            await self.ledger_service.refresh_projection(receiver_id, conn)

        await log_info(
            f"Перевод {amount} кредитов: {sender_id} -> {receiver_id}",
            extra={"sender_id": str(sender_id), "receiver_id": str(receiver_id)},
        )
        return CreditOperationResponse(new_balance=new_balance)

    # === ПОКУПКА ===

    async def buy_credits(self, user_id: UUID, request: BuyCreditsRequest) -> CreditOperationResponse:
        """Тестовая покупка: BONUS-транзакция и запись EARNED в леджере."""
        amount = request.amount
        if amount > self.max_purchase:
            raise BadRequestError(f"Amount must not exceed {self.max_purchase}")

        async with self.db.transaction() as conn:
            if not await self.user_repo.lock(user_id, conn):
                raise NotFoundError("User not found")

            tx_row = await self.ledger_repo.add_transaction(
                user_id, user_id, amount, TransactionType.BONUS,
                f"Purchased {amount.normalize():f} credits", conn=conn,
            )
            await self.ledger_repo.add_entry(user_id, amount, LedgerType.EARNED, "Credit purchase", conn=conn)
            new_balance = await self.ledger_service.refresh_projection(user_id, conn)

        await log_info(f"Пользователь {user_id} купил {amount} кредитов")
        return CreditOperationResponse(
            new_balance=new_balance,
            transaction=TransactionDTO.model_validate(dict(tx_row)),
        )

    # === ЧТЕНИЕ ===

    async def wallet_summary(self, user_id: UUID) -> WalletSummary:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        profile = await self.user_repo.get_profile(user_id)
        balance = await self.ledger_service.get_balance(user_id)
        return WalletSummary(
            credits=balance.balance,
            reputation=user["reputation"],
            average_rating=profile["rating_avg"] if profile else 0.0,
            total_ratings=profile["total_ratings"] if profile else 0,
        )

    async def history(
        self,
        user_id: UUID,
        pagination: PaginationParams,
        tx_type: TransactionType | None = None,
    ) -> TransactionHistoryResponse:
        rows = await self.ledger_repo.list_transactions(user_id, tx_type, pagination.limit, pagination.offset)
        total = await self.ledger_repo.count_transactions(user_id, tx_type=tx_type)

        items = []
        for row in rows:
            data = dict(row)
            prefix = "receiver_" if row["sender_id"] == user_id else "sender_"
            other = UserSummary(
                id=row[f"{prefix}id"],
                name=row[f"{prefix}name"],
                display_name=row[f"{prefix}display_name"],
            )
            items.append(
                TransactionHistoryItem(
                    **data,
                    is_incoming=row["receiver_id"] == user_id,
                    other_user=other,
                )
            )
        return TransactionHistoryResponse(
            transactions=items,
            pagination=PaginationInfo.create(total, pagination),
        )

    async def stats(self, user_id: UUID) -> TransactionStats:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        balance = await self.ledger_service.get_balance(user_id)
        completed = await self.ledger_repo.count_transactions(user_id, status=TransactionStatus.COMPLETED)
        pending = await self.ledger_repo.count_transactions(user_id, status=TransactionStatus.PENDING)
        return TransactionStats(
            credits=balance.balance,
            reputation=user["reputation"],
            total_earned=balance.earned,
            total_spent=balance.spent,
            completed_transactions=completed,
            pending_transactions=pending,
        )
