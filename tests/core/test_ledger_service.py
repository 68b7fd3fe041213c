# tests/core/test_ledger_service.py
"""
Тесты для сервисов кредитов: баланс, аналитика, переводы и покупка.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from pydantic import ValidationError

from timebank.common.constants import LedgerType, TransactionType
from timebank.common.exceptions import BadRequestError, ConflictError, NotFoundError
from timebank.core.ledger.service import LedgerService, TransferService, months_ago
from timebank.shared.models.common import PaginationParams
from timebank.shared.models.wallet import (
    MAX_AMOUNT,
    BalanceResponse,
    BuyCreditsRequest,
    TransferRequest,
    _positive_amount,
)


class TestMonthsAgo:
    def test_simple(self) -> None:
        now = datetime(2026, 9, 15, tzinfo=timezone.utc)
        assert months_ago(now, 6) == datetime(2026, 3, 15, tzinfo=timezone.utc)

    def test_crosses_year(self) -> None:
        now = datetime(2026, 2, 10, tzinfo=timezone.utc)
        assert months_ago(now, 6) == datetime(2025, 8, 10, tzinfo=timezone.utc)

    def test_day_clamped_to_month_length(self) -> None:
        """31 августа минус полгода: 28 февраля."""
        now = datetime(2026, 8, 31, tzinfo=timezone.utc)
        assert months_ago(now, 6) == datetime(2026, 2, 28, tzinfo=timezone.utc)


class TestAmountValidation:
    """Границы сумм перевода."""

    def test_upper_bound_accepted(self) -> None:
        request = TransferRequest(receiver_id=uuid4(), amount=MAX_AMOUNT)
        assert request.amount == MAX_AMOUNT

    def test_above_bound_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TransferRequest(receiver_id=uuid4(), amount=Decimal("1e30"))

    def test_overflow_is_value_error(self) -> None:
        """Переполнение при округлении превращается в ValueError."""
        with pytest.raises(ValueError, match="out of range"):
            _positive_amount(Decimal("1e30"))


class TestLedgerService:
    """Тесты для LedgerService."""

    @pytest.fixture
    def ledger_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def user_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def booking_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def service(self, mock_db, ledger_repo, user_repo, booking_repo) -> LedgerService:
        return LedgerService(mock_db, ledger_repo, user_repo, booking_repo)

    @pytest.mark.asyncio
    async def test_balance_from_ledger(self, service: LedgerService, ledger_repo: AsyncMock) -> None:
        """Баланс = EARNED − SPENT, округление до двух знаков."""
        ledger_repo.totals = AsyncMock(return_value=(Decimal("10.005"), Decimal("3")))

        balance = await service.get_balance(uuid4())

        assert balance.balance == Decimal("7.01")
        assert balance.earned == Decimal("10.01")
        assert balance.spent == Decimal("3.00")

    @pytest.mark.asyncio
    async def test_refresh_projection(
        self, service: LedgerService, ledger_repo: AsyncMock, user_repo: AsyncMock, mock_conn: AsyncMock
    ) -> None:
        """users.credits получает значение, вычисленное по леджеру."""
        user_id = uuid4()
        ledger_repo.totals = AsyncMock(return_value=(Decimal("12"), Decimal("4.5")))

        result = await service.refresh_projection(user_id, mock_conn)

        assert result == Decimal("7.50")
        ledger_repo.totals.assert_awaited_once_with(user_id, conn=mock_conn)
        user_repo.set_credits.assert_awaited_once_with(user_id, Decimal("7.50"), conn=mock_conn)

    @pytest.mark.asyncio
    async def test_history_page(self, service: LedgerService, ledger_repo: AsyncMock) -> None:
        user_id = uuid4()
        ledger_repo.list_entries = AsyncMock(return_value=[
            {
                "id": uuid4(),
                "user_id": user_id,
                "hours": Decimal("2.00"),
                "type": "EARNED",
                "description": "Session completed",
                "ref_booking_id": uuid4(),
                "created_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
            }
        ])
        ledger_repo.count_entries = AsyncMock(return_value=21)

        page = await service.get_history(user_id, PaginationParams(page=2, limit=10), LedgerType.EARNED)

        assert page.total == 21
        assert page.page == 2
        assert page.items[0].type == LedgerType.EARNED
        ledger_repo.list_entries.assert_awaited_once_with(user_id, LedgerType.EARNED, 10, 10)

    @pytest.mark.asyncio
    async def test_credit_series_grouped_by_month(self, service: LedgerService, ledger_repo: AsyncMock) -> None:
        """Месяцы без записей в ряд не попадают."""
        ledger_repo.entries_since = AsyncMock(return_value=[
            {"created_at": datetime(2026, 4, 2, tzinfo=timezone.utc), "hours": Decimal("2"), "type": "EARNED"},
            {"created_at": datetime(2026, 4, 20, tzinfo=timezone.utc), "hours": Decimal("1.5"), "type": "SPENT"},
            {"created_at": datetime(2026, 6, 1, tzinfo=timezone.utc), "hours": Decimal("3"), "type": "EARNED"},
        ])
        now = datetime(2026, 7, 1, tzinfo=timezone.utc)

        result = await service.credit_series(uuid4(), now=now)

        assert [p.period for p in result.series] == ["2026-04", "2026-06"]
        assert result.series[0].earned == Decimal("2.00")
        assert result.series[0].spent == Decimal("1.50")
        assert ledger_repo.entries_since.call_args.args[1] == datetime(2026, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_top_collaborators(self, service: LedgerService, booking_repo: AsyncMock) -> None:
        me, a, b, c, d = (uuid4() for _ in range(5))
        booking_repo.completed_participants = AsyncMock(return_value=[
            {"provider_id": me, "receiver_id": a},
            {"provider_id": a, "receiver_id": me},
            {"provider_id": me, "receiver_id": b},
            {"provider_id": c, "receiver_id": me},
            {"provider_id": c, "receiver_id": me},
            {"provider_id": c, "receiver_id": me},
            {"provider_id": me, "receiver_id": d},
        ])

        result = await service.top_collaborators(me)

        assert [(x.user_id, x.count) for x in result.top] == [(c, 3), (a, 2), (b, 1)]


class TestTransferService:
    """Тесты для TransferService."""

    @pytest.fixture
    def ledger_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def user_repo(self) -> AsyncMock:
        repo = AsyncMock()
        repo.exists = AsyncMock(return_value=True)
        repo.lock = AsyncMock(return_value=True)
        return repo

    @pytest.fixture
    def ledger_service(self) -> AsyncMock:
        service = AsyncMock()
        service.get_balance = AsyncMock(
            return_value=BalanceResponse(balance=Decimal("5.00"), earned=Decimal("5.00"), spent=Decimal("0"))
        )
        service.refresh_projection = AsyncMock(side_effect=[Decimal("3.00"), Decimal("2.00")])
        return service

    @pytest.fixture
    def service(self, mock_db, ledger_repo, user_repo, ledger_service) -> TransferService:
        return TransferService(mock_db, ledger_repo, user_repo, ledger_service, max_purchase=Decimal("50"))

    @pytest.mark.asyncio
    async def test_transfer_to_self(self, service: TransferService) -> None:
        user_id = uuid4()
        with pytest.raises(BadRequestError, match="Cannot transfer to yourself"):
            await service.transfer(user_id, TransferRequest(receiver_id=user_id, amount=Decimal("1")))

    @pytest.mark.asyncio
    async def test_transfer_unknown_receiver(self, service: TransferService, user_repo: AsyncMock) -> None:
        user_repo.exists = AsyncMock(return_value=False)
        with pytest.raises(NotFoundError, match="Receiver not found"):
            await service.transfer(uuid4(), TransferRequest(receiver_id=uuid4(), amount=Decimal("1")))

    @pytest.mark.asyncio
    async def test_transfer_insufficient(self, service: TransferService, ledger_repo: AsyncMock) -> None:
        with pytest.raises(ConflictError, match="Insufficient credits"):
            await service.transfer(uuid4(), TransferRequest(receiver_id=uuid4(), amount=Decimal("6")))
        ledger_repo.add_entry.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transfer_success(
        self, service: TransferService, ledger_repo: AsyncMock, user_repo: AsyncMock, mock_conn: AsyncMock
    ) -> None:
        """Две TRANSFER-транзакции, SPENT у отправителя и EARNED у получателя."""
        sender_id, receiver_id = uuid4(), uuid4()

        result = await service.transfer(sender_id, TransferRequest(receiver_id=receiver_id, amount=Decimal("2")))

        assert result.success is True
        assert result.new_balance == Decimal("3.00")

        locked = [c.args[0] for c in user_repo.lock.call_args_list]
        assert locked == sorted([sender_id, receiver_id], key=str)

        tx_types = [c.args[3] for c in ledger_repo.add_transaction.call_args_list]
        assert tx_types == [TransactionType.TRANSFER, TransactionType.TRANSFER]

        entries = [(c.args[0], c.args[2]) for c in ledger_repo.add_entry.call_args_list]
        assert entries == [(sender_id, LedgerType.SPENT), (receiver_id, LedgerType.EARNED)]

    @pytest.mark.asyncio
    async def test_buy_over_limit(self, service: TransferService) -> None:
        with pytest.raises(BadRequestError):
            await service.buy_credits(uuid4(), BuyCreditsRequest(amount=Decimal("100")))

    @pytest.mark.asyncio
    async def test_buy_unknown_user(self, service: TransferService, user_repo: AsyncMock) -> None:
        user_repo.lock = AsyncMock(return_value=False)
        with pytest.raises(NotFoundError):
            await service.buy_credits(uuid4(), BuyCreditsRequest(amount=Decimal("5")))

    @pytest.mark.asyncio
    async def test_buy_success(
        self, service: TransferService, ledger_repo: AsyncMock, ledger_service: AsyncMock
    ) -> None:
        user_id = uuid4()
        ledger_repo.add_transaction = AsyncMock(return_value={
            "id": uuid4(),
            "sender_id": user_id,
            "receiver_id": user_id,
            "amount": Decimal("5.00"),
            "type": "BONUS",
            "status": "COMPLETED",
            "description": "Purchased 5 credits",
            "reference_id": None,
            "created_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
            "completed_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
        })
        ledger_service.refresh_projection = AsyncMock(return_value=Decimal("15.00"))

        result = await service.buy_credits(user_id, BuyCreditsRequest(amount=Decimal("5")))

        assert result.new_balance == Decimal("15.00")
        assert result.transaction.type == TransactionType.BONUS
        assert ledger_repo.add_transaction.call_args.args[4] == "Purchased 5 credits"
        ledger_repo.add_entry.assert_awaited_once()
        assert ledger_repo.add_entry.call_args.args[2] == LedgerType.EARNED

    @pytest.mark.asyncio
    async def test_history_marks_direction(self, service: TransferService, ledger_repo: AsyncMock) -> None:
        me, other = uuid4(), uuid4()
        base = {
            "amount": Decimal("1.00"),
            "type": "TRANSFER",
            "status": "COMPLETED",
            "description": None,
            "reference_id": None,
            "created_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
            "completed_at": None,
            "sender_name": "Me",
            "sender_display_name": None,
            "receiver_name": "Other",
            "receiver_display_name": "Bob",
        }
        ledger_repo.list_transactions = AsyncMock(return_value=[
            {**base, "id": uuid4(), "sender_id": me, "receiver_id": other},
        ])
        ledger_repo.count_transactions = AsyncMock(return_value=1)

        result = await service.history(me, PaginationParams(page=1, limit=20))

        item = result.transactions[0]
        assert item.is_incoming is False
        assert item.other_user.id == other
        assert item.other_user.display_name == "Bob"
        assert result.pagination.pages == 1
