# timebank/shared/models/wallet.py
"""
Модели кошелька: леджер, транзакции, переводы и аналитика.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from timebank.common.constants import LedgerType, TransactionStatus, TransactionType
from timebank.shared.models.booking import quantize_hours
from timebank.shared.models.common import PaginationInfo
from timebank.shared.models.user import UserSummary


class LedgerEntryDTO(BaseModel):
    """Запись леджера."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    hours: Decimal
    type: LedgerType
    description: str | None = None
    ref_booking_id: UUID | None = None
    created_at: datetime


class BalanceResponse(BaseModel):
    """Баланс, вычисленный по леджеру."""

    balance: Decimal
    earned: Decimal
    spent: Decimal


class CreditSeriesPoint(BaseModel):
    period: str  # YYYY-MM
    earned: Decimal
    spent: Decimal


class CreditSeriesResponse(BaseModel):
    series: list[CreditSeriesPoint]


class CollaboratorCount(BaseModel):
    user_id: UUID
    count: int


class CollaboratorsResponse(BaseModel):
    top: list[CollaboratorCount]


class TransactionDTO(BaseModel):
    """Транзакция (журнал операций для пользователя)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    amount: Decimal
    type: TransactionType
    status: TransactionStatus
    description: str | None = None
    reference_id: UUID | None = None
    created_at: datetime
    completed_at: datetime | None = None


class TransactionHistoryItem(TransactionDTO):
    """Транзакция с точки зрения текущего пользователя."""

    is_incoming: bool
    other_user: UserSummary | None = None


class TransactionHistoryResponse(BaseModel):
    transactions: list[TransactionHistoryItem]
    pagination: PaginationInfo


class WalletSummary(BaseModel):
    """Сводка кошелька для /transactions/wallet."""

    credits: Decimal
    reputation: int
    average_rating: float
    total_ratings: int


class TransactionStats(BaseModel):
    credits: Decimal
    reputation: int
    total_earned: Decimal
    total_spent: Decimal
    completed_transactions: int
    pending_transactions: int


# Предел NUMERIC(12,2)
MAX_AMOUNT = Decimal("9999999999.99")


def _positive_amount(v: Decimal) -> Decimal:
    try:
        rounded = quantize_hours(v)
    except InvalidOperation:
        raise ValueError("amount is out of range")
    if rounded <= 0:
        raise ValueError("amount must be greater than 0")
    return rounded


class TransferRequest(BaseModel):
    """Перевод кредитов другому пользователю."""

    receiver_id: UUID
    amount: Decimal = Field(..., gt=0, le=MAX_AMOUNT)
    description: str | None = Field(None, max_length=500)

    @field_validator("amount")
    @classmethod
    def round_amount(cls, v: Decimal) -> Decimal:
        return _positive_amount(v)


class BuyCreditsRequest(BaseModel):
    """Покупка кредитов (тестовая)."""

    amount: Decimal = Field(..., gt=0, le=1000)

    @field_validator("amount")
    @classmethod
    def round_amount(cls, v: Decimal) -> Decimal:
        return _positive_amount(v)


class CreditOperationResponse(BaseModel):
    """Результат перевода или покупки."""

    success: bool = True
    new_balance: Decimal
    transaction: TransactionDTO | None = None
