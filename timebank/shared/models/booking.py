# timebank/shared/models/booking.py
"""
Модели бронирований.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from timebank.common.constants import HOURS_QUANT, BookingStatus


def quantize_hours(value: Decimal) -> Decimal:
    """Округляет часы до двух знаков."""
    return value.quantize(HOURS_QUANT, rounding=ROUND_HALF_UP)


class BookingCreateRequest(BaseModel):
    """Запрос на создание бронирования."""

    provider_id: UUID = Field(..., description="Пользователь, чьё время бронируется")
    hours: Decimal = Field(..., gt=0, le=999, description="Количество часов")
    category: str = Field(..., min_length=1, max_length=120, description="Категория услуги")
    note: str | None = Field(None, max_length=1000, description="Комментарий к запросу")

    @field_validator("hours")
    @classmethod
    def round_hours(cls, v: Decimal) -> Decimal:
        rounded = quantize_hours(v)
        if rounded <= 0:
            raise ValueError("hours must be greater than 0")
        return rounded

    @field_validator("category", mode="before")
    @classmethod
    def strip_category(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("note", mode="before")
    @classmethod
    def empty_note_is_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class BookingAcceptRequest(BaseModel):
    """Принятие бронирования с опциональным временем начала."""

    slot: datetime | None = None


class BookingDTO(BaseModel):
    """Бронирование."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    provider_id: UUID
    receiver_id: UUID
    hours: Decimal
    category: str
    note: str | None = None
    status: BookingStatus
    start_at: datetime | None = None
    accepted_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime

    def is_participant(self, user_id: UUID) -> bool:
        return user_id in (self.provider_id, self.receiver_id)

    def counterpart_of(self, user_id: UUID) -> UUID:
        """Второй участник бронирования."""
        return self.receiver_id if user_id == self.provider_id else self.provider_id


class BookingResponse(BaseModel):
    booking: BookingDTO


class BookingListResponse(BaseModel):
    bookings: list[BookingDTO]
