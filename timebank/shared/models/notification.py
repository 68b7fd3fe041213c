# timebank/shared/models/notification.py
"""
Модели уведомлений.

Полезная нагрузка уведомления типизирована по kind: для каждого типа
своя модель, выбор модели идёт по дискриминатору kind.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from timebank.common.constants import NotificationKind
from timebank.shared.models.common import Page

MESSAGE_PREVIEW_LENGTH = 100


class BookingRequestPayload(BaseModel):
    kind: Literal["BOOKING_REQUEST"] = "BOOKING_REQUEST"
    booking_id: UUID
    hours: Decimal
    category: str


class BookingAcceptedPayload(BaseModel):
    kind: Literal["BOOKING_ACCEPTED"] = "BOOKING_ACCEPTED"
    booking_id: UUID
    slot: datetime | None = None


class BookingDeclinedPayload(BaseModel):
    kind: Literal["BOOKING_DECLINED"] = "BOOKING_DECLINED"
    booking_id: UUID


class BookingCancelledPayload(BaseModel):
    kind: Literal["BOOKING_CANCELLED"] = "BOOKING_CANCELLED"
    booking_id: UUID


class BookingCompletedPayload(BaseModel):
    kind: Literal["BOOKING_COMPLETED"] = "BOOKING_COMPLETED"
    booking_id: UUID


class CreditEarnedPayload(BaseModel):
    kind: Literal["CREDIT_EARNED"] = "CREDIT_EARNED"
    hours: Decimal


class CreditSpentPayload(BaseModel):
    kind: Literal["CREDIT_SPENT"] = "CREDIT_SPENT"
    hours: Decimal


class NewMessagePayload(BaseModel):
    kind: Literal["NEW_MESSAGE"] = "NEW_MESSAGE"
    message_id: UUID
    sender_id: UUID
    sender_name: str
    content: str
    booking_id: UUID | None = None

    @field_validator("content")
    @classmethod
    def preview(cls, v: str) -> str:
        return v[:MESSAGE_PREVIEW_LENGTH]


class NewRatingPayload(BaseModel):
    kind: Literal["NEW_RATING"] = "NEW_RATING"
    rating_id: UUID
    rater_name: str
    score: int = Field(..., ge=1, le=5)
    comment: str | None = None


NotificationPayload = Annotated[
    Union[
        BookingRequestPayload,
        BookingAcceptedPayload,
        BookingDeclinedPayload,
        BookingCancelledPayload,
        BookingCompletedPayload,
        CreditEarnedPayload,
        CreditSpentPayload,
        NewMessagePayload,
        NewRatingPayload,
    ],
    Field(discriminator="kind"),
]

_payload_adapter: TypeAdapter[Any] = TypeAdapter(NotificationPayload)


def parse_payload(kind: str, data: dict[str, Any]) -> Any:
    """
    Собирает типизированную нагрузку по kind.
    Неизвестный kind или неверные поля дают pydantic.ValidationError.
    """
    return _payload_adapter.validate_python({**data, "kind": getattr(kind, "value", kind)})


def payload_to_json(payload: BaseModel) -> dict[str, Any]:
    """Нагрузка для колонки JSONB (без kind, он хранится отдельно)."""
    return payload.model_dump(mode="json", exclude={"kind"})


class NotificationDTO(BaseModel):
    """Уведомление пользователя."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    kind: NotificationKind
    payload: NotificationPayload
    read_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "NotificationDTO":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            kind=row["kind"],
            payload=parse_payload(row["kind"], dict(row["payload"] or {})),
            read_at=row["read_at"],
            created_at=row["created_at"],
        )


class NotificationResponse(BaseModel):
    notification: NotificationDTO


NotificationPage = Page[NotificationDTO]
