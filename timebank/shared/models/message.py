# timebank/shared/models/message.py
"""
Модели сообщений чата.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from timebank.common.constants import BookingStatus, MessageType
from timebank.shared.models.user import UserSummary


class MessageCreateRequest(BaseModel):
    """
    Новое сообщение.
    Указывается ровно одна цель: receiver_id (личное) или booking_id (чат бронирования).
    """

    receiver_id: UUID | None = None
    booking_id: UUID | None = None
    content: str = Field(..., min_length=1, max_length=1000)
    message_type: MessageType = MessageType.TEXT

    @field_validator("content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("content must not be blank")
        return v

    @model_validator(mode="after")
    def one_target(self) -> "MessageCreateRequest":
        if (self.receiver_id is None) == (self.booking_id is None):
            raise ValueError("exactly one of receiver_id or booking_id is required")
        return self


class MessageDTO(BaseModel):
    """Сообщение."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    thread_id: UUID | None = None
    booking_id: UUID | None = None
    sender_id: UUID
    receiver_id: UUID
    content: str
    message_type: MessageType
    read_at: datetime | None = None
    created_at: datetime
    sender: UserSummary | None = None


class MessageListResponse(BaseModel):
    messages: list[MessageDTO]


class MessageResponse(BaseModel):
    message: MessageDTO


class SendersResponse(BaseModel):
    users: list[UserSummary]


class LastMessage(BaseModel):
    content: str
    sender_name: str
    created_at: datetime


class ConversationDTO(BaseModel):
    """Чат бронирования в списке диалогов."""

    booking_id: UUID
    category: str
    status: BookingStatus
    other_user: UserSummary
    last_message: LastMessage | None = None
    unread_count: int = 0


class ConversationListResponse(BaseModel):
    conversations: list[ConversationDTO]
