# timebank/shared/models/user.py
"""
Модели пользователей и профилей (только чтение).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserSummary(BaseModel):
    """Краткая карточка пользователя для вложения в ответы."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    display_name: str | None = None

    @classmethod
    def from_row(cls, row: Any, prefix: str = "") -> "UserSummary":
        return cls(
            id=row[f"{prefix}id"],
            name=row[f"{prefix}name"],
            display_name=row.get(f"{prefix}display_name"),
        )


class UserDTO(BaseModel):
    """Пользователь."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    credits: Decimal = Decimal("0")
    reputation: int = 0
    last_active_at: datetime | None = None
    created_at: datetime


class ProfileDTO(BaseModel):
    """Профиль пользователя с навыками и рейтингом."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    display_name: str | None = None
    name: str | None = None
    skills: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    location: str | None = None
    rating_avg: float = 0.0
    total_ratings: int = 0
    reputation: int = 0
