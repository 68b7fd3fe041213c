# timebank/shared/models/common.py
"""
Общие модели для всех роутов.
"""

from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100


class PaginationParams(BaseModel):
    """Параметры пагинации."""

    page: int = Field(default=1, ge=1, description="Номер страницы")
    limit: int = Field(default=DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT, description="Размер страницы")

    @classmethod
    def clamped(cls, page: int | None, limit: int | None) -> "PaginationParams":
        """Приводит произвольные значения к допустимому диапазону."""
        return cls(
            page=max(1, page or 1),
            limit=min(MAX_PAGE_LIMIT, max(1, limit or DEFAULT_PAGE_LIMIT)),
        )

    @property
    def offset(self) -> int:
        """Смещение для SQL-запроса."""
        return (self.page - 1) * self.limit


class Page(BaseModel, Generic[T]):
    """Страница элементов {items, page, limit, total}."""

    items: list[T]
    page: int
    limit: int
    total: int

    @classmethod
    def create(cls, items: list[T], total: int, pagination: PaginationParams) -> "Page[T]":
        return cls(items=items, page=pagination.page, limit=pagination.limit, total=total)


class PaginationInfo(BaseModel):
    """Блок пагинации с количеством страниц."""

    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def create(cls, total: int, pagination: PaginationParams) -> "PaginationInfo":
        return cls(
            page=pagination.page,
            limit=pagination.limit,
            total=total,
            pages=math.ceil(total / pagination.limit),
        )


class CountResponse(BaseModel):
    count: int


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    status: str = "healthy"  # healthy, degraded
    service: str
    version: str | None = None
    timestamp: str
    dependencies: dict[str, str] = Field(default_factory=dict)
