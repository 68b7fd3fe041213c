# timebank/shared/models/rating.py
"""
Модели оценок и репутации.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from timebank.common.constants import ReputationBadge
from timebank.shared.models.common import PaginationInfo
from timebank.shared.models.user import UserSummary


class RatingCreateRequest(BaseModel):
    rated_id: UUID
    booking_id: UUID | None = None
    score: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=500)


class RatingDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    rater_id: UUID
    rated_id: UUID
    booking_id: UUID | None = None
    score: int
    comment: str | None = None
    created_at: datetime
    rater: UserSummary | None = None


class RatingResponse(BaseModel):
    rating: RatingDTO


class RatingStats(BaseModel):
    average_rating: float
    total_ratings: int


class UserRatingsResponse(BaseModel):
    ratings: list[RatingDTO]
    stats: RatingStats
    pagination: PaginationInfo


class ReputationResponse(BaseModel):
    """Репутация пользователя с бейджем и индексом доверия."""

    user_id: UUID
    reputation: int
    average_rating: float
    total_ratings: int
    badge: ReputationBadge
    trust_score: int
