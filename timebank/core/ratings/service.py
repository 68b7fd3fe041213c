# timebank/core/ratings/service.py
"""
Оценки пользователей и репутация.

Пересчёт среднего и репутации выполняется последовательными запросами
после вставки оценки, без общей транзакции.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING
from uuid import UUID

from timebank.common.constants import BookingStatus, ReputationBadge
from timebank.common.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from timebank.common.logger import log_info
from timebank.shared.models.booking import BookingDTO
from timebank.shared.models.common import PaginationInfo, PaginationParams
from timebank.shared.models.notification import NewRatingPayload
from timebank.shared.models.rating import (
    RatingCreateRequest,
    RatingDTO,
    RatingStats,
    ReputationResponse,
    UserRatingsResponse,
)
from timebank.shared.models.user import UserSummary

if TYPE_CHECKING:
    from timebank.core.booking.repository import BookingRepository
    from timebank.core.notifications.service import NotificationService
    from timebank.core.ratings.repository import RatingRepository
    from timebank.core.users.repository import UserRepository

RECENT_RATINGS_WINDOW = 10
REPUTATION_SCALE = 20


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def reputation_from_scores(scores: list[int]) -> int:
    """Репутация 0..100 по последним оценкам."""
    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores) * REPUTATION_SCALE)


def badge_for(average_rating: float, total_ratings: int) -> ReputationBadge:
    if average_rating >= 4.5 and total_ratings >= 20:
        return ReputationBadge.GOLD
    if average_rating >= 4.0 and total_ratings >= 10:
        return ReputationBadge.SILVER
    return ReputationBadge.BRONZE


def trust_score(average_rating: float, reputation: int) -> int:
    return round_half_up(average_rating * 20 + reputation * 0.1)


class RatingService:
    def __init__(
        self,
        rating_repo: "RatingRepository",
        user_repo: "UserRepository",
        booking_repo: "BookingRepository",
        notifications: "NotificationService",
    ) -> None:
        self.rating_repo = rating_repo
        self.user_repo = user_repo
        self.booking_repo = booking_repo
        self.notifications = notifications

    async def create(self, rater_id: UUID, request: RatingCreateRequest) -> RatingDTO:
        rated_id = request.rated_id
        if rated_id == rater_id:
            raise BadRequestError("Cannot rate yourself")
        if not await self.user_repo.exists(rated_id):
            raise NotFoundError("User not found")

        if request.booking_id is not None:
            row = await self.booking_repo.get(request.booking_id)
            if row is None:
                raise NotFoundError("Booking not found")
            booking = BookingDTO.model_validate(dict(row))
            if booking.status != BookingStatus.COMPLETED:
                raise ConflictError("Can only rate completed bookings")
            if not booking.is_participant(rater_id):
                raise ForbiddenError("Not authorized to rate this booking")
            if not booking.is_participant(rated_id):
                raise BadRequestError("User was not involved in this booking")

        if await self.rating_repo.exists(rater_id, rated_id, request.booking_id):
            raise ConflictError("Rating already exists for this user/booking")

        rater = await self.user_repo.get_by_id(rater_id)
        row = await self.rating_repo.insert(rater_id, rated_id, request.booking_id, request.score, request.comment)
        rater_summary = UserSummary(id=rater["id"], name=rater["name"], display_name=rater["display_name"])
        rating = RatingDTO.model_validate({**dict(row), "rater": rater_summary})

        await self._recompute(rated_id)
        await self.notifications.notify(
            rated_id,
            NewRatingPayload(
                rating_id=rating.id,
                rater_name=rater_summary.name,
                score=rating.score,
                comment=rating.comment,
            ),
        )
        await log_info(f"Оценка {rating.score} от {rater_id} для {rated_id}")
        return rating

    async def _recompute(self, rated_id: UUID) -> None:
        average, count = await self.rating_repo.aggregate(rated_id)
        if count == 0:
            return
        await self.user_repo.update_rating_stats(rated_id, average, count)
        scores = await self.rating_repo.recent_scores(rated_id, RECENT_RATINGS_WINDOW)
        await self.user_repo.set_reputation(rated_id, reputation_from_scores(scores))

    async def user_ratings(self, user_id: UUID, pagination: PaginationParams) -> UserRatingsResponse:
        rows = await self.rating_repo.list_for_user(user_id, pagination.limit, pagination.offset)
        total = await self.rating_repo.count_for_user(user_id)
        profile = await self.user_repo.get_profile(user_id)

        ratings = [
            RatingDTO.model_validate({**dict(r), "rater": UserSummary.from_row(r, prefix="rater_")})
            for r in rows
        ]
        return UserRatingsResponse(
            ratings=ratings,
            stats=RatingStats(
                average_rating=float(profile["rating_avg"] or 0) if profile else 0.0,
                total_ratings=int(profile["total_ratings"] or 0) if profile else 0,
            ),
            pagination=PaginationInfo.create(total, pagination),
        )

    async def reputation(self, user_id: UUID) -> ReputationResponse:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        profile = await self.user_repo.get_profile(user_id)
        average = float(profile["rating_avg"] or 0) if profile else 0.0
        total = int(profile["total_ratings"] or 0) if profile else 0
        reputation = int(user["reputation"] or 0)
        return ReputationResponse(
            user_id=user_id,
            reputation=reputation,
            average_rating=average,
            total_ratings=total,
            badge=badge_for(average, total),
            trust_score=trust_score(average, reputation),
        )
