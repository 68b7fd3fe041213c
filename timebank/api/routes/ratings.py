from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from timebank.api.auth import CurrentUserId
from timebank.api.dependencies import get_rating_service
from timebank.core.ratings import RatingService
from timebank.shared.models.common import PaginationParams
from timebank.shared.models.rating import (
    RatingCreateRequest,
    RatingResponse,
    ReputationResponse,
    UserRatingsResponse,
)

router = APIRouter(prefix="/ratings", tags=["Ratings"])

Service = Annotated[RatingService, Depends(get_rating_service)]

RATINGS_DEFAULT_LIMIT = 10


@router.post("", response_model=RatingResponse, status_code=status.HTTP_201_CREATED)
async def create_rating(request: RatingCreateRequest, user_id: CurrentUserId, service: Service):
    return RatingResponse(rating=await service.create(user_id, request))


@router.get("/user/{rated_id}", response_model=UserRatingsResponse)
async def user_ratings(
    rated_id: UUID,
    service: Service,
    page: Optional[int] = None,
    limit: Optional[int] = None,
):
    pagination = PaginationParams.clamped(page, limit or RATINGS_DEFAULT_LIMIT)
    return await service.user_ratings(rated_id, pagination)


@router.get("/user/{rated_id}/reputation", response_model=ReputationResponse)
async def user_reputation(rated_id: UUID, service: Service):
    return await service.reputation(rated_id)
