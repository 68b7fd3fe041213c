from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from timebank.api.auth import CurrentUserId
from timebank.api.dependencies import get_matching_service
from timebank.core.matching import MatchingService
from timebank.shared.models.matching import RecommendationsResponse

router = APIRouter(prefix="/recommendations", tags=["Recommendations"])


@router.get("", response_model=RecommendationsResponse)
async def recommendations(
    user_id: CurrentUserId,
    service: Annotated[MatchingService, Depends(get_matching_service)],
    limit: Optional[int] = None,
):
    return RecommendationsResponse(recommendations=await service.recommendations(user_id, limit))
