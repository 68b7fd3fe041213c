from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from timebank.api.auth import CurrentUserId
from timebank.api.dependencies import get_matching_service
from timebank.core.matching import MatchingService
from timebank.core.matching.service import parse_skills
from timebank.shared.models.matching import AutoMatchRequest, AutoMatchResponse, SearchResponse

router = APIRouter(prefix="/matching", tags=["Matching"])

Service = Annotated[MatchingService, Depends(get_matching_service)]


@router.get("/search", response_model=SearchResponse)
async def search(
    user_id: CurrentUserId,
    service: Service,
    skills: Optional[str] = None,
    location: Optional[str] = None,
    min_rep: Annotated[int, Query(alias="minRep")] = 0,
    limit: Optional[int] = None,
):
    matches = await service.search(parse_skills(skills), location, min_rep, limit)
    return SearchResponse(matches=matches)


@router.post("/auto", response_model=AutoMatchResponse)
async def auto_match(request: AutoMatchRequest, user_id: CurrentUserId, service: Service):
    return await service.auto_match(user_id, request)
