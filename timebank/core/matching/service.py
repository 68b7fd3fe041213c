# timebank/core/matching/service.py
"""
Поиск исполнителей, автоподбор и рекомендации.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from timebank.common.exceptions import NotFoundError
from timebank.core.matching.scoring import auto_match_score, rank, recommendation_score
from timebank.shared.models.matching import AutoMatchRequest, AutoMatchResponse, ScoredProfile
from timebank.shared.models.user import ProfileDTO

if TYPE_CHECKING:
    from timebank.core.users.repository import UserRepository

SEARCH_DEFAULT_LIMIT = 20
SEARCH_MAX_LIMIT = 50
AUTO_MATCH_POOL = 50
AUTO_MATCH_TOP = 10
RECOMMENDATION_POOL = 200
RECOMMENDATION_DEFAULT_LIMIT = 10
RECOMMENDATION_MAX_LIMIT = 20


def clamp(value: int | None, default: int, upper: int) -> int:
    if not value:
        return default
    return min(max(value, 1), upper)


def parse_skills(raw: str | None) -> list[str]:
    """'a, b,,c' -> ['a', 'b', 'c']"""
    return [s.strip() for s in (raw or "").split(",") if s.strip()]


def _profile(row) -> ProfileDTO:
    data = dict(row)
    data["skills"] = list(data.get("skills") or [])
    data["categories"] = list(data.get("categories") or [])
    data["rating_avg"] = float(data.get("rating_avg") or 0)
    data["reputation"] = int(data.get("reputation") or 0)
    return ProfileDTO.model_validate(data)


class MatchingService:
    def __init__(self, user_repo: "UserRepository") -> None:
        self.user_repo = user_repo

    async def search(
        self,
        skills: list[str],
        location: str | None = None,
        min_reputation: int = 0,
        limit: int | None = None,
    ) -> list[ProfileDTO]:
        """Профили по навыкам/локации/репутации, лучшие по рейтингу первыми."""
        rows = await self.user_repo.search_profiles(
            skills,
            (location or "").strip() or None,
            max(min_reputation, 0),
            clamp(limit, SEARCH_DEFAULT_LIMIT, SEARCH_MAX_LIMIT),
        )
        return [_profile(r) for r in rows]

    async def auto_match(self, user_id: UUID, request: AutoMatchRequest) -> AutoMatchResponse:
        rows = await self.user_repo.candidate_profiles(
            request.category, request.skills, exclude_user_id=user_id, limit=AUTO_MATCH_POOL,
        )
        profiles = [_profile(r) for r in rows]
        skills = set(request.skills)
        ranked = rank(profiles, [auto_match_score(p, skills) for p in profiles])
        return AutoMatchResponse(
            best_match=ranked[0] if ranked else None,
            candidates=ranked[:AUTO_MATCH_TOP],
        )

    async def recommendations(self, user_id: UUID, limit: int | None = None) -> list[ScoredProfile]:
        me = await self.user_repo.get_profile(user_id)
        if me is None:
            raise NotFoundError("Profile not found")
        my_profile = _profile(me)
        my_skills = set(my_profile.skills)
        my_categories = set(my_profile.categories)

        rows = await self.user_repo.other_profiles(user_id, limit=RECOMMENDATION_POOL)
        profiles = [_profile(r) for r in rows]
        ranked = rank(profiles, [recommendation_score(p, my_skills, my_categories) for p in profiles])
        return ranked[: clamp(limit, RECOMMENDATION_DEFAULT_LIMIT, RECOMMENDATION_MAX_LIMIT)]
