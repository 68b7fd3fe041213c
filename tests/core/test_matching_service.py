# tests/core/test_matching_service.py
"""
Тесты для поиска, автоподбора и рекомендаций.
"""

from __future__ import annotations

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from timebank.common.exceptions import NotFoundError
from timebank.core.matching.scoring import auto_match_score, overlap, rank, recommendation_score
from timebank.core.matching.service import MatchingService, clamp, parse_skills
from timebank.shared.models.matching import AutoMatchRequest
from timebank.shared.models.user import ProfileDTO


def _profile(skills=(), categories=(), reputation=0, rating_avg=0.0) -> ProfileDTO:
    return ProfileDTO(
        user_id=uuid4(),
        skills=list(skills),
        categories=list(categories),
        reputation=reputation,
        rating_avg=rating_avg,
    )


class TestScoring:
    """Тесты формул скоринга."""

    def test_overlap_counts_profile_entries(self) -> None:
        assert overlap(["python", "sql", "python"], {"python"}) == 2
        assert overlap([], {"python"}) == 0

    def test_auto_match_score(self) -> None:
        profile = _profile(skills=["a", "b"], reputation=50, rating_avg=4.0)
        assert auto_match_score(profile, {"a"}) == pytest.approx(50 * 0.6 + 4.0 * 0.3 + 1 * 0.1)

    def test_recommendation_score(self) -> None:
        profile = _profile(skills=["a", "b"], categories=["music"], reputation=20, rating_avg=5.0)
        expected = 2 * 0.5 + 1 * 0.3 + 20 * 0.15 + 5.0 * 0.05
        assert recommendation_score(profile, {"a", "b"}, {"music"}) == pytest.approx(expected)

    def test_rank_stable_on_ties(self) -> None:
        """При равном скоре сохраняется исходный порядок."""
        first, second, third = _profile(), _profile(), _profile()

        ranked = rank([first, second, third], [1.0, 2.0, 1.0])

        assert [p.user_id for p in ranked] == [second.user_id, first.user_id, third.user_id]
        assert ranked[0].score == 2.0


class TestHelpers:
    @pytest.mark.parametrize(
        "value, expected",
        [(None, 20), (0, 20), (5, 5), (500, 50), (-3, 1)],
    )
    def test_clamp(self, value, expected: int) -> None:
        assert clamp(value, 20, 50) == expected

    def test_parse_skills(self) -> None:
        assert parse_skills(" python, sql,,  ") == ["python", "sql"]
        assert parse_skills(None) == []


class TestMatchingService:
    """Тесты для MatchingService."""

    @pytest.fixture
    def user_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def service(self, user_repo: AsyncMock) -> MatchingService:
        return MatchingService(user_repo)

    @pytest.mark.asyncio
    async def test_search_clamps_limit(self, service: MatchingService, user_repo: AsyncMock, make_profile_row) -> None:
        user_repo.search_profiles = AsyncMock(return_value=[make_profile_row(skills=["python"])])

        result = await service.search(["python"], location="  ", min_reputation=-5, limit=1000)

        assert result[0].skills == ["python"]
        user_repo.search_profiles.assert_awaited_once_with(["python"], None, 0, 50)

    @pytest.mark.asyncio
    async def test_auto_match_excludes_caller(
        self, service: MatchingService, user_repo: AsyncMock, make_profile_row
    ) -> None:
        user_id = uuid4()
        weak = make_profile_row(skills=["guitar"], reputation=10, rating_avg=3.0)
        strong = make_profile_row(skills=["guitar"], reputation=80, rating_avg=4.5)
        user_repo.candidate_profiles = AsyncMock(return_value=[weak, strong])

        result = await service.auto_match(user_id, AutoMatchRequest(category="Music", skills=["guitar", " "]))

        assert user_repo.candidate_profiles.call_args.kwargs["exclude_user_id"] == user_id
        assert user_repo.candidate_profiles.call_args.args == ("Music", ["guitar"])
        assert result.best_match.user_id == strong["user_id"]
        assert len(result.candidates) == 2

    @pytest.mark.asyncio
    async def test_auto_match_no_candidates(self, service: MatchingService, user_repo: AsyncMock) -> None:
        user_repo.candidate_profiles = AsyncMock(return_value=[])

        result = await service.auto_match(uuid4(), AutoMatchRequest(category="Music"))

        assert result.best_match is None
        assert result.candidates == []

    @pytest.mark.asyncio
    async def test_recommendations_without_profile(self, service: MatchingService, user_repo: AsyncMock) -> None:
        user_repo.get_profile = AsyncMock(return_value=None)
        with pytest.raises(NotFoundError, match="Profile not found"):
            await service.recommendations(uuid4())

    @pytest.mark.asyncio
    async def test_recommendations_ranked_and_limited(
        self, service: MatchingService, user_repo: AsyncMock, make_profile_row
    ) -> None:
        user_repo.get_profile = AsyncMock(return_value=make_profile_row(skills=["python"], categories=["tech"]))
        others = [make_profile_row() for _ in range(25)]
        match = make_profile_row(skills=["python"], categories=["tech"])
        user_repo.other_profiles = AsyncMock(return_value=[*others, match])

        result = await service.recommendations(uuid4(), limit=100)

        assert len(result) == 20
        assert result[0].user_id == match["user_id"]
