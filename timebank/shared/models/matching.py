# timebank/shared/models/matching.py
"""
Модели подбора исполнителей и рекомендаций.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from timebank.shared.models.user import ProfileDTO


def _normalize_tags(values: list[str]) -> list[str]:
    return [v.strip() for v in values if v and v.strip()]


class AutoMatchRequest(BaseModel):
    category: str = Field(..., min_length=1, max_length=120)
    skills: list[str] = Field(default_factory=list)

    @field_validator("skills")
    @classmethod
    def clean_skills(cls, v: list[str]) -> list[str]:
        return _normalize_tags(v)


class ScoredProfile(ProfileDTO):
    """Профиль с рассчитанным скором."""

    score: float


class AutoMatchResponse(BaseModel):
    best_match: ScoredProfile | None = None
    candidates: list[ScoredProfile]


class SearchResponse(BaseModel):
    matches: list[ProfileDTO]


class RecommendationsResponse(BaseModel):
    recommendations: list[ScoredProfile]
