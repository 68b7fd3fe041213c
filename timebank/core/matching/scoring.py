# timebank/core/matching/scoring.py
"""
Формулы скоринга для автоподбора и рекомендаций.
Чистые функции без обращения к БД.
"""

from __future__ import annotations

from typing import Iterable

from timebank.shared.models.matching import ScoredProfile
from timebank.shared.models.user import ProfileDTO

AUTO_MATCH_WEIGHTS = {"reputation": 0.6, "rating": 0.3, "skills": 0.1}
RECOMMENDATION_WEIGHTS = {"skills": 0.5, "categories": 0.3, "reputation": 0.15, "rating": 0.05}


def overlap(values: Iterable[str], reference: set[str]) -> int:
    """Количество элементов values, входящих в reference (с повторами, как в профиле)."""
    return sum(1 for v in values if v in reference)


def auto_match_score(profile: ProfileDTO, skills: set[str]) -> float:
    """
    Скор кандидата для автоподбора.

    Args:
        profile: Профиль кандидата
        skills: Запрошенные навыки

    Returns:
        reputation × 0.6 + rating × 0.3 + skill_overlap × 0.1
    """
    return (
        profile.reputation * AUTO_MATCH_WEIGHTS["reputation"]
        + profile.rating_avg * AUTO_MATCH_WEIGHTS["rating"]
        + overlap(profile.skills, skills) * AUTO_MATCH_WEIGHTS["skills"]
    )


def recommendation_score(profile: ProfileDTO, my_skills: set[str], my_categories: set[str]) -> float:
    """
    Скор профиля для рекомендаций текущему пользователю.

    Returns:
        skill_overlap × 0.5 + category_overlap × 0.3 + reputation × 0.15 + rating × 0.05
    """
    return (
        overlap(profile.skills, my_skills) * RECOMMENDATION_WEIGHTS["skills"]
        + overlap(profile.categories, my_categories) * RECOMMENDATION_WEIGHTS["categories"]
        + profile.reputation * RECOMMENDATION_WEIGHTS["reputation"]
        + profile.rating_avg * RECOMMENDATION_WEIGHTS["rating"]
    )


def rank(profiles: list[ProfileDTO], scores: list[float]) -> list[ScoredProfile]:
    """Сортировка по убыванию скора; при равенстве сохраняется исходный порядок."""
    scored = [ScoredProfile(**p.model_dump(), score=s) for p, s in zip(profiles, scores)]
    return sorted(scored, key=lambda sp: sp.score, reverse=True)
