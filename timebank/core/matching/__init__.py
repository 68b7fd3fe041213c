# timebank/core/matching/__init__.py
"""
Подбор исполнителей и рекомендации профилей.
"""

from timebank.core.matching.service import MatchingService

__all__ = [
    "MatchingService",
]
