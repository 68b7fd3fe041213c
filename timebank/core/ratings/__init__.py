from timebank.core.ratings.repository import RatingRepository
from timebank.core.ratings.service import RatingService

__all__ = ["RatingRepository", "RatingService"]
