"""Services package for the engine's scoring logic."""

from shelfwise.services.achievement_service import AchievementService
from shelfwise.services.recommendation_service import RecommendationService
from shelfwise.services.similarity_service import SimilarityService
from shelfwise.services.trending_service import TrendingService

__all__ = ["SimilarityService", "RecommendationService", "TrendingService", "AchievementService"]
