import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional

from domain.entities.listing import Listing
from domain.entities.recommendation import Recommendation, ranking_key
from domain.entities.user_profile import UserProfile
from .feature_extractor import FeatureExtractor, FeatureVector
from .model_tiers import ModelTier, ModelSettings, ENHANCED_TIER, MODEL_NAMES
from .popularity_fallback import PopularityFallback


class BaseScorer(ABC):
    """Common contract for the per-model scorers.

    ``score`` delegates to the popularity fallback for new users, when no
    candidate clears the model threshold, and when scoring raises. A
    non-empty candidate pool therefore always yields a non-empty list.
    """

    recommendation_type: str = ""

    def __init__(self, tier: ModelTier = ENHANCED_TIER,
                 feature_extractor: Optional[FeatureExtractor] = None,
                 fallback: Optional[PopularityFallback] = None):
        self.tier = tier
        self.feature_extractor = feature_extractor or FeatureExtractor(tier)
        self.fallback = fallback or PopularityFallback(tier)
        self.logger = logging.getLogger(self.__class__.__module__)

    @property
    def name(self) -> str:
        return MODEL_NAMES[self.recommendation_type]

    @property
    def settings(self) -> ModelSettings:
        return self.tier.settings_for(self.recommendation_type)

    async def score(self, candidates: List[Listing], profile: UserProfile,
                    limit: Optional[int] = None, reference_time: Optional[datetime] = None,
                    threshold: Optional[float] = None) -> List[Recommendation]:
        """Score candidates and return those above the acceptance threshold, best first"""
        if not candidates:
            return []
        if profile.is_new_user:
            return self.fallback.recommend(candidates, limit)

        reference_time = reference_time or datetime.now()
        threshold = self.settings.threshold if threshold is None else threshold

        try:
            scored = await self.score_all(candidates, profile, reference_time)
            recommendations = self.apply_threshold(scored, threshold)
        except Exception as e:
            self.logger.error(f"{self.name} scoring failed for user {profile.user_id}: {e}")
            return self.fallback.recommend(candidates, limit)

        if not recommendations:
            self.logger.warning(
                f"{self.name} produced no listings above {threshold}, using popularity fallback"
            )
            return self.fallback.recommend(candidates, limit)

        recommendations.sort(key=ranking_key)
        if limit is not None:
            recommendations = recommendations[:limit]
        return recommendations

    async def score_all(self, candidates: List[Listing], profile: UserProfile,
                        reference_time: datetime) -> List[Recommendation]:
        """Score every candidate without threshold filtering or fallback"""
        context = await self.load_context(profile)
        return [
            self.score_listing(
                listing,
                self.feature_extractor.extract_features(listing, profile, reference_time),
                profile,
                context,
            )
            for listing in candidates
        ]

    @staticmethod
    def apply_threshold(recommendations: List[Recommendation], threshold: float) -> List[Recommendation]:
        return [r for r in recommendations if r.score > threshold]

    async def load_context(self, profile: UserProfile) -> Any:
        """Load state shared by every listing of one scoring pass"""
        return None

    @abstractmethod
    def score_listing(self, listing: Listing, features: FeatureVector,
                      profile: UserProfile, context: Any = None) -> Recommendation:
        pass

    def _recommendation(self, listing: Listing, score: float, confidence: float,
                        **details) -> Recommendation:
        return Recommendation(
            listing=listing,
            score=score,
            confidence=confidence,
            recommendation_type=self.recommendation_type,
            model_name=self.name,
            details=details,
        )
