from typing import Any, Optional

from domain.entities.listing import Listing
from domain.entities.recommendation import Recommendation
from domain.entities.user_profile import UserProfile
from .base_scorer import BaseScorer
from .feature_extractor import FeatureExtractor, FeatureVector
from .model_tiers import ModelTier, ENHANCED_TIER, MATRIX_FACTORIZATION
from .popularity_fallback import PopularityFallback
from ..interaction_matrix import InteractionMatrix, InteractionMatrixCache


class MatrixFactorizationScorer(BaseScorer):
    """Neighbourhood collaborative filtering over the shared interaction matrix.

    The predicted affinity for a listing is the similarity-weighted mean
    strength of the other users who interacted with it, scaled down by the
    booking weight so a booking-only neighbourhood maps to 1.0.
    """

    recommendation_type = MATRIX_FACTORIZATION

    def __init__(self, matrix_cache: InteractionMatrixCache, tier: ModelTier = ENHANCED_TIER,
                 feature_extractor: Optional[FeatureExtractor] = None,
                 fallback: Optional[PopularityFallback] = None):
        super().__init__(tier, feature_extractor, fallback)
        self.matrix_cache = matrix_cache

    async def load_context(self, profile: UserProfile) -> InteractionMatrix:
        return await self.matrix_cache.get()

    def score_listing(self, listing: Listing, features: FeatureVector,
                      profile: UserProfile, context: Any = None) -> Recommendation:
        matrix = context if context is not None else InteractionMatrix()
        score = self.predict(matrix, profile, listing.id)
        confidence = min(score * self.tier.matrix.confidence_multiplier, 1.0)
        return self._recommendation(listing, score, confidence)

    def predict(self, matrix: InteractionMatrix, profile: UserProfile, listing_id) -> float:
        settings = self.tier.matrix
        neighbours = matrix.interactions_with(listing_id)
        if not neighbours:
            return settings.base_score

        user_key = str(profile.user_id)
        user_row = matrix.row(user_key)
        similarity_scale = self._similarity_scale(profile)

        total_similarity = 0.0
        weighted_sum = 0.0
        for other_user, strength in neighbours.items():
            if other_user == user_key:
                continue
            similarity = InteractionMatrix.cosine_similarity(user_row, matrix.row(other_user))
            similarity *= similarity_scale
            total_similarity += similarity
            weighted_sum += similarity * strength

        if total_similarity > 0:
            prediction = weighted_sum / total_similarity / settings.booking_weight
        else:
            prediction = settings.base_score

        if settings.profile_boost:
            prediction += self._profile_boost(profile)

        return max(settings.score_floor, min(1.0, prediction))

    def _similarity_scale(self, profile: UserProfile) -> float:
        if not self.tier.matrix.profile_boost:
            return 1.0
        return min(profile.total_interactions / 100, 1.5)

    @staticmethod
    def _profile_boost(profile: UserProfile) -> float:
        return min(profile.total_interactions / 50, 0.2) + profile.price_sensitivity * 0.1
