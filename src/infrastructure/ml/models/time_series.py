from typing import Any, Dict

from domain.entities.listing import Listing
from domain.entities.recommendation import Recommendation
from domain.entities.user_profile import UserProfile
from .base_scorer import BaseScorer
from .feature_extractor import FeatureVector
from .model_tiers import TIME_SERIES


class TimeSeriesScorer(BaseScorer):
    """Trend scorer blending market momentum, seasonality and recency.

    Scores are floored at 0.7 and the acceptance threshold sits above that
    floor, so only clearly trending listings pass.
    """

    recommendation_type = TIME_SERIES

    def score_listing(self, listing: Listing, features: FeatureVector,
                      profile: UserProfile, context: Any = None) -> Recommendation:
        score = self.trend_score(features, profile)
        return self._recommendation(
            listing,
            score,
            min(score * 1.02, 0.98),
            trend_factors=self.trend_factors(features),
        )

    @staticmethod
    def trend_score(features: FeatureVector, profile: UserProfile) -> float:
        base = (
            features['market_trend'] * 0.3
            + features['seasonal_demand'] * 0.25
            + features['time_to_market'] * 0.2
            + (1 - features['listing_age']) * 0.1
        )
        raw = base + features['investment_potential'] * 0.1 + features['price_competitiveness'] * 0.05

        profile_weight = 1 + profile.total_interactions / 100
        trend_boost = profile.trend_following * 0.2
        return min(0.98, max(0.7, raw * profile_weight + trend_boost))

    @staticmethod
    def trend_factors(features: FeatureVector) -> Dict[str, float]:
        return {
            'market_trend': features['market_trend'],
            'seasonal_demand': features['seasonal_demand'],
            'time_to_market': features['time_to_market'],
            'listing_age': features['listing_age'],
        }
