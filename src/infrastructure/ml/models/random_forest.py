from typing import Any, Dict

from domain.entities.listing import Listing
from domain.entities.recommendation import Recommendation
from domain.entities.user_profile import UserProfile
from .base_scorer import BaseScorer
from .feature_extractor import FeatureVector
from .model_tiers import RANDOM_FOREST

DEFAULT_REASON = 'Property matches your general preferences'


class RandomForestScorer(BaseScorer):
    """Rule-based compatibility scorer.

    Each compatibility sub-score blends a baseline with a profile-driven
    bonus; the final score is their fixed-weight sum. Sub-scores that cross
    their own threshold contribute a human-readable reason.
    """

    recommendation_type = RANDOM_FOREST

    def score_listing(self, listing: Listing, features: FeatureVector,
                      profile: UserProfile, context: Any = None) -> Recommendation:
        settings = self.tier.forest
        sub_scores = self.compatibility_scores(features, profile)

        score = 0.0
        confidence = 0.0
        reasons = []
        for name, weight in settings.weights.items():
            value = sub_scores[name]
            score += value * weight
            confidence += weight
            if value > settings.reason_thresholds[name]:
                reasons.append(settings.reasons[name])

        profile_weight = 1.0
        if settings.profile_divisor:
            profile_weight = 1 + profile.total_interactions / settings.profile_divisor

        final_score = max(0.3, min(1.0, score * profile_weight))
        final_confidence = max(settings.confidence_floor, min(1.0, confidence * profile_weight))

        return self._recommendation(
            listing,
            final_score,
            final_confidence,
            reasons=reasons or [DEFAULT_REASON],
            sub_scores=sub_scores,
        )

    def compatibility_scores(self, features: FeatureVector, profile: UserProfile) -> Dict[str, float]:
        scores = {
            'price': self._price(features, profile),
            'location': self._location(features, profile),
            'type': self._type(features, profile),
            'amenity': self._amenity(features, profile),
            'market': self._market(features),
        }
        if 'investment' in self.tier.forest.weights:
            scores['investment'] = self._investment(features)
        if 'social' in self.tier.forest.weights:
            scores['social'] = self._social(features)
        return scores

    def _price(self, features: FeatureVector, profile: UserProfile) -> float:
        settings = self.tier.forest
        if profile.avg_price <= 0:
            return settings.price_no_history

        diff = abs(features['price'] - profile.avg_price) / profile.avg_price
        base = max(
            0.2,
            1 - diff * (settings.price_diff_base + profile.price_sensitivity * settings.price_diff_sensitivity)
        )
        return min(1.0, base + profile.budget_flexibility * settings.price_flexibility_bonus)

    def _location(self, features: FeatureVector, profile: UserProfile) -> float:
        settings = self.tier.forest
        city_bonus = profile.city_preference(features['city']) * (1 + profile.location_loyalty)
        location_bonus = features['location_score'] / 100 * settings.location_score_bonus
        return min(1.0, settings.location_base + city_bonus + location_bonus)

    def _type(self, features: FeatureVector, profile: UserProfile) -> float:
        settings = self.tier.forest
        preference = profile.type_preference(features['type'])
        return min(1.0, settings.type_base + preference + features['type_score'] * settings.type_score_bonus)

    def _amenity(self, features: FeatureVector, profile: UserProfile) -> float:
        settings = self.tier.forest
        coverage = features['amenities_score'] * (
            settings.amenity_coverage + profile.amenity_importance * settings.amenity_importance
        )
        luxury = features['luxury_amenities'] * settings.amenity_luxury_bonus
        return min(1.0, settings.amenity_base + coverage + luxury)

    def _market(self, features: FeatureVector) -> float:
        settings = self.tier.forest
        signals = [features['market_demand'], features['price_competitiveness']]
        if settings.market_includes_trend:
            signals.append(features['market_trend'])
        return min(1.0, settings.market_base + sum(signals) / len(signals) * settings.market_scale)

    @staticmethod
    def _investment(features: FeatureVector) -> float:
        return (
            features['investment_potential']
            + features['appreciation_potential']
            + features['rental_yield'] / 100
        ) / 3

    @staticmethod
    def _social(features: FeatureVector) -> float:
        return min(1.0, 0.5 + features['social_proof'] * 0.3 + features['review_score'] / 5 * 0.2)
