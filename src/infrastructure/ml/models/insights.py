import dataclasses
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from domain.entities.recommendation import Recommendation
from domain.entities.user_profile import UserProfile
from .feature_extractor import FeatureExtractor
from .model_tiers import (
    ModelTier, ENHANCED_TIER, FALLBACK, MATRIX_FACTORIZATION, RANDOM_FOREST,
    NEURAL_NETWORK, K_MEANS, TIME_SERIES,
)

DEFAULT_INSIGHT = 'AI-powered recommendation based on advanced analysis'

MODEL_EXPLANATIONS = {
    MATRIX_FACTORIZATION: "Users with similar preferences ({accuracy}% accuracy) also liked this property",
    RANDOM_FOREST: "Property features match your preferences ({accuracy}% accuracy)",
    NEURAL_NETWORK: "AI detected complex patterns in your preferences ({accuracy}% accuracy)",
    K_MEANS: "Users in your behavior cluster prefer this type ({accuracy}% accuracy)",
    TIME_SERIES: "Market trends favor this property ({accuracy}% accuracy)",
}
MULTI_MODEL_EXPLANATION = "Multiple AI models recommend this property ({accuracy}% average accuracy)"

# (feature reader, [(threshold, message), ...]) checked strongest first
INSIGHT_RULES = (
    (lambda f: f['user_price_affinity'], (
        (0.8, 'Perfect price match with your budget preferences'),
        (0.6, 'Good price alignment with your preferences'),
    )),
    (lambda f: f['location_score'], (
        (80, 'Premium location with excellent connectivity'),
        (60, 'Good location with decent connectivity'),
    )),
    (lambda f: f['market_demand'] + f['price_competitiveness'], (
        (1.5, 'High market demand and competitive pricing'),
        (1.0, 'Good market value and demand'),
    )),
    (lambda f: f['investment_potential'], (
        (0.8, 'Excellent investment potential with high returns'),
        (0.6, 'Good investment opportunity'),
    )),
    (lambda f: f['amenities_score'], (
        (0.8, 'Premium amenities matching your lifestyle'),
        (0.6, 'Good amenities for your needs'),
    )),
)


class InsightsBuilder:
    """Turns scores and feature values into deterministic, human-readable strings"""

    def __init__(self, tier: ModelTier = ENHANCED_TIER,
                 feature_extractor: Optional[FeatureExtractor] = None):
        self.tier = tier
        self.feature_extractor = feature_extractor or FeatureExtractor(tier)

    def explain(self, recommendation: Recommendation, profile: Optional[UserProfile] = None,
                reference_time: Optional[datetime] = None) -> List[str]:
        features = self.feature_extractor.extract_features(recommendation.listing, profile, reference_time)
        insights = []
        for read, levels in INSIGHT_RULES:
            value = read(features)
            for threshold, message in levels:
                if value > threshold:
                    insights.append(message)
                    break
        return insights or [DEFAULT_INSIGHT]

    def model_explanation(self, recommendation: Recommendation) -> str:
        if recommendation.contributions:
            # Highest raw score wins; name order settles ties
            top = sorted(recommendation.contributions, key=lambda c: (-c.score, c.name))[0]
            model_type, accuracy = top.recommendation_type, top.accuracy
        else:
            model_type = recommendation.recommendation_type
            accuracy = self.tier.settings_for(model_type).accuracy

        template = MODEL_EXPLANATIONS.get(model_type, MULTI_MODEL_EXPLANATION)
        return template.format(accuracy=round(accuracy * 100))

    def annotate(self, recommendation: Recommendation, profile: Optional[UserProfile] = None,
                 reference_time: Optional[datetime] = None) -> Recommendation:
        """Return a copy carrying insights and a model explanation; fallback items keep theirs"""
        if recommendation.recommendation_type == FALLBACK:
            return recommendation

        details = dict(recommendation.details)
        if recommendation.contributions:
            details['accuracy_estimate'] = round(details.get('average_accuracy', 1.0) * 100)

        return dataclasses.replace(
            recommendation,
            explanations=tuple(self.explain(recommendation, profile, reference_time)),
            model_explanation=self.model_explanation(recommendation),
            details=details,
        )


def summarize(recommendations: List[Recommendation]) -> Dict[str, Any]:
    """Aggregate statistics over a recommendation list"""
    if not recommendations:
        return {
            'total_recommendations': 0,
            'average_score': 0.0,
            'average_confidence': 0.0,
            'price_range': {'min': 0.0, 'max': 0.0},
            'recommendation_types': {},
            'confidence_levels': {'high': 0, 'medium': 0, 'low': 0},
        }

    count = len(recommendations)
    prices = [r.listing.price or 0.0 for r in recommendations]
    levels = {'high': 0, 'medium': 0, 'low': 0}
    for r in recommendations:
        if r.confidence > 0.8:
            levels['high'] += 1
        elif r.confidence > 0.6:
            levels['medium'] += 1
        else:
            levels['low'] += 1

    return {
        'total_recommendations': count,
        'average_score': sum(r.score for r in recommendations) / count,
        'average_confidence': sum(r.confidence for r in recommendations) / count,
        'price_range': {'min': min(prices), 'max': max(prices)},
        'recommendation_types': dict(Counter(r.recommendation_type for r in recommendations)),
        'confidence_levels': levels,
    }
