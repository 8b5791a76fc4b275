from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from domain.entities.listing import Listing
from domain.entities.recommendation import Recommendation
from domain.entities.user_profile import UserProfile, NEUTRAL_TRAIT
from .base_scorer import BaseScorer
from .feature_extractor import FeatureExtractor, FeatureVector
from .model_tiers import ModelTier, ENHANCED_TIER, K_MEANS
from .popularity_fallback import PopularityFallback

FIXED_ASSIGNMENT = "fixed"
NEAREST_ASSIGNMENT = "nearest"
DEFAULT_CLUSTER = "balanced"


@dataclass(frozen=True)
class BehaviorCluster:
    """Named behavioural centroid over a subset of profile traits"""
    id: str
    centroid: Dict[str, float]

    def trait(self, name: str) -> float:
        return self.centroid.get(name, NEUTRAL_TRAIT)


BEHAVIOR_CLUSTERS: Tuple[BehaviorCluster, ...] = (
    BehaviorCluster('budget-conscious', {'price_sensitivity': 0.8, 'amenity_importance': 0.3}),
    BehaviorCluster('luxury-focused', {'price_sensitivity': 0.2, 'amenity_importance': 0.9}),
    BehaviorCluster('location-focused', {'location_loyalty': 0.9, 'price_sensitivity': 0.5}),
    BehaviorCluster('investment-focused', {'price_sensitivity': 0.6, 'amenity_importance': 0.7}),
    BehaviorCluster('balanced', {'price_sensitivity': 0.5, 'amenity_importance': 0.5}),
)


class KMeansClusteringScorer(BaseScorer):
    """Scores listings by compatibility with the user's behavioural cluster.

    With the default ``fixed`` assignment every user lands in the balanced
    cluster. The ``nearest`` assignment picks the centroid closest to the
    user's traits instead; traits a centroid does not define count as 0.5.
    """

    recommendation_type = K_MEANS

    def __init__(self, tier: ModelTier = ENHANCED_TIER,
                 feature_extractor: Optional[FeatureExtractor] = None,
                 fallback: Optional[PopularityFallback] = None,
                 assignment: str = FIXED_ASSIGNMENT):
        super().__init__(tier, feature_extractor, fallback)
        if assignment not in (FIXED_ASSIGNMENT, NEAREST_ASSIGNMENT):
            raise ValueError(f"Unknown cluster assignment '{assignment}'")
        self.assignment = assignment
        self.clusters = BEHAVIOR_CLUSTERS

    def assign_cluster(self, profile: UserProfile) -> BehaviorCluster:
        if self.assignment == NEAREST_ASSIGNMENT:
            traits = profile.traits()
            return min(
                self.clusters,
                key=lambda cluster: sum(
                    (traits[name] - value) ** 2 for name, value in cluster.centroid.items()
                )
            )
        return next(c for c in self.clusters if c.id == DEFAULT_CLUSTER)

    async def load_context(self, profile: UserProfile) -> BehaviorCluster:
        return self.assign_cluster(profile)

    def score_listing(self, listing: Listing, features: FeatureVector,
                      profile: UserProfile, context: Any = None) -> Recommendation:
        cluster = context if context is not None else self.assign_cluster(profile)
        score = self.cluster_compatibility(features, cluster)
        return self._recommendation(listing, score, min(score * 1.05, 0.98), cluster_id=cluster.id)

    @staticmethod
    def cluster_compatibility(features: FeatureVector, cluster: BehaviorCluster) -> float:
        price_fit = max(0.0, 1 - abs(features['price_category'] - cluster.trait('price_sensitivity') * 5) / 5)
        amenity_fit = max(0.0, 1 - abs(features['amenities_score'] - cluster.trait('amenity_importance')))
        location_fit = features['location_score'] / 100
        market_fit = (features['market_demand'] + features['price_competitiveness']) / 2

        compatibility = (
            price_fit * 0.25
            + amenity_fit * 0.25
            + location_fit * 0.2
            + market_fit * 0.15
            + features['investment_potential'] * 0.15
        )
        return min(0.98, max(0.6, compatibility + 0.1))
