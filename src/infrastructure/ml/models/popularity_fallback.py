import logging
from typing import List, Optional

from domain.entities.listing import Listing
from domain.entities.recommendation import Recommendation, ranking_key
from .model_tiers import ModelTier, ENHANCED_TIER, FALLBACK

logger = logging.getLogger(__name__)

FALLBACK_INSIGHTS = ('Popular property', 'Trending in your area', 'Great value')
FALLBACK_EXPLANATION = (
    "Recommended based on popularity and trending data - "
    "add properties to your wishlist for personalized recommendations!"
)


class PopularityFallback:
    """Profile-independent popularity ranking.

    Terminal safety net for every scorer: it never raises for well-formed
    listings and returns an empty list only for an empty candidate pool.
    """

    def __init__(self, tier: ModelTier = ENHANCED_TIER, default_limit: int = 10):
        self.tier = tier
        self.default_limit = default_limit

    def popularity(self, listing: Listing) -> float:
        settings = self.tier.fallback
        return (
            (listing.wishlist_count or 0) * settings.wishlist_weight
            + (listing.booking_count or 0) * settings.booking_weight
            + (listing.view_count or 0) * settings.view_weight
        )

    def recommend(self, candidates: List[Listing], limit: Optional[int] = None) -> List[Recommendation]:
        limit = self.default_limit if limit is None else limit
        if not candidates or limit <= 0:
            return []

        recommendations = [
            Recommendation(
                listing=listing,
                score=max(0.0, min(1.0, self.popularity(listing) / 100)),
                confidence=self.tier.fallback.confidence,
                recommendation_type=FALLBACK,
                model_name="Popularity",
                explanations=FALLBACK_INSIGHTS,
                model_explanation=FALLBACK_EXPLANATION,
            )
            for listing in candidates
        ]
        recommendations.sort(key=ranking_key)

        logger.debug(f"Popularity fallback ranked {len(recommendations)} listings, returning {limit}")
        return recommendations[:limit]
