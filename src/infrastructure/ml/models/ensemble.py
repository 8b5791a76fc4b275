import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from domain.entities.listing import Listing
from domain.entities.recommendation import Recommendation, ModelContribution, ranking_key
from .model_tiers import ModelTier, ENHANCED_TIER, ENSEMBLE, MODEL_NAMES
from .popularity_fallback import PopularityFallback

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelResult:
    """One scorer's output together with its ensemble weight and accuracy hint"""
    name: str
    recommendations: List[Recommendation]
    weight: float
    accuracy: float = 1.0
    recommendation_type: str = "unknown"


class EnsembleCombiner:
    """Merges per-model result sets into one ranking.

    A listing's score is the sum of ``score * weight * accuracy`` over the
    models that recommended it, plus a diversity bonus that grows with every
    additional agreeing model. Contributions are merged in model-name order,
    so the order in which results arrive never changes the outcome.
    """

    def __init__(self, tier: ModelTier = ENHANCED_TIER, fallback: Optional[PopularityFallback] = None):
        self.tier = tier
        self.fallback = fallback or PopularityFallback(tier)

    def results_for(self, recommendations_by_type: Dict[str, List[Recommendation]]) -> List[ModelResult]:
        """Pair raw scorer outputs with the tier's weights"""
        results = []
        for model_type, recommendations in recommendations_by_type.items():
            settings = self.tier.settings_for(model_type)
            results.append(ModelResult(
                name=MODEL_NAMES[model_type],
                recommendations=recommendations,
                weight=settings.weight,
                accuracy=settings.accuracy,
                recommendation_type=model_type,
            ))
        return results

    def diversity_bonus(self, model_count: int) -> float:
        return min(self.tier.diversity_cap, self.tier.diversity_step * max(0, model_count - 1))

    def combine(self, model_results: List[ModelResult],
                candidates: Optional[List[Listing]] = None,
                limit: Optional[int] = None) -> List[Recommendation]:
        listings: Dict[str, Listing] = {}
        contributions: Dict[str, List[ModelContribution]] = {}

        for result in model_results:
            for recommendation in result.recommendations or []:
                key = str(recommendation.listing_id)
                listings.setdefault(key, recommendation.listing)
                contributions.setdefault(key, []).append(ModelContribution(
                    name=result.name,
                    score=recommendation.score,
                    confidence=recommendation.confidence,
                    weighted_score=recommendation.score * result.weight * result.accuracy,
                    accuracy=result.accuracy,
                    recommendation_type=result.recommendation_type,
                ))

        combined = [
            self._merge(listings[key], sorted(parts, key=lambda c: c.name))
            for key, parts in contributions.items()
        ]
        combined.sort(key=ranking_key)

        if not combined:
            if candidates:
                logger.warning("Ensemble produced no listings, using popularity fallback")
                return self.fallback.recommend(candidates, limit)
            return []

        if limit is not None:
            combined = combined[:limit]
        return combined

    def _merge(self, listing: Listing, parts: List[ModelContribution]) -> Recommendation:
        base_score = sum(part.weighted_score for part in parts)
        score = min(self.tier.score_cap, base_score + self.diversity_bonus(len(parts)))

        mean_confidence = sum(part.confidence for part in parts) / len(parts)
        confidence = max(mean_confidence, min(self.tier.score_cap, mean_confidence + self.tier.confidence_lift))
        confidence = max(0.0, min(1.0, confidence))

        return Recommendation(
            listing=listing,
            score=max(0.0, score),
            confidence=confidence,
            recommendation_type=ENSEMBLE,
            model_name="Ensemble",
            contributions=tuple(parts),
            details={'average_accuracy': sum(p.accuracy for p in parts) / len(parts)},
        )
