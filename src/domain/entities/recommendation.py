from dataclasses import dataclass, field
from typing import List, Dict, Any, Tuple, Optional
from uuid import UUID

from .listing import Listing


@dataclass(frozen=True)
class ModelContribution:
    """One model's vote for a listing inside an ensemble result"""
    name: str
    score: float
    confidence: float
    weighted_score: float = 0.0
    accuracy: float = 1.0
    recommendation_type: str = "unknown"


@dataclass(frozen=True)
class Recommendation:
    """Scored listing produced by a model, the ensemble or the popularity fallback.

    Records are immutable: re-ranking or annotating produces new records
    through ``dataclasses.replace``.
    """
    listing: Listing
    score: float
    confidence: float
    recommendation_type: str
    model_name: str
    explanations: Tuple[str, ...] = ()
    model_explanation: Optional[str] = None
    contributions: Tuple[ModelContribution, ...] = ()
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def listing_id(self) -> UUID:
        return self.listing.id

    @property
    def contributing_models(self) -> List[str]:
        if self.contributions:
            return [c.name for c in self.contributions]
        return [self.model_name]

    def model_breakdown(self) -> Dict[str, float]:
        return {c.name: c.weighted_score for c in self.contributions}


def ranking_key(recommendation: Recommendation):
    """Descending score, ties broken by listing id"""
    return (-recommendation.score, str(recommendation.listing_id))
