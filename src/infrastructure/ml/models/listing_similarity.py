from typing import List

from domain.entities.listing import Listing
from domain.entities.recommendation import Recommendation, ranking_key

SIMILARITY_WEIGHTS = {
    'price': 0.3,
    'bedrooms': 0.2,
    'bathrooms': 0.15,
    'area': 0.15,
    'property_type': 0.1,
    'city': 0.05,
    'state': 0.05,
}
NUMERIC_ATTRIBUTES = ('price', 'bedrooms', 'bathrooms', 'area')
CATEGORICAL_ATTRIBUTES = ('property_type', 'city', 'state')
MIN_SIMILARITY = 0.3


def listing_similarity(a: Listing, b: Listing) -> float:
    """Weighted attribute similarity in [0, 1]"""
    similarity = 0.0
    total_weight = 0.0

    for attribute in NUMERIC_ATTRIBUTES:
        weight = SIMILARITY_WEIGHTS[attribute]
        x = getattr(a, attribute) or 0
        y = getattr(b, attribute) or 0
        max_value = max(x, y) or 1
        similarity += weight * (1 - min(abs(x - y) / max_value, 1.0))
        total_weight += weight

    for attribute in CATEGORICAL_ATTRIBUTES:
        weight = SIMILARITY_WEIGHTS[attribute]
        if getattr(a, attribute) == getattr(b, attribute):
            similarity += weight
        total_weight += weight

    return similarity / total_weight if total_weight > 0 else 0.0


def similar_listings(target: Listing, pool: List[Listing], limit: int = 6) -> List[Recommendation]:
    """Listings from ``pool`` that resemble ``target``, most similar first"""
    recommendations = []
    for listing in pool:
        if listing.id == target.id:
            continue
        similarity = listing_similarity(target, listing)
        if similarity > MIN_SIMILARITY:
            recommendations.append(Recommendation(
                listing=listing,
                score=similarity,
                confidence=similarity,
                recommendation_type="similar",
                model_name="Listing Similarity",
            ))

    recommendations.sort(key=ranking_key)
    return recommendations[:limit]
