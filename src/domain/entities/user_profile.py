from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from uuid import UUID

NEUTRAL_TRAIT = 0.5


@dataclass(frozen=True)
class PriceRange:
    min: float = 0.0
    max: float = 0.0


@dataclass(frozen=True)
class UserProfile:
    """Preference profile derived from a user's wishlist, booking and review history.

    Built fresh for every recommendation request and never mutated afterwards.
    All traits lie in [0, 1]; a new user carries neutral traits and zero averages.
    """
    user_id: Optional[UUID] = None
    avg_price: float = 0.0
    avg_bedrooms: float = 0.0
    avg_bathrooms: float = 0.0
    avg_area: float = 0.0
    preferred_types: Dict[str, int] = field(default_factory=dict)
    preferred_cities: Dict[str, int] = field(default_factory=dict)
    preferred_states: Dict[str, int] = field(default_factory=dict)
    price_range: PriceRange = field(default_factory=PriceRange)
    total_interactions: int = 0

    price_sensitivity: float = NEUTRAL_TRAIT
    location_loyalty: float = NEUTRAL_TRAIT
    amenity_importance: float = NEUTRAL_TRAIT
    budget_flexibility: float = NEUTRAL_TRAIT
    risk_tolerance: float = NEUTRAL_TRAIT
    trend_following: float = NEUTRAL_TRAIT

    search_patterns: Dict[str, Any] = field(default_factory=dict)
    time_preferences: Dict[str, Any] = field(default_factory=dict)
    seasonal_patterns: Dict[str, Any] = field(default_factory=dict)
    sentiment_score: float = NEUTRAL_TRAIT
    satisfaction_level: float = NEUTRAL_TRAIT

    is_new_user: bool = False

    @classmethod
    def new_user(cls, user_id: Optional[UUID] = None):
        """Sentinel profile for users without any qualifying history"""
        return cls(user_id=user_id, is_new_user=True)

    def city_preference(self, city: str) -> float:
        return self._frequency(self.preferred_cities, city)

    def type_preference(self, property_type: str) -> float:
        return self._frequency(self.preferred_types, property_type)

    def traits(self) -> Dict[str, float]:
        return {
            'price_sensitivity': self.price_sensitivity,
            'location_loyalty': self.location_loyalty,
            'amenity_importance': self.amenity_importance,
            'budget_flexibility': self.budget_flexibility,
            'risk_tolerance': self.risk_tolerance,
            'trend_following': self.trend_following,
        }

    def _frequency(self, counts: Dict[str, int], key: str) -> float:
        if self.total_interactions <= 0:
            return 0.0
        return counts.get(key, 0) / self.total_interactions
