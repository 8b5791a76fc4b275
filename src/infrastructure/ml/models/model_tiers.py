from dataclasses import dataclass
from typing import Dict, Tuple, Optional

# Recommendation type identifiers double as model selector values
MATRIX_FACTORIZATION = "matrix-factorization"
RANDOM_FOREST = "random-forest"
NEURAL_NETWORK = "neural-network"
K_MEANS = "k-means"
TIME_SERIES = "time-series"
ENSEMBLE = "ensemble"
FALLBACK = "fallback"

MODEL_TYPES = (MATRIX_FACTORIZATION, RANDOM_FOREST, NEURAL_NETWORK, K_MEANS, TIME_SERIES)

MODEL_NAMES = {
    MATRIX_FACTORIZATION: "Matrix Factorization",
    RANDOM_FOREST: "Random Forest",
    NEURAL_NETWORK: "Neural Network",
    K_MEANS: "K-Means Clustering",
    TIME_SERIES: "Time Series",
}

BASE_AMENITIES = (
    'furnished', 'parking', 'garden', 'swimmingPool', 'gym',
    'security', 'powerBackup', 'lift', 'balcony', 'terrace',
)

EXTENDED_AMENITIES = BASE_AMENITIES + (
    'airConditioning', 'heating', 'internet', 'cableTV', 'laundry',
)

LUXURY_AMENITIES = ('swimmingPool', 'gym', 'concierge', 'spa', 'rooftopGarden')
BASIC_AMENITIES = ('parking', 'security', 'powerBackup', 'lift')


@dataclass(frozen=True)
class ModelSettings:
    """Acceptance threshold and ensemble weight of a single scorer"""
    threshold: float
    weight: float
    accuracy: float = 1.0


@dataclass(frozen=True)
class MatrixSettings:
    booking_weight: float
    include_reviews: bool
    base_score: float
    score_floor: float
    profile_boost: bool
    confidence_multiplier: float


@dataclass(frozen=True)
class ForestSettings:
    """Constants of the rule-based random forest compatibility scorer"""
    weights: Dict[str, float]
    reason_thresholds: Dict[str, float]
    reasons: Dict[str, str]
    price_no_history: float
    price_diff_base: float
    price_diff_sensitivity: float
    price_flexibility_bonus: float
    location_base: float
    location_score_bonus: float
    type_base: float
    type_score_bonus: float
    amenity_base: float
    amenity_coverage: float
    amenity_importance: float
    amenity_luxury_bonus: float
    market_base: float
    market_scale: float
    market_includes_trend: bool
    profile_divisor: Optional[float]
    confidence_floor: float


@dataclass(frozen=True)
class NetworkSettings:
    """Input normalisation and fixed layer constants of the neural network scorer"""
    inputs: Tuple[Tuple[str, float], ...]
    layers: Tuple[Tuple[float, float], ...]
    profile_divisor: Optional[float]
    confidence_floor: float
    confidence_lift: float
    hidden_factor_count: int


@dataclass(frozen=True)
class FallbackSettings:
    wishlist_weight: float
    booking_weight: float
    view_weight: float
    confidence: float


@dataclass(frozen=True)
class ModelTier:
    """Every constant that differs between the advanced and enhanced model generations.

    Both tiers run the same algorithms; only these numbers change.
    """
    name: str
    amenity_checklist: Tuple[str, ...]
    models: Dict[str, ModelSettings]
    matrix: MatrixSettings
    forest: ForestSettings
    network: NetworkSettings
    fallback: FallbackSettings
    market_demand_weights: Dict[str, float]
    price_competitiveness_bands: Tuple[Tuple[float, float], ...]
    price_competitiveness_floor: float
    price_sensitivity_factor: float
    price_affinity_base: float
    price_affinity_sensitivity: float
    user_location_loyalty_scale: float
    user_location_score_bonus: float
    user_type_score_bonus: float
    diversity_step: float
    diversity_cap: float
    confidence_lift: float
    score_cap: float
    luxury_amenities: Tuple[str, ...] = LUXURY_AMENITIES
    basic_amenities: Tuple[str, ...] = BASIC_AMENITIES

    def __post_init__(self):
        missing = [m for m in MODEL_TYPES if m not in self.models]
        if missing:
            raise ValueError(f"Tier {self.name} is missing settings for {missing}")
        total = sum(settings.weight for settings in self.models.values())
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Ensemble weights of tier {self.name} sum to {total}, expected 1.0")

    def settings_for(self, model_type: str) -> ModelSettings:
        return self.models[model_type]

    @property
    def weights(self) -> Dict[str, float]:
        return {model_type: settings.weight for model_type, settings in self.models.items()}


ADVANCED_TIER = ModelTier(
    name="advanced",
    amenity_checklist=BASE_AMENITIES,
    models={
        MATRIX_FACTORIZATION: ModelSettings(threshold=0.3, weight=0.3),
        RANDOM_FOREST: ModelSettings(threshold=0.4, weight=0.4),
        NEURAL_NETWORK: ModelSettings(threshold=0.4, weight=0.3),
        K_MEANS: ModelSettings(threshold=0.7, weight=0.0),
        TIME_SERIES: ModelSettings(threshold=0.75, weight=0.0),
    },
    matrix=MatrixSettings(
        booking_weight=2.0,
        include_reviews=False,
        base_score=0.4,
        score_floor=0.3,
        profile_boost=False,
        confidence_multiplier=1.0,
    ),
    forest=ForestSettings(
        weights={'price': 0.3, 'location': 0.25, 'type': 0.2, 'amenity': 0.15, 'market': 0.1},
        reason_thresholds={'price': 0.6, 'location': 0.5, 'type': 0.4, 'amenity': 0.5, 'market': 0.5},
        reasons={
            'price': 'Price matches your budget',
            'location': 'Location matches your preferences',
            'type': 'Property type matches your interests',
            'amenity': 'Amenities match your requirements',
            'market': 'Good market value',
        },
        price_no_history=0.6,
        price_diff_base=0.5,
        price_diff_sensitivity=0.5,
        price_flexibility_bonus=0.0,
        location_base=0.4,
        location_score_bonus=0.0,
        type_base=0.3,
        type_score_bonus=0.0,
        amenity_base=0.4,
        amenity_coverage=0.5,
        amenity_importance=0.5,
        amenity_luxury_bonus=0.0,
        market_base=0.5,
        market_scale=0.5,
        market_includes_trend=False,
        profile_divisor=None,
        confidence_floor=0.5,
    ),
    network=NetworkSettings(
        inputs=(
            ('price', 10_000_000), ('bedrooms', 10), ('bathrooms', 10), ('area', 10_000),
            ('price_per_sqft', 1000), ('amenities_score', 1), ('market_demand', 1),
            ('price_competitiveness', 1), ('price_sensitivity', 1), ('location_loyalty', 1),
            ('amenity_importance', 1), ('budget_flexibility', 1),
        ),
        layers=((0.6, 0.2), (0.4, 0.1)),
        profile_divisor=None,
        confidence_floor=0.6,
        confidence_lift=0.2,
        hidden_factor_count=3,
    ),
    fallback=FallbackSettings(wishlist_weight=1.0, booking_weight=1.0, view_weight=0.1, confidence=0.6),
    market_demand_weights={'views': 0.4, 'wishlist': 0.4, 'bookings': 0.2, 'reviews': 0.0},
    price_competitiveness_bands=((3000, 1.0), (5000, 0.8), (8000, 0.6), (12000, 0.4)),
    price_competitiveness_floor=0.2,
    price_sensitivity_factor=0.1,
    price_affinity_base=1.0,
    price_affinity_sensitivity=0.0,
    user_location_loyalty_scale=0.0,
    user_location_score_bonus=0.0,
    user_type_score_bonus=0.0,
    diversity_step=0.0,
    diversity_cap=0.0,
    confidence_lift=0.0,
    score_cap=1.0,
)

ENHANCED_TIER = ModelTier(
    name="enhanced",
    amenity_checklist=EXTENDED_AMENITIES,
    models={
        MATRIX_FACTORIZATION: ModelSettings(threshold=0.4, weight=0.20, accuracy=0.92),
        RANDOM_FOREST: ModelSettings(threshold=0.35, weight=0.25, accuracy=0.93),
        NEURAL_NETWORK: ModelSettings(threshold=0.35, weight=0.25, accuracy=0.94),
        K_MEANS: ModelSettings(threshold=0.7, weight=0.15, accuracy=0.91),
        TIME_SERIES: ModelSettings(threshold=0.75, weight=0.15, accuracy=0.91),
    },
    matrix=MatrixSettings(
        booking_weight=3.0,
        include_reviews=True,
        base_score=0.5,
        score_floor=0.4,
        profile_boost=True,
        confidence_multiplier=1.2,
    ),
    forest=ForestSettings(
        weights={
            'price': 0.25, 'location': 0.20, 'type': 0.15, 'amenity': 0.15,
            'market': 0.10, 'investment': 0.10, 'social': 0.05,
        },
        reason_thresholds={
            'price': 0.7, 'location': 0.6, 'type': 0.5, 'amenity': 0.6,
            'market': 0.7, 'investment': 0.6, 'social': 0.7,
        },
        reasons={
            'price': 'Excellent price match',
            'location': 'Perfect location match',
            'type': 'Property type preference match',
            'amenity': 'Amenities match your requirements',
            'market': 'Excellent market value',
            'investment': 'High investment potential',
            'social': 'Highly rated by others',
        },
        price_no_history=0.7,
        price_diff_base=0.2,
        price_diff_sensitivity=0.3,
        price_flexibility_bonus=0.2,
        location_base=0.5,
        location_score_bonus=0.3,
        type_base=0.4,
        type_score_bonus=0.3,
        amenity_base=0.5,
        amenity_coverage=0.3,
        amenity_importance=0.4,
        amenity_luxury_bonus=0.2,
        market_base=0.6,
        market_scale=0.4,
        market_includes_trend=True,
        profile_divisor=100.0,
        confidence_floor=0.6,
    ),
    network=NetworkSettings(
        inputs=(
            ('price', 20_000_000), ('bedrooms', 10), ('bathrooms', 10), ('area', 20_000),
            ('price_per_sqft', 2000), ('amenities_score', 1), ('market_demand', 1),
            ('price_competitiveness', 1), ('location_score', 100), ('investment_potential', 1),
            ('social_proof', 1), ('price_sensitivity', 1), ('location_loyalty', 1),
            ('amenity_importance', 1), ('budget_flexibility', 1), ('luxury_amenities', 1),
            ('market_trend', 1), ('appreciation_potential', 1), ('affordability_index', 1),
            ('completeness_score', 1),
        ),
        layers=((0.9, 0.4), (0.7, 0.3), (0.6, 0.2)),
        profile_divisor=200.0,
        confidence_floor=0.7,
        confidence_lift=0.3,
        hidden_factor_count=5,
    ),
    fallback=FallbackSettings(wishlist_weight=0.4, booking_weight=0.3, view_weight=0.3, confidence=0.8),
    market_demand_weights={'views': 0.3, 'wishlist': 0.3, 'bookings': 0.2, 'reviews': 0.2},
    price_competitiveness_bands=((2000, 1.0), (4000, 0.9), (6000, 0.7), (10000, 0.5)),
    price_competitiveness_floor=0.3,
    price_sensitivity_factor=0.05,
    price_affinity_base=0.3,
    price_affinity_sensitivity=0.4,
    user_location_loyalty_scale=1.0,
    user_location_score_bonus=0.3,
    user_type_score_bonus=0.2,
    diversity_step=0.02,
    diversity_cap=0.1,
    confidence_lift=0.1,
    score_cap=0.98,
)

TIERS = {tier.name: tier for tier in (ADVANCED_TIER, ENHANCED_TIER)}


def get_tier(name: str) -> ModelTier:
    """Look up a tier by name, raising ValueError for unknown names"""
    try:
        return TIERS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown model tier '{name}', expected one of {sorted(TIERS)}")
