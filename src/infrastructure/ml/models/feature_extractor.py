import math
import logging
from datetime import datetime
from typing import Dict, Any, Optional

from domain.entities.listing import Listing
from domain.entities.user_profile import UserProfile
from .model_tiers import ModelTier, ENHANCED_TIER

logger = logging.getLogger(__name__)

FeatureVector = Dict[str, Any]

METRO_CITIES = frozenset([
    'Mumbai', 'Delhi', 'Bangalore', 'Chennai', 'Kolkata', 'Hyderabad', 'Pune', 'Ahmedabad',
])
TIER1_CITIES = METRO_CITIES | frozenset(['Jaipur', 'Surat', 'Lucknow', 'Kanpur'])
TIER2_CITIES = frozenset([
    'Kochi', 'Indore', 'Bhopal', 'Visakhapatnam', 'Vadodara', 'Ludhiana', 'Nashik', 'Agra',
])

# Demand multiplier per calendar month, January first
SEASONAL_FACTORS = (0.8, 0.9, 1.0, 1.1, 1.0, 0.9, 0.8, 0.9, 1.0, 1.1, 1.0, 0.9)

PROPERTY_TYPE_SCORES = {
    'apartment': 0.8,
    'house': 0.9,
    'villa': 1.0,
    'condo': 0.7,
    'studio': 0.6,
    'penthouse': 1.0,
}
DEFAULT_TYPE_SCORE = 0.5

RENTAL_YIELD_RATE = 0.05


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp to [low, high], mapping NaN to low"""
    if value is None or math.isnan(value):
        return low
    return max(low, min(high, value))


def location_score(city: str) -> float:
    if city in METRO_CITIES:
        return 100.0
    if city in TIER1_CITIES:
        return 80.0
    return 60.0


def property_type_score(property_type: str) -> float:
    return PROPERTY_TYPE_SCORES.get((property_type or '').lower(), DEFAULT_TYPE_SCORE)


def price_category(price: float) -> int:
    if price < 500_000:
        return 1
    if price < 1_000_000:
        return 2
    if price < 2_000_000:
        return 3
    if price < 5_000_000:
        return 4
    return 5


def property_condition(age: float) -> float:
    if age <= 2:
        return 100.0
    if age <= 5:
        return 80.0
    if age <= 10:
        return 60.0
    return 40.0


def seasonal_demand(moment: datetime) -> float:
    return SEASONAL_FACTORS[moment.month - 1]


class FeatureExtractor:
    """Derives the flat feature vector every scorer consumes.

    Extraction is a pure function of the listing, the optional profile and
    the reference time, so repeated calls with the same inputs yield identical
    vectors. Per-area ratios guard zero areas with ``area_epsilon``.
    """

    def __init__(self, tier: ModelTier = ENHANCED_TIER, area_epsilon: float = 1.0):
        self.tier = tier
        self.area_epsilon = area_epsilon

    def amenity_ratio(self, listing: Listing) -> float:
        checklist = self.tier.amenity_checklist
        present = sum(1 for amenity in checklist if listing.has_amenity(amenity))
        return present / len(checklist)

    def extract_features(self, listing: Listing, profile: Optional[UserProfile] = None,
                         reference_time: Optional[datetime] = None) -> FeatureVector:
        reference_time = reference_time or datetime.now()
        price = max(0.0, listing.price or 0.0)
        age = max(0.0, listing.property_age or 0.0)
        price_per_sqft = listing.get_price_per_area(self.area_epsilon)

        loc_score = location_score(listing.city)
        amenities_score = self.amenity_ratio(listing)
        demand = self._market_demand(listing)
        competitiveness = self._price_competitiveness(price_per_sqft)
        trend = self._market_trend(age, demand)
        listing_age = self._listing_age(listing, reference_time)

        features: FeatureVector = {
            # Basic
            'price': price,
            'bedrooms': listing.bedrooms or 0,
            'bathrooms': listing.bathrooms or 0,
            'area': listing.area or 0.0,
            'type': listing.property_type or 'unknown',
            'city': listing.city or 'unknown',
            'state': listing.state or 'unknown',
            'furnished': 1 if listing.furnished else 0,
            'parking': 1 if listing.parking else 0,
            'offer': 1 if listing.offer else 0,
            'discount_price': listing.discount_price or 0.0,

            # Price
            'price_per_sqft': price_per_sqft,
            'price_ratio': listing.get_price_ratio(),
            'discount_percentage': listing.get_discount_percentage(),
            'price_category': price_category(price),

            # Location
            'is_metro_city': 1 if listing.city in METRO_CITIES else 0,
            'is_tier1_city': 1 if listing.city in TIER1_CITIES else 0,
            'is_tier2_city': 1 if listing.city in TIER2_CITIES else 0,
            'location_score': loc_score,

            # Property
            'property_age': age,
            'is_new_property': 1 if age <= 2 else 0,
            'is_old_property': 1 if age >= 10 else 0,
            'property_condition': property_condition(age),
            'type_score': property_type_score(listing.property_type),

            # Amenities
            'amenities_score': amenities_score,
            'luxury_amenities': self._coverage(listing, self.tier.luxury_amenities),
            'basic_amenities': self._coverage(listing, self.tier.basic_amenities),

            # Market
            'market_demand': demand,
            'price_competitiveness': competitiveness,
            'market_trend': trend,
            'investment_potential': (loc_score * 0.4 + trend * 0.3 + amenities_score * 0.3) / 100,

            # Temporal
            'listing_age': listing_age,
            'seasonal_demand': seasonal_demand(reference_time),
            'time_to_market': max(0.0, 1 - (listing_age * 0.5 + (1 - demand) * 0.5)),

            # Quality
            'image_quality': min(len(listing.images or []) / 10, 1.0),
            'description_quality': min(len((listing.description or '').split(' ')) / 200, 1.0),
            'completeness_score': self._completeness(listing),

            # Social
            'review_score': listing.average_rating or 0.0,
            'review_count': listing.review_count or 0,
            'social_proof': self._social_proof(listing),

            # Investment
            'rental_yield': RENTAL_YIELD_RATE * 100 if price > 0 else 0.0,
            'appreciation_potential': (loc_score * 0.5 + trend * 0.3 + amenities_score * 0.2) / 100,
            'affordability_index': max(0.0, 1 - price_per_sqft / 10000),
        }
        features.update(self._user_features(listing, profile, features))
        return features

    def _coverage(self, listing: Listing, amenities) -> float:
        return sum(1 for amenity in amenities if listing.has_amenity(amenity)) / len(amenities)

    def _market_demand(self, listing: Listing) -> float:
        weights = self.tier.market_demand_weights
        raw = (
            (listing.view_count or 0) * weights['views']
            + (listing.wishlist_count or 0) * weights['wishlist']
            + (listing.booking_count or 0) * weights['bookings']
            + (listing.review_count or 0) * weights['reviews']
        ) / 100
        return clamp(raw)

    def _price_competitiveness(self, price_per_sqft: float) -> float:
        for upper, value in self.tier.price_competitiveness_bands:
            if price_per_sqft < upper:
                return value
        return self.tier.price_competitiveness_floor

    @staticmethod
    def _market_trend(age: float, demand: float) -> float:
        if age <= 2 and demand > 0.7:
            return 1.0
        if age <= 5 and demand > 0.5:
            return 0.7
        return 0.4

    @staticmethod
    def _listing_age(listing: Listing, reference_time: datetime) -> float:
        # Listings without a creation date count as fully aged
        if listing.created_at is None:
            return 1.0
        created_at = listing.created_at
        if (created_at.tzinfo is None) != (reference_time.tzinfo is None):
            created_at = created_at.replace(tzinfo=reference_time.tzinfo)
        days = (reference_time - created_at).total_seconds() / 86400
        return clamp(days / 30)

    @staticmethod
    def _completeness(listing: Listing) -> float:
        fields = [
            listing.name, listing.description, listing.price, listing.bedrooms,
            listing.bathrooms, listing.area,
            listing.city if listing.city != 'unknown' else None,
            listing.state if listing.state != 'unknown' else None,
        ]
        return sum(1 for value in fields if value) / len(fields)

    @staticmethod
    def _social_proof(listing: Listing) -> float:
        raw = (
            (listing.average_rating or 0.0) * 0.4
            + min((listing.review_count or 0) / 10, 1.0) * 0.3
            + min((listing.wishlist_count or 0) / 20, 1.0) * 0.3
        )
        return clamp(raw)

    def _user_features(self, listing: Listing, profile: Optional[UserProfile],
                       features: FeatureVector) -> Dict[str, float]:
        if profile is None or profile.is_new_user:
            return {
                'user_price_affinity': 0.0,
                'user_location_preference': 0.0,
                'user_type_preference': 0.0,
                'user_amenity_preference': 0.0,
            }

        tier = self.tier
        if profile.avg_price > 0:
            diff = abs(features['price'] - profile.avg_price) / profile.avg_price
            scale = tier.price_affinity_base + profile.price_sensitivity * tier.price_affinity_sensitivity
            price_affinity = max(0.0, 1 - diff * scale)
        else:
            price_affinity = 0.5

        city_pref = profile.city_preference(listing.city)
        location_pref = min(
            1.0,
            city_pref * (1 + profile.location_loyalty * tier.user_location_loyalty_scale)
            + features['location_score'] / 100 * tier.user_location_score_bonus
        )
        type_pref = min(
            1.0,
            profile.type_preference(listing.property_type)
            + features['type_score'] * tier.user_type_score_bonus
        )
        amenity_pref = features['amenities_score'] * (0.5 + profile.amenity_importance * 0.5)

        return {
            'user_price_affinity': clamp(price_affinity),
            'user_location_preference': clamp(location_pref),
            'user_type_preference': clamp(type_pref),
            'user_amenity_preference': clamp(amenity_pref),
        }
