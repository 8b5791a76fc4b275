import asyncio
import logging
import re
from collections import Counter
from typing import List, Dict, Any, Optional
from uuid import UUID

from ..entities.interaction import Interaction, ChatMessage
from ..entities.listing import Listing
from ..entities.user_profile import UserProfile, PriceRange, NEUTRAL_TRAIT
from ..repositories.interaction_repository import InteractionRepository
from infrastructure.ml.models.feature_extractor import FeatureExtractor
from infrastructure.ml.models.model_tiers import ModelTier, ENHANCED_TIER

PRICE_PATTERN = re.compile(r'₹?(\d+(?:,\d{3})*(?:\.\d{2})?)\s*(?:lakh|crore|cr|lk)?')


class UserProfileBuilder:
    """Aggregates a user's wishlist, booking and review history into a UserProfile.

    A listing touched several ways is counted once per interaction, which
    weights it more heavily in the averages.
    """

    def __init__(self, interaction_repository: InteractionRepository,
                 tier: ModelTier = ENHANCED_TIER,
                 feature_extractor: Optional[FeatureExtractor] = None):
        self.interaction_repository = interaction_repository
        self.tier = tier
        self.feature_extractor = feature_extractor or FeatureExtractor(tier)
        self.logger = logging.getLogger(__name__)

    async def build_profile(self, user_id: UUID) -> UserProfile:
        """
        Build a fresh profile for the user.

        Args:
            user_id: The user whose history is aggregated

        Returns:
            The derived profile, or the new-user sentinel when the user has
            no wishlist, booking or review history
        """
        wishlist, bookings, reviews, chat_history = await asyncio.gather(
            self.interaction_repository.get_wishlist(user_id),
            self.interaction_repository.get_bookings(user_id),
            self.interaction_repository.get_reviews(user_id),
            self.interaction_repository.get_chat_history(user_id),
        )

        listings = [i.listing for i in [*wishlist, *bookings, *reviews] if i.listing is not None]
        if not listings:
            self.logger.info(f"No interaction history for user {user_id}, using new-user profile")
            return UserProfile.new_user(user_id)

        count = len(listings)
        prices = [listing.price or 0.0 for listing in listings]
        budget_flexibility = self.budget_flexibility(prices)
        location_loyalty = self.location_loyalty(listings)

        return UserProfile(
            user_id=user_id,
            avg_price=sum(prices) / count,
            avg_bedrooms=sum(listing.bedrooms or 0 for listing in listings) / count,
            avg_bathrooms=sum(listing.bathrooms or 0 for listing in listings) / count,
            avg_area=sum(listing.area or 0 for listing in listings) / count,
            preferred_types=dict(Counter(listing.property_type for listing in listings)),
            preferred_cities=dict(Counter(listing.city for listing in listings)),
            preferred_states=dict(Counter(listing.state for listing in listings)),
            price_range=PriceRange(min=min(prices), max=max(prices)),
            total_interactions=count,
            price_sensitivity=self.price_sensitivity(prices),
            location_loyalty=location_loyalty,
            amenity_importance=self.amenity_importance(listings),
            budget_flexibility=budget_flexibility,
            risk_tolerance=(budget_flexibility + (1 - location_loyalty)) / 2,
            trend_following=self.trend_following(listings),
            search_patterns=extract_search_patterns(chat_history),
            time_preferences=extract_time_preferences(bookings),
            seasonal_patterns=extract_seasonal_patterns(bookings),
            sentiment_score=sentiment_score(reviews),
            satisfaction_level=satisfaction_level(reviews),
            is_new_user=False,
        )

    def price_sensitivity(self, prices: List[float]) -> float:
        """Population variance of prices relative to the cheapest one, clamped to [0, 1]"""
        if len(prices) < 2:
            return NEUTRAL_TRAIT
        lowest = min(prices)
        if lowest <= 0:
            return NEUTRAL_TRAIT
        mean = sum(prices) / len(prices)
        variance = sum((price - mean) ** 2 for price in prices) / len(prices)
        return min(1.0, variance / (lowest * self.tier.price_sensitivity_factor))

    @staticmethod
    def location_loyalty(listings: List[Listing]) -> float:
        cities = [listing.city for listing in listings if listing.city and listing.city != 'unknown']
        if len(cities) <= 1:
            return 1.0
        return 1 - (len(set(cities)) - 1) / (len(cities) - 1)

    def amenity_importance(self, listings: List[Listing]) -> float:
        return sum(self.feature_extractor.amenity_ratio(listing) for listing in listings) / len(listings)

    @staticmethod
    def budget_flexibility(prices: List[float]) -> float:
        if len(prices) < 2:
            return NEUTRAL_TRAIT
        lowest, highest = min(prices), max(prices)
        if lowest <= 0:
            return NEUTRAL_TRAIT
        return min(1.0, (highest - lowest) / lowest)

    @staticmethod
    def trend_following(listings: List[Listing]) -> float:
        avg_age = sum(listing.property_age or 0 for listing in listings) / len(listings)
        avg_views = sum(listing.view_count or 0 for listing in listings) / len(listings)
        return (max(0.0, 1 - avg_age / 10) + min(1.0, avg_views / 100)) / 2


def extract_search_patterns(chat_history: List[ChatMessage]) -> Dict[str, Any]:
    """Price mentions and keyword frequencies from chat messages"""
    low: Optional[float] = None
    high = 0.0
    keywords: Counter = Counter()

    for chat in chat_history:
        message = (chat.message or '').lower()
        for match in PRICE_PATTERN.finditer(message):
            price = float(match.group(1).replace(',', ''))
            if price > 0:
                low = price if low is None else min(low, price)
                high = max(high, price)
        keywords.update(word for word in message.split() if len(word) > 2)

    return {
        'price_range': {'min': low if low is not None else 0.0, 'max': high},
        'common_keywords': dict(keywords),
        'search_frequency': len(chat_history),
    }


def _month(interaction: Interaction) -> int:
    return interaction.created_at.month - 1


def extract_time_preferences(bookings: List[Interaction]) -> Dict[str, Any]:
    """Booking counts per month (0 = January) and per weekday (0 = Sunday)"""
    months: Counter = Counter()
    days: Counter = Counter()
    for booking in bookings:
        months[_month(booking)] += 1
        days[(booking.created_at.weekday() + 1) % 7] += 1
    return {'preferred_months': dict(months), 'preferred_days': dict(days)}


def extract_seasonal_patterns(bookings: List[Interaction]) -> Dict[str, Any]:
    if not bookings:
        return {'peak_months': [], 'low_months': []}

    counts = Counter(_month(booking) for booking in bookings)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return {
        'peak_months': [month for month, _ in ranked[:3]],
        'low_months': [month for month, _ in ranked[-3:]],
    }


def sentiment_score(reviews: List[Interaction]) -> float:
    if not reviews:
        return NEUTRAL_TRAIT
    return sum(review.rating or 0 for review in reviews) / (len(reviews) * 5)


def satisfaction_level(reviews: List[Interaction]) -> float:
    if not reviews:
        return NEUTRAL_TRAIT
    return sum(1 for review in reviews if (review.rating or 0) >= 4) / len(reviews)


def analyze_profile(profile: UserProfile) -> Dict[str, Any]:
    """Summarise a profile for display, including an overall strength score"""
    return {
        'is_new_user': profile.is_new_user,
        'basic_preferences': {
            'avg_price': profile.avg_price,
            'avg_bedrooms': profile.avg_bedrooms,
            'avg_bathrooms': profile.avg_bathrooms,
            'avg_area': profile.avg_area,
            'preferred_types': dict(profile.preferred_types),
            'preferred_cities': dict(profile.preferred_cities),
            'preferred_states': dict(profile.preferred_states),
            'price_range': {'min': profile.price_range.min, 'max': profile.price_range.max},
            'total_interactions': profile.total_interactions,
        },
        'traits': profile.traits(),
        'behavioral_patterns': {
            'search_patterns': profile.search_patterns,
            'time_preferences': profile.time_preferences,
            'seasonal_patterns': profile.seasonal_patterns,
            'sentiment_score': profile.sentiment_score,
            'satisfaction_level': profile.satisfaction_level,
        },
        'profile_strength': profile_strength(profile),
    }


def profile_strength(profile: UserProfile) -> float:
    strength = (
        min(1.0, profile.total_interactions / 10) * 0.3
        + (1 - abs(profile.price_sensitivity - 0.5)) * 0.2
        + profile.location_loyalty * 0.2
        + profile.amenity_importance * 0.15
        + (1 - abs(profile.budget_flexibility - 0.5)) * 0.15
    )
    return min(1.0, strength)
