"""
Unit tests for the UserProfileBuilder and behavioural pattern extraction.
"""

import pytest
from unittest.mock import AsyncMock
from uuid import uuid4

from domain.entities.listing import Listing
from domain.entities.user_profile import UserProfile, NEUTRAL_TRAIT
from domain.services.profile_builder import (
    UserProfileBuilder, extract_search_patterns, extract_time_preferences,
    extract_seasonal_patterns, sentiment_score, satisfaction_level,
    analyze_profile, profile_strength,
)
from infrastructure.data.repositories.memory_repositories import InMemoryInteractionRepository
from infrastructure.ml.models.model_tiers import ADVANCED_TIER, ENHANCED_TIER
from tests.utils.data_factories import InteractionFactory, FactoryConfig


def _listing(price, city, **kwargs):
    defaults = dict(
        state='Maharashtra', property_type='apartment', bedrooms=2, bathrooms=2.0,
        area=1000.0, furnished=True, parking=True, amenities=['gym'],
        property_age=2.0, view_count=100,
    )
    defaults.update(kwargs)
    return Listing.create(price=price, city=city, **defaults)


class TestUserProfileBuilder:
    """Test cases for building profiles from interaction history."""

    def setup_method(self):
        self.interactions = InteractionFactory(FactoryConfig(seed=42))
        self.user_id = uuid4()
        self.a = _listing(1_000_000, 'Mumbai')
        self.b = _listing(2_000_000, 'Mumbai')
        self.c = _listing(3_000_000, 'Pune')
        self.repository = InMemoryInteractionRepository([
            self.interactions.wishlist(self.user_id, self.a),
            self.interactions.wishlist(self.user_id, self.b),
            self.interactions.booking(self.user_id, self.c),
        ])
        self.builder = UserProfileBuilder(self.repository, ENHANCED_TIER)

    @pytest.mark.asyncio
    async def test_empty_history_returns_new_user_sentinel(self):
        builder = UserProfileBuilder(InMemoryInteractionRepository(), ENHANCED_TIER)

        profile = await builder.build_profile(uuid4())

        assert profile.is_new_user
        assert profile.avg_price == 0
        assert profile.total_interactions == 0
        assert all(value == NEUTRAL_TRAIT for value in profile.traits().values())

    @pytest.mark.asyncio
    async def test_averages_and_preferences(self):
        profile = await self.builder.build_profile(self.user_id)

        assert not profile.is_new_user
        assert profile.total_interactions == 3
        assert profile.avg_price == pytest.approx(2_000_000)
        assert profile.avg_bedrooms == pytest.approx(2)
        assert profile.preferred_cities == {'Mumbai': 2, 'Pune': 1}
        assert profile.preferred_types == {'apartment': 3}
        assert profile.price_range.min == 1_000_000
        assert profile.price_range.max == 3_000_000

    @pytest.mark.asyncio
    async def test_derived_traits(self):
        profile = await self.builder.build_profile(self.user_id)

        assert profile.price_sensitivity == 1.0
        assert profile.location_loyalty == pytest.approx(0.5)
        assert profile.budget_flexibility == 1.0
        assert profile.risk_tolerance == pytest.approx(0.75)
        # furnished, parking and gym out of the fifteen-item checklist
        assert profile.amenity_importance == pytest.approx(3 / 15)
        assert profile.trend_following == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_traits_stay_in_unit_interval(self, user_id, user_history):
        builder = UserProfileBuilder(InMemoryInteractionRepository(user_history), ADVANCED_TIER)

        profile = await builder.build_profile(user_id)

        for name, value in profile.traits().items():
            assert 0.0 <= value <= 1.0, f"{name} out of range: {value}"

    @pytest.mark.asyncio
    async def test_repository_failure_propagates(self):
        repository = InMemoryInteractionRepository()
        repository.get_wishlist = AsyncMock(side_effect=Exception("Database connection failed"))
        builder = UserProfileBuilder(repository)

        with pytest.raises(Exception, match="Database connection failed"):
            await builder.build_profile(self.user_id)

    @pytest.mark.asyncio
    async def test_reviews_feed_sentiment(self):
        self.repository.add(self.interactions.review(self.user_id, self.a, rating=5.0))
        self.repository.add(self.interactions.review(self.user_id, self.b, rating=3.0))

        profile = await self.builder.build_profile(self.user_id)

        assert profile.total_interactions == 5
        assert profile.sentiment_score == pytest.approx(0.8)
        assert profile.satisfaction_level == pytest.approx(0.5)


class TestTraitFormulas:
    """Test cases for individual trait formulas."""

    def setup_method(self):
        self.builder = UserProfileBuilder(InMemoryInteractionRepository(), ENHANCED_TIER)

    def test_price_sensitivity_needs_two_prices(self):
        assert self.builder.price_sensitivity([1_000_000]) == NEUTRAL_TRAIT

    def test_price_sensitivity_with_zero_min_price(self):
        assert self.builder.price_sensitivity([0.0, 1_000_000]) == NEUTRAL_TRAIT

    def test_price_sensitivity_identical_prices(self):
        assert self.builder.price_sensitivity([1_000_000, 1_000_000]) == 0.0

    def test_location_loyalty_single_city(self):
        listings = [_listing(1_000_000, 'Mumbai'), _listing(2_000_000, 'Mumbai')]
        assert UserProfileBuilder.location_loyalty(listings) == 1.0

    def test_location_loyalty_all_different(self):
        listings = [_listing(1_000_000, city) for city in ('Mumbai', 'Pune', 'Delhi')]
        assert UserProfileBuilder.location_loyalty(listings) == 0.0

    def test_location_loyalty_ignores_unknown_city(self):
        listings = [_listing(1_000_000, 'Mumbai'), _listing(2_000_000, None)]
        assert UserProfileBuilder.location_loyalty(listings) == 1.0

    def test_budget_flexibility_clamped(self):
        assert UserProfileBuilder.budget_flexibility([1_000_000, 1_500_000]) == pytest.approx(0.5)
        assert UserProfileBuilder.budget_flexibility([1_000_000, 5_000_000]) == 1.0
        assert UserProfileBuilder.budget_flexibility([1_000_000]) == NEUTRAL_TRAIT


class TestBehaviouralPatterns:
    """Test cases for chat, booking and review pattern extraction."""

    def setup_method(self):
        self.factory = InteractionFactory(FactoryConfig(seed=42))
        self.user_id = uuid4()

    def test_search_patterns_from_chat(self):
        chats = [self.factory.chat_message(self.user_id, "Budget 3000000 to 5000000 in Pune")]

        patterns = extract_search_patterns(chats)

        assert patterns['price_range'] == {'min': 3_000_000.0, 'max': 5_000_000.0}
        assert patterns['common_keywords'] == {'budget': 1, '3000000': 1, '5000000': 1, 'pune': 1}
        assert patterns['search_frequency'] == 1

    def test_search_patterns_without_chat(self):
        patterns = extract_search_patterns([])
        assert patterns == {'price_range': {'min': 0.0, 'max': 0.0}, 'common_keywords': {}, 'search_frequency': 0}

    def test_time_preferences_use_zero_based_months_and_sunday_first(self):
        # The reference time is Monday 15 April 2024, so one day earlier is a Sunday
        booking = self.factory.booking(self.user_id, _listing(1_000_000, 'Mumbai'), days_ago=1)

        preferences = extract_time_preferences([booking])

        assert preferences == {'preferred_months': {3: 1}, 'preferred_days': {0: 1}}

    def test_seasonal_patterns(self):
        listing = _listing(1_000_000, 'Mumbai')
        bookings = [
            self.factory.booking(self.user_id, listing, days_ago=1),
            self.factory.booking(self.user_id, listing, days_ago=2),
            self.factory.booking(self.user_id, listing, days_ago=40),
        ]

        patterns = extract_seasonal_patterns(bookings)

        assert patterns['peak_months'][0] == 3
        assert set(patterns['peak_months']) == {3, 2}
        assert extract_seasonal_patterns([]) == {'peak_months': [], 'low_months': []}

    def test_sentiment_defaults_without_reviews(self):
        assert sentiment_score([]) == NEUTRAL_TRAIT
        assert satisfaction_level([]) == NEUTRAL_TRAIT


class TestProfileAnalysis:
    """Test cases for profile analysis output."""

    def test_profile_strength_of_new_user(self):
        assert profile_strength(UserProfile.new_user()) == pytest.approx(0.525)

    def test_analysis_sections(self, returning_profile):
        analysis = analyze_profile(returning_profile)

        assert analysis['is_new_user'] is False
        assert analysis['basic_preferences']['total_interactions'] == 5
        assert analysis['traits'] == returning_profile.traits()
        assert 'search_patterns' in analysis['behavioral_patterns']
        assert 0.0 <= analysis['profile_strength'] <= 1.0
