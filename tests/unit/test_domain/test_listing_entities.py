"""
Unit tests for the Listing, Interaction, UserProfile and Recommendation entities.
"""

import dataclasses
import pytest
from uuid import uuid4

from domain.entities.interaction import Interaction, InteractionType
from domain.entities.listing import Listing
from domain.entities.recommendation import Recommendation, ModelContribution, ranking_key
from domain.entities.user_profile import UserProfile, NEUTRAL_TRAIT
from tests.utils.data_factories import ListingFactory, FactoryConfig


class TestListing:
    """Test cases for the Listing entity."""

    def setup_method(self):
        self.factory = ListingFactory(FactoryConfig(seed=42))

    def test_create_fills_documented_defaults(self):
        listing = Listing.create(price=2_500_000)

        assert listing.id is not None
        assert listing.city == "unknown"
        assert listing.state == "unknown"
        assert listing.property_type == "unknown"
        assert listing.amenities == frozenset()
        assert listing.bedrooms == 0
        assert listing.area == 0.0
        assert listing.created_at is not None

    def test_create_clamps_negative_price(self):
        listing = Listing.create(price=-10)
        assert listing.price == 0.0

    def test_listing_is_immutable(self):
        listing = self.factory.create()
        with pytest.raises(dataclasses.FrozenInstanceError):
            listing.price = 1.0

    def test_has_amenity_reads_boolean_flags(self):
        listing = Listing.create(price=1_000_000, furnished=True, parking=False, amenities=['gym'])

        assert listing.has_amenity('furnished')
        assert not listing.has_amenity('parking')
        assert listing.has_amenity('gym')
        assert not listing.has_amenity('swimmingPool')

    def test_price_per_area_guards_zero_area(self):
        listing = self.factory.create_edge_case_listing("zero_area", price=3_000_000)

        assert listing.get_price_per_area() == 3_000_000
        assert listing.get_price_per_area(epsilon=10.0) == 300_000

    def test_discount_percentage_requires_offer(self):
        with_offer = Listing.create(price=1_000_000, discount_price=900_000, offer=True)
        without_offer = Listing.create(price=1_000_000, discount_price=900_000, offer=False)

        assert with_offer.get_discount_percentage() == pytest.approx(10.0)
        assert without_offer.get_discount_percentage() == 0.0

    def test_price_ratio_defaults_to_one(self):
        assert Listing.create(price=1_000_000).get_price_ratio() == 1.0
        assert Listing.create(price=1_000_000, discount_price=800_000).get_price_ratio() == pytest.approx(0.8)

    def test_helpers_treat_missing_values_as_zero(self):
        listing = dataclasses.replace(
            Listing.create(price=1_000_000, area=500.0, discount_price=900_000, offer=True),
            price=None, area=None, amenities=None,
        )

        assert listing.get_price_per_area() == 0.0
        assert listing.get_discount_percentage() == 0.0
        assert listing.get_price_ratio() == 1.0
        assert not listing.has_amenity('gym')

    def test_price_per_area_with_missing_area_uses_epsilon(self):
        listing = dataclasses.replace(Listing.create(price=2_000_000), area=None)
        assert listing.get_price_per_area(epsilon=4.0) == 500_000


class TestUserProfile:
    """Test cases for the UserProfile entity."""

    def test_new_user_sentinel(self):
        user_id = uuid4()
        profile = UserProfile.new_user(user_id)

        assert profile.is_new_user
        assert profile.user_id == user_id
        assert profile.avg_price == 0.0
        assert profile.total_interactions == 0
        assert all(value == NEUTRAL_TRAIT for value in profile.traits().values())

    def test_preferences_are_frequencies(self):
        profile = UserProfile(
            preferred_cities={'Mumbai': 3, 'Pune': 1},
            preferred_types={'villa': 2},
            total_interactions=4,
        )

        assert profile.city_preference('Mumbai') == pytest.approx(0.75)
        assert profile.city_preference('Delhi') == 0.0
        assert profile.type_preference('villa') == pytest.approx(0.5)

    def test_preferences_without_interactions_are_zero(self):
        profile = UserProfile(preferred_cities={'Mumbai': 3})
        assert profile.city_preference('Mumbai') == 0.0


class TestRecommendation:
    """Test cases for the Recommendation entity."""

    def setup_method(self):
        self.factory = ListingFactory(FactoryConfig(seed=42))

    def test_contributing_models_defaults_to_model_name(self):
        rec = Recommendation(self.factory.create(), 0.8, 0.9, "random-forest", "Random Forest")
        assert rec.contributing_models == ["Random Forest"]

    def test_model_breakdown_uses_weighted_scores(self):
        contributions = (
            ModelContribution(name="Neural Network", score=0.8, confidence=0.9, weighted_score=0.188),
            ModelContribution(name="Random Forest", score=0.6, confidence=0.7, weighted_score=0.1395),
        )
        rec = Recommendation(self.factory.create(), 0.4, 0.9, "ensemble", "Ensemble", contributions=contributions)

        assert rec.contributing_models == ["Neural Network", "Random Forest"]
        assert rec.model_breakdown() == {"Neural Network": 0.188, "Random Forest": 0.1395}

    def test_ranking_key_breaks_ties_by_listing_id(self):
        listings = self.factory.create_batch(3)
        recs = [Recommendation(listing, 0.5, 0.5, "fallback", "Popularity") for listing in listings]

        ranked = sorted(recs, key=ranking_key)
        assert [str(r.listing_id) for r in ranked] == sorted(str(listing.id) for listing in listings)


class TestInteraction:
    """Test cases for the Interaction entity."""

    def test_listing_id_comes_from_listing(self):
        listing = Listing.create(price=1_000_000)
        interaction = Interaction.create(uuid4(), listing, InteractionType.BOOKING)

        assert interaction.listing_id == listing.id
        assert interaction.rating is None
        assert interaction.created_at is not None
