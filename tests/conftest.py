"""
Global pytest configuration and fixtures for the recommendation test suite.

This module provides deterministic listings, interaction histories,
in-memory repositories and a mocked Redis client shared by all test modules.
"""

import os
import pytest
from typing import List
from uuid import uuid4
from unittest.mock import AsyncMock

os.environ["TESTING"] = "1"

from domain.entities.interaction import Interaction
from domain.entities.listing import Listing
from domain.entities.user_profile import UserProfile, PriceRange
from infrastructure.data.repositories.memory_repositories import (
    InMemoryListingRepository, InMemoryInteractionRepository
)
from tests.utils.data_factories import (
    ListingFactory, InteractionFactory, FactoryConfig, REFERENCE_TIME
)


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "test_application" in str(item.fspath):
            item.add_marker(pytest.mark.api)
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


# =======================
# Data Fixtures
# =======================

@pytest.fixture
def reference_time():
    """Fixed moment used for every time-dependent feature."""
    return REFERENCE_TIME


@pytest.fixture
def listing_factory():
    return ListingFactory(FactoryConfig(seed=42))


@pytest.fixture
def interaction_factory():
    return InteractionFactory(FactoryConfig(seed=42))


@pytest.fixture
def sample_listings(listing_factory) -> List[Listing]:
    """Twenty deterministic listings across several cities and types."""
    return listing_factory.create_batch(20)


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def user_history(user_id, sample_listings, interaction_factory) -> List[Interaction]:
    """Interaction history of the primary test user over the first five listings."""
    return interaction_factory.create_history(user_id, sample_listings[:5])


@pytest.fixture
def community_interactions(sample_listings, interaction_factory) -> List[Interaction]:
    """Interactions of three other users overlapping with the primary user's listings."""
    interactions = []
    for offset in range(3):
        other_user = uuid4()
        interactions.extend(
            interaction_factory.create_history(other_user, sample_listings[offset:offset + 8])
        )
    return interactions


# =======================
# Repository Fixtures
# =======================

@pytest.fixture
def listing_repository(sample_listings):
    return InMemoryListingRepository(sample_listings)


@pytest.fixture
def interaction_repository(user_history, community_interactions):
    return InMemoryInteractionRepository(user_history + community_interactions)


@pytest.fixture
def new_user_profile(user_id):
    return UserProfile.new_user(user_id)


@pytest.fixture
def mock_redis():
    """Mock asyncio Redis client for testing."""
    mock_redis = AsyncMock()
    mock_redis.get.return_value = None
    mock_redis.setex.return_value = True
    mock_redis.delete.return_value = 1
    mock_redis.ping.return_value = True
    return mock_redis


@pytest.fixture
def returning_profile(user_id):
    """Profile of a user with five interactions, built directly for scorer tests."""
    return UserProfile(
        user_id=user_id,
        avg_price=5_000_000.0,
        avg_bedrooms=2.5,
        avg_bathrooms=2.0,
        avg_area=1500.0,
        preferred_types={'apartment': 3, 'villa': 2},
        preferred_cities={'Mumbai': 3, 'Pune': 2},
        preferred_states={'Maharashtra': 5},
        price_range=PriceRange(min=3_000_000.0, max=7_000_000.0),
        total_interactions=5,
        price_sensitivity=0.4,
        location_loyalty=0.75,
        amenity_importance=0.5,
        budget_flexibility=1.0,
        risk_tolerance=0.625,
        trend_following=0.5,
    )
