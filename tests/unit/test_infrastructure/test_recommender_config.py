"""
Unit tests for configuration loading and the in-memory repositories.
"""

import os
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from infrastructure.data.config import (
    RecommenderConfig, RedisConfig, RedisManager, load_recommender_config, load_redis_config,
)
from infrastructure.data.repositories.memory_repositories import (
    InMemoryListingRepository, InMemoryInteractionRepository,
)
from infrastructure.ml.models.kmeans_clustering import NEAREST_ASSIGNMENT
from infrastructure.ml.models.model_tiers import ADVANCED_TIER, ENHANCED_TIER
from tests.utils.data_factories import REFERENCE_TIME

RECOMMENDER_ENV = (
    "RECOMMENDER_TIER", "RECOMMENDER_DEFAULT_LIMIT", "RECOMMENDER_MAX_LIMIT",
    "RECOMMENDER_CANDIDATE_POOL_SIZE", "RECOMMENDER_FALLBACK_LIMIT",
    "RECOMMENDER_MATRIX_CACHE_TTL_SECONDS", "RECOMMENDER_CLUSTER_ASSIGNMENT",
    "RECOMMENDER_TRENDING_WINDOW_DAYS", "LOG_LEVEL", "REDIS_HOST", "REDIS_PORT",
    "REDIS_DB", "REDIS_PASSWORD", "REDIS_ENABLED",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in RECOMMENDER_ENV:
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "missing.env"


class TestRecommenderConfig:
    """Test cases for RecommenderConfig."""

    def test_defaults(self):
        config = RecommenderConfig()

        assert config.tier is ENHANCED_TIER
        assert config.default_limit == 10
        assert config.max_limit == 50
        assert config.matrix_cache_ttl_seconds == 900
        assert config.redis.enabled is False

    def test_load_from_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv("RECOMMENDER_TIER", "Advanced")
        monkeypatch.setenv("RECOMMENDER_DEFAULT_LIMIT", "5")
        monkeypatch.setenv("RECOMMENDER_MAX_LIMIT", "20")
        monkeypatch.setenv("RECOMMENDER_CLUSTER_ASSIGNMENT", "nearest")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = load_recommender_config(clean_env)

        assert config.tier is ADVANCED_TIER
        assert config.default_limit == 5
        assert config.max_limit == 20
        assert config.cluster_assignment == NEAREST_ASSIGNMENT
        assert config.log_level == "DEBUG"

    def test_load_from_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("RECOMMENDER_FALLBACK_LIMIT=7\n")

        try:
            config = load_recommender_config(env_file)
        finally:
            os.environ.pop("RECOMMENDER_FALLBACK_LIMIT", None)

        assert config.fallback_limit == 7

    @pytest.mark.parametrize("kwargs", [
        {"tier_name": "legacy"},
        {"default_limit": 0},
        {"default_limit": 60, "max_limit": 50},
        {"cluster_assignment": "random"},
        {"matrix_cache_ttl_seconds": -1},
    ])
    def test_invalid_values_are_rejected(self, kwargs):
        with pytest.raises(ValueError):
            RecommenderConfig(**kwargs)


class TestRedisConfig:
    """Test cases for Redis configuration."""

    def test_url_without_password(self):
        assert RedisConfig(host="cache", port=6380, db=2).url == "redis://cache:6380/2"

    def test_url_with_password(self):
        assert RedisConfig(password="secret").url == "redis://:secret@localhost:6379/0"

    def test_load_redis_config(self, clean_env, monkeypatch):
        monkeypatch.setenv("REDIS_HOST", "redis.internal")
        monkeypatch.setenv("REDIS_ENABLED", "true")

        config = load_redis_config()

        assert config.host == "redis.internal"
        assert config.enabled is True

    @pytest.mark.asyncio
    async def test_manager_initialize_and_close(self, mock_redis):
        manager = RedisManager(RedisConfig())

        with patch("infrastructure.data.config.redis.from_url", return_value=mock_redis):
            client = await manager.initialize()

        assert client is mock_redis
        mock_redis.ping.assert_awaited_once()
        await manager.close()
        mock_redis.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_manager_raises_when_unreachable(self):
        client = AsyncMock()
        client.ping.side_effect = ConnectionError("refused")
        manager = RedisManager(RedisConfig())

        with patch("infrastructure.data.config.redis.from_url", return_value=client):
            with pytest.raises(ConnectionError):
                await manager.initialize()


class TestInMemoryRepositories:
    """Test cases for the in-memory repositories."""

    @pytest.mark.asyncio
    async def test_candidates_are_newest_first(self, listing_factory):
        old = listing_factory.create(created_at=REFERENCE_TIME - timedelta(days=30))
        new = listing_factory.create(created_at=REFERENCE_TIME - timedelta(days=1))
        repository = InMemoryListingRepository([old, new])

        assert await repository.get_candidates() == [new, old]
        assert await repository.get_candidates(limit=1) == [new]

    @pytest.mark.asyncio
    async def test_lookup_by_id(self, listing_repository, sample_listings):
        assert await listing_repository.get_by_id(sample_listings[0].id) is sample_listings[0]
        found = await listing_repository.get_by_ids([sample_listings[1].id, sample_listings[2].id])
        assert found == [sample_listings[1], sample_listings[2]]

    @pytest.mark.asyncio
    async def test_interactions_by_type(self, user_id, user_history):
        repository = InMemoryInteractionRepository(user_history)

        assert len(await repository.get_wishlist(user_id)) == 5
        assert len(await repository.get_bookings(user_id)) == 3
        assert len(await repository.get_reviews(user_id)) == 2
        assert len(await repository.get_all_interactions()) == 10

    @pytest.mark.asyncio
    async def test_chat_history_per_user(self, user_id, interaction_factory):
        repository = InMemoryInteractionRepository()
        repository.add_chat_message(interaction_factory.chat_message(user_id, "2BHK in Pune"))

        assert len(await repository.get_chat_history(user_id)) == 1
        assert await repository.get_chat_history(object()) == []
