# Data infrastructure layer
from .config import (
    RecommenderConfig,
    RedisConfig,
    RedisManager,
    load_recommender_config,
    load_redis_config,
    configure_logging,
)
from .repositories import (
    InMemoryListingRepository,
    InMemoryInteractionRepository,
    RedisMatrixStore,
)

__all__ = [
    # Configuration
    'RecommenderConfig',
    'RedisConfig',
    'RedisManager',
    'load_recommender_config',
    'load_redis_config',
    'configure_logging',

    # Repositories
    'InMemoryListingRepository',
    'InMemoryInteractionRepository',
    'RedisMatrixStore',
]
