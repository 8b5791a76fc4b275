# Repository implementations
from .memory_repositories import InMemoryListingRepository, InMemoryInteractionRepository
from .redis_cache_repository import RedisMatrixStore

__all__ = [
    'InMemoryListingRepository',
    'InMemoryInteractionRepository',
    'RedisMatrixStore'
]
