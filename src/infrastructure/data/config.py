import os
import logging
from typing import Optional
from dataclasses import dataclass, field
from pathlib import Path

import redis.asyncio as redis
from redis.asyncio import Redis
from dotenv import load_dotenv

from ..ml.models.model_tiers import ModelTier, get_tier
from ..ml.models.kmeans_clustering import FIXED_ASSIGNMENT, NEAREST_ASSIGNMENT

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class RedisConfig:
    """Redis configuration settings for the shared interaction matrix"""
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    enabled: bool = False
    max_connections: int = 20
    socket_timeout: int = 5
    socket_connect_timeout: int = 5

    @property
    def url(self) -> str:
        """Get Redis URL"""
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        else:
            return f"redis://{self.host}:{self.port}/{self.db}"


@dataclass
class RecommenderConfig:
    """Recommendation pipeline settings"""
    tier_name: str = "enhanced"
    default_limit: int = 10
    max_limit: int = 50
    candidate_pool_size: int = 2000
    fallback_limit: int = 10
    matrix_cache_ttl_seconds: int = 900
    cluster_assignment: str = FIXED_ASSIGNMENT
    trending_window_days: int = 7
    log_level: str = "INFO"
    redis: RedisConfig = field(default_factory=RedisConfig)

    def __post_init__(self):
        get_tier(self.tier_name)
        for name in ("default_limit", "max_limit", "candidate_pool_size", "fallback_limit",
                     "matrix_cache_ttl_seconds", "trending_window_days"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.default_limit > self.max_limit:
            raise ValueError(f"default_limit {self.default_limit} exceeds max_limit {self.max_limit}")
        if self.cluster_assignment not in (FIXED_ASSIGNMENT, NEAREST_ASSIGNMENT):
            raise ValueError(f"Unknown cluster assignment '{self.cluster_assignment}'")

    @property
    def tier(self) -> ModelTier:
        return get_tier(self.tier_name)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def load_redis_config() -> RedisConfig:
    """Load Redis configuration from environment variables"""
    return RedisConfig(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        db=int(os.getenv("REDIS_DB", "0")),
        password=os.getenv("REDIS_PASSWORD"),
        enabled=_env_bool("REDIS_ENABLED"),
        max_connections=int(os.getenv("REDIS_MAX_CONNECTIONS", "20")),
        socket_timeout=int(os.getenv("REDIS_SOCKET_TIMEOUT", "5")),
        socket_connect_timeout=int(os.getenv("REDIS_SOCKET_CONNECT_TIMEOUT", "5")),
    )


def load_recommender_config(env_file: Optional[Path] = None) -> RecommenderConfig:
    """Load recommender configuration from the environment, honouring a .env file"""
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    return RecommenderConfig(
        tier_name=os.getenv("RECOMMENDER_TIER", "enhanced").strip().lower(),
        default_limit=int(os.getenv("RECOMMENDER_DEFAULT_LIMIT", "10")),
        max_limit=int(os.getenv("RECOMMENDER_MAX_LIMIT", "50")),
        candidate_pool_size=int(os.getenv("RECOMMENDER_CANDIDATE_POOL_SIZE", "2000")),
        fallback_limit=int(os.getenv("RECOMMENDER_FALLBACK_LIMIT", "10")),
        matrix_cache_ttl_seconds=int(os.getenv("RECOMMENDER_MATRIX_CACHE_TTL_SECONDS", "900")),
        cluster_assignment=os.getenv("RECOMMENDER_CLUSTER_ASSIGNMENT", FIXED_ASSIGNMENT).strip().lower(),
        trending_window_days=int(os.getenv("RECOMMENDER_TRENDING_WINDOW_DAYS", "7")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        redis=load_redis_config(),
    )


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for an entry point"""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


class RedisManager:
    """Redis connection manager"""

    def __init__(self, config: RedisConfig):
        self.config = config
        self._client: Optional[Redis] = None

    async def initialize(self) -> Redis:
        """Initialize Redis client"""
        try:
            self._client = redis.from_url(
                self.config.url,
                max_connections=self.config.max_connections,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_connect_timeout,
            )

            # Test connection
            await self._client.ping()

            logger.info("Redis client initialized successfully")
            return self._client

        except Exception as e:
            logger.error(f"Failed to initialize Redis client: {e}")
            raise

    async def close(self):
        """Close Redis connection"""
        if self._client:
            await self._client.close()
            logger.info("Redis client closed")

    @property
    def client(self) -> Optional[Redis]:
        """Get the Redis client"""
        return self._client
