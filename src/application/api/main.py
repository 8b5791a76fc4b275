"""
Main FastAPI application for the listing recommendation service.

This module wires configuration, repositories, the interaction matrix cache
and the recommendation service into a FastAPI application.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Dict, Any, Optional

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from domain.services.recommendation_service import RecommendationService
from infrastructure.data.config import (
    RecommenderConfig, RedisManager, load_recommender_config, configure_logging
)
from infrastructure.data.repositories import (
    InMemoryListingRepository, InMemoryInteractionRepository, RedisMatrixStore
)
from infrastructure.ml.interaction_matrix import InteractionMatrixCache
from .routers import recommendation_router

logger = logging.getLogger(__name__)


async def build_service(config: RecommenderConfig,
                        listing_repository=None,
                        interaction_repository=None,
                        redis_manager: Optional[RedisManager] = None) -> RecommendationService:
    """Assemble the recommendation service, sharing the matrix through Redis when enabled"""
    listing_repository = listing_repository or InMemoryListingRepository()
    interaction_repository = interaction_repository or InMemoryInteractionRepository()

    store = None
    if redis_manager is not None:
        try:
            client = await redis_manager.initialize()
            store = RedisMatrixStore(client, default_ttl=config.matrix_cache_ttl_seconds)
        except Exception as e:
            logger.warning(f"Redis unavailable, interaction matrix stays process-local: {e}")

    matrix_cache = InteractionMatrixCache(
        interaction_repository,
        config.tier,
        ttl_seconds=config.matrix_cache_ttl_seconds,
        store=store,
    )
    return RecommendationService(
        listing_repository,
        interaction_repository,
        config=config,
        matrix_cache=matrix_cache,
    )


def create_app(service: Optional[RecommendationService] = None,
               config: Optional[RecommenderConfig] = None) -> FastAPI:
    """Create the application; a prebuilt service skips startup wiring"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan context manager"""
        app_config = config or load_recommender_config()
        configure_logging(app_config.log_level)
        logger.info(f"Starting recommendation API with the {app_config.tier_name} model tier")

        redis_manager = None
        try:
            if service is not None:
                app.state.recommendation_service = service
            else:
                if app_config.redis.enabled:
                    redis_manager = RedisManager(app_config.redis)
                app.state.recommendation_service = await build_service(
                    app_config, redis_manager=redis_manager
                )

            app.state.config = app_config
            app.state.start_time = time.time()
            yield

        except Exception as e:
            logger.error(f"Startup failed: {e}")
            raise
        finally:
            logger.info("Shutting down recommendation API")
            if redis_manager is not None:
                await redis_manager.close()

    app = FastAPI(
        title="Listing Recommendation API",
        description="""
        Personalized listing recommendations from an ensemble of five scoring models.

        ## Features

        * **Ensemble Recommendations**: collaborative, rule-based, layered, cluster and trend scorers
        * **Popularity Fallback**: new users and empty model outputs fall back to popular listings
        * **Profile Analysis**: derived preference traits and behavioural patterns
        * **Similar and Trending Listings**: attribute similarity and recent activity rankings
        """,
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    # Add middleware
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time header to all responses"""
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = str(time.time() - start_time)
        return response

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with detailed error responses"""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": exc.detail,
                "status_code": exc.status_code,
                "path": request.url.path,
                "method": request.method,
                "timestamp": time.time()
            }
        )

    @app.get("/health", tags=["Health Check"])
    async def health_check(request: Request) -> Dict[str, Any]:
        """Basic health check endpoint"""
        recommendation_service: RecommendationService = request.app.state.recommendation_service
        metrics = recommendation_service.metrics
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "uptime_seconds": time.time() - request.app.state.start_time,
            "tier": recommendation_service.tier.name,
            "metrics": {
                "total_requests": metrics.total_requests,
                "new_user_requests": metrics.new_user_requests,
                "fallback_count": metrics.fallback_count,
                "error_count": metrics.error_count,
                "model_usage": dict(metrics.model_usage),
                "average_response_time_ms": metrics.average_response_time_ms,
            },
        }

    app.include_router(
        recommendation_router.router,
        prefix="/recommendations",
        tags=["Recommendations"]
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "application.api.main:app",
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
