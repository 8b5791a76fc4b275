"""
Recommendation API router for personalized listing recommendations.

This module exposes the ensemble recommendations, profile analysis,
similar listings, trending listings and recommendation insights. The user
is identified by the ``X-User-Id`` header.
"""

import time
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from domain.exceptions import InvalidLimitError, ListingNotFoundError
from domain.services.recommendation_service import RecommendationService
from infrastructure.ml.models.model_tiers import ENSEMBLE
from ...dto.recommendation_dto import (
    RecommendationListResponse, ProfileAnalysisResponse, RecommendationInsightsResponse
)

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_SIMILAR_LIMIT = 6


def get_recommendation_service(request: Request) -> RecommendationService:
    """Dependency to get the recommendation service from app state"""
    return request.app.state.recommendation_service


def get_user_id(x_user_id: Optional[str] = Header(None)) -> UUID:
    """Dependency resolving the caller from the X-User-Id header"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid user id '{x_user_id}'")


@router.get("", response_model=RecommendationListResponse)
async def get_recommendations(
    limit: Optional[int] = Query(None, description="Number of recommendations to return"),
    model: str = Query(ENSEMBLE, description="Model selector; unknown values use the ensemble"),
    user_id: UUID = Depends(get_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """
    Get personalized listing recommendations for the calling user.

    Listings already on the user's wishlist are excluded. Scorer failures
    degrade to popularity ranking and never produce a server error.
    """
    start_time = time.time()

    try:
        selector = service.resolve_model(model)
        recommendations = await service.recommend_for_user(user_id, limit, selector)
    except InvalidLimitError as e:
        raise HTTPException(status_code=400, detail=str(e))

    response_time_ms = (time.time() - start_time) * 1000
    logger.info(
        f"Served {len(recommendations)} {selector} recommendations "
        f"for user {user_id} in {response_time_ms:.1f}ms"
    )

    message = None
    if not recommendations:
        message = "No listings available for recommendation"
    return RecommendationListResponse.from_recommendations(recommendations, selector, message)


@router.get("/profile", response_model=ProfileAnalysisResponse)
async def get_profile_analysis(
    user_id: UUID = Depends(get_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Get the preference profile derived from the user's history"""
    try:
        analysis = await service.analyze_user(user_id)
    except Exception as e:
        logger.error(f"Failed to analyze profile for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to analyze user profile")

    return ProfileAnalysisResponse(user_id=user_id, analysis=analysis)


@router.get("/similar/{listing_id}", response_model=RecommendationListResponse)
async def get_similar_listings(
    listing_id: UUID,
    limit: Optional[int] = Query(None, description="Number of similar listings to return"),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Find listings resembling the given one by price, size, type and location"""
    try:
        limit = DEFAULT_SIMILAR_LIMIT if limit is None else service.validate_limit(limit)
        similar = await service.similar_listings(listing_id, limit)
    except InvalidLimitError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ListingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    logger.info(f"Found {len(similar)} listings similar to {listing_id}")
    return RecommendationListResponse.from_recommendations(similar, "similar")


@router.get("/trending", response_model=RecommendationListResponse)
async def get_trending_listings(
    limit: Optional[int] = Query(None, description="Number of trending listings to return"),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Get listings with the most recent wishlist and booking activity"""
    try:
        trending = await service.trending(limit)
    except InvalidLimitError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return RecommendationListResponse.from_recommendations(trending, "trending")


@router.get("/insights", response_model=RecommendationInsightsResponse)
async def get_recommendation_insights(
    limit: Optional[int] = Query(None, description="Number of recommendations to summarize"),
    user_id: UUID = Depends(get_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Summarize score, confidence and type distribution of the user's recommendations"""
    try:
        insights = await service.recommendation_insights(user_id, limit)
    except InvalidLimitError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return RecommendationInsightsResponse(user_id=user_id, insights=insights)
