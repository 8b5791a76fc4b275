from typing import List, Optional, Dict, Any
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field

from domain.entities.recommendation import Recommendation


class RecommendedListing(BaseModel):
    """Model for a recommended listing with scoring and explanations"""
    id: UUID
    name: str
    description: str
    price: float
    discount_price: float = 0.0
    offer: bool = False
    bedrooms: int
    bathrooms: float
    area: float
    property_type: str
    city: str
    state: str
    furnished: bool = False
    parking: bool = False
    amenities: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    # Recommendation-specific fields
    score: float = Field(..., ge=0.0, le=1.0, description="Recommendation score")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence in the recommendation")
    recommendation_type: str = Field(..., description="Model or strategy that produced the item")
    model_explanation: Optional[str] = Field(None, description="Which model recommended this and why")
    ai_insights: List[str] = Field(default_factory=list, description="Human-readable insights")
    contributing_models: List[str] = Field(default_factory=list, description="Models that voted for the listing")
    reasons: List[str] = Field(default_factory=list, description="Rule-based reasons, when available")

    @classmethod
    def from_recommendation(cls, recommendation: Recommendation) -> 'RecommendedListing':
        listing = recommendation.listing
        return cls(
            id=listing.id,
            name=listing.name or "",
            description=listing.description or "",
            price=listing.price or 0.0,
            discount_price=listing.discount_price or 0.0,
            offer=bool(listing.offer),
            bedrooms=listing.bedrooms or 0,
            bathrooms=listing.bathrooms or 0.0,
            area=listing.area or 0.0,
            property_type=listing.property_type or "unknown",
            city=listing.city or "unknown",
            state=listing.state or "unknown",
            furnished=bool(listing.furnished),
            parking=bool(listing.parking),
            amenities=sorted(listing.amenities or ()),
            images=list(listing.images or []),
            created_at=listing.created_at,
            score=recommendation.score,
            confidence=recommendation.confidence,
            recommendation_type=recommendation.recommendation_type,
            model_explanation=recommendation.model_explanation,
            ai_insights=list(recommendation.explanations),
            contributing_models=recommendation.contributing_models,
            reasons=list(recommendation.details.get('reasons', [])),
        )


class RecommendationListResponse(BaseModel):
    """Response model for recommendation lists"""
    success: bool = True
    data: List[RecommendedListing]
    count: int
    model: str
    message: Optional[str] = None

    @classmethod
    def from_recommendations(cls, recommendations: List[Recommendation], model: str,
                             message: Optional[str] = None) -> 'RecommendationListResponse':
        data = [RecommendedListing.from_recommendation(r) for r in recommendations]
        return cls(data=data, count=len(data), model=model, message=message)


class ProfileAnalysisResponse(BaseModel):
    """Response model for a user's profile analysis"""
    success: bool = True
    user_id: UUID
    analysis: Dict[str, Any]


class RecommendationInsightsResponse(BaseModel):
    """Response model for aggregate statistics over a user's recommendations"""
    success: bool = True
    user_id: UUID
    insights: Dict[str, Any]
