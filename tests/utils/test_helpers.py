"""
Test helper utilities for the recommendation system tests.
"""

import math
from typing import Dict, List
from unittest.mock import Mock

from domain.entities.recommendation import Recommendation


class MLTestHelpers:
    """Helper functions for scorer and ensemble testing."""

    @staticmethod
    def assert_valid_recommendations(recommendations: List[Recommendation], min_count: int = 1):
        """Assert that recommendations are in range and sorted by score."""
        assert len(recommendations) >= min_count, f"Should have at least {min_count} recommendations"

        for i, rec in enumerate(recommendations):
            assert not math.isnan(rec.score), f"Recommendation {i} has NaN score"
            assert 0.0 <= rec.score <= 1.0, f"Score {rec.score} out of range [0, 1]"
            assert 0.0 <= rec.confidence <= 1.0, f"Confidence {rec.confidence} out of range [0, 1]"

        scores = [rec.score for rec in recommendations]
        assert scores == sorted(scores, reverse=True), "Recommendations should be sorted by score (descending)"

    @staticmethod
    def snapshot(recommendations: List[Recommendation]) -> List[tuple]:
        """Comparable view of a ranking: listing id, score and confidence per item."""
        return [(str(r.listing_id), r.score, r.confidence) for r in recommendations]


class APITestHelpers:
    """Helper functions for API testing."""

    @staticmethod
    def assert_response_structure(response_data: Dict, required_fields: List[str]):
        """Assert that API response has required structure."""
        for field in required_fields:
            assert field in response_data, f"Response missing required field: {field}"

    @staticmethod
    def create_mock_request(service=None):
        """Create a mock FastAPI request object carrying a recommendation service."""
        mock_request = Mock()
        mock_request.app = Mock()
        mock_request.app.state = Mock()
        mock_request.app.state.recommendation_service = service or Mock()
        return mock_request
