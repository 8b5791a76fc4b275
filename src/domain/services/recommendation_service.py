from typing import List, Optional, Dict, Any, Callable
from uuid import UUID
import asyncio
import logging
import time
from datetime import datetime
from dataclasses import dataclass, field

from ..entities.listing import Listing
from ..entities.recommendation import Recommendation
from ..entities.user_profile import UserProfile
from ..exceptions import ListingNotFoundError, InvalidLimitError
from ..repositories.interaction_repository import InteractionRepository
from ..repositories.listing_repository import ListingRepository
from .profile_builder import UserProfileBuilder, analyze_profile

from infrastructure.data.config import RecommenderConfig
from infrastructure.ml.interaction_matrix import InteractionMatrixCache
from infrastructure.ml.models.base_scorer import BaseScorer
from infrastructure.ml.models.ensemble import EnsembleCombiner
from infrastructure.ml.models.feature_extractor import FeatureExtractor
from infrastructure.ml.models.insights import InsightsBuilder, summarize
from infrastructure.ml.models.kmeans_clustering import KMeansClusteringScorer
from infrastructure.ml.models.listing_similarity import similar_listings
from infrastructure.ml.models.matrix_factorization import MatrixFactorizationScorer
from infrastructure.ml.models.model_tiers import (
    ENSEMBLE, MODEL_TYPES, MATRIX_FACTORIZATION, RANDOM_FOREST, NEURAL_NETWORK, K_MEANS, TIME_SERIES,
)
from infrastructure.ml.models.neural_network import NeuralNetworkScorer
from infrastructure.ml.models.popularity_fallback import PopularityFallback
from infrastructure.ml.models.random_forest import RandomForestScorer
from infrastructure.ml.models.time_series import TimeSeriesScorer
from infrastructure.ml.models.trending import trending_listings

MODEL_SELECTORS = (ENSEMBLE,) + MODEL_TYPES


@dataclass
class RecommendationMetrics:
    """Counters for recommendation requests served by this process"""
    total_requests: int = 0
    new_user_requests: int = 0
    fallback_count: int = 0
    error_count: int = 0
    model_usage: Dict[str, int] = field(default_factory=dict)
    average_response_time_ms: float = 0.0


class RecommendationService:
    """Runs the recommendation pipeline for one request at a time.

    Profile building, per-model scoring, ensemble combination and insight
    annotation are wired here. Any failure inside the pipeline degrades to
    the popularity fallback instead of surfacing to the caller.
    """

    def __init__(self,
                 listing_repository: ListingRepository,
                 interaction_repository: InteractionRepository,
                 config: Optional[RecommenderConfig] = None,
                 matrix_cache: Optional[InteractionMatrixCache] = None,
                 profile_builder: Optional[UserProfileBuilder] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.listing_repository = listing_repository
        self.interaction_repository = interaction_repository
        self.config = config or RecommenderConfig()
        self.tier = self.config.tier
        self.clock = clock

        self.logger = logging.getLogger(__name__)
        self.metrics = RecommendationMetrics()

        self.feature_extractor = FeatureExtractor(self.tier)
        self.fallback = PopularityFallback(self.tier, self.config.fallback_limit)
        self.matrix_cache = matrix_cache or InteractionMatrixCache(
            interaction_repository, self.tier, self.config.matrix_cache_ttl_seconds
        )
        self.profile_builder = profile_builder or UserProfileBuilder(
            interaction_repository, self.tier, self.feature_extractor
        )

        shared = dict(tier=self.tier, feature_extractor=self.feature_extractor, fallback=self.fallback)
        self.scorers: Dict[str, BaseScorer] = {
            MATRIX_FACTORIZATION: MatrixFactorizationScorer(self.matrix_cache, **shared),
            RANDOM_FOREST: RandomForestScorer(**shared),
            NEURAL_NETWORK: NeuralNetworkScorer(**shared),
            K_MEANS: KMeansClusteringScorer(assignment=self.config.cluster_assignment, **shared),
            TIME_SERIES: TimeSeriesScorer(**shared),
        }
        self.combiner = EnsembleCombiner(self.tier, self.fallback)
        self.insights = InsightsBuilder(self.tier, self.feature_extractor)

    def resolve_model(self, model: Optional[str]) -> str:
        """Map a selector to a known model, unknown values falling back to the ensemble"""
        selector = (model or ENSEMBLE).strip().lower()
        if selector not in MODEL_SELECTORS:
            self.logger.warning(f"Unknown model selector '{model}', using {ENSEMBLE}")
            return ENSEMBLE
        return selector

    def validate_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.config.default_limit
        if limit < 1 or limit > self.config.max_limit:
            raise InvalidLimitError(limit, self.config.max_limit)
        return limit

    async def get_recommendations(self,
                                  user_id: UUID,
                                  candidates: List[Listing],
                                  limit: Optional[int] = None,
                                  model: Optional[str] = ENSEMBLE,
                                  reference_time: Optional[datetime] = None) -> List[Recommendation]:
        """
        Rank candidate listings for a user.

        Args:
            user_id: The user to personalise for
            candidates: Listings eligible for recommendation, already filtered by the caller
            limit: Maximum number of recommendations to return
            model: Model selector; unknown values use the ensemble
            reference_time: Moment used for time-dependent features

        Returns:
            Annotated recommendations, best first. Empty only when there are no candidates.
        """
        limit = self.validate_limit(limit)
        selector = self.resolve_model(model)
        reference_time = reference_time or self.clock()
        start_time = time.time()
        self.metrics.total_requests += 1
        self.metrics.model_usage[selector] = self.metrics.model_usage.get(selector, 0) + 1

        self.logger.info(
            f"Generating {selector} recommendations for user {user_id} "
            f"from {len(candidates)} candidates"
        )
        if not candidates:
            return []

        try:
            profile = await self.profile_builder.build_profile(user_id)
            recommendations = await self.score_with_profile(
                profile, candidates, limit, selector, reference_time
            )
        except Exception as e:
            self.logger.error(f"Recommendation pipeline failed for user {user_id}: {e}")
            self.metrics.error_count += 1
            self.metrics.fallback_count += 1
            return self.fallback.recommend(candidates, limit)

        self._update_response_time((time.time() - start_time) * 1000)
        self.logger.info(f"Returning {len(recommendations)} recommendations for user {user_id}")
        return recommendations

    async def score_with_profile(self,
                                 profile: UserProfile,
                                 candidates: List[Listing],
                                 limit: int,
                                 model: str = ENSEMBLE,
                                 reference_time: Optional[datetime] = None) -> List[Recommendation]:
        """Score candidates against an already built profile and annotate the top results"""
        selector = self.resolve_model(model)
        reference_time = reference_time or self.clock()

        if profile.is_new_user:
            self.metrics.new_user_requests += 1
            return self.fallback.recommend(candidates, limit)

        if selector == ENSEMBLE:
            ranked = await self._run_ensemble(profile, candidates, limit, reference_time)
        else:
            ranked = await self.scorers[selector].score(candidates, profile, limit, reference_time)

        return [self.insights.annotate(r, profile, reference_time) for r in ranked[:limit]]

    async def _run_ensemble(self, profile: UserProfile, candidates: List[Listing],
                            limit: int, reference_time: datetime) -> List[Recommendation]:
        active = [m for m in MODEL_TYPES if self.tier.settings_for(m).weight > 0]
        outputs = await asyncio.gather(
            *(self.scorers[m].score(candidates, profile, None, reference_time) for m in active),
            return_exceptions=True,
        )

        by_type: Dict[str, List[Recommendation]] = {}
        for model_type, output in zip(active, outputs):
            if isinstance(output, Exception):
                self.logger.error(f"{model_type} scorer raised outside its guard: {output}")
                output = self.fallback.recommend(candidates)
            self.logger.info(f"{model_type} contributed {len(output)} recommendations")
            by_type[model_type] = output

        return self.combiner.combine(self.combiner.results_for(by_type), candidates, limit)

    async def recommend_for_user(self, user_id: UUID, limit: Optional[int] = None,
                                 model: Optional[str] = ENSEMBLE) -> List[Recommendation]:
        """Load the candidate pool, drop listings the user already saved and rank the rest"""
        pool = await self.listing_repository.get_candidates(self.config.candidate_pool_size)
        try:
            wishlist = await self.interaction_repository.get_wishlist(user_id)
            saved = {interaction.listing_id for interaction in wishlist}
        except Exception as e:
            self.logger.error(f"Failed to load wishlist for user {user_id}, ranking the full pool: {e}")
            saved = set()
        candidates = [listing for listing in pool if listing.id not in saved]
        return await self.get_recommendations(user_id, candidates, limit, model)

    async def analyze_user(self, user_id: UUID) -> Dict[str, Any]:
        profile = await self.profile_builder.build_profile(user_id)
        return analyze_profile(profile)

    async def similar_listings(self, listing_id: UUID, limit: int = 6) -> List[Recommendation]:
        target = await self.listing_repository.get_by_id(listing_id)
        if target is None:
            raise ListingNotFoundError(listing_id)
        pool = await self.listing_repository.get_candidates(self.config.candidate_pool_size)
        return similar_listings(target, pool, limit)

    async def trending(self, limit: Optional[int] = None) -> List[Recommendation]:
        limit = self.validate_limit(limit)
        pool, interactions = await asyncio.gather(
            self.listing_repository.get_candidates(self.config.candidate_pool_size),
            self.interaction_repository.get_all_interactions(),
        )
        return trending_listings(
            pool, interactions, self.clock(),
            window_days=self.config.trending_window_days, limit=limit,
        )

    async def recommendation_insights(self, user_id: UUID, limit: Optional[int] = None) -> Dict[str, Any]:
        recommendations = await self.recommend_for_user(user_id, limit)
        return summarize(recommendations)

    def _update_response_time(self, response_time_ms: float) -> None:
        served = self.metrics.total_requests
        previous = self.metrics.average_response_time_ms
        self.metrics.average_response_time_ms = previous + (response_time_ms - previous) / served
