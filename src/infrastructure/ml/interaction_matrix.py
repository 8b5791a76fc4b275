import asyncio
import logging
import time
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Callable, Any

import numpy as np

from domain.entities.interaction import Interaction, InteractionType
from domain.repositories.interaction_repository import InteractionRepository
from .models.model_tiers import ModelTier, ENHANCED_TIER

logger = logging.getLogger(__name__)

DEFAULT_REVIEW_RATING = 3.0


class InteractionMatrix:
    """Sparse user x listing interaction strengths keyed by string ids"""

    def __init__(self, rows: Optional[Dict[str, Dict[str, float]]] = None,
                 built_at: Optional[datetime] = None):
        self.rows: Dict[str, Dict[str, float]] = rows or {}
        self.built_at = built_at or datetime.now()

    @classmethod
    def build(cls, interactions: Iterable[Interaction], tier: ModelTier = ENHANCED_TIER) -> 'InteractionMatrix':
        """Apply wishlists first, then bookings, then reviews.

        A booking overwrites an earlier wishlist strength. Reviews only raise
        the strength and are ignored when the tier does not count them.
        """
        by_type: Dict[InteractionType, List[Interaction]] = {t: [] for t in InteractionType}
        for interaction in interactions:
            by_type[interaction.interaction_type].append(interaction)

        rows: Dict[str, Dict[str, float]] = {}
        for interaction in by_type[InteractionType.WISHLIST]:
            rows.setdefault(str(interaction.user_id), {})[str(interaction.listing_id)] = 1.0

        for interaction in by_type[InteractionType.BOOKING]:
            rows.setdefault(str(interaction.user_id), {})[str(interaction.listing_id)] = tier.matrix.booking_weight

        if tier.matrix.include_reviews:
            for interaction in by_type[InteractionType.REVIEW]:
                row = rows.setdefault(str(interaction.user_id), {})
                key = str(interaction.listing_id)
                rating = interaction.rating if interaction.rating is not None else DEFAULT_REVIEW_RATING
                row[key] = max(row.get(key, 0.0), 1 + rating / 5)

        return cls(rows)

    @property
    def user_count(self) -> int:
        return len(self.rows)

    def row(self, user_id: Any) -> Dict[str, float]:
        return self.rows.get(str(user_id), {})

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(self.built_at.tzinfo)
        return max(0.0, (now - self.built_at).total_seconds())

    def interactions_with(self, listing_id: Any) -> Dict[str, float]:
        key = str(listing_id)
        return {
            user: row[key]
            for user, row in sorted(self.rows.items())
            if key in row
        }

    @staticmethod
    def cosine_similarity(a: Dict[str, float], b: Dict[str, float]) -> float:
        """Cosine similarity restricted to the listings both users touched"""
        common = sorted(set(a) & set(b))
        if not common:
            return 0.0

        va = np.array([a[k] for k in common], dtype=float)
        vb = np.array([b[k] for k in common], dtype=float)
        norm = np.linalg.norm(va) * np.linalg.norm(vb)
        if norm == 0:
            return 0.0
        return float(np.dot(va, vb) / norm)

    def to_dict(self) -> Dict[str, Any]:
        return {'rows': self.rows, 'built_at': self.built_at.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InteractionMatrix':
        return cls(
            rows={user: {k: float(v) for k, v in row.items()} for user, row in data['rows'].items()},
            built_at=datetime.fromisoformat(data['built_at']),
        )


class InteractionMatrixCache:
    """Read-through cache for the interaction matrix.

    The matrix is rebuilt from the interaction repository once it is older
    than ``ttl_seconds``. Concurrent callers share a single rebuild. An
    optional shared store (see ``RedisMatrixStore``) lets several workers
    reuse one serialized matrix.
    """

    def __init__(self, interaction_repository: InteractionRepository,
                 tier: ModelTier = ENHANCED_TIER,
                 ttl_seconds: float = 900,
                 store=None,
                 clock: Callable[[], float] = time.monotonic):
        self.interaction_repository = interaction_repository
        self.tier = tier
        self.ttl_seconds = ttl_seconds
        self.store = store
        self.clock = clock
        self._matrix: Optional[InteractionMatrix] = None
        self._loaded_at: Optional[float] = None
        self._lock = asyncio.Lock()
        self.logger = logging.getLogger(__name__)

    @property
    def store_key(self) -> str:
        return f"interaction_matrix:{self.tier.name}"

    def is_stale(self) -> bool:
        if self._matrix is None or self._loaded_at is None:
            return True
        return self.clock() - self._loaded_at >= self.ttl_seconds

    async def get(self) -> InteractionMatrix:
        if not self.is_stale():
            return self._matrix

        async with self._lock:
            # Another caller may have rebuilt while we waited
            if not self.is_stale():
                return self._matrix

            matrix = await self._load_shared()
            if matrix is not None:
                # A shared matrix keeps the age it had when another worker built it
                self._set(matrix, age_seconds=matrix.age_seconds())
                return matrix

            matrix = await self._build()
            await self._save_shared(matrix)
            self._set(matrix)
            return matrix

    async def refresh(self) -> InteractionMatrix:
        """Force a rebuild from the repository"""
        async with self._lock:
            matrix = await self._build()
            await self._save_shared(matrix)
            self._set(matrix)
            return matrix

    def invalidate(self) -> None:
        self._matrix = None
        self._loaded_at = None

    def _set(self, matrix: InteractionMatrix, age_seconds: float = 0.0) -> None:
        self._matrix = matrix
        self._loaded_at = self.clock() - age_seconds

    async def _build(self) -> InteractionMatrix:
        interactions = await self.interaction_repository.get_all_interactions()
        matrix = InteractionMatrix.build(interactions, self.tier)
        self.logger.info(
            f"Built interaction matrix from {len(interactions)} interactions "
            f"covering {matrix.user_count} users"
        )
        return matrix

    async def _load_shared(self) -> Optional[InteractionMatrix]:
        if self.store is None:
            return None
        data = await self.store.load_matrix(self.store_key)
        if data is None:
            return None
        try:
            return InteractionMatrix.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"Discarding malformed shared interaction matrix: {e}")
            return None

    async def _save_shared(self, matrix: InteractionMatrix) -> None:
        if self.store is None:
            return
        await self.store.save_matrix(self.store_key, matrix.to_dict(), int(self.ttl_seconds))
