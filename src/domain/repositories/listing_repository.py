from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from ..entities.listing import Listing


class ListingRepository(ABC):

    @abstractmethod
    async def get_by_id(self, listing_id: UUID) -> Optional[Listing]:
        pass

    @abstractmethod
    async def get_by_ids(self, listing_ids: List[UUID]) -> List[Listing]:
        pass

    @abstractmethod
    async def get_candidates(self, limit: int = 2000) -> List[Listing]:
        """Most recent listings eligible for recommendation"""
        pass
