from dataclasses import dataclass
from enum import Enum
from typing import Optional
from datetime import datetime
from uuid import UUID

from .listing import Listing


class InteractionType(Enum):
    """Kinds of user activity that feed the profile and the interaction matrix"""
    WISHLIST = "wishlist"
    BOOKING = "booking"
    REVIEW = "review"


@dataclass(frozen=True)
class Interaction:
    user_id: UUID
    listing: Listing
    interaction_type: InteractionType
    created_at: datetime
    rating: Optional[float] = None  # reviews only, 1-5

    @classmethod
    def create(cls, user_id: UUID, listing: Listing, interaction_type: InteractionType,
               rating: Optional[float] = None, created_at: Optional[datetime] = None):
        return cls(
            user_id=user_id,
            listing=listing,
            interaction_type=interaction_type,
            created_at=created_at or datetime.now(),
            rating=rating
        )

    @property
    def listing_id(self) -> UUID:
        return self.listing.id


@dataclass(frozen=True)
class ChatMessage:
    user_id: UUID
    message: str
    created_at: datetime
