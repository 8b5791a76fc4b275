import logging
from typing import Dict, List, Optional, Iterable
from uuid import UUID

from domain.entities.interaction import Interaction, InteractionType, ChatMessage
from domain.entities.listing import Listing
from domain.repositories.interaction_repository import InteractionRepository
from domain.repositories.listing_repository import ListingRepository

logger = logging.getLogger(__name__)


class InMemoryListingRepository(ListingRepository):
    """Listing store held in a dict, newest listings first for candidate pools"""

    def __init__(self, listings: Optional[Iterable[Listing]] = None):
        self._listings: Dict[UUID, Listing] = {}
        for listing in listings or []:
            self.add(listing)

    def add(self, listing: Listing) -> None:
        self._listings[listing.id] = listing

    async def get_by_id(self, listing_id: UUID) -> Optional[Listing]:
        return self._listings.get(listing_id)

    async def get_by_ids(self, listing_ids: List[UUID]) -> List[Listing]:
        return [self._listings[i] for i in listing_ids if i in self._listings]

    async def get_candidates(self, limit: int = 2000) -> List[Listing]:
        listings = sorted(
            self._listings.values(),
            key=lambda listing: (listing.created_at is not None, listing.created_at),
            reverse=True,
        )
        return listings[:limit]


class InMemoryInteractionRepository(InteractionRepository):
    """Interaction store for tests and the demo application"""

    def __init__(self, interactions: Optional[Iterable[Interaction]] = None,
                 chat_messages: Optional[Iterable[ChatMessage]] = None):
        self._interactions: List[Interaction] = list(interactions or [])
        self._chat_messages: List[ChatMessage] = list(chat_messages or [])

    def add(self, interaction: Interaction) -> None:
        self._interactions.append(interaction)

    def add_chat_message(self, message: ChatMessage) -> None:
        self._chat_messages.append(message)

    def _for_user(self, user_id: UUID, interaction_type: InteractionType) -> List[Interaction]:
        return [
            i for i in self._interactions
            if i.user_id == user_id and i.interaction_type == interaction_type
        ]

    async def get_wishlist(self, user_id: UUID) -> List[Interaction]:
        return self._for_user(user_id, InteractionType.WISHLIST)

    async def get_bookings(self, user_id: UUID) -> List[Interaction]:
        return self._for_user(user_id, InteractionType.BOOKING)

    async def get_reviews(self, user_id: UUID) -> List[Interaction]:
        return self._for_user(user_id, InteractionType.REVIEW)

    async def get_chat_history(self, user_id: UUID) -> List[ChatMessage]:
        return [m for m in self._chat_messages if m.user_id == user_id]

    async def get_all_interactions(self) -> List[Interaction]:
        return list(self._interactions)
