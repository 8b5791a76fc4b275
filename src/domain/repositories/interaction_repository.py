from abc import ABC, abstractmethod
from typing import List
from uuid import UUID

from ..entities.interaction import Interaction, ChatMessage


class InteractionRepository(ABC):

    @abstractmethod
    async def get_wishlist(self, user_id: UUID) -> List[Interaction]:
        pass

    @abstractmethod
    async def get_bookings(self, user_id: UUID) -> List[Interaction]:
        pass

    @abstractmethod
    async def get_reviews(self, user_id: UUID) -> List[Interaction]:
        pass

    @abstractmethod
    async def get_chat_history(self, user_id: UUID) -> List[ChatMessage]:
        pass

    @abstractmethod
    async def get_all_interactions(self) -> List[Interaction]:
        """Every user's wishlist, booking and review records"""
        pass
