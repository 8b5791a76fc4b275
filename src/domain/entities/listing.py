from dataclasses import dataclass, field
from typing import List, Optional, FrozenSet
from datetime import datetime
from uuid import UUID, uuid4


@dataclass(frozen=True)
class Listing:
    """Read-only view of a marketplace listing as the recommender sees it.

    Optional numeric fields default to zero and categorical ones to
    ``"unknown"`` so scoring code never has to guard against missing data.
    """
    id: UUID
    name: str = ""
    description: str = ""
    price: float = 0.0
    discount_price: float = 0.0
    offer: bool = False
    bedrooms: int = 0
    bathrooms: float = 0.0
    area: float = 0.0
    property_type: str = "unknown"
    city: str = "unknown"
    state: str = "unknown"
    furnished: bool = False
    parking: bool = False
    amenities: FrozenSet[str] = field(default_factory=frozenset)
    property_age: float = 0.0
    view_count: int = 0
    wishlist_count: int = 0
    booking_count: int = 0
    average_rating: float = 0.0
    review_count: int = 0
    images: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def create(cls, price: float, city: str = "unknown", state: str = "unknown",
               property_type: str = "unknown", amenities: List[str] = None,
               images: List[str] = None, **kwargs):
        return cls(
            id=kwargs.pop("id", None) or uuid4(),
            price=max(0.0, float(price or 0.0)),
            city=city or "unknown",
            state=state or "unknown",
            property_type=property_type or "unknown",
            amenities=frozenset(amenities or []),
            images=list(images or []),
            created_at=kwargs.pop("created_at", None) or datetime.now(),
            **kwargs
        )

    def has_amenity(self, amenity: str) -> bool:
        if amenity == "furnished":
            return bool(self.furnished)
        if amenity == "parking":
            return bool(self.parking)
        return amenity in (self.amenities or ())

    def get_price_per_area(self, epsilon: float = 1.0) -> float:
        return (self.price or 0.0) / max(self.area or 0.0, epsilon)

    def get_discount_percentage(self) -> float:
        price = self.price or 0.0
        if self.offer and self.discount_price and price > 0:
            return (price - self.discount_price) / price * 100
        return 0.0

    def get_price_ratio(self) -> float:
        if self.discount_price and self.price:
            return self.discount_price / self.price
        return 1.0
