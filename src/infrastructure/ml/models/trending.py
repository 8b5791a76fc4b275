from collections import Counter
from datetime import datetime, timedelta
from typing import List, Iterable

from domain.entities.interaction import Interaction, InteractionType
from domain.entities.listing import Listing
from domain.entities.recommendation import Recommendation

RECENT_WISHLIST_WEIGHT = 3.0
RECENT_BOOKING_WEIGHT = 2.0
VIEW_WEIGHT = 0.1


def trending_listings(pool: List[Listing], interactions: Iterable[Interaction], now: datetime,
                      window_days: int = 7, limit: int = 10) -> List[Recommendation]:
    """Rank listings by recent wishlist and booking activity plus lifetime views.

    Scores are normalised by the best raw score so they stay within [0, 1];
    the raw trending score is kept in ``details``.
    """
    since = now - timedelta(days=window_days)
    wishlists = Counter()
    bookings = Counter()
    for interaction in interactions:
        if interaction.created_at < since:
            continue
        key = str(interaction.listing_id)
        if interaction.interaction_type == InteractionType.WISHLIST:
            wishlists[key] += 1
        elif interaction.interaction_type == InteractionType.BOOKING:
            bookings[key] += 1

    scored = []
    for listing in pool:
        key = str(listing.id)
        raw = (
            wishlists[key] * RECENT_WISHLIST_WEIGHT
            + bookings[key] * RECENT_BOOKING_WEIGHT
            + (listing.view_count or 0) * VIEW_WEIGHT
        )
        scored.append((raw, listing))

    scored.sort(key=lambda item: (-item[0], str(item[1].id)))
    scored = scored[:limit]
    top = scored[0][0] if scored and scored[0][0] > 0 else 1.0

    return [
        Recommendation(
            listing=listing,
            score=raw / top,
            confidence=0.7,
            recommendation_type="trending",
            model_name="Trending",
            details={
                'trending_score': raw,
                'recent_wishlists': wishlists[str(listing.id)],
                'recent_bookings': bookings[str(listing.id)],
            },
        )
        for raw, listing in scored
    ]
