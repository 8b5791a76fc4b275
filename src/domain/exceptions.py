class RecommendationError(Exception):
    """Base class for recommendation errors surfaced to callers"""


class ListingNotFoundError(RecommendationError):
    def __init__(self, listing_id):
        super().__init__(f"Listing {listing_id} not found")
        self.listing_id = listing_id


class InvalidLimitError(RecommendationError):
    def __init__(self, limit, max_limit):
        super().__init__(f"Limit must be between 1 and {max_limit}, got {limit}")
        self.limit = limit
        self.max_limit = max_limit
