"""Google Places integration.

This module provides the async client used to ground budget estimates in real
lodging and dining venues.

Public API:
    - GooglePlacesClient: Async HTTP client for text search and place details
    - create_google_places_client: Factory function to create the client
    - rank_candidates: Order candidates by rating, unrated last
"""
from money_map.services.google_places.client import (
    CANDIDATE_POOL_SIZE,
    GooglePlacesClient,
    create_google_places_client,
    rank_candidates,
)
from money_map.services.google_places.schemas import (
    DetailsOutput,
    PlaceDetails,
    PlaceResult,
    TextSearch,
    TextSearchOutput,
)

__all__ = [
    "CANDIDATE_POOL_SIZE",
    "GooglePlacesClient",
    "create_google_places_client",
    "rank_candidates",
    "DetailsOutput",
    "PlaceDetails",
    "PlaceResult",
    "TextSearch",
    "TextSearchOutput",
]
