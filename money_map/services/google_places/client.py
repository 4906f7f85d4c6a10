import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pydantic import ValidationError

from money_map.core.config import ApiSettings
from money_map.core.schemas import PlaceCandidate, PlaceCategory
from money_map.services.google_places.schemas import (
    DetailsOutput,
    PlaceDetails,
    PlaceResult,
    TextSearch,
    TextSearchOutput,
)

logger = logging.getLogger(__name__)

# Extra candidates searched beyond the requested limit so the price-tier
# backfill has something to work with.
CANDIDATE_POOL_SIZE = 6


def rank_candidates(candidates: Iterable[PlaceCandidate]) -> List[PlaceCandidate]:
    """Order candidates by rating, best first; unrated venues sort last."""

    return sorted(
        candidates,
        key=lambda place: (place.rating is None, -(place.rating or 0.0)),
    )


class GooglePlacesClient:
    """Thin async wrapper around the Google Places web service."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = "https://maps.googleapis.com/maps/api/place",
        region: str = "Pakistan",
        search_timeout_s: float = 12.0,
        details_timeout_s: float = 10.0,
    ) -> None:
        self.api_key = api_key
        self.region = region
        self.search_timeout_s = search_timeout_s
        self.details_timeout_s = details_timeout_s
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"accept": "application/json"},
            timeout=httpx.Timeout(search_timeout_s, connect=10.0),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def aclose(self) -> None:
        """Close the underlying HTTPX client."""

        await self._client.aclose()

    async def __aenter__(self) -> "GooglePlacesClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._client.aclose()

    async def _aget(self, path: str, params: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        """Execute an authenticated GET request and return the parsed JSON."""

        response = await self._client.get(
            path, params={**params, "key": self.api_key}, timeout=timeout
        )
        response.raise_for_status()
        return response.json()

    async def text_search(self, input: TextSearch) -> TextSearchOutput:
        """Run a text search; the API status is returned, not raised."""

        data = await self._aget(
            "/textsearch/json", input.model_dump(exclude_none=True), self.search_timeout_s
        )
        if not isinstance(data, dict):
            data = {}
        results: List[PlaceResult] = []
        for item in data.get("results") or []:
            if not isinstance(item, dict):
                continue
            try:
                results.append(PlaceResult(**item))
            except ValidationError as exc:
                logger.debug("Skipping malformed place result: %s", exc)
        return TextSearchOutput(
            status=data.get("status", "UNKNOWN"),
            results=results,
            error_message=data.get("error_message"),
        )

    async def place_details(self, input: PlaceDetails) -> DetailsOutput:
        """Fetch the requested fields for a single place."""

        params = {"place_id": input.place_id, "fields": ",".join(input.fields)}
        data = await self._aget("/details/json", params, self.details_timeout_s)
        if not isinstance(data, dict):
            data = {}
        result = data.get("result")
        if not isinstance(result, dict):
            result = {}
        return DetailsOutput(
            status=data.get("status", "UNKNOWN"),
            rating=result.get("rating"),
            price_level=result.get("price_level"),
        )

    async def _backfill(self, candidate: PlaceCandidate) -> PlaceCandidate:
        """Fill a missing price tier from the details endpoint, best effort."""

        if candidate.price_tier is not None or not candidate.place_id:
            return candidate
        try:
            details = await self.place_details(PlaceDetails(place_id=candidate.place_id))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Details lookup failed for %s: %s", candidate.name, exc)
            return candidate
        if details.status != "OK":
            logger.debug("Details lookup for %s returned %s", candidate.name, details.status)
            return candidate
        return PlaceCandidate(
            name=candidate.name,
            place_id=candidate.place_id,
            rating=details.rating if details.rating is not None else candidate.rating,
            price_tier=details.price_level if details.price_level is not None else candidate.price_tier,
        )

    async def fetch_top_rated(
        self,
        destination: str,
        category: PlaceCategory,
        *,
        limit: int = 3,
    ) -> List[PlaceCandidate]:
        """Return up to ``limit`` top-rated venues of ``category`` in ``destination``.

        Never raises for upstream trouble: an unset key, a non-OK status, an
        empty result set or a transport failure all yield an empty list.
        """
        if not self.enabled:
            logger.info("Places API key not configured; skipping %s search", category.label)
            return []

        query = f"{category.label} in {destination}"
        if self.region:
            query = f"{query}, {self.region}"

        try:
            search = await self.text_search(TextSearch(query=query, type=category.place_type))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Places search failed for '%s': %s", query, exc)
            return []

        if search.status != "OK" or not search.results:
            logger.info(
                "Places search for '%s' returned %s (%s)",
                query,
                search.status,
                search.error_message or "no results",
            )
            return []

        ranked = rank_candidates(
            PlaceCandidate(
                name=item.name,
                rating=item.rating,
                price_tier=item.price_level,
                place_id=item.place_id,
            )
            for item in search.results
            if item.name
        )
        pool = ranked[: max(limit, CANDIDATE_POOL_SIZE)]

        backfilled: List[PlaceCandidate] = []
        for candidate in pool:
            backfilled.append(await self._backfill(candidate))

        top = rank_candidates(backfilled)[:limit]
        logger.info("Found %d %s for %s", len(top), category.label, destination)
        return top


def create_google_places_client(settings: ApiSettings) -> GooglePlacesClient:
    """Instantiate the Places client using project settings.

    A missing key is allowed; the client then reports no candidates.
    """

    return GooglePlacesClient(
        settings.google_maps_api_key,
        region=settings.places_region,
    )
