"""Budget estimation with a prioritised strategy list.

Strategies run in a fixed order and the first one producing a positive total
wins:

1. hybrid - top-rated lodging and dining from the places index, priced by the
   generative-text service
2. generic_ai - the generative-text service without place data
3. deterministic - static rate tables with seasonal multipliers

Upstream trouble in the first two is logged and skipped; the deterministic
calculator always answers, so once a request validates an estimate is always
returned.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from money_map.core.config import ApiSettings
from money_map.core.errors import InvalidRequest
from money_map.core.rates import calculate_budget
from money_map.core.resolvers import Resolver, first_success
from money_map.core.schemas import (
    AIBudgetDraft,
    BudgetEstimate,
    BudgetRequest,
    BudgetRule,
    PlaceCandidate,
    PlaceCategory,
    PlaceSummary,
    StrategyTag,
)
from money_map.services.gemini import BudgetDraftParser, create_gemini_client
from money_map.services.google_places import GooglePlacesClient, create_google_places_client
from money_map.services.rule_store import BudgetRuleStore

logger = logging.getLogger(__name__)


def build_request(destination: Any, party_size: Any, days: Any, season: Any) -> BudgetRequest:
    """Validate raw inputs, raising :class:`InvalidRequest` on any problem."""

    if destination is None or party_size is None or days is None or season is None:
        raise InvalidRequest("All fields are required")
    try:
        return BudgetRequest(
            destination=destination,
            party_size=party_size,
            days=days,
            season=season,
        )
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'request'}: {error['msg']}"
            for error in exc.errors()
        )
        raise InvalidRequest(f"Invalid budget request: {problems}") from exc


class BudgetEstimator:
    """Produces one :class:`BudgetEstimate` per request.

    Attributes:
        settings: configuration shared with the upstream clients
        places: places index client used by the hybrid strategy
        parser: generative-text budget parser used by both AI strategies
        rules: reference-data store for deterministic rates, optional
    """

    def __init__(
        self,
        settings: ApiSettings,
        *,
        places: GooglePlacesClient,
        parser: BudgetDraftParser,
        rules: Optional[BudgetRuleStore] = None,
    ) -> None:
        self.settings = settings
        self.places = places
        self.parser = parser
        self.rules = rules

    def __repr__(self) -> str:
        return (
            f"BudgetEstimator(currency='{self.settings.currency}', "
            f"places_enabled={self.places.enabled}, "
            f"models={list(self.parser.models)}, "
            f"rules={type(self.rules).__name__ if self.rules else None})"
        )

    async def aclose(self) -> None:
        """Close the upstream HTTP clients."""

        await asyncio.gather(self.places.aclose(), self.parser.client.aclose())

    @property
    def currency(self) -> str:
        return self.settings.currency

    async def estimate_budget(
        self,
        destination: Any,
        party_size: Any,
        days: Any,
        season: Any,
    ) -> BudgetEstimate:
        """Estimate a trip budget, falling back through the strategy list.

        Raises:
            InvalidRequest: when the inputs fail validation. Nothing else
                escapes once validation passes.
        """
        request = build_request(destination, party_size, days, season)
        logger.info(
            "Estimating budget: %s, %d traveller(s), %d day(s), %s",
            request.destination,
            request.party_size,
            request.days,
            request.season,
        )

        strategies: List[Resolver[BudgetEstimate]] = [
            Resolver(StrategyTag.HYBRID.value, lambda: self._hybrid_strategy(request)),
            Resolver(StrategyTag.GENERIC_AI.value, lambda: self._generic_strategy(request)),
        ]
        hit = await first_success(
            strategies, accept=lambda estimate: estimate.total > 0, label="Strategy"
        )
        if hit is not None:
            name, estimate = hit
            logger.info("Budget for %s produced by %s strategy", request.destination, name)
            return estimate

        estimate = await self._deterministic_strategy(request)
        logger.info("Budget for %s produced by deterministic strategy", request.destination)
        return estimate

    def estimate_budget_sync(self, destination: Any, party_size: Any, days: Any, season: Any) -> BudgetEstimate:
        """Blocking variant of :meth:`estimate_budget` for non-async callers."""

        return asyncio.run(self.estimate_budget(destination, party_size, days, season))

    async def fetch_places(self, request: BudgetRequest) -> PlaceSummary:
        """Fetch lodging and dining candidates concurrently."""

        limit = self.settings.places_result_limit
        hotels, restaurants = await asyncio.gather(
            self.places.fetch_top_rated(request.destination, PlaceCategory.LODGING, limit=limit),
            self.places.fetch_top_rated(request.destination, PlaceCategory.DINING, limit=limit),
            return_exceptions=True,
        )
        return PlaceSummary(
            hotels=self._candidates_or_empty(hotels, PlaceCategory.LODGING),
            restaurants=self._candidates_or_empty(restaurants, PlaceCategory.DINING),
        )

    @staticmethod
    def _candidates_or_empty(value: Any, category: PlaceCategory) -> List[PlaceCandidate]:
        if isinstance(value, BaseException):
            logger.warning("Fetching %s failed: %s", category.label, value)
            return []
        return list(value)

    def _from_draft(
        self,
        request: BudgetRequest,
        draft: Optional[AIBudgetDraft],
        *,
        strategy: StrategyTag,
        places: Optional[PlaceSummary] = None,
    ) -> Optional[BudgetEstimate]:
        if draft is None:
            return None
        if not draft.is_usable:
            logger.info(
                "%s draft from %s unusable (reported total %s, breakdown total %s)",
                strategy.value,
                draft.model,
                draft.reported_total,
                draft.breakdown.total,
            )
            return None
        if draft.reported_total != draft.breakdown.total:
            logger.debug(
                "Recomputed total for %s: reported %s, categories sum to %s",
                request.destination,
                draft.reported_total,
                draft.breakdown.total,
            )
        places = places or PlaceSummary()
        return BudgetEstimate(
            destination=request.destination,
            party_size=request.party_size,
            days=request.days,
            season=request.season,
            breakdown=draft.breakdown,
            currency=self.currency,
            strategy=strategy,
            used_place_data=not places.is_empty,
            places=places,
            insights=draft.insights,
            recommendations=draft.recommendations,
            reported_total=draft.reported_total,
            model=draft.model,
        )

    async def _hybrid_strategy(self, request: BudgetRequest) -> Optional[BudgetEstimate]:
        places = await self.fetch_places(request)
        draft = await self.parser.hybrid_estimate(request, places, currency=self.currency)
        return self._from_draft(request, draft, strategy=StrategyTag.HYBRID, places=places)

    async def _generic_strategy(self, request: BudgetRequest) -> Optional[BudgetEstimate]:
        draft = await self.parser.generic_estimate(request, currency=self.currency)
        return self._from_draft(request, draft, strategy=StrategyTag.GENERIC_AI)

    async def _lookup_rule(self, request: BudgetRequest) -> Optional[BudgetRule]:
        if self.rules is None:
            return None
        try:
            return await asyncio.to_thread(self.rules.find_rule, request.destination)
        except Exception as exc:
            logger.warning(
                "Budget rule lookup failed for %s, using default rates: %s",
                request.destination,
                exc,
            )
            return None

    async def _deterministic_strategy(self, request: BudgetRequest) -> BudgetEstimate:
        rule = await self._lookup_rule(request)
        if rule is None:
            logger.info("No budget rule for %s; using default rates", request.destination)
        return BudgetEstimate(
            destination=request.destination,
            party_size=request.party_size,
            days=request.days,
            season=request.season,
            breakdown=calculate_budget(request, rule),
            currency=self.currency,
            strategy=StrategyTag.DETERMINISTIC,
        )


def create_budget_estimator(
    settings: ApiSettings,
    *,
    rules: Optional[BudgetRuleStore] = None,
) -> BudgetEstimator:
    """Wire the estimator with clients built from ``settings``."""

    return BudgetEstimator(
        settings,
        places=create_google_places_client(settings),
        parser=BudgetDraftParser(create_gemini_client(settings)),
        rules=rules,
    )
