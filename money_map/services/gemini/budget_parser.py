import logging
from functools import partial
from typing import Optional, Sequence

import httpx

from money_map.core.config import mask_key
from money_map.core.errors import UpstreamMiss
from money_map.core.post_processing import parse_budget_text
from money_map.core.prompts import (
    describe_season,
    format_places,
    generic_budget_prompt,
    hybrid_budget_prompt,
)
from money_map.core.resolvers import Resolver, first_success
from money_map.core.schemas import AIBudgetDraft, BudgetRequest, PlaceSummary
from money_map.services.gemini.client import GeminiClient

logger = logging.getLogger(__name__)

# Statuses that usually mean the configured key is wrong rather than the model.
_KEY_PROBLEM_STATUSES = frozenset({400, 401, 403})


class BudgetDraftParser:
    """Ask the generative-text service for a priced breakdown.

    Model identifiers are tried in order, one request each, until one answers
    with parseable budget JSON. Exhausting the list yields ``None``.
    """

    def __init__(self, client: GeminiClient, *, models: Optional[Sequence[str]] = None) -> None:
        self.client = client
        self.models = tuple(models) if models is not None else client.models

    async def _from_model(self, model_id: str, prompt: str) -> AIBudgetDraft:
        try:
            result = await self.client.generate(model_id, prompt)
        except httpx.HTTPError as exc:
            raise UpstreamMiss(f"transport error: {exc}") from exc

        if result.status_code != 200:
            if result.status_code in _KEY_PROBLEM_STATUSES:
                logger.warning(
                    "Model %s rejected the request (HTTP %s); check the AI key %s",
                    model_id,
                    result.status_code,
                    mask_key(self.client.api_key),
                )
            raise UpstreamMiss(f"HTTP {result.status_code}: {result.error_message}")
        if not result.text:
            raise UpstreamMiss(result.error_message or "no content in response")

        draft = parse_budget_text(result.text, model=model_id)
        if draft is None:
            raise UpstreamMiss("response held no budget JSON")
        return draft

    async def request_draft(self, prompt: str) -> Optional[AIBudgetDraft]:
        """Run ``prompt`` against each model until one yields a draft."""

        if not self.client.enabled:
            logger.info("AI key not configured; skipping generative estimate")
            return None

        resolvers = [
            Resolver(name=model_id, resolve=partial(self._from_model, model_id, prompt))
            for model_id in self.models
        ]
        hit = await first_success(resolvers, label="Model")
        if hit is None:
            logger.warning("All %d models failed to produce a budget", len(resolvers))
            return None

        model_id, draft = hit
        logger.info("Got budget draft from %s (total %s)", model_id, draft.reported_total)
        return draft

    async def generic_estimate(self, request: BudgetRequest, *, currency: str) -> Optional[AIBudgetDraft]:
        prompt = generic_budget_prompt.format(
            destination=request.destination,
            party_size=request.party_size,
            days=request.days,
            season_text=describe_season(request.season),
            currency=currency,
        )
        return await self.request_draft(prompt)

    async def hybrid_estimate(
        self,
        request: BudgetRequest,
        places: PlaceSummary,
        *,
        currency: str,
    ) -> Optional[AIBudgetDraft]:
        prompt = hybrid_budget_prompt.format(
            destination=request.destination,
            party_size=request.party_size,
            days=request.days,
            season_text=describe_season(request.season),
            hotels=format_places(places.hotels),
            restaurants=format_places(places.restaurants),
            currency=currency,
        )
        return await self.request_draft(prompt)
