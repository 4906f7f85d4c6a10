import asyncio
import logging
from typing import Optional, Tuple

from money_map.api.schemas import CalculateBudgetRequest, SaveBudgetRequest
from money_map.core.config import ApiSettings, mask_key
from money_map.core.estimator import BudgetEstimator, create_budget_estimator
from money_map.core.schemas import BudgetEstimate, SavedBudget
from money_map.services.rule_store import (
    MongoResources,
    create_mongo_resources,
    require_repository,
)

logger = logging.getLogger(__name__)


class BudgetBundle:
    """Container for the estimator and the database resources it relies on.

    Attributes:
        settings: configuration after stored API keys have been applied
        mongo: database resources, ``None`` when MONGODB_URI is unset
        estimator: strategy-ordered budget estimator
    """

    def __init__(self, settings: ApiSettings) -> None:
        self.mongo: Optional[MongoResources] = create_mongo_resources(settings)
        rules = None
        if self.mongo is not None:
            settings = settings.with_stored_keys(self.mongo.api_key_store())
            rules = self.mongo.rule_store()
        self.settings = settings
        self.estimator: BudgetEstimator = create_budget_estimator(settings, rules=rules)

        logger.info("Google Maps API key: %s", mask_key(settings.google_maps_api_key))
        logger.info("Gemini API key: %s", mask_key(settings.ai_api_key))
        logger.debug("Estimator ready: %r", self.estimator)

    async def calculate(self, payload: CalculateBudgetRequest) -> BudgetEstimate:
        return await self.estimator.estimate_budget(
            destination=payload.destination,
            party_size=payload.numberOfMembers,
            days=payload.days,
            season=payload.season,
        )

    async def save_budget(self, payload: SaveBudgetRequest) -> Tuple[str, SavedBudget]:
        """Validate and persist a budget, returning its new id and the stored model."""

        repository = require_repository(self.mongo)
        data = payload.model_dump(exclude_none=True)
        data.setdefault("currency", self.settings.currency)
        budget = SavedBudget.model_validate(data)
        document_id = await asyncio.to_thread(repository.save, budget)
        logger.info("Saved budget %s for %s", document_id, budget.destination)
        return document_id, budget

    async def close(self) -> None:
        await self.estimator.aclose()
        if self.mongo is not None:
            self.mongo.close()
