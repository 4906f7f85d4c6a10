"""MongoDB-backed reference data: budget rules, API keys and saved budgets.

This module uses pymongo synchronously; async callers hop onto a worker
thread with ``asyncio.to_thread``.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Protocol

from pydantic import ValidationError
from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection

from money_map.core.config import ApiSettings
from money_map.core.errors import IntegrationError
from money_map.core.schemas import BudgetRule, SavedBudget

logger = logging.getLogger(__name__)

RULES_COLLECTION = "budgetrules"
API_KEYS_COLLECTION = "apikeys"
BUDGETS_COLLECTION = "budgets"


class BudgetRuleStore(Protocol):
    def find_rule(self, destination: str) -> Optional[BudgetRule]:
        """Return the rule whose destination contains ``destination``."""


class ApiKeyStore(Protocol):
    def get_active_key(self, service: str) -> Optional[str]:
        """Return the newest active key for ``service``."""


class InMemoryBudgetRuleStore:
    """Rule store over a fixed list, used when no database is configured."""

    def __init__(self, rules: Iterable[BudgetRule] = ()) -> None:
        self._rules: List[BudgetRule] = list(rules)

    def find_rule(self, destination: str) -> Optional[BudgetRule]:
        needle = destination.strip().lower()
        if not needle:
            return None
        for rule in self._rules:
            if rule.is_active and needle in rule.destination.lower():
                return rule
        return None


class MongoBudgetRuleStore:
    """Case-insensitive substring lookup over the ``budgetrules`` collection."""

    def __init__(self, collection: Collection) -> None:
        self.collection = collection

    def find_rule(self, destination: str) -> Optional[BudgetRule]:
        needle = destination.strip()
        if not needle:
            return None
        document = self.collection.find_one(
            {
                "destination": {"$regex": re.escape(needle), "$options": "i"},
                "isActive": {"$ne": False},
            }
        )
        if document is None:
            return None
        try:
            return BudgetRule.model_validate(document)
        except ValidationError as exc:
            logger.warning(
                "Ignoring malformed budget rule for %s: %s", document.get("destination"), exc
            )
            return None


class MongoApiKeyStore:
    """Reads admin-managed API keys and records their usage."""

    def __init__(self, collection: Collection) -> None:
        self.collection = collection

    def get_active_key(self, service: str) -> Optional[str]:
        document = self.collection.find_one(
            {"service": service, "isActive": True},
            sort=[("updatedAt", DESCENDING)],
        )
        if document is None:
            return None
        self.collection.update_one(
            {"_id": document["_id"]},
            {
                "$set": {"lastUsed": datetime.now(timezone.utc)},
                "$inc": {"usageCount": 1},
            },
        )
        return document.get("apiKey")


class BudgetRepository:
    """Persists saved budgets."""

    def __init__(self, collection: Collection) -> None:
        self.collection = collection

    def save(self, budget: SavedBudget) -> str:
        """Insert ``budget`` and return the new document id as a string."""

        result = self.collection.insert_one(budget.to_document())
        return str(result.inserted_id)


class MongoResources:
    """Owns the Mongo connection and hands out collection-backed stores."""

    def __init__(self, client: MongoClient, db_name: str) -> None:
        self.client = client
        self.db = client[db_name]

    def rule_store(self) -> MongoBudgetRuleStore:
        return MongoBudgetRuleStore(self.db[RULES_COLLECTION])

    def api_key_store(self) -> MongoApiKeyStore:
        return MongoApiKeyStore(self.db[API_KEYS_COLLECTION])

    def budget_repository(self) -> BudgetRepository:
        return BudgetRepository(self.db[BUDGETS_COLLECTION])

    def close(self) -> None:
        self.client.close()


def create_mongo_resources(settings: ApiSettings) -> Optional[MongoResources]:
    """Connect to MongoDB when ``MONGODB_URI`` is configured, else ``None``."""

    if not settings.mongodb_uri:
        logger.warning("MONGODB_URI not set; using built-in budget rates only")
        return None
    client: MongoClient = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=3000)
    return MongoResources(client, settings.mongodb_db)


def require_repository(resources: Optional[MongoResources]) -> BudgetRepository:
    if resources is None:
        raise IntegrationError("Saving budgets requires MONGODB_URI to be configured")
    return resources.budget_repository()
