"""Reference-data stores backed by MongoDB.

Public API:
    - BudgetRuleStore / ApiKeyStore: lookup protocols used by the estimator
    - InMemoryBudgetRuleStore: list-backed rule store
    - MongoBudgetRuleStore, MongoApiKeyStore, BudgetRepository: pymongo stores
    - create_mongo_resources: Factory that connects when MONGODB_URI is set
"""
from money_map.services.rule_store.client import (
    API_KEYS_COLLECTION,
    BUDGETS_COLLECTION,
    RULES_COLLECTION,
    ApiKeyStore,
    BudgetRepository,
    BudgetRuleStore,
    InMemoryBudgetRuleStore,
    MongoApiKeyStore,
    MongoBudgetRuleStore,
    MongoResources,
    create_mongo_resources,
    require_repository,
)

__all__ = [
    "API_KEYS_COLLECTION",
    "BUDGETS_COLLECTION",
    "RULES_COLLECTION",
    "ApiKeyStore",
    "BudgetRepository",
    "BudgetRuleStore",
    "InMemoryBudgetRuleStore",
    "MongoApiKeyStore",
    "MongoBudgetRuleStore",
    "MongoResources",
    "create_mongo_resources",
    "require_repository",
]
