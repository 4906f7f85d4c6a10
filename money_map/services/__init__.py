"""External service integrations for budget estimation.

This package provides clients for the upstreams the estimator consults:

- Google Places: top-rated lodging and dining venues for a destination
- Gemini: generative-text budget drafts, tried across a list of models
- Rule store: admin-maintained budget rates, API keys and saved budgets in MongoDB

Each service module exports:
    - create_*: Factory that builds the client from ApiSettings
    - Input / output schemas: Pydantic models for the upstream payloads

Example Usage:
    >>> from money_map.services.google_places import create_google_places_client
    >>> from money_map.core.config import ApiSettings
    >>>
    >>> settings = ApiSettings.from_env()
    >>> client = create_google_places_client(settings)
"""

from money_map.services.google_places import (
    GooglePlacesClient,
    create_google_places_client,
)
from money_map.services.gemini import (
    BudgetDraftParser,
    GeminiClient,
    create_gemini_client,
)
from money_map.services.rule_store import (
    BudgetRepository,
    InMemoryBudgetRuleStore,
    MongoApiKeyStore,
    MongoBudgetRuleStore,
    create_mongo_resources,
)

__all__ = [
    "GooglePlacesClient",
    "create_google_places_client",
    "BudgetDraftParser",
    "GeminiClient",
    "create_gemini_client",
    "BudgetRepository",
    "InMemoryBudgetRuleStore",
    "MongoApiKeyStore",
    "MongoBudgetRuleStore",
    "create_mongo_resources",
]
