"""Configuration helpers for API keys and environment variables."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Optional, Tuple

from money_map.core.errors import IntegrationError

if TYPE_CHECKING:  # pragma: no cover
    from money_map.services.rule_store import ApiKeyStore

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODELS: Tuple[str, ...] = (
    "gemini-1.5-flash-latest",
    "gemini-1.5-flash",
    "gemini-1.5-pro-latest",
    "gemini-1.5-pro",
    "gemini-pro",
)

# Values shipped in sample .env files that must never reach an upstream.
PLACEHOLDER_KEYS = frozenset(
    {
        "your_ai_api_key_here",
        "your-google-maps-api-key-here",
    }
)

# Service labels used by the admin-maintained api key collection.
SERVICE_NAMES = {
    "google_maps_api_key": "Google Maps",
    "ai_api_key": "Gemini AI",
}


def _clean_key(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value or value in PLACEHOLDER_KEYS:
        return None
    return value


def _parse_models(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return DEFAULT_GEMINI_MODELS
    models = tuple(part.strip() for part in raw.split(",") if part.strip())
    return models or DEFAULT_GEMINI_MODELS


_CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


def _parse_currency(raw: Optional[str]) -> str:
    if not raw or not raw.strip():
        return "PKR"
    code = raw.strip().upper()
    if not _CURRENCY_PATTERN.match(code):
        logger.warning("Ignoring invalid currency code %r, using PKR", raw)
        return "PKR"
    return code


def _parse_int(raw: Optional[str], default: int) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer configuration value %r", raw)
        return default
    return value if value > 0 else default


def mask_key(value: Optional[str]) -> str:
    """Render a key for logs without exposing it."""

    if not value:
        return "NOT SET"
    if len(value) <= 14:
        return f"{value[:2]}..."
    return f"{value[:10]}...{value[-4:]}"


@dataclass(slots=True)
class ApiSettings:
    """Centralised container for the external service credentials."""

    google_maps_api_key: Optional[str] = None
    ai_api_key: Optional[str] = None
    mongodb_uri: Optional[str] = None
    mongodb_db: str = "money_map"
    gemini_models: Tuple[str, ...] = field(default=DEFAULT_GEMINI_MODELS)
    places_region: str = "Pakistan"
    places_result_limit: int = 3
    currency: str = "PKR"

    def __post_init__(self) -> None:
        self.google_maps_api_key = _clean_key(self.google_maps_api_key)
        self.ai_api_key = _clean_key(self.ai_api_key)
        self.currency = _parse_currency(self.currency)

    @classmethod
    def from_env(cls) -> "ApiSettings":
        """Load settings from environment variables."""

        return cls(
            google_maps_api_key=os.getenv("GOOGLE_MAPS_API_KEY"),
            ai_api_key=os.getenv("AI_API_KEY"),
            mongodb_uri=os.getenv("MONGODB_URI") or None,
            mongodb_db=os.getenv("MONGODB_DB") or "money_map",
            gemini_models=_parse_models(os.getenv("GEMINI_MODELS")),
            places_region=os.getenv("PLACES_REGION") or "Pakistan",
            places_result_limit=_parse_int(os.getenv("PLACES_RESULT_LIMIT"), 3),
            currency=_parse_currency(os.getenv("BUDGET_CURRENCY")),
        )

    def ensure(self, field_name: str) -> str:
        """Return the requested field and fail fast if it is missing."""

        value = getattr(self, field_name)
        if not value:
            raise IntegrationError(f"Missing configuration value: {field_name}")
        return value

    def with_stored_keys(self, store: "ApiKeyStore") -> "ApiSettings":
        """Return a copy whose API keys prefer active keys from the key store.

        Keys managed through the admin panel win over the environment; when the
        store has no active key for a service, or cannot be reached, the
        environment value is kept.
        """

        overrides = {}
        for field_name, service in SERVICE_NAMES.items():
            try:
                stored = store.get_active_key(service)
            except Exception as exc:
                logger.warning(
                    "Could not read %s key from the key store, using environment: %s",
                    service,
                    exc,
                )
                continue
            stored = _clean_key(stored)
            if stored:
                overrides[field_name] = stored
        if not overrides:
            return self
        return replace(self, **overrides)
