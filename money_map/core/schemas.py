"""Pydantic data models for the money-map budget estimator.

This module contains the data models shared by the estimator, its upstream
integrations and the HTTP surface.

Key model categories:
- BudgetRequest: validated trip parameters (destination, party, days, season)
- PlaceCandidate: a lodging or dining venue returned by the places index
- BudgetRule: admin-maintained base rates and seasonal multipliers
- BudgetBreakdown / BudgetEstimate: the five-category result and its metadata
- AIBudgetDraft: a breakdown parsed out of a generative-text response
- SavedBudget: an estimate a traveller chose to keep
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from money_map.core.amounts import coerce_amount
from money_map.core.types import (
    DestinationName,
    ISO4217,
    NonNegAmount,
    NonNegRate,
    PositiveInt,
    PriceTier,
    Rating,
)

Season = Literal["spring", "summer", "autumn", "winter"]
SEASONS: tuple[str, ...] = ("spring", "summer", "autumn", "winter")
SEASON_ALIASES: Dict[str, str] = {
    "peak": "summer",
    "off-peak": "winter",
    "offpeak": "winter",
    "off peak": "winter",
    "shoulder": "spring",
    "fall": "autumn",
}

CATEGORIES: tuple[str, ...] = (
    "transportation",
    "accommodation",
    "food",
    "activities",
    "miscellaneous",
)


def normalize_season(value: Any) -> str:
    """Map a season or one of its aliases onto the canonical season names."""

    if not isinstance(value, str):
        raise ValueError(f"Invalid season: {value!r}")
    key = value.strip().lower()
    key = SEASON_ALIASES.get(key, key)
    if key not in SEASONS:
        raise ValueError(f"Invalid season: {value}")
    return key


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return math.isfinite(float(value.replace(",", "")))
        except ValueError:
            return False
    return False


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("must be a positive integer")
    return value


class StrategyTag(str, Enum):
    """Identifies which strategy produced an estimate."""

    HYBRID = "hybrid"
    GENERIC_AI = "generic_ai"
    DETERMINISTIC = "deterministic"


class PlaceCategory(str, Enum):
    """Venue categories the estimator grounds its prices on."""

    LODGING = "lodging"
    DINING = "dining"

    @property
    def place_type(self) -> str:
        return "lodging" if self is PlaceCategory.LODGING else "restaurant"

    @property
    def label(self) -> str:
        return "hotels" if self is PlaceCategory.LODGING else "restaurants"


class BudgetRequest(BaseModel):
    """Trip parameters accepted by the estimator."""

    destination: DestinationName
    party_size: PositiveInt
    days: PositiveInt
    season: Season

    model_config = ConfigDict(frozen=True)

    @field_validator("party_size", "days", mode="before")
    @classmethod
    def _no_booleans(cls, value: Any) -> Any:
        return _reject_bool(value)

    @field_validator("season", mode="before")
    @classmethod
    def _canonical_season(cls, value: Any) -> str:
        return normalize_season(value)


class PlaceCandidate(BaseModel):
    """A venue surfaced by the places index."""

    name: str
    rating: Optional[Rating] = None
    price_tier: Optional[PriceTier] = None
    place_id: Optional[str] = None

    @field_validator("rating", mode="before")
    @classmethod
    def _rating_in_range(cls, value: Any) -> Optional[float]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value) if 0 <= value <= 5 else None

    @field_validator("price_tier", mode="before")
    @classmethod
    def _tier_in_range(cls, value: Any) -> Optional[int]:
        # The places API reports 0 for "free"; it carries no cost signal here.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if value != int(value) or not 1 <= value <= 4:
            return None
        return int(value)


class PlaceSummary(BaseModel):
    """Candidates that were fed into a hybrid estimate."""

    hotels: List[PlaceCandidate] = Field(default_factory=list)
    restaurants: List[PlaceCandidate] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.hotels and not self.restaurants


class CategoryRate(BaseModel):
    """Base rates for one cost category."""

    per_person: NonNegRate = Field(default=0, alias="perPerson")
    per_day: NonNegRate = Field(default=0, alias="perDay")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("per_person", "per_day", mode="before")
    @classmethod
    def _missing_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class BaseCosts(BaseModel):
    transportation: CategoryRate = Field(default_factory=CategoryRate)
    accommodation: CategoryRate = Field(default_factory=CategoryRate)
    food: CategoryRate = Field(default_factory=CategoryRate)
    activities: CategoryRate = Field(default_factory=CategoryRate)
    miscellaneous: CategoryRate = Field(default_factory=CategoryRate)

    model_config = ConfigDict(extra="ignore")

    @field_validator(*CATEGORIES, mode="before")
    @classmethod
    def _missing_category(cls, value: Any) -> Any:
        return {} if value is None else value


class SeasonalMultipliers(BaseModel):
    spring: Optional[float] = None
    summer: Optional[float] = None
    autumn: Optional[float] = None
    winter: Optional[float] = None

    model_config = ConfigDict(extra="ignore")

    def for_season(self, season: str) -> float:
        """Return the multiplier for ``season``, 1.0 when none is defined."""

        value = getattr(self, season, None)
        if value is None or value <= 0:
            return 1.0
        return value


class BudgetRule(BaseModel):
    """Administrator-maintained base rates for a destination.

    Documents are stored with camelCase keys; both spellings are accepted.
    """

    destination: str
    base_costs: BaseCosts = Field(default_factory=BaseCosts, alias="baseCosts")
    seasonal_multipliers: SeasonalMultipliers = Field(
        default_factory=SeasonalMultipliers, alias="seasonalMultipliers"
    )
    is_active: bool = Field(default=True, alias="isActive")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("base_costs", "seasonal_multipliers", mode="before")
    @classmethod
    def _missing_section(cls, value: Any) -> Any:
        return {} if value is None else value


class BudgetBreakdown(BaseModel):
    """Five-category cost breakdown; the total is always their sum."""

    transportation: NonNegAmount = 0
    accommodation: NonNegAmount = 0
    food: NonNegAmount = 0
    activities: NonNegAmount = 0
    miscellaneous: NonNegAmount = 0

    model_config = ConfigDict(extra="forbid")

    @computed_field(return_type=int)
    @property
    def total(self) -> int:
        """Return the total aggregated budget."""

        return (
            self.transportation
            + self.accommodation
            + self.food
            + self.activities
            + self.miscellaneous
        )


class AIBudgetDraft(BaseModel):
    """Breakdown extracted from a generative-text response."""

    model: str
    breakdown: BudgetBreakdown
    reported_total: int = 0
    insights: str = ""
    recommendations: str = ""

    @property
    def is_usable(self) -> bool:
        return self.reported_total > 0 and self.breakdown.total > 0


class BudgetEstimate(BaseModel):
    """Estimate returned to callers, tagged with the strategy that produced it."""

    destination: str
    party_size: int
    days: int
    season: Season
    breakdown: BudgetBreakdown
    currency: ISO4217 = "PKR"
    strategy: StrategyTag
    used_place_data: bool = False
    places: PlaceSummary = Field(default_factory=PlaceSummary)
    insights: str = ""
    recommendations: str = ""
    reported_total: Optional[int] = Field(
        default=None,
        description="Total as stated by the upstream, before recomputation",
    )
    model: Optional[str] = Field(
        default=None, description="Model identifier that answered, for AI strategies"
    )

    @computed_field(return_type=int)
    @property
    def total(self) -> int:
        return self.breakdown.total


class SavedBudget(BaseModel):
    """A budget a traveller chose to persist."""

    user_id: Optional[str] = Field(default=None, alias="userId")
    destination: DestinationName
    number_of_members: PositiveInt = Field(alias="numberOfMembers")
    days: PositiveInt
    season: Season
    breakdown: BudgetBreakdown = Field(default_factory=BudgetBreakdown)
    total: NonNegAmount = 0
    currency: ISO4217 = "PKR"
    calculation_method: str = Field(default="Hybrid-Smart", alias="calculationMethod")
    is_manual: bool = Field(default=False, alias="isManual")
    status: Literal["planned", "confirmed", "completed", "cancelled"] = "planned"
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    notes: Optional[str] = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="updatedAt"
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("number_of_members", "days", mode="before")
    @classmethod
    def _whole_numbers(cls, value: Any) -> Any:
        return _reject_bool(value)

    @field_validator("season", mode="before")
    @classmethod
    def _canonical_season(cls, value: Any) -> str:
        return normalize_season(value)

    @field_validator("breakdown", mode="before")
    @classmethod
    def _coerce_breakdown(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        source = dict(value)
        if "transportation" not in source and "transport" in source:
            source["transportation"] = source["transport"]
        return {name: coerce_amount(source.get(name)) for name in CATEGORIES}

    @model_validator(mode="before")
    @classmethod
    def _fill_total_and_method(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        total = data.get("total")
        if _is_number(total):
            data["total"] = coerce_amount(total)
        else:
            data.pop("total", None)
        if not data.get("calculationMethod") and not data.get("calculation_method"):
            manual = data.get("isManual", data.get("is_manual", False))
            data["calculationMethod"] = "Manual" if manual else "Hybrid-Smart"
        return data

    @model_validator(mode="after")
    def _total_from_breakdown(self) -> "SavedBudget":
        if "total" not in self.model_fields_set:
            self.total = self.breakdown.total
        return self

    def to_document(self) -> Dict[str, Any]:
        """Serialize using the collection's camelCase keys."""

        document = self.model_dump(by_alias=True, exclude_none=True)
        document["breakdown"] = self.breakdown.model_dump(exclude={"total"})
        return document
