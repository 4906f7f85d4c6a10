from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from money_map.core.schemas import PlaceCandidate


class CalculateBudgetRequest(BaseModel):
    """Raw trip parameters; validation happens in the estimator."""

    destination: Optional[Any] = None
    numberOfMembers: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices("numberOfMembers", "party_size", "partySize"),
        description="Number of travellers",
    )
    days: Optional[Any] = Field(default=None, description="Trip length in days")
    season: Optional[Any] = Field(
        default=None,
        description="spring, summer, autumn or winter (peak, off-peak and shoulder accepted)",
    )


class BreakdownOut(BaseModel):
    transportation: int
    accommodation: int
    food: int
    activities: int
    miscellaneous: int
    total: int


class GooglePlacesOut(BaseModel):
    hotels: List[PlaceCandidate] = Field(default_factory=list)
    restaurants: List[PlaceCandidate] = Field(default_factory=list)


class BudgetResponse(BaseModel):
    """Estimate as returned by the money-map calculate endpoint."""

    destination: str
    numberOfMembers: int
    days: int
    season: str
    breakdown: BreakdownOut
    currency: str
    calculationMethod: str = Field(description="Human-readable strategy label")
    strategy: str = Field(description="hybrid, generic_ai or deterministic")
    usedGoogleData: bool
    googlePlaces: Optional[GooglePlacesOut] = None
    insights: str = ""
    recommendations: str = ""


class SaveBudgetRequest(BaseModel):
    """Budget a traveller wants to keep; mirrors the saved-budget document."""

    userId: Optional[str] = None
    destination: Optional[str] = None
    numberOfMembers: Optional[Any] = None
    days: Optional[Any] = None
    season: Optional[str] = None
    breakdown: Optional[Dict[str, Any]] = None
    total: Optional[Any] = None
    currency: Optional[str] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    isManual: bool = False
    calculationMethod: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class SaveBudgetResponse(BaseModel):
    id: str
    destination: str
    numberOfMembers: int
    days: int
    season: str
    breakdown: Dict[str, int]
    total: int
    currency: str
    calculationMethod: str
    status: str
