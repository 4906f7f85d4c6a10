from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PlaceType = Literal["lodging", "restaurant"]


class TextSearch(BaseModel):
    """Request schema for the Places text search endpoint."""
    query: str
    type: Optional[PlaceType] = None

    model_config = ConfigDict(extra="forbid")


class PlaceDetails(BaseModel):
    """Request schema for a Places details lookup."""
    place_id: str
    fields: List[str] = Field(default_factory=lambda: ["price_level", "rating"])

    model_config = ConfigDict(extra="forbid")


class PlaceResult(BaseModel):
    """Single row of a text search response; every field may be absent."""
    place_id: Optional[str] = None
    name: Optional[str] = None
    rating: Optional[float] = None
    price_level: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class TextSearchOutput(BaseModel):
    """Wrapper for text search results and the API status string."""
    status: str
    results: List[PlaceResult] = Field(default_factory=list)
    error_message: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class DetailsOutput(BaseModel):
    """Subset of place details used to backfill candidates."""
    status: str
    rating: Optional[float] = None
    price_level: Optional[int] = None
