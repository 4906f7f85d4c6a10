"""Shared type aliases used across the estimator modules."""
from __future__ import annotations

from typing import Annotated

from pydantic import Field, StringConstraints

NonNegAmount = Annotated[int, Field(ge=0)]
NonNegRate = Annotated[float, Field(ge=0)]
PositiveInt = Annotated[int, Field(gt=0)]
Rating = Annotated[float, Field(ge=0, le=5)]
PriceTier = Annotated[int, Field(ge=1, le=4)]
ISO4217 = Annotated[str, Field(pattern=r"^[A-Z]{3}$")]
DestinationName = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1),
]
