"""FastAPI surface for the money-map budget estimator."""
from __future__ import annotations

import os
# Load environment variables from .env file
from dotenv import load_dotenv

# Load .env file before any other imports that might need environment variables
load_dotenv()


from typing import Dict
from fastapi import FastAPI, HTTPException, status
from pydantic import ValidationError
from money_map.api.schemas import (
    BudgetResponse,
    CalculateBudgetRequest,
    SaveBudgetRequest,
    SaveBudgetResponse,
)
import logging
import sentry_sdk
from fastapi.middleware.cors import CORSMiddleware

from money_map.api.dependencies import lifespan, get_budget_bundle
from money_map.api.response_builder import _estimate_to_response, _saved_to_response
from money_map.core.errors import IntegrationError, InvalidRequest

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

if os.getenv("SENTRY_DSN"):  # pragma: no cover - runtime configuration
    sentry_sdk.init(
        dsn=os.getenv("SENTRY_DSN"),
        send_default_pii=False,
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
    )

app = FastAPI(title="Money Map API", version="0.1.0", lifespan=lifespan)

origins = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:3000,http://localhost:3001"
    ).split(",")
    if origin.strip()
]


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/money-map/calculate", response_model=BudgetResponse)
async def calculate_budget(payload: CalculateBudgetRequest) -> BudgetResponse:
    """Estimate a trip budget.

    Strategies are tried in order: hybrid (place data priced by Gemini),
    generic AI, then the deterministic rate tables. A valid request always
    gets an estimate; ``strategy`` and ``calculationMethod`` say which one
    produced it.

    Raises:
        HTTPException: 400 for missing or invalid fields, 500 for unexpected errors

    Example JSON payload:
        ```json
        {
            "destination": "Hunza",
            "numberOfMembers": 2,
            "days": 3,
            "season": "summer"
        }
        ```
    """

    logger.info(
        "Budget request: %s, members=%s, days=%s, season=%s",
        payload.destination,
        payload.numberOfMembers,
        payload.days,
        payload.season,
    )

    bundle = get_budget_bundle()
    try:
        estimate = await bundle.calculate(payload)
    except InvalidRequest as exc:
        logger.info("Rejected budget request: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error("Unexpected error during budget estimate: %s", exc, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to calculate budget") from exc

    return _estimate_to_response(estimate)


@app.post(
    "/money-map/save",
    response_model=SaveBudgetResponse,
    status_code=status.HTTP_201_CREATED,
)
async def save_budget(payload: SaveBudgetRequest) -> SaveBudgetResponse:
    """Persist a budget the traveller wants to keep."""

    logger.info("Save budget request for %s", payload.destination)
    bundle = get_budget_bundle()
    try:
        document_id, budget = await bundle.save_budget(payload)
    except IntegrationError as exc:
        logger.warning("Budget storage unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except (ValidationError, ValueError) as exc:
        logger.info("Rejected budget to save: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error("Unexpected error saving budget: %s", exc, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save budget") from exc

    return _saved_to_response(document_id, budget)


@app.get("/health")
async def health_check() -> Dict[str, str]:
    """Simple health endpoint used for readiness probes."""

    return {"status": "healthy", "service": "money-map-api"}
