"""Integration-focused tests for the money-map FastAPI surface."""
from __future__ import annotations

from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from money_map.api import app as api_app
from money_map.api.schemas import CalculateBudgetRequest, SaveBudgetRequest
from money_map.core.config import ApiSettings
from money_map.core.errors import IntegrationError
from money_map.core.estimator import create_budget_estimator
from money_map.core.schemas import (
    BudgetBreakdown,
    BudgetEstimate,
    PlaceCandidate,
    PlaceSummary,
    SavedBudget,
    StrategyTag,
)


def _make_budget_payload() -> Dict[str, Any]:
    return {"destination": "Hunza", "numberOfMembers": 2, "days": 3, "season": "summer"}


def _make_hybrid_estimate() -> BudgetEstimate:
    return BudgetEstimate(
        destination="Hunza",
        party_size=2,
        days=3,
        season="summer",
        breakdown=BudgetBreakdown(
            transportation=6000,
            accommodation=12000,
            food=6000,
            activities=4000,
            miscellaneous=2000,
        ),
        strategy=StrategyTag.HYBRID,
        used_place_data=True,
        places=PlaceSummary(
            hotels=[PlaceCandidate(name="Serena", rating=4.8, price_tier=4)],
            restaurants=[PlaceCandidate(name="Cafe de Hunza", rating=4.5)],
        ),
        insights="Summer is peak season.",
        reported_total=30000,
        model="gemini-1.5-flash",
    )


class StubBundle:
    """Bundle double: a real estimator with no upstream keys, and an in-memory saver."""

    def __init__(self) -> None:
        self.estimator = create_budget_estimator(ApiSettings())
        self.estimate_override: BudgetEstimate | None = None
        self.storage_available = True
        self.calculate_inputs: List[CalculateBudgetRequest] = []
        self.saved: List[SavedBudget] = []

    async def calculate(self, payload: CalculateBudgetRequest) -> BudgetEstimate:
        self.calculate_inputs.append(payload)
        if self.estimate_override is not None:
            return self.estimate_override
        return await self.estimator.estimate_budget(
            payload.destination, payload.numberOfMembers, payload.days, payload.season
        )

    async def save_budget(self, payload: SaveBudgetRequest):
        if not self.storage_available:
            raise IntegrationError("Saving budgets requires MONGODB_URI to be configured")
        data = payload.model_dump(exclude_none=True)
        data.setdefault("currency", "PKR")
        budget = SavedBudget.model_validate(data)
        self.saved.append(budget)
        return f"budget-{len(self.saved)}", budget

    async def close(self) -> None:
        await self.estimator.aclose()


@pytest.fixture
def stub_bundle(monkeypatch) -> StubBundle:
    """Provide a stubbed budget bundle for API integration tests."""

    bundle = StubBundle()
    api_app.get_budget_bundle.cache_clear()
    monkeypatch.setattr(api_app, "get_budget_bundle", lambda: bundle)
    return bundle


@pytest.fixture
def client(stub_bundle: StubBundle) -> TestClient:
    """Yield a TestClient that uses the stubbed budget bundle."""

    with TestClient(api_app.app) as test_client:
        yield test_client


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "money-map-api"}


def test_calculate_without_keys_returns_rate_table_budget(client: TestClient) -> None:
    response = client.post("/money-map/calculate", json=_make_budget_payload())

    assert response.status_code == 200
    data = response.json()
    assert data["destination"] == "Hunza"
    assert data["numberOfMembers"] == 2
    assert data["breakdown"] == {
        "transportation": 160,
        "accommodation": 480,
        "food": 180,
        "activities": 240,
        "miscellaneous": 120,
        "total": 1180,
    }
    assert data["currency"] == "PKR"
    assert data["strategy"] == "deterministic"
    assert data["calculationMethod"] == "Rule-Based"
    assert data["usedGoogleData"] is False
    assert data["googlePlaces"] is None


def test_calculate_accepts_party_size_alias(client: TestClient, stub_bundle: StubBundle) -> None:
    payload = {"destination": "Hunza", "party_size": 4, "days": 2, "season": "peak"}

    response = client.post("/money-map/calculate", json=payload)

    assert response.status_code == 200
    assert response.json()["numberOfMembers"] == 4
    assert response.json()["season"] == "summer"
    assert stub_bundle.calculate_inputs[-1].numberOfMembers == 4


def test_calculate_hybrid_response_lists_places(client: TestClient, stub_bundle: StubBundle) -> None:
    stub_bundle.estimate_override = _make_hybrid_estimate()

    response = client.post("/money-map/calculate", json=_make_budget_payload())

    assert response.status_code == 200
    data = response.json()
    assert data["calculationMethod"] == "Hybrid-Smart"
    assert data["strategy"] == "hybrid"
    assert data["usedGoogleData"] is True
    assert data["breakdown"]["total"] == 30000
    assert data["googlePlaces"]["hotels"][0]["name"] == "Serena"
    assert data["googlePlaces"]["restaurants"][0]["name"] == "Cafe de Hunza"
    assert data["insights"] == "Summer is peak season."


@pytest.mark.parametrize(
    "payload",
    [
        {"destination": "Hunza", "days": 3, "season": "summer"},
        {"destination": "Hunza", "numberOfMembers": 0, "days": 3, "season": "summer"},
        {"destination": "Hunza", "numberOfMembers": 2, "days": 3, "season": "monsoon"},
        {"destination": "", "numberOfMembers": 2, "days": 3, "season": "summer"},
    ],
)
def test_calculate_rejects_invalid_requests(client: TestClient, payload) -> None:
    response = client.post("/money-map/calculate", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"]


def test_calculate_missing_field_message(client: TestClient) -> None:
    response = client.post("/money-map/calculate", json={"destination": "Hunza"})

    assert response.status_code == 400
    assert response.json()["detail"] == "All fields are required"


def test_save_budget_returns_created(client: TestClient, stub_bundle: StubBundle) -> None:
    payload = {
        **_make_budget_payload(),
        "breakdown": {"transportation": 160, "accommodation": 480, "food": 180},
        "notes": "Family trip",
    }

    response = client.post("/money-map/save", json=payload)

    assert response.status_code == 201
    data = response.json()
    assert data["id"] == "budget-1"
    assert data["total"] == 820
    assert data["breakdown"]["activities"] == 0
    assert data["calculationMethod"] == "Hybrid-Smart"
    assert data["status"] == "planned"
    assert stub_bundle.saved[0].notes == "Family trip"


def test_save_budget_without_database_returns_503(client: TestClient, stub_bundle: StubBundle) -> None:
    stub_bundle.storage_available = False

    response = client.post("/money-map/save", json=_make_budget_payload())

    assert response.status_code == 503


def test_save_budget_rejects_invalid_budget(client: TestClient) -> None:
    response = client.post(
        "/money-map/save",
        json={"destination": "Hunza", "numberOfMembers": -1, "days": 3, "season": "summer"},
    )

    assert response.status_code == 400
