"""Tests for service modules."""
from __future__ import annotations

import re

import pytest
from unittest.mock import AsyncMock, MagicMock, Mock, patch
import httpx

from money_map.core.config import ApiSettings
from money_map.core.errors import IntegrationError
from money_map.core.schemas import (
    BudgetRequest,
    BudgetRule,
    PlaceCandidate,
    PlaceCategory,
    PlaceSummary,
    SavedBudget,
)
from money_map.services.gemini import BudgetDraftParser, GeminiClient, GenerationResult
from money_map.services.google_places import GooglePlacesClient, rank_candidates
from money_map.services.rule_store import (
    BudgetRepository,
    InMemoryBudgetRuleStore,
    MongoApiKeyStore,
    MongoBudgetRuleStore,
    MongoResources,
    create_mongo_resources,
    require_repository,
)


def _json_response(payload, status_code: int = 200) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def _search_payload(*results, status: str = "OK"):
    return {"status": status, "results": list(results)}


def _budget_request() -> BudgetRequest:
    return BudgetRequest(destination="Hunza", party_size=2, days=3, season="summer")


# ---------------------------------------------------------------------------
# Google Places
# ---------------------------------------------------------------------------


def test_rank_candidates_puts_unrated_last():
    candidates = [
        PlaceCandidate(name="C", rating=3.1),
        PlaceCandidate(name="D"),
        PlaceCandidate(name="A", rating=5.0),
        PlaceCandidate(name="B", rating=4.8),
    ]

    ranked = rank_candidates(candidates)

    assert [place.rating for place in ranked] == [5.0, 4.8, 3.1, None]


def test_place_candidate_drops_out_of_range_values():
    place = PlaceCandidate(name="Odd", rating=7, price_tier=0)

    assert place.rating is None
    assert place.price_tier is None


@pytest.mark.asyncio
async def test_fetch_top_rated_without_key_makes_no_requests():
    client = GooglePlacesClient(None)
    with patch.object(client._client, "get", new_callable=AsyncMock) as mock_get:
        result = await client.fetch_top_rated("Hunza", PlaceCategory.LODGING)

    assert result == []
    mock_get.assert_not_called()
    await client.aclose()


@pytest.mark.asyncio
async def test_fetch_top_rated_ranks_and_limits_results():
    client = GooglePlacesClient("test-key", region="Pakistan")
    payload = _search_payload(
        {"place_id": "p1", "name": "Serena", "rating": 4.8, "price_level": 4},
        {"place_id": "p2", "name": "Eagle Nest", "rating": 4.9, "price_level": 2},
        {"place_id": "p3", "name": "Hard Rock", "rating": 4.1, "price_level": 2},
        {"place_id": "p4", "name": "Roadside Inn", "rating": 3.5, "price_level": 1},
    )
    with patch.object(
        client._client, "get", new_callable=AsyncMock, return_value=_json_response(payload)
    ) as mock_get:
        result = await client.fetch_top_rated("Hunza", PlaceCategory.LODGING, limit=3)

    assert [place.name for place in result] == ["Eagle Nest", "Serena", "Hard Rock"]
    assert result[0].price_tier == 2
    mock_get.assert_called_once()
    args, kwargs = mock_get.call_args
    assert args[0] == "/textsearch/json"
    assert kwargs["params"]["query"] == "hotels in Hunza, Pakistan"
    assert kwargs["params"]["type"] == "lodging"
    assert kwargs["params"]["key"] == "test-key"
    await client.aclose()


@pytest.mark.asyncio
async def test_fetch_top_rated_backfills_missing_price_level():
    client = GooglePlacesClient("test-key")
    search = _search_payload({"place_id": "r1", "name": "Cafe de Hunza", "rating": 4.5})
    details = {"status": "OK", "result": {"price_level": 2, "rating": 4.6}}
    with patch.object(
        client._client,
        "get",
        new_callable=AsyncMock,
        side_effect=[_json_response(search), _json_response(details)],
    ) as mock_get:
        result = await client.fetch_top_rated("Hunza", PlaceCategory.DINING)

    assert result == [
        PlaceCandidate(name="Cafe de Hunza", rating=4.6, price_tier=2, place_id="r1")
    ]
    details_call = mock_get.call_args_list[1]
    assert details_call.args[0] == "/details/json"
    assert details_call.kwargs["params"]["fields"] == "price_level,rating"
    assert details_call.kwargs["params"]["place_id"] == "r1"
    await client.aclose()


@pytest.mark.asyncio
async def test_failed_backfill_keeps_candidate():
    client = GooglePlacesClient("test-key")
    search = _search_payload({"place_id": "r1", "name": "Cafe de Hunza", "rating": 4.5})
    with patch.object(
        client._client,
        "get",
        new_callable=AsyncMock,
        side_effect=[_json_response(search), httpx.ConnectError("boom")],
    ):
        result = await client.fetch_top_rated("Hunza", PlaceCategory.DINING)

    assert len(result) == 1
    assert result[0].name == "Cafe de Hunza"
    assert result[0].price_tier is None
    await client.aclose()


@pytest.mark.asyncio
async def test_malformed_details_payload_keeps_candidates():
    client = GooglePlacesClient("test-key")
    search = _search_payload(
        {"place_id": "a", "name": "Altit Fort Residence", "rating": 4.9},
        {"place_id": "b", "name": "Hunza Serena", "rating": 4.5, "price_level": 2},
    )
    details = {"status": "OK", "result": ["unexpected"]}
    with patch.object(
        client._client,
        "get",
        new_callable=AsyncMock,
        side_effect=[_json_response(search), _json_response(details)],
    ):
        result = await client.fetch_top_rated("Hunza", PlaceCategory.LODGING)

    assert [place.name for place in result] == ["Altit Fort Residence", "Hunza Serena"]
    assert result[0].rating == 4.9
    assert result[0].price_tier is None
    await client.aclose()


@pytest.mark.asyncio
async def test_non_object_search_payload_returns_empty():
    client = GooglePlacesClient("test-key")
    with patch.object(
        client._client, "get", new_callable=AsyncMock, return_value=_json_response(["oops"])
    ):
        result = await client.fetch_top_rated("Hunza", PlaceCategory.LODGING)

    assert result == []
    await client.aclose()


@pytest.mark.asyncio
async def test_fetch_top_rated_non_ok_status_returns_empty():
    client = GooglePlacesClient("bad-key")
    payload = {"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."}
    with patch.object(
        client._client, "get", new_callable=AsyncMock, return_value=_json_response(payload)
    ):
        result = await client.fetch_top_rated("Hunza", PlaceCategory.LODGING)

    assert result == []
    await client.aclose()


@pytest.mark.asyncio
async def test_fetch_top_rated_transport_error_returns_empty():
    client = GooglePlacesClient("test-key")
    with patch.object(
        client._client,
        "get",
        new_callable=AsyncMock,
        side_effect=httpx.ReadTimeout("timed out"),
    ):
        result = await client.fetch_top_rated("Hunza", PlaceCategory.LODGING)

    assert result == []
    await client.aclose()


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_generate_returns_error_status_as_data():
    client = GeminiClient("bad-key", models=("gemini-pro",))
    response = _json_response({"error": {"message": "API key not valid"}}, status_code=403)
    with patch.object(client._client, "post", new_callable=AsyncMock, return_value=response) as mock_post:
        result = await client.generate("gemini-pro", "hello")

    assert result.status_code == 403
    assert result.error_message == "API key not valid"
    assert not result.ok
    args, kwargs = mock_post.call_args
    assert args[0] == "/models/gemini-pro:generateContent"
    assert kwargs["params"] == {"key": "bad-key"}
    assert kwargs["json"] == {"contents": [{"parts": [{"text": "hello"}]}]}
    await client.aclose()


@pytest.mark.asyncio
async def test_generate_extracts_first_candidate_text():
    client = GeminiClient("key")
    payload = {"candidates": [{"content": {"parts": [{"text": '  {"total": 5}  '}]}}]}
    with patch.object(
        client._client, "post", new_callable=AsyncMock, return_value=_json_response(payload)
    ):
        result = await client.generate("gemini-1.5-flash", "prompt")

    assert result.ok
    assert result.text == '{"total": 5}'
    await client.aclose()


@pytest.mark.asyncio
async def test_generate_without_candidates_is_not_ok():
    client = GeminiClient("key")
    with patch.object(
        client._client, "post", new_callable=AsyncMock, return_value=_json_response({"candidates": []})
    ):
        result = await client.generate("gemini-pro", "prompt")

    assert result.status_code == 200
    assert result.text is None
    assert not result.ok
    await client.aclose()


def _generation(model: str, status_code: int = 200, text=None, error=None) -> GenerationResult:
    return GenerationResult(model=model, status_code=status_code, text=text, error_message=error)


@pytest.mark.asyncio
async def test_parser_returns_none_when_every_model_is_rejected():
    client = GeminiClient("bad-key", models=("m1", "m2", "m3"))
    parser = BudgetDraftParser(client)
    with patch.object(
        client,
        "generate",
        new_callable=AsyncMock,
        side_effect=[_generation(m, 403, error="forbidden") for m in ("m1", "m2", "m3")],
    ) as mock_generate:
        draft = await parser.generic_estimate(_budget_request(), currency="PKR")

    assert draft is None
    assert [c.args[0] for c in mock_generate.call_args_list] == ["m1", "m2", "m3"]
    await client.aclose()


@pytest.mark.asyncio
async def test_parser_moves_to_next_model_after_failure():
    client = GeminiClient("key", models=("m1", "m2", "m3"))
    parser = BudgetDraftParser(client)
    answer = '{"transportation": 100, "accommodation": 200, "total": 300}'
    with patch.object(
        client,
        "generate",
        new_callable=AsyncMock,
        side_effect=[
            httpx.ConnectTimeout("slow"),
            _generation("m2", text=answer),
            _generation("m3", text=answer),
        ],
    ) as mock_generate:
        draft = await parser.generic_estimate(_budget_request(), currency="PKR")

    assert draft is not None
    assert draft.model == "m2"
    assert draft.breakdown.total == 300
    assert mock_generate.await_count == 2
    await client.aclose()


@pytest.mark.asyncio
async def test_parser_skips_model_whose_text_has_no_budget():
    client = GeminiClient("key", models=("m1", "m2"))
    parser = BudgetDraftParser(client)
    with patch.object(
        client,
        "generate",
        new_callable=AsyncMock,
        side_effect=[
            _generation("m1", text="I'm not sure, sorry."),
            _generation("m2", text='{"food": 900, "total": 900}'),
        ],
    ):
        draft = await parser.generic_estimate(_budget_request(), currency="PKR")

    assert draft is not None
    assert draft.model == "m2"
    await client.aclose()


@pytest.mark.asyncio
async def test_parser_without_key_makes_no_requests():
    client = GeminiClient(None)
    parser = BudgetDraftParser(client)
    with patch.object(client, "generate", new_callable=AsyncMock) as mock_generate:
        draft = await parser.generic_estimate(_budget_request(), currency="PKR")

    assert draft is None
    mock_generate.assert_not_called()
    await client.aclose()


@pytest.mark.asyncio
async def test_hybrid_prompt_lists_place_candidates():
    client = GeminiClient("key", models=("m1",))
    parser = BudgetDraftParser(client)
    places = PlaceSummary(
        hotels=[PlaceCandidate(name="Serena", rating=4.8, price_tier=4)],
        restaurants=[],
    )
    with patch.object(
        client,
        "generate",
        new_callable=AsyncMock,
        return_value=_generation("m1", text='{"total": 1000, "food": 1000}'),
    ) as mock_generate:
        await parser.hybrid_estimate(_budget_request(), places, currency="PKR")

    prompt = mock_generate.call_args.args[1]
    assert "Serena (price_level:4)" in prompt
    assert "restaurants: N/A" in prompt
    assert "Hunza" in prompt
    await client.aclose()


# ---------------------------------------------------------------------------
# Rule store
# ---------------------------------------------------------------------------


def test_in_memory_store_matches_substring_case_insensitively():
    store = InMemoryBudgetRuleStore(
        [
            BudgetRule(destination="Lahore"),
            BudgetRule(destination="Hunza Valley"),
        ]
    )

    assert store.find_rule("hunza").destination == "Hunza Valley"
    assert store.find_rule("Karachi") is None
    assert store.find_rule("   ") is None


def test_in_memory_store_skips_inactive_rules():
    store = InMemoryBudgetRuleStore([BudgetRule(destination="Skardu", is_active=False)])

    assert store.find_rule("Skardu") is None


def test_mongo_rule_store_escapes_destination():
    collection = Mock()
    collection.find_one.return_value = {
        "_id": "abc",
        "destination": "Murree (Galiyat)",
        "baseCosts": {"food": {"perPerson": 1500}},
        "seasonalMultipliers": {"winter": 1.3},
        "isActive": True,
        "createdAt": "2024-01-01",
    }
    store = MongoBudgetRuleStore(collection)

    rule = store.find_rule("Murree (Galiyat)")

    assert rule.base_costs.food.per_person == 1500
    assert rule.seasonal_multipliers.for_season("winter") == 1.3
    query = collection.find_one.call_args.args[0]
    assert query["destination"] == {"$regex": re.escape("Murree (Galiyat)"), "$options": "i"}
    assert query["isActive"] == {"$ne": False}


def test_mongo_rule_store_ignores_malformed_document():
    collection = Mock()
    collection.find_one.return_value = {"destination": "Hunza", "baseCosts": {"food": "lots"}}
    store = MongoBudgetRuleStore(collection)

    assert store.find_rule("Hunza") is None


def test_api_key_store_returns_key_and_records_usage():
    collection = Mock()
    collection.find_one.return_value = {"_id": 7, "service": "Gemini AI", "apiKey": "stored-key"}
    store = MongoApiKeyStore(collection)

    assert store.get_active_key("Gemini AI") == "stored-key"
    collection.find_one.assert_called_once()
    assert collection.find_one.call_args.args[0] == {"service": "Gemini AI", "isActive": True}
    update_filter, update = collection.update_one.call_args.args
    assert update_filter == {"_id": 7}
    assert update["$inc"] == {"usageCount": 1}
    assert "lastUsed" in update["$set"]


def test_api_key_store_without_active_key():
    collection = Mock()
    collection.find_one.return_value = None
    store = MongoApiKeyStore(collection)

    assert store.get_active_key("Google Maps") is None
    collection.update_one.assert_not_called()


def test_budget_repository_inserts_camel_case_document():
    collection = Mock()
    collection.insert_one.return_value = Mock(inserted_id="65f0c0ffee")
    repository = BudgetRepository(collection)
    budget = SavedBudget(
        userId="u1",
        destination="Hunza",
        numberOfMembers=2,
        days=3,
        season="summer",
        breakdown={"transport": 100, "food": 200},
    )

    assert repository.save(budget) == "65f0c0ffee"
    document = collection.insert_one.call_args.args[0]
    assert document["numberOfMembers"] == 2
    assert document["breakdown"]["transportation"] == 100
    assert "total" not in document["breakdown"]
    assert document["total"] == 300
    assert document["calculationMethod"] == "Hybrid-Smart"


def test_mongo_resources_hand_out_collection_stores():
    client = MagicMock()
    resources = MongoResources(client, "money_map")

    assert isinstance(resources.rule_store(), MongoBudgetRuleStore)
    assert isinstance(resources.api_key_store(), MongoApiKeyStore)
    assert isinstance(resources.budget_repository(), BudgetRepository)
    resources.close()
    client.close.assert_called_once()


def test_create_mongo_resources_without_uri():
    assert create_mongo_resources(ApiSettings()) is None


def test_require_repository_without_database():
    with pytest.raises(IntegrationError):
        require_repository(None)
