from money_map.api.schemas import BreakdownOut, BudgetResponse, GooglePlacesOut, SaveBudgetResponse
from money_map.core.schemas import BudgetEstimate, SavedBudget, StrategyTag

CALCULATION_METHODS = {
    StrategyTag.HYBRID: "Hybrid-Smart",
    StrategyTag.GENERIC_AI: "AI-Estimate",
    StrategyTag.DETERMINISTIC: "Rule-Based",
}


def _estimate_to_response(estimate: BudgetEstimate) -> BudgetResponse:
    breakdown = estimate.breakdown
    google_places = None
    if estimate.strategy is StrategyTag.HYBRID:
        google_places = GooglePlacesOut(
            hotels=estimate.places.hotels,
            restaurants=estimate.places.restaurants,
        )

    return BudgetResponse(
        destination=estimate.destination,
        numberOfMembers=estimate.party_size,
        days=estimate.days,
        season=estimate.season,
        breakdown=BreakdownOut(
            transportation=breakdown.transportation,
            accommodation=breakdown.accommodation,
            food=breakdown.food,
            activities=breakdown.activities,
            miscellaneous=breakdown.miscellaneous,
            total=breakdown.total,
        ),
        currency=estimate.currency,
        calculationMethod=CALCULATION_METHODS[estimate.strategy],
        strategy=estimate.strategy.value,
        usedGoogleData=estimate.used_place_data,
        googlePlaces=google_places,
        insights=estimate.insights,
        recommendations=estimate.recommendations,
    )


def _saved_to_response(document_id: str, budget: SavedBudget) -> SaveBudgetResponse:
    return SaveBudgetResponse(
        id=document_id,
        destination=budget.destination,
        numberOfMembers=budget.number_of_members,
        days=budget.days,
        season=budget.season,
        breakdown=budget.breakdown.model_dump(exclude={"total"}),
        total=budget.total,
        currency=budget.currency,
        calculationMethod=budget.calculation_method,
        status=budget.status,
    )
