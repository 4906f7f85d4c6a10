from typing import Iterable, Optional

from money_map.core.schemas import PlaceCandidate

SEASON_DESCRIPTIONS = {
    "spring": "spring season (shoulder demand, moderate prices)",
    "summer": "summer season (peak demand, higher prices)",
    "autumn": "autumn season",
    "winter": "winter season (off-peak demand, lower prices)",
}


generic_budget_prompt = """You are a travel budget expert. Calculate a realistic budget breakdown for a trip to {destination} for {party_size} person(s) for {days} day(s) during {season_text}.

Provide a detailed budget breakdown in the following JSON format only (no other text):
{{
  "transportation": <number in {currency}>,
  "accommodation": <number in {currency}>,
  "food": <number in {currency}>,
  "activities": <number in {currency}>,
  "miscellaneous": <number in {currency}>,
  "total": <total in {currency}>,
  "recommendations": "<brief money-saving tips>",
  "insights": "<brief insights about budget for this destination>"
}}

Consider:
- Local cost of living
- Seasonal price variations
- Number of travelers (group discounts if applicable)
- Typical expenses for this destination
- Currency: {currency}

Return ONLY valid JSON, no markdown, no explanations."""


hybrid_budget_prompt = """I am planning a trip to {destination} for {party_size} people for {days} days in {season_text}. Actual top-rated places found there include hotels: {hotels} and restaurants: {restaurants}.

Based on this reality, estimate a detailed budget breakdown in {currency}. Price accommodation against the listed hotels and food against the listed restaurants; a higher price_level (1-4) means a more expensive venue.

Return ONLY valid JSON with numeric amounts in {currency}:
{{
  "transportation": <number>,
  "accommodation": <number>,
  "food": <number>,
  "activities": <number>,
  "miscellaneous": <number>,
  "total": <number>,
  "insights": "<how the listed places shaped this estimate>"
}}"""


def describe_season(season: str) -> str:
    return SEASON_DESCRIPTIONS.get(season, season)


def format_places(places: Optional[Iterable[PlaceCandidate]]) -> str:
    """Render candidates as ``Name (price_level:N)``, or ``N/A`` when empty."""

    rendered = []
    for place in places or []:
        if place.price_tier is not None:
            rendered.append(f"{place.name} (price_level:{place.price_tier})")
        else:
            rendered.append(place.name)
    return ", ".join(rendered) or "N/A"
