"""Deterministic budget calculation from static rate tables."""
from __future__ import annotations

from typing import Optional

from money_map.core.amounts import round_half_up
from money_map.core.schemas import (
    BaseCosts,
    BudgetBreakdown,
    BudgetRequest,
    BudgetRule,
    CategoryRate,
)

DEFAULT_BASE_COSTS = BaseCosts(
    transportation=CategoryRate(per_person=50, per_day=20),
    accommodation=CategoryRate(per_person=80),
    food=CategoryRate(per_person=30),
    activities=CategoryRate(per_person=40),
    miscellaneous=CategoryRate(per_person=20),
)


def _trip_cost(rate: CategoryRate, request: BudgetRequest, multiplier: float) -> int:
    # One-off fare per traveller plus a daily local allowance for the group.
    raw = rate.per_person * request.party_size + rate.per_day * request.days
    return round_half_up(raw * multiplier)


def _daily_cost(rate: CategoryRate, request: BudgetRequest, multiplier: float) -> int:
    # Daily categories price travellers only; per_day applies to transportation.
    raw = rate.per_person * request.party_size * request.days
    return round_half_up(raw * multiplier)


def seasonal_multiplier(rule: Optional[BudgetRule], season: str) -> float:
    if rule is None:
        return 1.0
    return rule.seasonal_multipliers.for_season(season)


def calculate_budget(request: BudgetRequest, rule: Optional[BudgetRule] = None) -> BudgetBreakdown:
    """Compute a breakdown from ``rule`` (or the default table) for ``request``.

    Transportation is priced per trip; the other categories per traveller per
    day. Each category is rounded half-up on its own, so the total is always
    the exact sum of what the caller sees.
    """
    costs = rule.base_costs if rule is not None else DEFAULT_BASE_COSTS
    multiplier = seasonal_multiplier(rule, request.season)

    return BudgetBreakdown(
        transportation=_trip_cost(costs.transportation, request, multiplier),
        accommodation=_daily_cost(costs.accommodation, request, multiplier),
        food=_daily_cost(costs.food, request, multiplier),
        activities=_daily_cost(costs.activities, request, multiplier),
        miscellaneous=_daily_cost(costs.miscellaneous, request, multiplier),
    )
