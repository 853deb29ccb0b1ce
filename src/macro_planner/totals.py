"""Nutrition totals and price aggregation over a serving assignment."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping

from macro_planner.models import (
    MACROS,
    FoodItem,
    Nutrition,
    PlanOption,
    PlanRequest,
    PlanStatus,
)

# Drops float noise so equal prices compare equal
PRICE_DIGITS = 10


def compute_totals(foods: Iterable[FoodItem], servings: Mapping[str, int]) -> Nutrition:
    """Sum per-unit nutrition times servings. Calories always present in the result."""
    totals = dict.fromkeys(MACROS + ("calories",), 0.0)
    for food in foods:
        count = servings.get(food.id, 0)
        if count <= 0:
            continue
        for macro in totals:
            totals[macro] += food.nutrition_per_unit.get(macro) * count
    return Nutrition(**totals)


def compute_price(
    foods: Iterable[FoodItem], servings: Mapping[str, int]
) -> tuple[float, bool]:
    """Return (price_lower_bound, has_unknown_price).

    Foods without a known price are left out of the sum and flag the result.
    """
    price_lower_bound = 0.0
    has_unknown_price = False
    for food in foods:
        count = servings.get(food.id, 0)
        if count <= 0:
            continue
        if food.price_per_unit is None:
            has_unknown_price = True
        else:
            price_lower_bound += food.price_per_unit * count
    return round(price_lower_bound, PRICE_DIGITS), has_unknown_price


def build_plan_option(foods: Iterable[FoodItem], servings: Mapping[str, int]) -> PlanOption:
    foods = list(foods)
    full = {food.id: int(servings.get(food.id, 0)) for food in foods}
    price, unknown = compute_price(foods, full)
    return PlanOption(
        servings=full,
        totals=compute_totals(foods, full),
        price_lower_bound=price,
        has_unknown_price=unknown,
        status=PlanStatus.FEASIBLE,
    )


def infeasible_option() -> PlanOption:
    return PlanOption(
        servings={},
        totals=compute_totals([], {}),
        price_lower_bound=0.0,
        has_unknown_price=False,
        status=PlanStatus.INFEASIBLE,
    )


def compute_feasible_bounds(request: PlanRequest) -> dict[str, float]:
    """Largest total reachable per macro using all stock of every non-avoided food.

    Unbounded stock of a food that contributes to a macro makes that macro's
    bound infinite.
    """
    bounds = dict.fromkeys(MACROS + ("calories",), 0.0)
    for food in request.foods:
        if food.id in request.constraints.avoid:
            continue
        stock = request.stock_for(food.id)
        for macro in bounds:
            per_unit = food.nutrition_per_unit.get(macro)
            if per_unit <= 0:
                continue
            if isinstance(stock, str) or math.isinf(stock):
                bounds[macro] = math.inf
            else:
                bounds[macro] += per_unit * max(0, math.floor(stock))
    return bounds
