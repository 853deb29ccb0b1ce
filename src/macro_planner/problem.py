"""Normalize a plan request into a solvable bounded-integer problem."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from macro_planner.config import DEFAULTS
from macro_planner.models import (
    FoodItem,
    InvalidInputError,
    PantryEntry,
    PlanRequest,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanProblem:
    """Per-food bounds and per-macro targets, indexed in catalog order.

    ``nutrition[i][m]`` is the per-serving amount of ``macros[m]`` in
    ``foods[i]``.
    """
    foods: tuple[FoodItem, ...]
    macros: tuple[str, ...]
    max_servings: tuple[int, ...]
    min_targets: tuple[float, ...]
    max_targets: tuple[float, ...]
    nutrition: tuple[tuple[float, ...], ...]
    prices: tuple[float | None, ...]
    preferred: tuple[bool, ...]

    @property
    def size(self) -> int:
        return len(self.foods)

    def food_ids(self) -> list[str]:
        return [f.id for f in self.foods]

    def servings_map(self, vector: tuple[int, ...]) -> dict[str, int]:
        return {food.id: count for food, count in zip(self.foods, vector)}

    def vector_from_map(self, servings: dict[str, int]) -> tuple[int, ...]:
        return tuple(int(servings.get(food.id, 0)) for food in self.foods)

    def suffix_max(self, order: list[int] | None = None) -> list[list[float]]:
        """Largest additional macro contribution from positions ``d..`` of ``order``.

        ``order`` lists food indices in decision order and defaults to the
        whole catalog. Row ``len(order)`` is all zeros so a leaf can be looked
        up without a bounds check.
        """
        if order is None:
            order = list(range(self.size))
        rows = [[0.0] * len(self.macros) for _ in range(len(order) + 1)]
        for d in range(len(order) - 1, -1, -1):
            i = order[d]
            for m in range(len(self.macros)):
                rows[d][m] = rows[d + 1][m] + self.nutrition[i][m] * self.max_servings[i]
        return rows


def _check_number(value: float, what: str, allow_infinite: bool = False) -> None:
    if math.isnan(value):
        raise InvalidInputError(f"{what} must be a number, got NaN")
    if value < 0:
        raise InvalidInputError(f"{what} must be non-negative, got {value}")
    if math.isinf(value) and not allow_infinite:
        raise InvalidInputError(f"{what} must be finite, got {value}")


def check_stock(entry: PantryEntry) -> None:
    """Stock must be unbounded or a non-negative number; +inf counts as unbounded."""
    if entry.unbounded:
        return
    _check_number(entry.stock, f"Stock of '{entry.food_id}'", allow_infinite=True)


def validate_request(request: PlanRequest) -> None:
    """Raise InvalidInputError for anything the search cannot interpret."""
    food_ids: set[str] = set()
    for food in request.foods:
        if food.id in food_ids:
            raise InvalidInputError(f"Duplicate food id '{food.id}'")
        food_ids.add(food.id)
        for macro in ("carbs", "fat", "protein", "calories"):
            _check_number(food.nutrition_per_unit.get(macro), f"{macro} of '{food.id}'")
        if food.price_per_unit is not None:
            _check_number(food.price_per_unit, f"Price of '{food.id}'")

    seen_pantry: set[str] = set()
    for entry in request.pantry:
        if entry.food_id not in food_ids:
            raise InvalidInputError(f"Pantry entry references unknown food '{entry.food_id}'")
        if entry.food_id in seen_pantry:
            raise InvalidInputError(f"Duplicate pantry entry for '{entry.food_id}'")
        seen_pantry.add(entry.food_id)
        check_stock(entry)

    for name, ids in (("avoid", request.constraints.avoid), ("prefer", request.constraints.prefer)):
        unknown = sorted(i for i in ids if i not in food_ids)
        if unknown:
            raise InvalidInputError(
                f"Constraint '{name}' references unknown food(s): {', '.join(unknown)}"
            )

    for macro in request.goal.macros:
        rng = request.goal.range_for(macro)
        _check_number(rng.min, f"Goal {macro} min")
        _check_number(rng.max, f"Goal {macro} max", allow_infinite=True)
        if rng.min > rng.max:
            raise InvalidInputError(
                f"Goal {macro} range is inverted: min {rng.min} > max {rng.max}"
            )


def build_problem(request: PlanRequest, config: dict | None = None) -> PlanProblem:
    """Validate a request and derive serving bounds and macro targets."""
    solver_config = (config or DEFAULTS)["solver"]
    cap = solver_config["unbounded_stock_cap"]
    if isinstance(cap, bool) or not isinstance(cap, int) or cap <= 0:
        raise InvalidInputError(f"unbounded_stock_cap must be a positive integer, got {cap!r}")

    validate_request(request)

    avoid = request.constraints.avoid
    prefer = request.constraints.prefer
    macros = request.goal.macros

    max_servings = []
    for food in request.foods:
        if food.id in avoid:
            max_servings.append(0)
            continue
        stock = request.stock_for(food.id)
        if isinstance(stock, str) or math.isinf(stock):
            max_servings.append(cap)
        else:
            max_servings.append(math.floor(stock))

    problem = PlanProblem(
        foods=tuple(request.foods),
        macros=macros,
        max_servings=tuple(max_servings),
        min_targets=tuple(request.goal.range_for(m).min for m in macros),
        max_targets=tuple(request.goal.range_for(m).max for m in macros),
        nutrition=tuple(
            tuple(food.nutrition_per_unit.get(m) for m in macros) for food in request.foods
        ),
        prices=tuple(food.price_per_unit for food in request.foods),
        preferred=tuple(food.id in prefer for food in request.foods),
    )
    logger.debug(
        "Built problem: %d foods, macros=%s, max_servings=%s",
        problem.size,
        ",".join(macros),
        list(problem.max_servings),
    )
    return problem
