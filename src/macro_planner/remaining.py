"""Goal and pantry left over after items already eaten today."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, replace

from macro_planner.models import (
    MACROS,
    InvalidInputError,
    MacroGoal,
    MacroRange,
    Nutrition,
    PantryEntry,
    PlanRequest,
    load_request_data,
)
from macro_planner.problem import check_stock


@dataclass(frozen=True)
class ConsumedItem:
    """An eaten quantity with the nutrition per unit recorded at the time."""
    food_id: str
    quantity: float
    nutrition_per_unit: Nutrition

    @classmethod
    def from_dict(cls, data: dict) -> ConsumedItem:
        if not isinstance(data, dict) or "foodId" not in data:
            raise InvalidInputError(f"Consumed item needs a 'foodId', got {data!r}")
        quantity = data.get("quantity", 0)
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
            raise InvalidInputError(f"Consumed quantity must be a number, got {quantity!r}")
        snapshot = data.get("nutritionPerUnitSnapshot", data.get("nutritionPerUnit", {}))
        return cls(
            food_id=data["foodId"],
            quantity=quantity,
            nutrition_per_unit=Nutrition.from_dict(snapshot),
        )


def _clamp_non_negative(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return max(0.0, value)


def consumed_totals(items: list[ConsumedItem]) -> Nutrition:
    totals = dict.fromkeys(MACROS + ("calories",), 0.0)
    for item in items:
        qty = _clamp_non_negative(item.quantity)
        for macro in totals:
            totals[macro] += item.nutrition_per_unit.get(macro) * qty
    return Nutrition(**totals)


def remaining_goal(goal: MacroGoal, items: list[ConsumedItem]) -> MacroGoal:
    """Subtract eaten nutrition from both bounds of every range, flooring at zero."""
    eaten = consumed_totals(items)

    def shrink(rng: MacroRange, amount: float) -> MacroRange:
        return MacroRange(min=max(0.0, rng.min - amount), max=max(0.0, rng.max - amount))

    return MacroGoal(
        carbs=shrink(goal.carbs, eaten.carbs),
        fat=shrink(goal.fat, eaten.fat),
        protein=shrink(goal.protein, eaten.protein),
        calories=shrink(goal.calories, eaten.get("calories")) if goal.calories else None,
    )


def remaining_pantry(
    pantry: tuple[PantryEntry, ...], items: list[ConsumedItem]
) -> tuple[PantryEntry, ...]:
    """Take whole servings of eaten food out of finite stock.

    Partial servings round up. Unbounded stock is left as is. Raises
    InvalidInputError for negative or NaN stock rather than flooring it.
    """
    consumed: dict[str, int] = {}
    for item in items:
        qty = math.ceil(_clamp_non_negative(item.quantity))
        if qty > 0:
            consumed[item.food_id] = consumed.get(item.food_id, 0) + qty

    result = []
    for entry in pantry:
        check_stock(entry)
        used = consumed.get(entry.food_id, 0)
        if entry.unbounded or used <= 0:
            result.append(entry)
        else:
            result.append(replace(entry, stock=max(0, entry.stock - used)))
    return tuple(result)


def remaining_request(request: PlanRequest, items: list[ConsumedItem]) -> PlanRequest:
    """The request to plan the rest of the day with."""
    if not items:
        return request
    return replace(
        request,
        goal=remaining_goal(request.goal, items),
        pantry=remaining_pantry(request.pantry, items),
    )


def run_remaining(request_file: str | None = None, output_format: str = "json") -> None:
    """CLI entry point for remaining command."""
    data = load_request_data(request_file)
    request = PlanRequest.from_dict(data)
    consumed = [ConsumedItem.from_dict(item) for item in data.get("consumed") or []]
    remaining = remaining_request(request, consumed)

    if output_format == "json":
        print(json.dumps(
            {
                "goal": remaining.goal.to_dict(),
                "pantry": [p.to_dict() for p in remaining.pantry],
            },
            indent=2,
        ))
        return

    lines = [f"{'Macro':<10} {'Min':>8} {'Max':>8}"]
    for macro in remaining.goal.macros:
        rng = remaining.goal.range_for(macro)
        lines.append(f"{macro:<10} {rng.min:>8.1f} {rng.max:>8.1f}")
    lines.append("")
    lines.append(f"{'Food':<20} {'Stock':>10}")
    for entry in remaining.pantry:
        lines.append(f"{entry.food_id:<20} {str(entry.stock):>10}")
    print("\n".join(lines))
