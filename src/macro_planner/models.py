"""Shared data models for the macro planner.

Every record round-trips through plain JSON types with ``to_dict`` /
``from_dict`` using the camelCase keys of the persisted app format.
"""

from __future__ import annotations

import json
import math
import sys
from dataclasses import dataclass, field
from enum import Enum

MACROS = ("carbs", "fat", "protein")
UNBOUNDED = "unbounded"
# Older exports wrote unbounded stock as "inf"
_UNBOUNDED_ALIASES = {UNBOUNDED, "inf"}


class MacroPlannerError(Exception):
    """Base class for macro planner errors."""


class InvalidInputError(MacroPlannerError, ValueError):
    """Malformed catalog, pantry, goal or constraint input."""


class PlanStatus(Enum):
    FEASIBLE = "feasible"
    INFEASIBLE = "infeasible"


class Completeness(Enum):
    EXHAUSTIVE = "exhaustive"
    BUDGET_LIMITED = "budget-limited"


def _number(data: dict, key: str, default: float | None = None) -> float | None:
    value = data.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"Field '{key}' must be a number, got {value!r}")
    return value


def _require(data: dict, key: str, record: str):
    if not isinstance(data, dict):
        raise InvalidInputError(f"{record} must be an object, got {data!r}")
    if key not in data:
        raise InvalidInputError(f"{record} is missing required field '{key}'")
    return data[key]


@dataclass(frozen=True)
class Nutrition:
    carbs: float = 0.0
    fat: float = 0.0
    protein: float = 0.0
    calories: float | None = None

    def get(self, macro: str) -> float:
        """Value for a macro name; missing calories count as zero."""
        value = getattr(self, macro)
        return 0.0 if value is None else value

    def to_dict(self) -> dict:
        data = {"carbs": self.carbs, "fat": self.fat, "protein": self.protein}
        if self.calories is not None:
            data["calories"] = self.calories
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Nutrition:
        if not isinstance(data, dict):
            raise InvalidInputError(f"Nutrition must be an object, got {data!r}")
        return cls(
            carbs=_number(data, "carbs", 0.0),
            fat=_number(data, "fat", 0.0),
            protein=_number(data, "protein", 0.0),
            calories=_number(data, "calories"),
        )


@dataclass(frozen=True)
class FoodItem:
    id: str
    name: str
    unit: str
    nutrition_per_unit: Nutrition
    price_per_unit: float | None = None

    @property
    def has_known_price(self) -> bool:
        return self.price_per_unit is not None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "nutritionPerUnit": self.nutrition_per_unit.to_dict(),
        }
        if self.price_per_unit is not None:
            data["pricePerUnit"] = self.price_per_unit
        return data

    @classmethod
    def from_dict(cls, data: dict) -> FoodItem:
        food_id = _require(data, "id", "Food")
        if not isinstance(food_id, str) or not food_id:
            raise InvalidInputError(f"Food id must be a non-empty string, got {food_id!r}")
        # "price" is the key used by older exports
        price_key = "pricePerUnit" if "pricePerUnit" in data else "price"
        return cls(
            id=food_id,
            name=str(data.get("name", food_id)),
            unit=str(data.get("unit", "serving")),
            nutrition_per_unit=Nutrition.from_dict(
                _require(data, "nutritionPerUnit", f"Food '{food_id}'")
            ),
            price_per_unit=_number(data, price_key),
        )


@dataclass(frozen=True)
class PantryEntry:
    food_id: str
    stock: float | str  # non-negative number or UNBOUNDED

    @property
    def unbounded(self) -> bool:
        return self.stock == UNBOUNDED

    def to_dict(self) -> dict:
        return {"foodId": self.food_id, "stock": self.stock}

    @classmethod
    def from_dict(cls, data: dict) -> PantryEntry:
        food_id = _require(data, "foodId", "Pantry entry")
        stock = _require(data, "stock", f"Pantry entry '{food_id}'")
        if isinstance(stock, str):
            if stock.lower() not in _UNBOUNDED_ALIASES:
                raise InvalidInputError(
                    f"Stock for '{food_id}' must be a number or '{UNBOUNDED}', got {stock!r}"
                )
            stock = UNBOUNDED
        elif isinstance(stock, bool) or not isinstance(stock, (int, float)):
            raise InvalidInputError(f"Stock for '{food_id}' must be a number, got {stock!r}")
        elif math.isinf(stock) and stock > 0:
            stock = UNBOUNDED
        return cls(food_id=food_id, stock=stock)


@dataclass(frozen=True)
class MacroRange:
    min: float
    max: float

    def contains(self, value: float, tolerance: float = 0.0) -> bool:
        return self.min - tolerance <= value <= self.max + tolerance

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max}

    @classmethod
    def from_dict(cls, data: dict) -> MacroRange:
        lo = _number(data, "min") if _require(data, "min", "Macro range") is not None else None
        hi = _number(data, "max") if _require(data, "max", "Macro range") is not None else None
        if lo is None or hi is None:
            raise InvalidInputError(f"Macro range bounds must be numbers, got {data!r}")
        return cls(min=lo, max=hi)


@dataclass(frozen=True)
class MacroGoal:
    carbs: MacroRange
    fat: MacroRange
    protein: MacroRange
    calories: MacroRange | None = None

    @property
    def macros(self) -> tuple[str, ...]:
        """Macros constrained by this goal, in solver order."""
        return MACROS + ("calories",) if self.calories is not None else MACROS

    def range_for(self, macro: str) -> MacroRange:
        return getattr(self, macro)

    def to_dict(self) -> dict:
        return {m: self.range_for(m).to_dict() for m in self.macros}

    @classmethod
    def from_dict(cls, data: dict) -> MacroGoal:
        ranges = {m: MacroRange.from_dict(_require(data, m, "Goal")) for m in MACROS}
        calories = data.get("calories")
        return cls(
            **ranges,
            calories=MacroRange.from_dict(calories) if calories is not None else None,
        )


@dataclass(frozen=True)
class Constraints:
    avoid: frozenset[str] = frozenset()
    prefer: frozenset[str] = frozenset()

    def to_dict(self) -> dict:
        return {
            "avoidFoodIds": sorted(self.avoid),
            "preferFoodIds": sorted(self.prefer),
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> Constraints:
        if not data:
            return cls()
        avoid = data.get("avoidFoodIds", data.get("avoid")) or []
        prefer = data.get("preferFoodIds", data.get("prefer")) or []
        if not isinstance(avoid, list) or not isinstance(prefer, list):
            raise InvalidInputError("Constraint food ids must be given as lists")
        return cls(avoid=frozenset(avoid), prefer=frozenset(prefer))


@dataclass(frozen=True)
class PlanRequest:
    foods: tuple[FoodItem, ...]
    pantry: tuple[PantryEntry, ...]
    goal: MacroGoal
    constraints: Constraints = field(default_factory=Constraints)

    def stock_for(self, food_id: str) -> float | str:
        for entry in self.pantry:
            if entry.food_id == food_id:
                return entry.stock
        return 0

    def to_dict(self) -> dict:
        return {
            "foods": [f.to_dict() for f in self.foods],
            "pantry": [p.to_dict() for p in self.pantry],
            "goal": self.goal.to_dict(),
            "constraints": self.constraints.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> PlanRequest:
        foods = _require(data, "foods", "Request")
        pantry = data.get("pantry") or []
        if not isinstance(foods, list) or not isinstance(pantry, list):
            raise InvalidInputError("Request 'foods' and 'pantry' must be lists")
        return cls(
            foods=tuple(FoodItem.from_dict(f) for f in foods),
            pantry=tuple(PantryEntry.from_dict(p) for p in pantry),
            goal=MacroGoal.from_dict(_require(data, "goal", "Request")),
            constraints=Constraints.from_dict(data.get("constraints")),
        )


@dataclass
class PlanOption:
    servings: dict[str, int]
    totals: Nutrition
    price_lower_bound: float
    has_unknown_price: bool
    status: PlanStatus = PlanStatus.FEASIBLE

    @property
    def total_servings(self) -> int:
        return sum(self.servings.values())

    @property
    def is_feasible(self) -> bool:
        return self.status == PlanStatus.FEASIBLE

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "servings": dict(self.servings),
            "totals": self.totals.to_dict(),
            "priceLowerBound": self.price_lower_bound,
            "hasUnknownPrice": self.has_unknown_price,
        }

    @classmethod
    def from_dict(cls, data: dict) -> PlanOption:
        try:
            status = PlanStatus(data.get("status", PlanStatus.FEASIBLE.value))
        except ValueError:
            raise InvalidInputError(f"Unknown plan status {data.get('status')!r}")
        return cls(
            servings={k: int(v) for k, v in (data.get("servings") or {}).items()},
            totals=Nutrition.from_dict(data.get("totals") or {}),
            price_lower_bound=_number(data, "priceLowerBound", 0.0),
            has_unknown_price=bool(data.get("hasUnknownPrice", False)),
            status=status,
        )


@dataclass
class PlanSearchResult:
    options: list[PlanOption]
    completeness: Completeness = Completeness.EXHAUSTIVE

    @property
    def complete(self) -> bool:
        return self.completeness == Completeness.EXHAUSTIVE

    def to_dict(self) -> dict:
        return {
            "complete": self.complete,
            "completeness": self.completeness.value,
            "options": [o.to_dict() for o in self.options],
        }


def load_request_data(request_file: str | None) -> dict:
    """Read a JSON request from a file, or from stdin when no file is given."""
    try:
        if request_file:
            with open(request_file) as f:
                data = json.load(f)
        else:
            data = json.load(sys.stdin)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Request is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidInputError("Request must be a JSON object")
    return data
