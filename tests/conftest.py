import copy

import pytest
from macro_planner.config import DEFAULTS
from macro_planner.models import (
    UNBOUNDED,
    Constraints,
    FoodItem,
    MacroGoal,
    MacroRange,
    Nutrition,
    PantryEntry,
    PlanRequest,
)

ENGINE_NAMES = ["search", "cp-sat"]


def make_config(**solver_overrides):
    """Fresh default config with solver settings replaced."""
    config = copy.deepcopy(DEFAULTS)
    config["solver"].update(solver_overrides)
    return config


def food(food_id, carbs=0.0, fat=0.0, protein=0.0, price=None, calories=None, unit="serving"):
    return FoodItem(
        id=food_id,
        name=food_id.title(),
        unit=unit,
        nutrition_per_unit=Nutrition(carbs=carbs, fat=fat, protein=protein, calories=calories),
        price_per_unit=price,
    )


def goal(carbs, fat, protein, calories=None):
    return MacroGoal(
        carbs=MacroRange(*carbs),
        fat=MacroRange(*fat),
        protein=MacroRange(*protein),
        calories=MacroRange(*calories) if calories else None,
    )


def make_request(foods, stocks, macro_goal, avoid=(), prefer=()):
    """Build a request; ``stocks`` maps food id to stock."""
    return PlanRequest(
        foods=tuple(foods),
        pantry=tuple(PantryEntry(food_id=k, stock=v) for k, v in stocks.items()),
        goal=macro_goal,
        constraints=Constraints(avoid=frozenset(avoid), prefer=frozenset(prefer)),
    )


@pytest.fixture(params=ENGINE_NAMES)
def engine_config(request):
    """Default config for each engine in turn."""
    return make_config(engine=request.param)


@pytest.fixture
def basic_foods() -> list[FoodItem]:
    """Rice, chicken and oil with per-serving macros."""
    return [
        food("rice", carbs=45, fat=0.4, protein=4),
        food("chicken", carbs=0, fat=3, protein=31),
        food("oil", carbs=0, fat=14, protein=0, unit="tbsp"),
    ]


@pytest.fixture
def pantry_request() -> PlanRequest:
    """A mid-sized pantry with mixed prices and one unbounded item."""
    foods = [
        food("oats", carbs=27, fat=3, protein=5, price=0.3),
        food("eggs", carbs=0.6, fat=5, protein=6, price=0.25),
        food("milk", carbs=12, fat=8, protein=8, price=0.5, unit="250ml"),
        food("chicken", carbs=0, fat=3, protein=31, price=2.0),
        food("rice", carbs=45, fat=0.4, protein=4, price=0.2),
        food("banana", carbs=27, fat=0.4, protein=1.3),
    ]
    stocks = {
        "oats": 5,
        "eggs": 6,
        "milk": UNBOUNDED,
        "chicken": 3,
        "rice": 4,
        "banana": 3,
    }
    return make_request(foods, stocks, goal((120, 180), (30, 60), (90, 130)))
