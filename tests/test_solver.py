"""Plan option search across both engines."""

import pytest
from conftest import food, goal, make_config, make_request
from macro_planner.engine import TOLERANCE
from macro_planner.models import InvalidInputError, PlanStatus
from macro_planner.problem import build_problem
from macro_planner.solver import search_plan_options, solve_plan, solve_plan_options


def assert_plan_properties(options, req, config):
    """Range, stock, avoid, distinctness and ordering checks."""
    problem = build_problem(req, config)
    caps = dict(zip(problem.food_ids(), problem.max_servings))

    for option in options:
        assert option.status == PlanStatus.FEASIBLE
        for macro in req.goal.macros:
            rng = req.goal.range_for(macro)
            assert rng.contains(option.totals.get(macro), tolerance=TOLERANCE)
        for food_id, count in option.servings.items():
            assert 0 <= count <= caps[food_id]
        for food_id in req.constraints.avoid:
            assert option.servings[food_id] == 0

    keys = [tuple(sorted(o.servings.items())) for o in options]
    assert len(set(keys)) == len(keys)

    order = [(o.price_lower_bound, o.total_servings) for o in options]
    assert order == sorted(order)


class TestScenarios:
    def test_feasible_plan_within_ranges_and_stock(self, basic_foods, engine_config):
        req = make_request(
            basic_foods,
            {"rice": 3, "chicken": 3, "oil": 2},
            goal((90, 100), (6, 10), (60, 70)),
        )
        options = solve_plan_options(req, 3, engine_config)
        assert options
        assert options[0].servings == {"rice": 2, "chicken": 2, "oil": 0}
        assert_plan_properties(options, req, engine_config)

    def test_avoided_food_never_used(self, basic_foods, engine_config):
        req = make_request(
            basic_foods,
            {"rice": 3, "chicken": 3, "oil": 2},
            goal((45, 90), (3, 10), (31, 70)),
            avoid={"oil"},
        )
        options = solve_plan_options(req, 3, engine_config)
        assert options
        assert all(o.servings["oil"] == 0 for o in options)
        # Fewest servings wins when nothing is priced
        assert options[0].servings == {"rice": 1, "chicken": 1, "oil": 0}
        assert_plan_properties(options, req, engine_config)

    def test_unreachable_goal_returns_empty(self, basic_foods, engine_config):
        req = make_request(
            basic_foods,
            {"rice": 1, "chicken": 1, "oil": 0},
            goal((200, 220), (50, 60), (100, 120)),
        )
        result = search_plan_options(req, 3, engine_config)
        assert result.options == []
        assert result.complete

    def test_price_ranking_with_unknown_price(self, engine_config):
        foods = [
            food("cheap", carbs=100, price=1.0),
            food("pricey", carbs=100, price=4.0),
            food("mystery", carbs=100),
        ]
        req = make_request(
            foods,
            {"cheap": 1, "pricey": 1, "mystery": 1},
            goal((100, 100), (0, 0), (0, 0)),
        )
        options = solve_plan_options(req, 3, engine_config)

        assert len(options) == 3
        prices = [o.price_lower_bound for o in options]
        assert prices == sorted(prices)
        for option in options:
            assert option.has_unknown_price == (option.servings["mystery"] > 0)
        assert [o.price_lower_bound for o in options] == [0.0, 1.0, 4.0]
        assert options[0].servings["mystery"] == 1


class TestPlanProperties:
    def test_properties_hold_on_mixed_pantry(self, pantry_request, engine_config):
        engine_config["solver"]["node_budget"] = 2_000_000
        result = search_plan_options(pantry_request, 5, engine_config)
        assert result.complete
        assert len(result.options) == 5
        assert_plan_properties(result.options, pantry_request, engine_config)

    def test_engines_agree_on_ranking_keys(self, pantry_request):
        keys = {}
        for name in ("search", "cp-sat"):
            config = make_config(engine=name, node_budget=2_000_000)
            options = solve_plan_options(pantry_request, 4, config)
            keys[name] = [(o.price_lower_bound, o.total_servings) for o in options]

        assert len(keys["search"]) == len(keys["cp-sat"]) == 4
        for a, b in zip(keys["search"], keys["cp-sat"]):
            assert a[0] == pytest.approx(b[0])
            assert a[1] == b[1]

    def test_deterministic(self, pantry_request, engine_config):
        engine_config["solver"]["node_budget"] = 2_000_000
        first = [o.to_dict() for o in solve_plan_options(pantry_request, 3, engine_config)]
        second = [o.to_dict() for o in solve_plan_options(pantry_request, 3, engine_config)]
        assert first == second

    def test_unbounded_stock_respects_cap(self, engine_config):
        engine_config["solver"]["unbounded_stock_cap"] = 2
        req = make_request(
            [food("bread", carbs=20)],
            {"bread": "unbounded"},
            goal((60, 100), (0, 10), (0, 10)),
        )
        assert solve_plan_options(req, 3, engine_config) == []

        engine_config["solver"]["unbounded_stock_cap"] = 4
        options = solve_plan_options(req, 3, engine_config)
        assert [o.servings["bread"] for o in options] == [3, 4]

    def test_missing_pantry_entry_means_no_stock(self, engine_config):
        req = make_request(
            [food("rice", carbs=45), food("pasta", carbs=40)],
            {"rice": 2},
            goal((80, 90), (0, 10), (0, 10)),
        )
        options = solve_plan_options(req, 3, engine_config)
        assert [o.servings for o in options] == [{"rice": 2, "pasta": 0}]

    def test_calorie_range_is_enforced(self, engine_config):
        foods = [
            food("toast", carbs=15, calories=80),
            food("bagel", carbs=15, calories=250),
        ]
        req = make_request(
            foods,
            {"toast": 2, "bagel": 2},
            goal((30, 30), (0, 5), (0, 5), calories=(100, 200)),
        )
        options = solve_plan_options(req, 3, engine_config)
        assert [o.servings for o in options] == [{"toast": 2, "bagel": 0}]
        assert options[0].totals.calories == 160

    def test_inputs_are_not_mutated(self, pantry_request, engine_config):
        before = pantry_request.to_dict()
        solve_plan_options(pantry_request, 2, engine_config)
        assert pantry_request.to_dict() == before


class TestPreferences:
    def test_prefer_breaks_ties(self, engine_config):
        foods = [food("apple", carbs=50), food("pear", carbs=50)]
        stocks = {"apple": 1, "pear": 1}
        target = goal((50, 50), (0, 0), (0, 0))

        for preferred in ("apple", "pear"):
            req = make_request(foods, stocks, target, prefer={preferred})
            best = solve_plan(req, engine_config)
            assert best.servings[preferred] == 1

    def test_prefer_never_beats_price(self, engine_config):
        foods = [food("apple", carbs=50, price=1.0), food("pear", carbs=50, price=2.0)]
        req = make_request(
            foods,
            {"apple": 1, "pear": 1},
            goal((50, 50), (0, 0), (0, 0)),
            prefer={"pear"},
        )
        assert solve_plan(req, engine_config).servings == {"apple": 1, "pear": 0}

    def test_prefer_never_beats_serving_count(self, engine_config):
        foods = [food("big", carbs=100), food("small", carbs=50)]
        req = make_request(
            foods,
            {"big": 1, "small": 2},
            goal((100, 100), (0, 0), (0, 0)),
            prefer={"small"},
        )
        assert solve_plan(req, engine_config).servings == {"big": 1, "small": 0}


class TestBudget:
    def test_exhausted_budget_without_plan(self, basic_foods):
        config = make_config(engine="search", node_budget=1)
        req = make_request(
            basic_foods,
            {"rice": 3, "chicken": 3, "oil": 2},
            goal((90, 100), (6, 10), (60, 70)),
        )
        result = search_plan_options(req, 3, config)
        assert result.options == []
        assert not result.complete
        assert result.completeness.value == "budget-limited"

    def test_exhausted_budget_keeps_best_effort_plan(self):
        config = make_config(engine="search", node_budget=4)
        req = make_request(
            [food("a", carbs=10), food("b", carbs=10)],
            {"a": 1, "b": 1},
            goal((10, 20), (0, 0), (0, 0)),
        )
        result = search_plan_options(req, 3, config)
        assert len(result.options) == 1
        assert not result.complete

        full = search_plan_options(req, 3, make_config(engine="search"))
        # (0, 1), (1, 0) and (1, 1)
        assert len(full.options) == 3
        assert full.complete


class TestLargeCatalog:
    def test_unstocked_foods_add_no_depth(self):
        foods = [food(f"f{i}", carbs=1) for i in range(2000)]
        req = make_request(foods, {"f0": 3}, goal((2, 3), (0, 0), (0, 0)))
        result = search_plan_options(req, 3, make_config(engine="search"))
        assert result.complete
        assert [o.servings["f0"] for o in result.options] == [2, 3]
        assert all(o.total_servings == o.servings["f0"] for o in result.options)

    def test_deep_stocked_catalog(self):
        foods = [food(f"f{i}", carbs=1) for i in range(1500)]
        req = make_request(foods, {f.id: 1 for f in foods}, goal((1, 1), (0, 0), (0, 0)))
        options = solve_plan_options(req, 1, make_config(engine="search"))
        assert len(options) == 1
        assert options[0].total_servings == 1
        assert options[0].totals.carbs == 1


class TestSolvePlan:
    def test_infeasible_single_plan(self, basic_foods, engine_config):
        req = make_request(basic_foods, {}, goal((10, 20), (0, 5), (0, 5)))
        plan = solve_plan(req, engine_config)
        assert plan.status == PlanStatus.INFEASIBLE
        assert plan.servings == {}
        assert plan.totals.carbs == 0

    def test_limit_zero_returns_nothing(self, basic_foods, engine_config):
        req = make_request(
            basic_foods, {"rice": 3}, goal((0, 100), (0, 10), (0, 70))
        )
        assert solve_plan_options(req, 0, engine_config) == []

    def test_default_limit_comes_from_config(self):
        req = make_request(
            [food("a", carbs=1)], {"a": "unbounded"}, goal((0, 10), (0, 0), (0, 0))
        )
        config = make_config()
        config["planner"]["option_limit"] = 2
        assert len(solve_plan_options(req, config=config)) == 2

    def test_invalid_input_raises_before_search(self, basic_foods, engine_config):
        req = make_request(
            basic_foods, {"rice": 3}, goal((100, 90), (0, 10), (0, 70))
        )
        with pytest.raises(InvalidInputError, match="inverted"):
            solve_plan_options(req, 3, engine_config)

    def test_bad_limit_rejected(self, basic_foods):
        req = make_request(basic_foods, {}, goal((0, 1), (0, 1), (0, 1)))
        with pytest.raises(InvalidInputError, match="limit"):
            solve_plan_options(req, "3")
