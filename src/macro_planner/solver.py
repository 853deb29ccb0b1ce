"""Plan option search: build, enumerate, rank."""

from __future__ import annotations

import logging
import sys
from dataclasses import replace

from macro_planner.config import DEFAULTS
from macro_planner.engine import Engine, make_engine
from macro_planner.enumerator import enumerate_plans
from macro_planner.models import (
    Completeness,
    Constraints,
    InvalidInputError,
    PlanOption,
    PlanRequest,
    PlanSearchResult,
    load_request_data,
)
from macro_planner.problem import build_problem
from macro_planner.ranking import rank_plans
from macro_planner.totals import (
    build_plan_option,
    compute_feasible_bounds,
    infeasible_option,
)

logger = logging.getLogger(__name__)


def _log_unreachable_minimums(request: PlanRequest) -> None:
    bounds = compute_feasible_bounds(request)
    for macro in request.goal.macros:
        goal_min = request.goal.range_for(macro).min
        if bounds[macro] < goal_min:
            logger.info(
                "%s minimum %.1f is out of reach: all stock provides at most %.1f",
                macro.title(),
                goal_min,
                bounds[macro],
            )


def search_plan_options(
    request: PlanRequest,
    limit: int | None = None,
    config: dict | None = None,
    engine: Engine | None = None,
) -> PlanSearchResult:
    """Find up to ``limit`` distinct cheapest plans and report whether the search was complete.

    Raises InvalidInputError before any search when the request is malformed.
    An empty result with ``complete=True`` means no plan exists within the
    serving caps.
    """
    config = config or DEFAULTS
    if limit is None:
        limit = config["planner"]["option_limit"]
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidInputError(f"Option limit must be an integer, got {limit!r}")

    problem = build_problem(request, config)
    if engine is None:
        engine = make_engine(config)

    enumeration = enumerate_plans(problem, engine, limit)
    options = [
        build_plan_option(problem.foods, problem.servings_map(c.servings))
        for c in enumeration.candidates
    ]
    ranked = rank_plans(options, limit)

    completeness = (
        Completeness.EXHAUSTIVE if enumeration.exhaustive else Completeness.BUDGET_LIMITED
    )
    if not enumeration.exhaustive:
        logger.warning(
            "Search budget exhausted; returning %d best-effort plan(s)", len(ranked)
        )
    elif not ranked and limit > 0:
        logger.info(
            "No feasible plan for the goal and pantry stock. "
            "Try widening ranges or adding stock."
        )
        _log_unreachable_minimums(request)
    else:
        logger.debug("Found %d plan(s)", len(ranked))

    return PlanSearchResult(options=ranked, completeness=completeness)


def solve_plan_options(
    request: PlanRequest,
    limit: int | None = None,
    config: dict | None = None,
    engine: Engine | None = None,
) -> list[PlanOption]:
    """Ranked plan options, best first. Empty when the goal is infeasible."""
    return search_plan_options(request, limit, config, engine).options


def solve_plan(
    request: PlanRequest,
    config: dict | None = None,
    engine: Engine | None = None,
) -> PlanOption:
    """Single best plan, or an infeasible option with no servings."""
    options = solve_plan_options(request, 1, config, engine)
    if not options:
        return infeasible_option()
    return options[0]


def run_solve(
    config: dict,
    request_file: str | None = None,
    limit: int | None = None,
    avoid: str | None = None,
    prefer: str | None = None,
    output_format: str = "table",
) -> None:
    """CLI entry point for solve command."""
    from macro_planner.formatting import format_json, format_markdown, format_table
    from macro_planner.remaining import ConsumedItem, remaining_request

    data = load_request_data(request_file)
    request = PlanRequest.from_dict(data)

    consumed = [ConsumedItem.from_dict(item) for item in data.get("consumed") or []]
    request = remaining_request(request, consumed)

    if avoid or prefer:
        extra_avoid = {a.strip() for a in avoid.split(",")} if avoid else set()
        extra_prefer = {p.strip() for p in prefer.split(",")} if prefer else set()
        request = replace(
            request,
            constraints=Constraints(
                avoid=request.constraints.avoid | extra_avoid,
                prefer=request.constraints.prefer | extra_prefer,
            ),
        )

    if limit is None:
        limit = data.get("limit")

    result = search_plan_options(request, limit, config)

    if output_format == "json":
        print(format_json(result))
    elif output_format == "markdown":
        print(format_markdown(result, list(request.foods), request.goal))
    elif result.options:
        print(format_table(result.options, list(request.foods), request.goal))

    if not result.options:
        sys.exit(1)
