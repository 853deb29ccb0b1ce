"""Serving-vector optimization using the OR-Tools CP-SAT solver."""

from __future__ import annotations

import logging
import math
from collections.abc import Collection

from ortools.sat.python import cp_model

from macro_planner.engine import (
    SearchOutcome,
    SearchStatus,
    make_candidate,
    satisfies_targets,
)
from macro_planner.log import wants_solver_log
from macro_planner.models import MacroPlannerError
from macro_planner.problem import PlanProblem

logger = logging.getLogger(__name__)

# Fixed-point factors: CP-SAT only accepts integer coefficients
NUTRITION_SCALE = 1000
PRICE_SCALE = 1000
# Units the smallest nonzero coefficient keeps after scaling
MIN_SCALED_COEF = 100
MAX_SCALE = 10**6

# Solutions rejected by the unscaled range check before giving up
MAX_ROUNDING_REJECTS = 20


def coefficient_scale(values: list[float | None], base: int) -> int:
    """``base`` raised by powers of ten until the smallest positive value keeps
    ``MIN_SCALED_COEF`` units, capped at ``MAX_SCALE``.
    """
    positive = [v for v in values if v is not None and v > 0]
    scale = base
    if positive:
        smallest = min(positive)
        while smallest * scale < MIN_SCALED_COEF and scale < MAX_SCALE:
            scale *= 10
    return scale


class CpSatEngine:
    """Lexicographic (price, servings, preference) minimization with CP-SAT.

    The three objectives are folded into one integer objective whose weights
    keep a single unit of a higher-priority term larger than the whole range
    of every lower-priority term.
    """

    def __init__(
        self,
        time_limit_seconds: float = 10.0,
        num_workers: int = 1,
        prefer_weight: int = 1,
    ) -> None:
        self.time_limit_seconds = time_limit_seconds
        self.num_workers = num_workers
        self.prefer_weight = prefer_weight

    def find_best(
        self, problem: PlanProblem, excluded: Collection[tuple[int, ...]]
    ) -> SearchOutcome:
        blocked = [tuple(v) for v in excluded]
        for _ in range(MAX_ROUNDING_REJECTS):
            vector, status = self._solve(problem, blocked)
            if vector is None:
                return SearchOutcome(candidate=None, status=status)
            if satisfies_targets(problem, vector):
                return SearchOutcome(candidate=make_candidate(problem, vector), status=status)
            logger.debug("Rejected %s: outside goal ranges after rounding", vector)
            blocked.append(vector)

        logger.warning("CP-SAT kept returning plans outside the goal ranges; giving up")
        return SearchOutcome(candidate=None, status=SearchStatus.BUDGET_EXCEEDED)

    def _solve(
        self, problem: PlanProblem, blocked: list[tuple[int, ...]]
    ) -> tuple[tuple[int, ...] | None, SearchStatus]:
        model = cp_model.CpModel()

        # Decision variables
        servings_vars = [
            model.new_int_var(0, max(0, problem.max_servings[i]), f"servings_{food.id}")
            for i, food in enumerate(problem.foods)
        ]

        # Macro range constraints
        for m, macro in enumerate(problem.macros):
            stocked = [row[m] for row, cap in zip(problem.nutrition, problem.max_servings) if cap > 0]
            scale = coefficient_scale(stocked, NUTRITION_SCALE)
            terms = []
            for i, var in enumerate(servings_vars):
                coef = round(problem.nutrition[i][m] * scale)
                if coef:
                    terms.append(coef * var)
            lo = math.ceil(problem.min_targets[m] * scale - 1e-6)
            hi = problem.max_targets[m]
            hi = math.floor(hi * scale + 1e-6) if math.isfinite(hi) else None

            if not terms:
                if lo > 0 or (hi is not None and hi < 0):
                    logger.debug("No food contributes %s; range unreachable", macro)
                    return None, SearchStatus.EXHAUSTED
                continue
            model.add(sum(terms) >= lo)
            if hi is not None:
                model.add(sum(terms) <= hi)

        # Exclude previously found plans: at least one count must differ
        for v_idx, vector in enumerate(blocked):
            diffs = []
            for i, var in enumerate(servings_vars):
                b = model.new_bool_var(f"diff_{v_idx}_{i}")
                model.add(var != vector[i]).only_enforce_if(b)
                diffs.append(b)
            model.add_bool_or(diffs)

        # Soft preference: reward any nonzero serving of a preferred food
        prefer_bools = []
        for i, var in enumerate(servings_vars):
            if not problem.preferred[i] or problem.max_servings[i] <= 0:
                continue
            b = model.new_bool_var(f"prefer_{problem.foods[i].id}")
            model.add(var >= 1).only_enforce_if(b)
            model.add(var == 0).only_enforce_if(~b)
            prefer_bools.append(b)

        prefer_range = self.prefer_weight * len(prefer_bools)
        servings_weight = prefer_range + 1
        max_total = sum(max(0, s) for s in problem.max_servings)
        price_weight = servings_weight * max_total + prefer_range + 1

        price_scale = coefficient_scale(list(problem.prices), PRICE_SCALE)
        price_terms = []
        for i, var in enumerate(servings_vars):
            price = problem.prices[i]
            if price is None:
                continue
            coef = round(price * price_scale)
            if coef:
                price_terms.append(coef * var)

        model.minimize(
            price_weight * sum(price_terms)
            + servings_weight * sum(servings_vars)
            - self.prefer_weight * sum(prefer_bools)
        )

        # Solve
        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = float(self.time_limit_seconds)
        solver.parameters.num_workers = self.num_workers
        solver.parameters.random_seed = 0
        if wants_solver_log(logger):
            solver.parameters.log_search_progress = True
            solver.parameters.log_to_stdout = False
            solver.log_callback = logger.debug
        status = solver.solve(model)

        if status == cp_model.MODEL_INVALID:
            raise MacroPlannerError(f"CP-SAT rejected the model: {model.validate()}")
        if status == cp_model.INFEASIBLE:
            return None, SearchStatus.EXHAUSTED
        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            logger.warning("CP-SAT stopped without a solution (%s)", solver.status_name(status))
            return None, SearchStatus.BUDGET_EXCEEDED

        vector = tuple(int(solver.value(var)) for var in servings_vars)
        if status == cp_model.FEASIBLE:
            logger.warning("CP-SAT time limit reached before proving optimality")
            return vector, SearchStatus.BUDGET_EXCEEDED
        return vector, SearchStatus.FOUND
