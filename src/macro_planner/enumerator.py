"""Successive best distinct plans via exact-assignment blocking."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from macro_planner.engine import Engine, PlanCandidate
from macro_planner.problem import PlanProblem

logger = logging.getLogger(__name__)


@dataclass
class Enumeration:
    candidates: list[PlanCandidate] = field(default_factory=list)
    exhaustive: bool = True


def enumerate_plans(problem: PlanProblem, engine: Engine, limit: int) -> Enumeration:
    """Ask the engine for up to ``limit`` plans, each differing from all earlier ones.

    Stops early on the first call that finds nothing. ``exhaustive`` is False
    when any call hit its work budget.
    """
    result = Enumeration()
    excluded: list[tuple[int, ...]] = []

    for i in range(max(0, limit)):
        outcome = engine.find_best(problem, excluded)
        if not outcome.exhaustive:
            result.exhaustive = False
        if outcome.candidate is None:
            logger.debug("Enumeration stopped after %d plan(s): %s", i, outcome.status.value)
            break
        result.candidates.append(outcome.candidate)
        excluded.append(outcome.candidate.servings)

    return result
