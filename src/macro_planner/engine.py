"""Engine interface shared by the search strategies."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from macro_planner.config import DEFAULTS, ENGINES
from macro_planner.models import InvalidInputError
from macro_planner.problem import PlanProblem

# Slack for comparing float macro totals against goal bounds
TOLERANCE = 1e-9


class SearchStatus(Enum):
    FOUND = "found"
    EXHAUSTED = "exhausted"
    BUDGET_EXCEEDED = "budget-exceeded"


@dataclass(frozen=True)
class PlanCandidate:
    """A serving vector in problem food order with its objective values."""
    servings: tuple[int, ...]
    price: float
    total_servings: int
    preferred_count: int = 0


@dataclass(frozen=True)
class SearchOutcome:
    candidate: PlanCandidate | None
    status: SearchStatus

    @property
    def exhaustive(self) -> bool:
        return self.status != SearchStatus.BUDGET_EXCEEDED


class Engine(Protocol):
    def find_best(
        self, problem: PlanProblem, excluded: Collection[tuple[int, ...]]
    ) -> SearchOutcome:
        """Best serving vector not listed in ``excluded``, if one exists."""
        ...


def make_candidate(problem: PlanProblem, vector: tuple[int, ...]) -> PlanCandidate:
    price = sum(
        p * c for p, c in zip(problem.prices, vector) if p is not None and c > 0
    )
    return PlanCandidate(
        servings=tuple(vector),
        price=float(price),
        total_servings=sum(vector),
        preferred_count=sum(1 for pref, c in zip(problem.preferred, vector) if pref and c > 0),
    )


def satisfies_targets(problem: PlanProblem, vector: tuple[int, ...]) -> bool:
    """True when every macro total of ``vector`` lies within its goal range."""
    for m in range(len(problem.macros)):
        total = sum(row[m] * c for row, c in zip(problem.nutrition, vector))
        if total < problem.min_targets[m] - TOLERANCE:
            return False
        if total > problem.max_targets[m] + TOLERANCE:
            return False
    return True


def _int_setting(solver_config: dict, key: str, minimum: int) -> int:
    value = solver_config[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise InvalidInputError(
            f"solver.{key} must be an integer of at least {minimum}, got {value!r}"
        )
    return value


def _seconds_setting(solver_config: dict, key: str) -> float | None:
    value = solver_config.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value >= 0:
        raise InvalidInputError(f"solver.{key} must be a non-negative number, got {value!r}")
    return value


def make_engine(config: dict | None = None) -> Engine:
    """Construct a fresh engine for one solve call.

    Raises InvalidInputError for an unknown engine name or a malformed setting.
    """
    solver_config = (config or DEFAULTS)["solver"]
    name = solver_config["engine"]
    if name == "search":
        from macro_planner.search import BranchAndBoundEngine

        return BranchAndBoundEngine(
            node_budget=_int_setting(solver_config, "node_budget", 1),
            deadline_seconds=_seconds_setting(solver_config, "deadline_seconds"),
        )
    if name == "cp-sat":
        from macro_planner.cpsat import CpSatEngine

        time_limit = _seconds_setting(solver_config, "time_limit_seconds")
        if time_limit is None:
            raise InvalidInputError("solver.time_limit_seconds is required for cp-sat")
        return CpSatEngine(
            time_limit_seconds=time_limit,
            num_workers=_int_setting(solver_config, "num_workers", 1),
            prefer_weight=_int_setting(solver_config, "prefer_weight", 0),
        )
    raise InvalidInputError(f"Unknown engine '{name}'. Valid: {', '.join(ENGINES)}")
