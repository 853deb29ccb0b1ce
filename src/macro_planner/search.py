"""Bounded depth-first branch-and-bound over per-food serving counts."""

from __future__ import annotations

import logging
import time
from collections.abc import Collection
from dataclasses import dataclass

from macro_planner.engine import (
    TOLERANCE,
    PlanCandidate,
    SearchOutcome,
    SearchStatus,
)
from macro_planner.problem import PlanProblem

logger = logging.getLogger(__name__)

DEFAULT_NODE_BUDGET = 50_000
# Nodes visited between wall-clock deadline checks
DEADLINE_CHECK_INTERVAL = 1024


def _compare_price(a: float, b: float) -> int:
    if abs(a - b) <= TOLERANCE:
        return 0
    return -1 if a < b else 1


class BranchAndBoundEngine:
    """Exact search over serving vectors with a visited-node budget.

    Foods are decided in catalog order and each food's count is tried from
    zero upward. A branch is cut when a macro already exceeds its maximum,
    when the remaining foods at full stock cannot lift a macro to its
    minimum, or when its partial (price, servings) is already worse than the
    best plan found so far. Both quantities only grow along a branch, so none
    of these cuts can discard a better plan.

    Among plans with equal price and serving count, the one using more
    preferred foods wins; remaining ties go to the first plan in search
    order.
    """

    def __init__(
        self,
        node_budget: int = DEFAULT_NODE_BUDGET,
        deadline_seconds: float | None = None,
    ) -> None:
        self.node_budget = node_budget
        self.deadline_seconds = deadline_seconds

    def find_best(
        self, problem: PlanProblem, excluded: Collection[tuple[int, ...]]
    ) -> SearchOutcome:
        run = _SearchRun(problem, set(excluded), self.node_budget, self.deadline_seconds)
        outcome = run.execute()
        logger.debug(
            "Branch-and-bound visited %d nodes (%s)", run.visited, outcome.status.value
        )
        return outcome


@dataclass
class _Frame:
    """An open search node and the next serving count to try for its food."""
    depth: int
    totals: list[float]
    price: float
    servings: int
    preferred: int
    next_count: int = 0


class _SearchRun:
    """State for one find_best call; never shared between calls.

    The search walks an explicit frame stack, so catalog size does not touch
    the interpreter recursion limit. Foods with no servings available stay at
    zero and are left out of the decision order.
    """

    def __init__(
        self,
        problem: PlanProblem,
        excluded: set[tuple[int, ...]],
        node_budget: int,
        deadline_seconds: float | None,
    ) -> None:
        self.problem = problem
        self.excluded = excluded
        self.node_budget = node_budget
        self.deadline_at = (
            time.monotonic() + deadline_seconds if deadline_seconds is not None else None
        )
        self.order = [i for i in range(problem.size) if problem.max_servings[i] > 0]
        self.num_macros = len(problem.macros)
        self.suffix = problem.suffix_max(self.order)
        self.best: PlanCandidate | None = None
        self.visited = 0
        self.truncated = False
        self.vector = [0] * problem.size

    def execute(self) -> SearchOutcome:
        stack: list[_Frame] = []
        root = self._open(0, [0.0] * self.num_macros, 0.0, 0, 0)
        if root is not None:
            stack.append(root)

        while stack and not self.truncated:
            frame = stack[-1]
            step = self._next_child(frame)
            if step is None:
                self.vector[self.order[frame.depth]] = 0
                stack.pop()
                continue
            child = self._open(frame.depth + 1, *step)
            if child is not None:
                stack.append(child)

        if self.truncated:
            status = SearchStatus.BUDGET_EXCEEDED
        elif self.best is not None:
            status = SearchStatus.FOUND
        else:
            status = SearchStatus.EXHAUSTED
        return SearchOutcome(candidate=self.best, status=status)

    def _out_of_budget(self) -> bool:
        if self.visited >= self.node_budget:
            return True
        if (
            self.deadline_at is not None
            and self.visited % DEADLINE_CHECK_INTERVAL == 0
            and time.monotonic() > self.deadline_at
        ):
            return True
        return False

    def _worse_than_best(self, price: float, servings: int) -> bool:
        best = self.best
        if best is None:
            return False
        order = _compare_price(price, best.price)
        if order != 0:
            return order > 0
        return servings > best.total_servings

    def _improves_on_best(self, candidate: PlanCandidate) -> bool:
        best = self.best
        if best is None:
            return True
        order = _compare_price(candidate.price, best.price)
        if order != 0:
            return order < 0
        if candidate.total_servings != best.total_servings:
            return candidate.total_servings < best.total_servings
        return candidate.preferred_count > best.preferred_count

    def _open(
        self,
        depth: int,
        totals: list[float],
        price: float,
        servings: int,
        preferred: int,
    ) -> _Frame | None:
        """Count a node and return it as a frame if its children need exploring."""
        if self._out_of_budget():
            self.truncated = True
            return None
        self.visited += 1

        problem = self.problem
        remaining = self.suffix[depth]
        for m in range(self.num_macros):
            if totals[m] > problem.max_targets[m] + TOLERANCE:
                return None
            if totals[m] + remaining[m] < problem.min_targets[m] - TOLERANCE:
                return None

        if self._worse_than_best(price, servings):
            return None

        if depth == len(self.order):
            vector = tuple(self.vector)
            if vector in self.excluded:
                return None
            candidate = PlanCandidate(
                servings=vector,
                price=price,
                total_servings=servings,
                preferred_count=preferred,
            )
            if self._improves_on_best(candidate):
                self.best = candidate
            return None

        return _Frame(depth, totals, price, servings, preferred)

    def _next_child(self, frame: _Frame) -> tuple[list[float], float, int, int] | None:
        """(totals, price, servings, preferred) of the frame's next child, if any."""
        problem = self.problem
        index = self.order[frame.depth]
        count = frame.next_count
        if count > problem.max_servings[index]:
            return None

        per_unit = problem.nutrition[index]
        next_totals = [frame.totals[m] + per_unit[m] * count for m in range(self.num_macros)]
        # Larger counts only push totals and cost further up
        if any(
            next_totals[m] > problem.max_targets[m] + TOLERANCE for m in range(self.num_macros)
        ):
            return None
        unit_price = problem.prices[index]
        next_price = frame.price + unit_price * count if unit_price is not None else frame.price
        if self._worse_than_best(next_price, frame.servings + count):
            return None

        frame.next_count = count + 1
        self.vector[index] = count
        preferred = frame.preferred + (1 if problem.preferred[index] and count > 0 else 0)
        return next_totals, next_price, frame.servings + count, preferred
