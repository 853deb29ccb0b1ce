"""Ordering and deduplication of plan options."""

from __future__ import annotations

from macro_planner.models import PlanOption


def rank_plans(options: list[PlanOption], limit: int) -> list[PlanOption]:
    """Sort by (price, total servings), drop repeated serving maps, keep ``limit``.

    The sort is stable, so equal keys keep their insertion order.
    """
    ranked = sorted(options, key=lambda o: (o.price_lower_bound, o.total_servings))

    unique: list[PlanOption] = []
    seen: set[tuple[tuple[str, int], ...]] = set()
    for option in ranked:
        if len(unique) >= limit:
            break
        key = tuple(sorted(option.servings.items()))
        if key in seen:
            continue
        seen.add(key)
        unique.append(option)

    return unique
