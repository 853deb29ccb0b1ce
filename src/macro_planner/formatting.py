"""Text, JSON and Markdown rendering of plan options."""

from __future__ import annotations

import json
import re
from datetime import datetime

import frontmatter

from macro_planner.models import FoodItem, MacroGoal, PlanOption, PlanSearchResult


def format_price(price_lower_bound: float, has_unknown_price: bool) -> str:
    """Two-decimal price; a trailing '+' marks a lower bound."""
    base = f"{price_lower_bound:.2f}"
    return f"{base}+" if has_unknown_price else base


def format_quantity_with_unit(quantity: float | int | str, unit: str | None) -> str:
    """'2 tbsp', or '2 × 100g' when the unit itself starts with a number."""
    if not unit or not unit.strip():
        return str(quantity)
    unit = unit.strip()
    separator = " × " if re.match(r"\d", unit) else " "
    return f"{quantity}{separator}{unit}"


def _macro_summary(option: PlanOption, macros: tuple[str, ...]) -> str:
    parts = []
    for macro in macros:
        value = option.totals.get(macro)
        if macro == "calories":
            parts.append(f"{value:.0f} kcal")
        else:
            parts.append(f"{macro[0].upper()} {value:.0f}g")
    return " / ".join(parts)


def _servings_summary(option: PlanOption, foods: dict[str, FoodItem]) -> str:
    items = []
    for food_id, count in option.servings.items():
        if count <= 0:
            continue
        food = foods.get(food_id)
        name = food.name if food else food_id
        unit = food.unit if food else None
        items.append(f"{name} {format_quantity_with_unit(count, unit)}")
    return ", ".join(items) if items else "(nothing)"


def format_table(
    options: list[PlanOption], foods: list[FoodItem], goal: MacroGoal
) -> str:
    """Format plan options as a readable table."""
    by_id = {f.id: f for f in foods}
    lines = []
    header = f"{'#':<3} {'Price':<9} {'Svgs':<5} {'Totals':<32} {'Plan'}"
    lines.append(header)
    lines.append("-" * len(header))

    for i, option in enumerate(options, 1):
        price = format_price(option.price_lower_bound, option.has_unknown_price)
        lines.append(
            f"{i:<3} {price:<9} {option.total_servings:<5} "
            f"{_macro_summary(option, goal.macros):<32} {_servings_summary(option, by_id)}"
        )

    return "\n".join(lines)


def format_json(result: PlanSearchResult) -> str:
    """Format a search result as JSON."""
    return json.dumps(result.to_dict(), indent=2)


def format_markdown(
    result: PlanSearchResult, foods: list[FoodItem], goal: MacroGoal
) -> str:
    """Format plan options as a Markdown note with YAML front matter."""
    by_id = {f.id: f for f in foods}
    lines = ["# Plan Options", ""]

    if not result.options:
        lines.append("No feasible plan. Try widening ranges or adding stock.")
        lines.append("")

    for i, option in enumerate(result.options, 1):
        price = format_price(option.price_lower_bound, option.has_unknown_price)
        lines.append(f"## Option {i}: {price}")
        lines.append("")
        lines.append("| Food | Servings | Price |")
        lines.append("|------|----------|-------|")
        for food_id, count in option.servings.items():
            if count <= 0:
                continue
            food = by_id.get(food_id)
            name = food.name if food else food_id
            unit = food.unit if food else None
            if food is not None and food.price_per_unit is not None:
                line_price = f"{food.price_per_unit * count:.2f}"
            else:
                line_price = "?"
            lines.append(
                f"| {name} | {format_quantity_with_unit(count, unit)} | {line_price} |"
            )
        lines.append("")
        lines.append(f"Totals: {_macro_summary(option, goal.macros)}")
        lines.append("")

    post = frontmatter.Post(
        "\n".join(lines),
        type="plan-options",
        date_created=datetime.now().strftime("%Y-%m-%d"),
        complete=result.complete,
        options=len(result.options),
        goal=goal.to_dict(),
    )
    return frontmatter.dumps(post)
