"""Settings loading with defaults and CLI override merging."""

from __future__ import annotations

import copy
from pathlib import Path

import yaml

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "macro-planner" / "config.yaml"

ENGINES = ("search", "cp-sat")

DEFAULTS = {
    "solver": {
        "engine": "search",
        # Servings considered for a food with unbounded stock
        "unbounded_stock_cap": 6,
        "node_budget": 50000,
        "deadline_seconds": None,
        "time_limit_seconds": 10.0,
        "num_workers": 1,
        "prefer_weight": 1,
    },
    "planner": {
        "option_limit": 3,
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def default_config() -> dict:
    return copy.deepcopy(DEFAULTS)


def load_config(config_path: Path | None = None) -> dict:
    """Load settings from a YAML file, falling back to defaults."""
    path = config_path if config_path is not None else DEFAULT_CONFIG_PATH

    if path.exists():
        with open(path) as f:
            user_config = yaml.safe_load(f) or {}
        return deep_merge(default_config(), user_config)

    return default_config()


def apply_cli_overrides(config: dict, **overrides: object) -> dict:
    """Apply CLI argument overrides to config.

    Supports flat keys that map into nested config:
      engine -> solver.engine
      cap -> solver.unbounded_stock_cap
      node_budget -> solver.node_budget
      time_limit -> solver.time_limit_seconds
      limit -> planner.option_limit
    """
    if overrides.get("engine") is not None:
        config["solver"]["engine"] = overrides["engine"]
    if overrides.get("cap") is not None:
        config["solver"]["unbounded_stock_cap"] = overrides["cap"]
    if overrides.get("node_budget") is not None:
        config["solver"]["node_budget"] = overrides["node_budget"]
    if overrides.get("time_limit") is not None:
        config["solver"]["time_limit_seconds"] = overrides["time_limit"]
        config["solver"]["deadline_seconds"] = overrides["time_limit"]
    if overrides.get("limit") is not None:
        config["planner"]["option_limit"] = overrides["limit"]

    return config
