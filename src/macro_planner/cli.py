"""CLI entry point for the macro planner."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from macro_planner.config import DEFAULT_CONFIG_PATH, ENGINES
from macro_planner.log import LOG_LEVELS

logger = logging.getLogger(__name__)


def get_config(args: argparse.Namespace) -> dict:
    from macro_planner.config import apply_cli_overrides, load_config

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path)
    return apply_cli_overrides(
        config,
        engine=getattr(args, "engine", None),
        cap=getattr(args, "cap", None),
        node_budget=getattr(args, "node_budget", None),
        time_limit=getattr(args, "time_limit", None),
        limit=getattr(args, "limit", None),
    )


def cmd_solve(args: argparse.Namespace) -> None:
    from macro_planner.solver import run_solve

    run_solve(
        config=get_config(args),
        request_file=args.request,
        limit=args.limit,
        avoid=args.avoid,
        prefer=args.prefer,
        output_format=args.format,
    )


def cmd_remaining(args: argparse.Namespace) -> None:
    from macro_planner.remaining import run_remaining

    run_remaining(request_file=args.request, output_format=args.format)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="macro-planner",
        description="Cheapest pantry serving plans that hit a macro-nutrient range",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help=f"Path to settings YAML (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--log-level",
        choices=list(LOG_LEVELS),
        default="info",
        help="Logging verbosity (default: info)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write logs to this file",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # solve
    p_solve = sub.add_parser("solve", help="Find ranked plan options for a request")
    p_solve.add_argument(
        "request", nargs="?", default=None, help="Path to request JSON (or stdin)"
    )
    p_solve.add_argument("--limit", type=int, help="Number of plan options (default: 3)")
    p_solve.add_argument("--engine", type=str, choices=list(ENGINES))
    p_solve.add_argument(
        "--cap", type=int, help="Servings considered for unbounded stock (default: 6)"
    )
    p_solve.add_argument(
        "--node-budget", type=int, help="Branch-and-bound nodes per search (default: 50000)"
    )
    p_solve.add_argument("--time-limit", type=float, help="Seconds per search")
    p_solve.add_argument("--avoid", type=str, help="Comma-separated food ids to exclude")
    p_solve.add_argument("--prefer", type=str, help="Comma-separated food ids to favor")
    p_solve.add_argument(
        "--format", type=str, choices=["table", "json", "markdown"], default="table"
    )
    p_solve.set_defaults(func=cmd_solve)

    # remaining
    p_rem = sub.add_parser(
        "remaining", help="Show goal and pantry left after consumed items"
    )
    p_rem.add_argument(
        "request", nargs="?", default=None, help="Path to request JSON (or stdin)"
    )
    p_rem.add_argument("--format", type=str, choices=["json", "table"], default="json")
    p_rem.set_defaults(func=cmd_remaining)

    return parser


def main() -> None:
    from macro_planner.log import setup_logging
    from macro_planner.models import InvalidInputError

    parser = build_parser()
    args = parser.parse_args()

    log_file = Path(args.log_file) if args.log_file else None
    setup_logging(level=args.log_level, log_file=log_file)

    try:
        args.func(args)
    except InvalidInputError as e:
        logger.error("Invalid input: %s", e)
        sys.exit(2)


if __name__ == "__main__":
    main()
