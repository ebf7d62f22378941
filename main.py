#!/usr/bin/env python3
"""Autocoder - iterative code generation with sandboxed validation.

Usage:
    python main.py generate "Create a weather plugin using OpenWeatherMap"
    python main.py generate "..." --type agent --name my-bot --max-iters 5
    python main.py generate "..." --sandbox e2b --research
    python main.py generate "..." --oracle claude-code     # local sandbox only
    python main.py generate "..." --sandbox none            # no-sandbox, unverified
    python main.py parse "Create a weather plugin using OpenWeatherMap"
"""

import argparse
import dataclasses
import json
import logging
import sys

from config.defaults import DEFAULTS
from core.errors import ServiceUnavailable
from core.orchestrator import create_orchestrator
from core.state import TARGET_TYPES
from manager.intake import budget_for, build_request
from manager.requirements import parse
from utils.folder_naming import get_output_dir


def _print_validation(validation):
    for check in validation.checks:
        marker = "ok" if check.passed else "FAIL"
        print(f"  [{marker:4s}] {check.check:10s} {check.error_count} error(s)")
        if not check.passed:
            for diag in check.diagnostics[-5:]:
                print(f"           {diag}")


def cmd_generate(args):
    """Run one generation request end to end."""
    request, model = build_request(args.description, target_type=args.type, project_name=args.name)
    budget = budget_for(model)
    request = dataclasses.replace(
        request, publish_target=args.output or get_output_dir(request.project_name)
    )

    config = {"research": args.research}
    if args.strict:
        config["accept_partial_results"] = False
    try:
        orchestrator = create_orchestrator(oracle=args.oracle, sandbox=args.sandbox, config=config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    print(f"Project:    {request.project_name} ({request.target_type})")
    print(f"Complexity: {model.complexity} (estimated {model.estimated_development_time})")
    try:
        result = orchestrator.generate(
            request,
            max_iterations=budget["max_iterations"] if args.max_iters is None else args.max_iters,
            timeout=budget["timeout"] if args.timeout is None else args.timeout,
        )
    except ServiceUnavailable as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.success else 1)

    print(f"Strategy:   {result.strategy}")
    print(f"Success:    {'yes' if result.success else 'NO'}")
    print(f"Iterations: {len(result.iterations)}")
    if result.project_path:
        print(f"Output:     {result.project_path}")

    if result.execution_results:
        print("\nValidation:")
        _print_validation(result.execution_results)

    print(f"\nGenerated {len(result.files)} file(s):")
    for f in result.files:
        print(f"  {f.path}")

    for w in result.warnings:
        print(f"WARN: {w}")
    for e in result.errors:
        print(f"ERROR: {e}", file=sys.stderr)

    if args.verbose:
        for it in result.iterations:
            print(f"\n--- Iteration {it.index} ---")
            _print_validation(it.validation)

    sys.exit(0 if result.success else 1)


def cmd_parse(args):
    """Show the RequirementModel derived from a description."""
    model = parse(args.description)
    print(json.dumps(model.to_dict(), indent=2))


def main():
    parser = argparse.ArgumentParser(
        prog="autocoder",
        description="Iterative code generation with sandboxed validation",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", action="store_true", help="Debug logging and per-iteration detail")
    subparsers = parser.add_subparsers(dest="command")

    gen_parser = subparsers.add_parser("generate", parents=[common],
                                       help="Generate a project from a description")
    gen_parser.add_argument("description", help="Natural language description of the project")
    gen_parser.add_argument("--type", choices=TARGET_TYPES, help="Override target type classifier")
    gen_parser.add_argument("--name", help="Project name (default: derived from description)")
    gen_parser.add_argument("--max-iters", type=int,
                            help=f"Max iterations (default: by complexity, cap {DEFAULTS['hard_max_iterations']})")
    gen_parser.add_argument("--timeout", type=float, help="Whole-run timeout in seconds")
    gen_parser.add_argument("--sandbox", choices=["local", "e2b", "none"], default="local",
                            help="Sandbox provider (default: local)")
    gen_parser.add_argument("--oracle", choices=["anthropic", "claude-code"], default="anthropic",
                            help="Generation oracle (default: anthropic)")
    gen_parser.add_argument("--research", action="store_true",
                            help="Run API research and PRD generation first")
    gen_parser.add_argument("--output", help="Directory to publish the project into")
    gen_parser.add_argument("--strict", action="store_true",
                            help="Report failure when validation never passes")
    gen_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    parse_parser = subparsers.add_parser("parse", parents=[common],
                                         help="Show the requirement model for a description")
    parse_parser.add_argument("description", help="Natural language description")

    args = parser.parse_args()
    args.verbose = getattr(args, "verbose", False)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "generate":
        cmd_generate(args)
    elif args.command == "parse":
        cmd_parse(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
