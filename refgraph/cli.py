"""
refgraph command line.

Subcommands:
    lint [ROOT]                  validate every reference, report cycles and orphans
    trace KIND NAME [--root]     print the delegation tree below a component
    cycles [--root]              list reference cycles only
    orphans [--root]             list skills with no incoming references

Exit codes: 0 clean, 1 findings at or above the failure threshold, 2 usage or
configuration error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from refgraph.chain import format_chain, trace_chain
from refgraph.component_index import ComponentIndex
from refgraph.config import LintConfig, OutputFormat, load_config
from refgraph.cycles import find_cycles, format_cycle
from refgraph.discovery import discover_components
from refgraph.errors import RefgraphError
from refgraph.lint import exit_code, lint_root
from refgraph.models import ComponentKind, LintSummary, Severity
from refgraph.orphans import find_orphaned_skills
from refgraph.paths import get_default_root

logger = logging.getLogger(__name__)

TRACEABLE_KINDS = [ComponentKind.COMMAND.value, ComponentKind.AGENT.value, ComponentKind.SKILL.value]


def _resolve_root(root: Path | None) -> Path:
    resolved = root.resolve() if root else get_default_root()
    if not resolved.is_dir():
        raise RefgraphError(f"Root directory does not exist: {resolved}")
    return resolved


def _load_index(root: Path) -> ComponentIndex:
    config = load_config(root)
    return ComponentIndex(discover_components(root, config.exclude))


def format_summary(summary: LintSummary) -> str:
    """Human-readable report: findings per file, then totals."""
    lines: list[str] = []
    for result in summary.results:
        diagnostics = result.diagnostics
        if not diagnostics:
            continue
        lines.append(result.file)
        for diagnostic in diagnostics:
            where = f":{diagnostic.line}" if diagnostic.line else ""
            lines.append(f"  {diagnostic.severity.value}{where}  {diagnostic.message}")

    for diagnostic in [*summary.extra, *summary.orphans]:
        lines.append(str(diagnostic))

    if lines:
        lines.append("")
    lines.append(
        f"{summary.total_files} files: {summary.successful_files} ok, "
        f"{summary.failed_files} failed | {summary.total_errors} errors, "
        f"{summary.total_warnings} warnings, {summary.total_suggestions} suggestions, "
        f"{summary.total_infos} info"
    )
    return "\n".join(lines)


def cmd_lint(args: argparse.Namespace) -> int:
    root = _resolve_root(args.root)
    config = load_config(root)

    updates: dict[str, object] = {}
    if args.json:
        updates["format"] = OutputFormat.JSON
    if args.fail_on:
        updates["fail_on"] = Severity(args.fail_on)
    if args.no_cycle_check:
        updates["cycle_check"] = False
    if args.no_orphans:
        updates["orphan_check"] = False
    config = LintConfig.model_validate({**config.model_dump(), **updates})
    logger.debug("Linting %s with %s", root, config)

    summary = lint_root(root, config)
    if config.format == OutputFormat.JSON:
        print(json.dumps(summary.to_dict(), indent=2))
    else:
        print(format_summary(summary))
    return exit_code(summary, config.fail_on)


def cmd_trace(args: argparse.Namespace) -> int:
    index = _load_index(_resolve_root(args.root))
    link = trace_chain(index, ComponentKind(args.kind), args.name)
    if link is None:
        print(f"Error: {args.kind} '{args.name}' not found", file=sys.stderr)
        return 1
    print(format_chain(link), end="")
    return 0


def cmd_cycles(args: argparse.Namespace) -> int:
    index = _load_index(_resolve_root(args.root))
    cycles = find_cycles(index)
    for cycle in cycles:
        print(f"{format_cycle(cycle)}  [{cycle.kind}]")
    if not cycles:
        print("No cycles found")
    return 1 if cycles else 0


def cmd_orphans(args: argparse.Namespace) -> int:
    root = _resolve_root(args.root)
    orphans = find_orphaned_skills(_load_index(root), root)
    for diagnostic in orphans:
        print(diagnostic)
    if not orphans:
        print("No orphaned skills")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="refgraph",
        description="Validate references between agents, skills and commands",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    lint = subparsers.add_parser("lint", help="Lint a configuration tree")
    lint.add_argument(
        "root",
        nargs="?",
        type=Path,
        default=None,
        help="Directory to lint (default: $REFGRAPH_ROOT, ./.claude or cwd)",
    )
    lint.add_argument("--json", action="store_true", help="Output JSON")
    lint.add_argument(
        "--fail-on",
        choices=[Severity.ERROR.value, Severity.WARNING.value, Severity.SUGGESTION.value],
        default=None,
        help="Lowest severity that fails the run (default: error)",
    )
    lint.add_argument("--no-cycle-check", action="store_true", help="Skip cycle detection")
    lint.add_argument("--no-orphans", action="store_true", help="Skip orphaned skill detection")
    lint.set_defaults(func=cmd_lint)

    trace = subparsers.add_parser("trace", help="Show what a component delegates to")
    trace.add_argument("kind", choices=TRACEABLE_KINDS)
    trace.add_argument("name")
    trace.set_defaults(func=cmd_trace)

    cycles = subparsers.add_parser("cycles", help="List circular references")
    cycles.set_defaults(func=cmd_cycles)

    orphans = subparsers.add_parser("orphans", help="List unreferenced skills")
    orphans.set_defaults(func=cmd_orphans)

    for sub in (trace, cycles, orphans):
        sub.add_argument(
            "--root",
            type=Path,
            default=None,
            help="Directory to scan (default: $REFGRAPH_ROOT, ./.claude or cwd)",
        )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return args.func(args)
    except RefgraphError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
