"""Run every check over a component set and aggregate the results.

Per-component checks run first and are recorded one result per file. Cycle
and orphan reporting need the whole graph, so they run afterwards as batch
passes over the recorded summary.

Usage:
    from refgraph.lint import exit_code, lint_root

    summary = lint_root(Path(".claude"))
    sys.exit(exit_code(summary, Severity.ERROR))
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from pathlib import Path

from refgraph.component_index import ComponentIndex
from refgraph.config import LintConfig, load_config
from refgraph.crossref import (
    CrossReferenceValidator,
    detect_trigger_conflicts,
    validate_skill_reference_files,
    validate_trigger_maps,
)
from refgraph.cycles import context_files, detect_import_cycles, find_cycles, report_cycles
from refgraph.discovery import discover_components
from refgraph.models import GRAPH_KINDS, Component, Diagnostic, LintResult, LintSummary, Severity
from refgraph.orphans import find_orphaned_skills

logger = logging.getLogger(__name__)


def lint_components(
    components: Sequence[Component],
    config: LintConfig | None = None,
    root: Path | None = None,
) -> LintSummary:
    """Lint an in-memory component set.

    ``root`` is only needed for checks that look at the disk (skill
    ``references/`` directories and trigger maps); without it those checks
    are skipped.
    """
    config = config or LintConfig()
    index = ComponentIndex(components)
    validator = CrossReferenceValidator(index, config.builtin_agents)
    summary = LintSummary(root=str(root) if root else "")

    # File-level findings that are not produced by the per-component validator
    pending: defaultdict[str, list[Diagnostic]] = defaultdict(list)
    for diagnostic in detect_import_cycles(context_files(components)):
        pending[diagnostic.file].append(diagnostic)
    if root is not None:
        for diagnostic in [
            *validate_skill_reference_files(index, root),
            *validate_trigger_maps(index, root, config.builtin_agents),
            *detect_trigger_conflicts(root),
        ]:
            pending[diagnostic.file].append(diagnostic)

    for component in sorted(components, key=lambda c: c.rel_path):
        if component.kind not in GRAPH_KINDS:
            continue
        result = LintResult(file=component.rel_path, kind=component.kind, name=component.name)
        result.extend(validator.validate(component))
        result.extend(pending.pop(component.rel_path, []))
        summary.record(result)

    for file in sorted(pending):
        for diagnostic in pending[file]:
            summary.add_extra(diagnostic)

    if config.cycle_check:
        report_cycles(summary, find_cycles(index))

    if config.orphan_check:
        for diagnostic in find_orphaned_skills(index, root):
            summary.add_orphan(diagnostic)

    logger.info(
        "Linted %d files: %d errors, %d warnings, %d suggestions",
        summary.total_files,
        summary.total_errors,
        summary.total_warnings,
        summary.total_suggestions,
    )
    return summary


def lint_root(root: Path, config: LintConfig | None = None) -> LintSummary:
    """Discover and lint every component under ``root``.

    Raises:
        ConfigError: If no config is passed and the root's rc file is invalid
    """
    if config is None:
        config = load_config(root)
    components = discover_components(root, config.exclude)
    return lint_components(components, config, root=root)


def exit_code(summary: LintSummary, fail_on: Severity = Severity.ERROR) -> int:
    """1 if any diagnostic is at least as severe as ``fail_on``, else 0."""
    counts = {
        Severity.ERROR: summary.total_errors,
        Severity.WARNING: summary.total_warnings,
        Severity.SUGGESTION: summary.total_suggestions,
        Severity.INFO: summary.total_infos,
    }
    failing = sum(count for severity, count in counts.items() if severity.at_least(fail_on))
    return 1 if failing else 0
