"""refgraph: reference linter for agent, skill and command definition trees."""

from refgraph.component_index import ComponentIndex, load_component
from refgraph.lint import exit_code, lint_components, lint_root
from refgraph.models import (
    Component,
    ComponentKind,
    Diagnostic,
    LintResult,
    LintSummary,
    Severity,
    Source,
)

__version__ = "0.1.0"

__all__ = [
    "Component",
    "ComponentIndex",
    "ComponentKind",
    "Diagnostic",
    "LintResult",
    "LintSummary",
    "Severity",
    "Source",
    "exit_code",
    "lint_components",
    "lint_root",
    "load_component",
]
