"""
Path resolution for refgraph.

Optional environment variables:
- $REFGRAPH_ROOT: Directory to lint when none is given on the command line
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = (".refgraphrc.yaml", ".refgraphrc.yml", ".refgraphrc.json")


def get_default_root() -> Path:
    """
    Get the directory to lint by default.

    Resolution strategy:
    - $REFGRAPH_ROOT, if set
    - ./.claude, if it exists
    - the current working directory

    Returns:
        Path: Absolute path to the lint root
    """
    env_root = os.environ.get("REFGRAPH_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()

    claude_dir = Path.cwd() / ".claude"
    if claude_dir.is_dir():
        return claude_dir.resolve()

    return Path.cwd().resolve()


def get_config_paths(root: Path) -> list[Path]:
    """Candidate config files under ``root``, in lookup order."""
    return [root / name for name in CONFIG_FILENAMES]
