"""Text helpers shared by the reference extractors.

Both helpers blank lines rather than dropping them, so offsets found in the
result map to the same line numbers as the original file.
"""

from __future__ import annotations

from refgraph.frontmatter import split_frontmatter

FENCE_MARKER = "```"


def strip_code_fences(text: str) -> str:
    """Blank every line inside a fenced code block, fence markers included."""
    lines = text.split("\n")
    in_fence = False
    for i, line in enumerate(lines):
        if line.lstrip().startswith(FENCE_MARKER):
            in_fence = not in_fence
            lines[i] = ""
            continue
        if in_fence:
            lines[i] = ""
    return "\n".join(lines)


def blank_frontmatter(content: str) -> str:
    """Replace the frontmatter block with empty lines."""
    raw, body = split_frontmatter(content)
    if raw is None:
        return content
    header = content[: len(content) - len(body)]
    return "\n" * header.count("\n") + body


def line_of(text: str, offset: int) -> int:
    """1-based line number of a character offset."""
    return text.count("\n", 0, offset) + 1
