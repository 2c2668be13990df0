"""Line-level rules for finding template branches in YAML sources.

Nothing here parses YAML or the template language. A branch is any line
holding an ``if`` action, and indentation is recovered by looking back for
the closest block scalar header.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

MARKER_PREFIX = "# helmlint: "
SUPPRESSION_TOKEN = "helmlint:ignore"

_CONDITIONAL_RE = re.compile(r"\{\{-?\s*if\b")
_BLOCK_SCALAR_RE = re.compile(r"(?:^|\s)[|>](?:[-+]?[1-9]?|[1-9][-+])$")
_MARKER_RE = re.compile(re.escape(MARKER_PREFIX) + r"(\S+)")


def leading_spaces(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def is_suppressed(lines: Sequence[str], index: int) -> bool:
    if SUPPRESSION_TOKEN in lines[index]:
        return True
    return index > 0 and SUPPRESSION_TOKEN in lines[index - 1]


def is_declaration(lines: Sequence[str], index: int) -> bool:
    if not _CONDITIONAL_RE.search(lines[index]):
        return False
    return not is_suppressed(lines, index)


def find_declarations(lines: Sequence[str]) -> List[int]:
    return [index for index in range(len(lines)) if is_declaration(lines, index)]


def opens_block_scalar(line: str) -> bool:
    return bool(_BLOCK_SCALAR_RE.search(line.strip()))


def find_indentation(lines: Sequence[str], start: int) -> int:
    """Column for a line inserted right after ``lines[start]``.

    Inside a block scalar the inserted line must sit at the scalar body's
    indentation, otherwise it would become part of the string.
    """
    for index in range(start, -1, -1):
        if opens_block_scalar(lines[index]):
            return leading_spaces(lines[index]) + 2
    return leading_spaces(lines[start])


def marker_line(indentation: int, token: str) -> str:
    return f"{' ' * indentation}{MARKER_PREFIX}{token}"


def suppression_line(indentation: int) -> str:
    return f"{' ' * indentation}# {SUPPRESSION_TOKEN}"


def parse_markers(line: str) -> List[str]:
    return _MARKER_RE.findall(line)


def parse_marker(line: str) -> Optional[str]:
    tokens = parse_markers(line)
    return tokens[0] if tokens else None
