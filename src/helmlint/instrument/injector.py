from __future__ import annotations

from concurrent.futures import Executor
from pathlib import Path
from typing import List, Optional, Tuple

from ..errors import InstrumentationError
from ..pool import map_until_error
from ..utils import manifest_files
from .classifier import find_declarations, find_indentation, marker_line
from .registry import DeclarationRegistry


def _rel(root: Path, path: Path) -> str:
    return path.relative_to(root).as_posix()


def _read_lines(root: Path, path: Path) -> List[str]:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InstrumentationError(_rel(root, path), str(exc)) from exc
    return content.split("\n")


def instrument_lines(
    lines: List[str], rel_path: str, registry: DeclarationRegistry
) -> List[str]:
    """Return ``lines`` with a marker line after every declaration.

    Indices refer to the original lines, so several insertions in one file
    never shift each other.
    """
    instrumented = list(lines)
    for index in find_declarations(lines):
        declaration = registry.register(rel_path, index, lines[index].strip())
        indentation = find_indentation(lines, index)
        instrumented[index] = f"{lines[index]}\n{marker_line(indentation, declaration.token)}"
    return instrumented


def _instrument_file(root: Path, path: Path, registry: DeclarationRegistry) -> None:
    rel_path = _rel(root, path)
    lines = _read_lines(root, path)
    instrumented = instrument_lines(lines, rel_path, registry)
    if instrumented == lines:
        return
    try:
        path.write_text("\n".join(instrumented), encoding="utf-8")
    except OSError as exc:
        raise InstrumentationError(rel_path, str(exc)) from exc


def inject_markers(root: Path, pool: Optional[Executor] = None) -> DeclarationRegistry:
    """Instrument every manifest under ``root`` in place.

    ``root`` must be a private copy of the chart. The returned registry is
    frozen. The first I/O failure aborts; files already rewritten stay
    rewritten.
    """
    registry = DeclarationRegistry()
    files = manifest_files(root)
    map_until_error(pool, lambda path: _instrument_file(root, path, registry), files)
    registry.freeze()
    return registry


def list_declarations(root: Path) -> List[Tuple[str, int, str]]:
    found: List[Tuple[str, int, str]] = []
    for path in manifest_files(root):
        lines = _read_lines(root, path)
        for index in find_declarations(lines):
            found.append((_rel(root, path), index, lines[index].strip()))
    return found
