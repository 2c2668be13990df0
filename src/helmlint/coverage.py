from __future__ import annotations

from collections import defaultdict
from pathlib import Path
from typing import AbstractSet, Dict, List, Optional, Sequence

from .instrument.classifier import find_indentation, suppression_line
from .instrument.registry import Declaration, DeclarationRegistry
from .schemas import UNCOVERED_BRANCH_MESSAGE, Finding


def uncovered_findings(declarations: Sequence[Declaration]) -> List[Finding]:
    return [
        Finding(
            category="coverage",
            message=UNCOVERED_BRANCH_MESSAGE,
            path=decl.path,
            line=decl.line,
            source=decl.source,
        )
        for decl in declarations
    ]


def write_exceptions(chart_dir: Path, declarations: Sequence[Declaration]) -> List[Finding]:
    """Suppress ``declarations`` in the caller's chart.

    A suppression comment is inserted right above each declaration at the
    indentation a marker would get. Declarations whose line no longer
    matches the recorded source are left alone and reported.
    """
    by_file: Dict[str, List[Declaration]] = defaultdict(list)
    for decl in declarations:
        by_file[decl.path].append(decl)

    findings: List[Finding] = []
    for rel_path in sorted(by_file):
        path = chart_dir / rel_path
        try:
            lines = path.read_text(encoding="utf-8").split("\n")
        except (OSError, UnicodeDecodeError) as exc:
            findings.append(
                Finding(
                    category="exception",
                    message=f"writing exceptions failed: {exc}",
                    path=rel_path,
                )
            )
            continue
        written: List[Declaration] = []
        # bottom-up so earlier line numbers stay valid
        for decl in sorted(by_file[rel_path], key=lambda item: item.line, reverse=True):
            if decl.line >= len(lines) or lines[decl.line].strip() != decl.source:
                findings.append(
                    Finding(
                        category="exception",
                        message="declaration changed since the run started, exception not written",
                        path=decl.path,
                        line=decl.line,
                        source=decl.source,
                    )
                )
                continue
            indentation = find_indentation(lines, decl.line)
            lines.insert(decl.line, suppression_line(indentation))
            written.append(decl)
        if not written:
            continue
        try:
            path.write_text("\n".join(lines), encoding="utf-8")
        except OSError as exc:
            findings.append(
                Finding(
                    category="exception",
                    message=f"writing exceptions failed: {exc}",
                    path=rel_path,
                )
            )
            continue
        for decl in reversed(written):
            findings.append(
                Finding(
                    category="exception",
                    severity="info",
                    message="Wrote exception for uncovered branch",
                    path=decl.path,
                    line=decl.line,
                    source=decl.source,
                )
            )
    return findings


def reconcile(
    registry: DeclarationRegistry,
    surviving: AbstractSet[str],
    *,
    write_exceptions_to: Optional[Path] = None,
) -> List[Finding]:
    """Compare expected declarations with the markers found after rendering.

    Verification mode reports every uncovered declaration. When
    ``write_exceptions_to`` is given the uncovered declarations are
    suppressed in that chart instead.
    """
    uncovered = registry.uncovered(surviving)
    if write_exceptions_to is None:
        return uncovered_findings(uncovered)
    return write_exceptions(write_exceptions_to, uncovered)
