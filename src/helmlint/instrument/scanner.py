from __future__ import annotations

import threading
from concurrent.futures import Executor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

from ..pool import map_all
from ..utils import manifest_files
from .classifier import parse_markers


@dataclass
class ScanResult:
    tokens: Set[str] = field(default_factory=set)
    errors: List[str] = field(default_factory=list)
    files: int = 0


class _TokenCollector:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.tokens: Set[str] = set()
        self.errors: List[str] = []

    def add_tokens(self, tokens: Set[str]) -> None:
        with self._lock:
            self.tokens.update(tokens)

    def add_error(self, message: str) -> None:
        with self._lock:
            self.errors.append(message)


def _scan_file(path: Path, collector: _TokenCollector) -> None:
    found: Set[str] = set()
    try:
        with path.open("r", encoding="utf-8") as handle:
            for line in handle:
                found.update(parse_markers(line))
    except (OSError, UnicodeDecodeError) as exc:
        collector.add_error(f"scanning {path}: {exc}")
    collector.add_tokens(found)


def discover_markers(root: Path, pool: Optional[Executor] = None) -> ScanResult:
    """Collect every marker token that survived into the files under ``root``.

    Read errors do not stop the scan; they are returned alongside the tokens.
    """
    collector = _TokenCollector()
    files = manifest_files(root)
    map_all(pool, lambda path: _scan_file(path, collector), files)
    return ScanResult(
        tokens=set(collector.tokens), errors=sorted(collector.errors), files=len(files)
    )
