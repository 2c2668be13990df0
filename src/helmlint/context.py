from __future__ import annotations

import threading
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import Settings
from .ledger import Ledger
from .schemas import Finding
from .workspace import Workspace


class FindingCollector:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._findings: List[Finding] = []

    def add(self, finding: Finding) -> None:
        with self._lock:
            self._findings.append(finding)

    def snapshot(self) -> List[Finding]:
        with self._lock:
            return list(self._findings)


@dataclass
class RunContext:
    """Everything one lint run shares between its workers."""

    settings: Settings
    pool: Executor
    ledger: Ledger
    workspace: Workspace
    findings: FindingCollector = field(default_factory=FindingCollector)

    def report(
        self,
        finding: Finding,
        event_type: str = "",
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.findings.add(finding)
        if event_type:
            event = finding.model_dump(exclude_none=True)
            event.update(payload or {})
            self.ledger.append(event_type, event)
