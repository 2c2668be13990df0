from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..utils import read_jsonl, stable_hash, to_jsonable, write_jsonl_line


class Ledger:
    """Hash-chained event log for a single lint run.

    Events are kept in memory and, when ``path`` is set, appended to a JSONL
    file as they happen. Appends may come from any worker thread.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._events: List[Dict[str, Any]] = []
        self._last_hash = ""
        if path is not None and path.exists():
            entries = read_jsonl(path)
            if entries:
                self._last_hash = entries[-1].get("hash", "")

    def append(self, event_type: str, payload: Dict[str, Any]) -> str:
        payload_json = to_jsonable(payload)
        with self._lock:
            event = {
                "ts": time.time_ns(),
                "type": event_type,
                "payload": payload_json,
                "prev_hash": self._last_hash,
            }
            event_hash = stable_hash(event)
            event["hash"] = event_hash
            if self.path is not None:
                write_jsonl_line(self.path, event)
            self._events.append(event)
            self._last_hash = event_hash
        return event_hash

    def events(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            snapshot = list(self._events)
        if event_type is None:
            return snapshot
        return [event for event in snapshot if event["type"] == event_type]

    @staticmethod
    def verify_chain(path: Path) -> Tuple[bool, str]:
        entries = read_jsonl(path)
        prev_hash = ""
        for idx, entry in enumerate(entries):
            expected_hash = entry.get("hash", "")
            recomputed = stable_hash(
                {
                    "ts": entry.get("ts"),
                    "type": entry.get("type"),
                    "payload": entry.get("payload"),
                    "prev_hash": entry.get("prev_hash"),
                }
            )
            if entry.get("prev_hash") != prev_hash:
                return False, f"prev_hash mismatch at {idx}"
            if recomputed != expected_hash:
                return False, f"hash mismatch at {idx}"
            prev_hash = expected_hash
        return True, "ok"
