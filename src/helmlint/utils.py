from __future__ import annotations

from pathlib import Path
from typing import Any, List

import orjson
from blake3 import blake3

MANIFEST_SUFFIX = ".yaml"


def canonical_dumps(data: Any) -> bytes:
    return orjson.dumps(data, option=orjson.OPT_SORT_KEYS)


def stable_hash(data: Any) -> str:
    return blake3(canonical_dumps(data)).hexdigest()


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def read_json(path: Path) -> Any:
    return orjson.loads(path.read_bytes())


def write_jsonl_line(path: Path, data: Any) -> None:
    ensure_dir(path.parent)
    line = canonical_dumps(data) + b"\n"
    with path.open("ab") as handle:
        handle.write(line)


def read_jsonl(path: Path) -> list[Any]:
    if not path.exists():
        return []
    lines = path.read_bytes().splitlines()
    return [orjson.loads(line) for line in lines if line]


def to_jsonable(value: Any) -> Any:
    """Ledger payloads carry paths and token sets besides plain JSON values."""
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(to_jsonable(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_jsonable(val) for key, val in value.items()}
    return value


def manifest_files(root: Path) -> List[Path]:
    """Snapshot every manifest file below ``root`` in a stable order.

    The walk finishes before any per-file work is scheduled, so workers
    never observe a directory listing that is still being produced.
    """
    if not root.exists():
        return []
    return sorted(
        path for path in root.rglob(f"*{MANIFEST_SUFFIX}") if path.is_file()
    )
