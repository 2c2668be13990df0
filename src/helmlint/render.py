from __future__ import annotations

import subprocess
import time
from concurrent.futures import Executor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import RenderError, SetupError
from .ledger import Ledger
from .pool import map_all
from .utils import MANIFEST_SUFFIX


@dataclass(frozen=True)
class Fixture:
    name: str
    path: Path


def discover_fixtures(fixtures_dirs: Sequence[Path]) -> List[Fixture]:
    """Values files directly inside each fixtures directory, one per render."""
    fixtures: Dict[str, Fixture] = {}
    for directory in fixtures_dirs:
        if not directory.is_dir():
            raise SetupError(f"reading fixtures: {directory} is not a directory")
        for path in sorted(directory.iterdir()):
            if path.is_dir() or path.suffix != MANIFEST_SUFFIX:
                continue
            fixture = Fixture(name=path.stem, path=path)
            existing = fixtures.get(fixture.name)
            if existing is not None:
                raise SetupError(
                    f"fixture {fixture.name!r} is defined twice: {existing.path} and {path}"
                )
            fixtures[fixture.name] = fixture
    return [fixtures[name] for name in sorted(fixtures)]


def render_command(
    helm_command: Sequence[str], chart_dir: Path, fixture: Fixture, output_dir: Path
) -> List[str]:
    return [
        *helm_command,
        "template",
        "--output-dir",
        str(output_dir),
        "--values",
        str(fixture.path),
        str(chart_dir),
    ]


def _render_one(
    helm_command: Sequence[str], chart_dir: Path, fixture: Fixture, output_dir: Path
) -> Optional[str]:
    cmd = render_command(helm_command, chart_dir, fixture, output_dir)
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as exc:
        return f"rendering chart with fixture {fixture.path.name!r}: {exc}"
    if proc.returncode != 0:
        return f"rendering chart with fixture {fixture.path.name!r}: {proc.stdout}"
    return None


def render_fixtures(
    chart_dir: Path,
    results_dir: Path,
    fixtures: Sequence[Fixture],
    helm_command: Sequence[str],
    pool: Optional[Executor] = None,
    ledger: Optional[Ledger] = None,
) -> List[Path]:
    """Render the chart once per fixture into ``results_dir/<fixture>``.

    Every render runs to completion. If any of them failed a single
    ``RenderError`` lists all failures.
    """
    start = time.time_ns()
    output_dirs = {fixture.name: results_dir / fixture.name for fixture in fixtures}
    failures = map_all(
        pool,
        lambda fixture: _render_one(helm_command, chart_dir, fixture, output_dirs[fixture.name]),
        fixtures,
    )
    errors = [failure for failure in failures if failure is not None]
    if ledger is not None:
        for fixture, failure in zip(fixtures, failures):
            if failure is not None:
                ledger.append("FIXTURE_RENDER_FAILED", {"fixture": fixture.name, "output": failure})
        ledger.append(
            "RENDERED",
            {
                "fixtures": [fixture.name for fixture in fixtures],
                "failed": len(errors),
                "duration_ns": time.time_ns() - start,
            },
        )
    if errors:
        raise RenderError(errors)
    return [output_dirs[fixture.name] for fixture in fixtures]
