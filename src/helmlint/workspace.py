from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from .errors import SetupError
from .utils import ensure_dir


class Workspace:
    """Temporary directory holding the instrumented chart and render results."""

    def __init__(self, root: Path, preserve: bool = False) -> None:
        self.root = root
        self.preserve = preserve
        self.chart_dir = root / "chart"
        self.results_dir = root / "results"
        self.recursions_dir = root / "recursions"

    @classmethod
    def create(cls, preserve: bool = False) -> "Workspace":
        try:
            root = Path(tempfile.mkdtemp(prefix="helmlint-"))
        except OSError as exc:
            raise SetupError(f"creating tempdir: {exc}") from exc
        return cls(root, preserve=preserve)

    def copy_chart(self, source: Path) -> Path:
        if not source.is_dir():
            raise SetupError(f"chart directory {source} does not exist")
        try:
            shutil.copytree(source, self.chart_dir)
        except (OSError, shutil.Error) as exc:
            raise SetupError(f"copying chart: {exc}") from exc
        return self.chart_dir

    def target_dir(self, label: str) -> Path:
        ensure_dir(self.recursions_dir)
        return Path(tempfile.mkdtemp(prefix=f"{label}-", dir=self.recursions_dir))

    def close(self) -> None:
        if self.preserve:
            return
        shutil.rmtree(self.root, ignore_errors=True)

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()
