from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import SetupError
from .utils import read_json

DEFAULT_FIXTURES_DIR = "fixtures"
DEFAULT_POLICIES_DIR = "policies"

# Extraction hook: (rendered output dir, empty target dir). Raises on failure.
RecursionFn = Callable[[Path, Path], Any]
# Observer hook: called once per rendered output dir, possibly concurrently.
ObserverFn = Callable[[Path], Any]


@dataclass(frozen=True)
class RecursionRule:
    fn: RecursionFn
    settings: "Settings"
    name: str = ""

    def label(self) -> str:
        if self.name:
            return self.name
        return getattr(self.fn, "__name__", "recursion")

    def policies_dir(self) -> Path:
        return self.settings.policies_dir or self.settings.chart_dir / DEFAULT_POLICIES_DIR


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HELMLINT_", arbitrary_types_allowed=True)

    chart_dir: Path = Path(".")
    fixtures_dirs: List[Path] = Field(default_factory=list)
    policies_dir: Optional[Path] = None
    concurrency: int = 0
    write_exceptions: bool = False
    preserve: bool = False
    helm_command: List[str] = Field(default_factory=lambda: ["helm"])
    conftest_command: List[str] = Field(default_factory=lambda: ["conftest"])
    ledger_path: Optional[Path] = None
    recursions: List[Any] = Field(default_factory=list, exclude=True)
    observers: List[Any] = Field(default_factory=list, exclude=True)

    def finalize(self) -> "Settings":
        """Resolve defaults and make every directory absolute.

        Relative fixture and policy directories are taken relative to the
        chart directory. Finalizing twice yields the same settings.
        """
        if self.concurrency < 0:
            raise SetupError(f"concurrency must be positive, got {self.concurrency}")
        concurrency = self.concurrency or (os.cpu_count() or 1) * 2
        if not self.helm_command:
            raise SetupError("helm_command must not be empty")
        if not self.conftest_command:
            raise SetupError("conftest_command must not be empty")
        chart_dir = Path(os.path.abspath(self.chart_dir))
        fixtures_dirs: List[Optional[Path]] = list(self.fixtures_dirs) or [None]
        return self.model_copy(
            update={
                "chart_dir": chart_dir,
                "concurrency": concurrency,
                "fixtures_dirs": [
                    _chart_rel_path(chart_dir, path, DEFAULT_FIXTURES_DIR)
                    for path in fixtures_dirs
                ],
                "policies_dir": _chart_rel_path(
                    chart_dir, self.policies_dir, DEFAULT_POLICIES_DIR
                ),
            }
        )

    def with_recursion(
        self,
        fn: RecursionFn,
        *,
        policies_dir: Optional[Path] = None,
        name: str = "",
    ) -> "Settings":
        """Lint manifests extracted from each rendered output.

        The rule gets its own finalized settings. Only the policy directory
        can be overridden; it defaults to the parent's policy directory.
        """
        rule_settings = Settings(
            chart_dir=self.chart_dir,
            policies_dir=policies_dir if policies_dir is not None else self.policies_dir,
        ).finalize()
        rule = RecursionRule(fn=fn, settings=rule_settings, name=name)
        return self.model_copy(update={"recursions": [*self.recursions, rule]})

    def with_observer(self, fn: ObserverFn) -> "Settings":
        return self.model_copy(update={"observers": [*self.observers, fn]})


def _chart_rel_path(chart_dir: Path, path: Optional[Path], default: str) -> Path:
    if path is None:
        path = Path(default)
    if not path.is_absolute():
        path = chart_dir / path
    return Path(os.path.abspath(path))


def load_settings(config: Optional[Path]) -> Settings:
    if config is None:
        return Settings()
    data = read_json(config)
    if not isinstance(data, dict):
        raise SetupError(f"config file {config} must contain a JSON object")
    return Settings(**data)
