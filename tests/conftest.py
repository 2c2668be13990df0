import shutil
import sys
from pathlib import Path
from typing import Callable

import pytest

from helmlint.config import Settings

TESTS_DIR = Path(__file__).resolve().parent
CHARTS_DIR = TESTS_DIR / "charts"
FIXTURES_DIR = TESTS_DIR / "fixtures"


def fake_helm_command() -> list[str]:
    return [sys.executable, str(FIXTURES_DIR / "fake_helm.py")]


def fake_conftest_command() -> list[str]:
    return [sys.executable, str(FIXTURES_DIR / "fake_conftest.py")]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("HELMLINT_WRITE_EXCEPTIONS", "HELMLINT_PRESERVE", "HELMLINT_POLICIES_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def chart_copy(tmp_path: Path) -> Callable[[str], Path]:
    def _copy(name: str) -> Path:
        target = tmp_path / "charts" / name
        shutil.copytree(CHARTS_DIR / name, target)
        return target

    return _copy


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def _make(chart_dir: Path, **kwargs: object) -> Settings:
        kwargs.setdefault("concurrency", 4)
        kwargs.setdefault("helm_command", fake_helm_command())
        kwargs.setdefault("conftest_command", fake_conftest_command())
        return Settings(chart_dir=chart_dir, **kwargs)

    return _make


@pytest.fixture
def fake_commands() -> dict[str, list[str]]:
    return {"helm_command": fake_helm_command(), "conftest_command": fake_conftest_command()}
