from __future__ import annotations

from typing import List, Sequence


class HelmlintError(Exception):
    """Base class for failures that abort a lint run."""


class SetupError(HelmlintError):
    pass


class InstrumentationError(HelmlintError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"instrumenting {path}: {reason}")
        self.path = path
        self.reason = reason


class RenderError(HelmlintError):
    def __init__(self, failures: Sequence[str]) -> None:
        self.failures: List[str] = list(failures)
        super().__init__("rendering chart:\n" + "\n".join(self.failures))
