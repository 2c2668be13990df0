from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Category = Literal[
    "coverage", "scan", "policy", "recursion", "observer", "exception", "workspace"
]
Severity = Literal["error", "info"]

UNCOVERED_BRANCH_MESSAGE = "Branch was not found in the rendered chart output"


class Finding(BaseModel):
    category: Category
    severity: Severity = "error"
    message: str
    path: Optional[str] = None
    line: Optional[int] = None
    source: Optional[str] = None
    output_dir: Optional[str] = None

    def location(self) -> str:
        if self.path is None:
            return ""
        if self.line is None:
            return self.path
        return f"{self.path}:{self.line + 1}"

    def render(self) -> str:
        parts = [self.message]
        location = self.location()
        if location:
            parts.append(f"  {location}")
        if self.source:
            parts.append(f"  {self.source}")
        return "\n".join(parts)


class LintReport(BaseModel):
    chart_dir: str
    workdir: str
    output_dirs: List[str] = Field(default_factory=list)
    declarations: int = 0
    surviving_tokens: int = 0
    findings: List[Finding] = Field(default_factory=list)

    @property
    def errors(self) -> List[Finding]:
        return [finding for finding in self.findings if finding.severity == "error"]

    @property
    def ok(self) -> bool:
        return not self.errors

    def by_category(self, category: str) -> List[Finding]:
        return [finding for finding in self.findings if finding.category == category]

    def to_payload(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["ok"] = self.ok
        return data
