from __future__ import annotations

from .config import Settings
from .lint import lint
from .schemas import LintReport


def assert_chart_lints(settings: Settings) -> LintReport:
    """Lint a chart from a test and fail with every error at once."""
    report = lint(settings)
    if not report.ok:
        details = "\n\n".join(finding.render() for finding in report.errors)
        raise AssertionError(f"{len(report.errors)} lint failure(s):\n\n{details}")
    return report
