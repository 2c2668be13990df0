from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import AbstractSet

from .actions import build_actions
from .config import Settings
from .context import RunContext
from .coverage import reconcile
from .instrument import DeclarationRegistry, discover_markers, inject_markers
from .ledger import Ledger
from .pool import wait_all
from .render import discover_fixtures, render_fixtures
from .schemas import Finding, LintReport
from .workspace import Workspace


def _finding_order(finding: Finding) -> tuple:
    return (finding.category, finding.path or "", finding.line or 0, finding.message)


def _reconcile(ctx: RunContext, registry: DeclarationRegistry, surviving: AbstractSet[str]) -> None:
    target = ctx.settings.chart_dir if ctx.settings.write_exceptions else None
    for finding in reconcile(registry, surviving, write_exceptions_to=target):
        event_type = "BRANCH_UNCOVERED" if finding.category == "coverage" else "EXCEPTION_WRITTEN"
        ctx.report(finding, event_type)


def lint(settings: Settings) -> LintReport:
    """Check that every template branch of a chart is rendered by some fixture.

    Stages run in order: instrument a private copy of the chart, render it
    once per fixture, scan the output for surviving markers, then reconcile
    coverage while policy checks, recursions and observers run for each
    rendered directory. Setup, instrumentation and render failures raise;
    everything after rendering is collected into the returned report.
    """
    settings = settings.finalize()
    fixtures = discover_fixtures(settings.fixtures_dirs)
    actions = build_actions(settings)

    with Workspace.create(preserve=settings.preserve) as workspace, ThreadPoolExecutor(
        max_workers=settings.concurrency
    ) as pool:
        ledger = Ledger(settings.ledger_path or workspace.root / "ledger.jsonl")
        ctx = RunContext(settings=settings, pool=pool, ledger=ledger, workspace=workspace)
        ledger.append(
            "RUN_START",
            {
                "settings": settings.model_dump(mode="json"),
                "fixtures": [fixture.name for fixture in fixtures],
                "actions": [action.name for action in actions],
            },
        )

        chart_dir = workspace.copy_chart(settings.chart_dir)
        registry = inject_markers(chart_dir, pool)
        ledger.append(
            "INSTRUMENTED",
            {"declarations": [decl.to_record() for decl in registry.declarations()]},
        )

        output_dirs = render_fixtures(
            chart_dir,
            workspace.results_dir,
            fixtures,
            settings.helm_command,
            pool=pool,
            ledger=ledger,
        )

        scan = discover_markers(workspace.results_dir, pool)
        ledger.append(
            "SCANNED",
            {"files": scan.files, "tokens": len(scan.tokens), "errors": len(scan.errors)},
        )
        for error in scan.errors:
            ctx.report(Finding(category="scan", message=error), "SCAN_FAILED")

        futures = [pool.submit(_reconcile, ctx, registry, scan.tokens)]
        for output_dir in output_dirs:
            for action in actions:
                futures.append(pool.submit(action.run, ctx, output_dir))
        wait_all(futures)

        if settings.preserve:
            ctx.report(
                Finding(
                    category="workspace",
                    severity="info",
                    message=f"preserving temporary directory: {workspace.root}",
                ),
                "WORKDIR_PRESERVED",
            )

        report = LintReport(
            chart_dir=str(settings.chart_dir),
            workdir=str(workspace.root),
            output_dirs=[str(path) for path in output_dirs],
            declarations=len(registry),
            surviving_tokens=sum(1 for token in scan.tokens if token in registry),
            findings=sorted(ctx.findings.snapshot(), key=_finding_order),
        )
        ledger.append("RUN_END", {"ok": report.ok, "errors": len(report.errors)})
    return report
