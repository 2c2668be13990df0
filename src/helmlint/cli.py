from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import load_settings
from .errors import HelmlintError
from .instrument import list_declarations
from .ledger import Ledger
from .lint import lint
from .recursion import recurse_configmap
from .schemas import LintReport

app = typer.Typer(help="Branch coverage and policy linting for Helm charts")
console = Console()

ledger_app = typer.Typer(help="Ledger commands")
app.add_typer(ledger_app, name="ledger")

CHART_ARGUMENT = typer.Argument(..., exists=True, file_okay=False, help="Chart directory")
FIXTURES_DIR_OPTION = typer.Option(
    None,
    "--fixtures-dir",
    help="Directory of values files, relative to the chart. Repeatable.",
)
POLICIES_DIR_OPTION = typer.Option(None, "--policies-dir", help="Conftest policy directory.")
CONCURRENCY_OPTION = typer.Option(None, "--concurrency", min=1)
WRITE_EXCEPTIONS_OPTION = typer.Option(
    False,
    "--write-exceptions",
    help="Suppress branches that no fixture covers instead of failing.",
)
PRESERVE_OPTION = typer.Option(False, "--preserve", help="Keep the temporary directory.")
RECURSE_CONFIGMAP_OPTION = typer.Option(
    None,
    "--recurse-configmap",
    help="Rendered ConfigMap whose data keys hold manifests to lint. Repeatable.",
)
RECURSION_POLICIES_DIR_OPTION = typer.Option(None, "--recursion-policies-dir")
LEDGER_OPTION = typer.Option(None, "--ledger", help="Write the run's event ledger here.")
CONFIG_OPTION = typer.Option(None, "--config", exists=True, dir_okay=False)
JSON_OPTION = typer.Option(False, "--json")
LEDGER_REQUIRED_OPTION = typer.Option(..., "--ledger", exists=True, dir_okay=False)


@app.callback()
def main() -> None:
    pass


def _print_report(report: LintReport) -> None:
    for finding in report.by_category("policy"):
        style = "green" if finding.severity == "info" else "red"
        console.print(Panel(finding.message, border_style=style))

    table = Table(title="Lint Findings")
    table.add_column("Category")
    table.add_column("Location")
    table.add_column("Message")
    for finding in report.findings:
        if finding.category == "policy":
            continue
        message = finding.message
        if finding.source:
            message = f"{message}\n{finding.source}"
        table.add_row(finding.category, finding.location(), message)
    if table.row_count:
        console.print(table)

    summary = Table(title="Lint Summary")
    summary.add_column("Field")
    summary.add_column("Value")
    summary.add_row("chart", report.chart_dir)
    summary.add_row("fixtures", str(len(report.output_dirs)))
    summary.add_row("branches", str(report.declarations))
    summary.add_row("covered", str(report.surviving_tokens))
    summary.add_row("errors", str(len(report.errors)))
    summary.add_row("ok", str(report.ok))
    console.print(summary)


@app.command("lint")
def lint_cmd(
    chart_dir: Path = CHART_ARGUMENT,
    fixtures_dirs: Optional[List[Path]] = FIXTURES_DIR_OPTION,
    policies_dir: Optional[Path] = POLICIES_DIR_OPTION,
    concurrency: Optional[int] = CONCURRENCY_OPTION,
    write_exceptions: bool = WRITE_EXCEPTIONS_OPTION,
    preserve: bool = PRESERVE_OPTION,
    recurse_configmap_paths: Optional[List[str]] = RECURSE_CONFIGMAP_OPTION,
    recursion_policies_dir: Optional[Path] = RECURSION_POLICIES_DIR_OPTION,
    ledger: Optional[Path] = LEDGER_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    settings = load_settings(config)
    update: dict[str, object] = {"chart_dir": chart_dir}
    if fixtures_dirs:
        update["fixtures_dirs"] = list(fixtures_dirs)
    if policies_dir is not None:
        update["policies_dir"] = policies_dir
    if concurrency is not None:
        update["concurrency"] = concurrency
    if write_exceptions:
        update["write_exceptions"] = True
    if preserve:
        update["preserve"] = True
    if ledger is not None:
        update["ledger_path"] = ledger.resolve()
    settings = settings.model_copy(update=update)
    for manifest_path in recurse_configmap_paths or []:
        settings = settings.with_recursion(
            recurse_configmap(manifest_path), policies_dir=recursion_policies_dir
        )

    try:
        report = lint(settings)
    except HelmlintError as exc:
        if as_json:
            typer.echo(json.dumps({"ok": False, "error": str(exc)}))
        else:
            console.print(f"[red]error:[/red] {exc}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(report.to_payload(), sort_keys=True))
    else:
        _print_report(report)
    if not report.ok:
        raise typer.Exit(code=1)


@app.command("branches")
def branches_cmd(chart_dir: Path = CHART_ARGUMENT, as_json: bool = JSON_OPTION) -> None:
    try:
        found = list_declarations(chart_dir.resolve())
    except HelmlintError as exc:
        console.print(f"[red]error:[/red] {exc}")
        raise typer.Exit(code=1)
    if as_json:
        rows = [{"path": path, "line": line, "source": source} for path, line, source in found]
        typer.echo(json.dumps(rows, sort_keys=True))
        return
    table = Table(title=f"Branches ({len(found)})")
    table.add_column("File")
    table.add_column("Line")
    table.add_column("Declaration")
    for path, line, source in found:
        table.add_row(path, str(line + 1), source)
    console.print(table)


@ledger_app.command("verify")
def ledger_verify_cmd(ledger: Path = LEDGER_REQUIRED_OPTION) -> None:
    ok, message = Ledger.verify_chain(ledger)
    console.print({"ok": ok, "message": message})
    if not ok:
        raise typer.Exit(code=1)
