from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .config import RecursionFn, RecursionRule
from .coverage import reconcile
from .errors import InstrumentationError
from .instrument import discover_markers, inject_markers
from .policy import PolicyResult, policy_finding, run_policy
from .schemas import Finding
from .utils import MANIFEST_SUFFIX, manifest_files


def recurse_configmap(manifest_path: str) -> RecursionFn:
    """Extract the manifests stored in each ``data`` key of a rendered ConfigMap.

    ``manifest_path`` is relative to the rendered output directory, e.g.
    ``mychart/templates/configmap.yaml``.
    """

    def extract(rendered_dir: Path, target_dir: Path) -> None:
        body = (rendered_dir / manifest_path).read_text(encoding="utf-8")
        data: Dict[str, Any] = {}
        for document in yaml.safe_load_all(body):
            if not isinstance(document, dict):
                continue
            values = document.get("data") or {}
            if not isinstance(values, dict):
                raise ValueError(f"{manifest_path}: data must be a mapping")
            data.update(values)
        for key, value in data.items():
            (target_dir / f"{key}{MANIFEST_SUFFIX}").write_text(str(value), encoding="utf-8")

    extract.__name__ = f"configmap:{manifest_path}"
    return extract


@dataclass
class RecursionOutcome:
    rule: str
    rendered_dir: Path
    target_dir: Path
    files: int = 0
    findings: List[Finding] = field(default_factory=list)
    policy: Optional[PolicyResult] = None


def descend(
    rule: RecursionRule,
    rendered_dir: Path,
    target_dir: Path,
    conftest_command: Sequence[str],
) -> RecursionOutcome:
    """Apply one recursion rule to one rendered output directory.

    Runs inline: the caller already occupies a worker, so no further work is
    scheduled on the shared pool.
    """
    label = rule.label()
    outcome = RecursionOutcome(rule=label, rendered_dir=rendered_dir, target_dir=target_dir)
    try:
        rule.fn(rendered_dir, target_dir)
    except Exception as exc:  # noqa: BLE001
        outcome.findings.append(
            Finding(
                category="recursion",
                message=f"Recursion {label} failed ({rendered_dir.name}): {exc}",
                output_dir=str(rendered_dir),
            )
        )
        return outcome

    outcome.files = len(manifest_files(target_dir))
    if outcome.files == 0:
        return outcome

    try:
        registry = inject_markers(target_dir)
    except InstrumentationError as exc:
        outcome.findings.append(
            Finding(
                category="recursion",
                message=f"Recursion {label} failed ({rendered_dir.name}): {exc}",
                output_dir=str(rendered_dir),
            )
        )
        return outcome
    scan = discover_markers(target_dir)
    for finding in reconcile(registry, scan.tokens):
        outcome.findings.append(finding.model_copy(update={"output_dir": str(rendered_dir)}))

    result = run_policy(conftest_command, rule.policies_dir(), target_dir)
    outcome.policy = result
    outcome.findings.append(policy_finding(result, f"{rendered_dir.name}/{label}", rendered_dir))
    return outcome

