from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from .schemas import Finding


@dataclass(frozen=True)
class PolicyResult:
    target_dir: Path
    policies_dir: Path
    passed: bool
    output: str
    returncode: int


def policy_command(
    conftest_command: Sequence[str], policies_dir: Path, target_dir: Path
) -> List[str]:
    return [*conftest_command, "test", "--policy", str(policies_dir), str(target_dir)]


def run_policy(
    conftest_command: Sequence[str], policies_dir: Path, target_dir: Path
) -> PolicyResult:
    """Evaluate one rendered directory against one policy set.

    The tool's combined output is returned whatever the outcome.
    """
    cmd = policy_command(conftest_command, policies_dir, target_dir)
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
        return PolicyResult(
            target_dir=target_dir,
            policies_dir=policies_dir,
            passed=False,
            output=str(exc),
            returncode=-1,
        )
    output = proc.stdout or ""
    if proc.returncode != 0 and not output:
        output = f"exit status {proc.returncode}"
    return PolicyResult(
        target_dir=target_dir,
        policies_dir=policies_dir,
        passed=proc.returncode == 0,
        output=output,
        returncode=proc.returncode,
    )


def policy_finding(result: PolicyResult, name: str, output_dir: Path) -> Finding:
    if result.passed:
        return Finding(
            category="policy",
            severity="info",
            message=f"Conftest output ({name}):\n{result.output}",
            output_dir=str(output_dir),
        )
    return Finding(
        category="policy",
        message=f"Conftest failure ({name}):\n{result.output}",
        output_dir=str(output_dir),
    )
