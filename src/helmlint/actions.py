"""Work applied to every rendered output directory.

The set of variants is closed: policy evaluation, recursive descent into
embedded manifests, and caller observers. Each runs independently of the
others and of coverage reconciliation.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

from .config import ObserverFn, RecursionRule, Settings
from .context import RunContext
from .policy import policy_finding, run_policy
from .recursion import descend
from .schemas import Finding


@dataclass(frozen=True)
class PolicyCheck:
    policies_dir: Path

    @property
    def name(self) -> str:
        return "policy"

    def run(self, ctx: RunContext, output_dir: Path) -> None:
        try:
            result = run_policy(ctx.settings.conftest_command, self.policies_dir, output_dir)
        except Exception as exc:  # noqa: BLE001
            ctx.report(
                Finding(
                    category="policy",
                    message=f"Conftest failure ({output_dir.name}): {exc}",
                    output_dir=str(output_dir),
                ),
                "POLICY_RESULT",
                {"passed": False},
            )
            return
        ctx.report(
            policy_finding(result, output_dir.name, output_dir),
            "POLICY_RESULT",
            {"passed": result.passed, "returncode": result.returncode},
        )


@dataclass(frozen=True)
class RecursiveDescent:
    rule: RecursionRule

    @property
    def name(self) -> str:
        return f"recursion:{self.rule.label()}"

    def run(self, ctx: RunContext, output_dir: Path) -> None:
        try:
            target_dir = ctx.workspace.target_dir(output_dir.name)
            outcome = descend(self.rule, output_dir, target_dir, ctx.settings.conftest_command)
        except Exception as exc:  # noqa: BLE001
            ctx.report(
                Finding(
                    category="recursion",
                    message=f"Recursion {self.rule.label()} failed ({output_dir.name}): {exc}",
                    output_dir=str(output_dir),
                ),
                "RECURSION_RESULT",
                {"rule": self.rule.label(), "passed": False},
            )
            return
        ctx.ledger.append(
            "RECURSION_RESULT",
            {
                "rule": outcome.rule,
                "output_dir": output_dir,
                "target_dir": target_dir,
                "files": outcome.files,
                "policy_invoked": outcome.policy is not None,
                "passed": not any(f.severity == "error" for f in outcome.findings),
            },
        )
        for finding in outcome.findings:
            ctx.findings.add(finding)


@dataclass(frozen=True)
class Observer:
    fn: ObserverFn

    @property
    def name(self) -> str:
        return f"observer:{getattr(self.fn, '__name__', 'observer')}"

    def run(self, ctx: RunContext, output_dir: Path) -> None:
        try:
            self.fn(output_dir)
        except Exception as exc:  # noqa: BLE001
            ctx.report(
                Finding(
                    category="observer",
                    message=f"Observer {self.name} failed ({output_dir.name}): {exc}",
                    output_dir=str(output_dir),
                ),
                "OBSERVER_RESULT",
            )
            return
        ctx.ledger.append("OBSERVER_RESULT", {"observer": self.name, "output_dir": output_dir})


PostRenderAction = Union[PolicyCheck, RecursiveDescent, Observer]


def build_actions(settings: Settings) -> List[PostRenderAction]:
    actions: List[PostRenderAction] = []
    if settings.policies_dir is not None:
        actions.append(PolicyCheck(settings.policies_dir))
    actions.extend(RecursiveDescent(rule) for rule in settings.recursions)
    actions.extend(Observer(fn) for fn in settings.observers)
    return actions
