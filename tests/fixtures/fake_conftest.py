#!/usr/bin/env python3
"""Tiny stand-in for ``conftest test --policy DIR TARGET``.

The policy directory holds ``forbidden.txt``: one label key per line that no
resource may carry. When ``FAKE_CONFTEST_LOG`` is set every invocation is
appended to that file.
"""
import argparse
import os
import sys
from pathlib import Path

import yaml


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("command")
    parser.add_argument("--policy", required=True)
    parser.add_argument("target")
    args = parser.parse_args()

    log_path = os.environ.get("FAKE_CONFTEST_LOG")
    if log_path:
        with open(log_path, "a", encoding="utf-8") as handle:
            handle.write(f"{args.policy}\t{args.target}\n")

    policy_file = Path(args.policy) / "forbidden.txt"
    if not policy_file.exists():
        sys.stdout.write(f"Error: no policies found in {args.policy}\n")
        return 1
    forbidden = [
        line.strip() for line in policy_file.read_text(encoding="utf-8").splitlines() if line.strip()
    ]

    failures = []
    tests = 0
    for path in sorted(Path(args.target).rglob("*.yaml")):
        for document in yaml.safe_load_all(path.read_text(encoding="utf-8")):
            if not isinstance(document, dict):
                continue
            tests += 1
            metadata = document.get("metadata") or {}
            name = metadata.get("name", "?")
            labels = metadata.get("labels") or {}
            for label in forbidden:
                if label in labels:
                    failures.append(
                        f"FAIL - {path.name} - main - {name} must not include the forbidden label {label}"
                    )

    for failure in failures:
        sys.stdout.write(failure + "\n")
    passed = tests - len(failures)
    sys.stdout.write(f"\n{tests} tests, {passed} passed, 0 warnings, {len(failures)} failures\n")
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
