from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from helmlint.errors import InstrumentationError
from helmlint.instrument import registry as registry_module
from helmlint.instrument import (
    DeclarationRegistry,
    DuplicateTokenError,
    RegistryFrozenError,
    discover_markers,
    find_declarations,
    inject_markers,
    instrument_lines,
    list_declarations,
    parse_marker,
)

LINE_CHOICES = [
    "kind: ConfigMap",
    "  name: demo",
    "{{ if .Values.a }}",
    "  {{- if .Values.b }}",
    "{{ else }}",
    "{{- end }}",
    "# helmlint:ignore",
    "  data: |",
    "    body line",
    "",
]


@settings(max_examples=200, deadline=None, derandomize=True)
@given(st.lists(st.sampled_from(LINE_CHOICES), max_size=30))
def test_every_declaration_gets_exactly_one_marker(lines: list[str]) -> None:
    registry = DeclarationRegistry()
    instrumented = instrument_lines(lines, "templates/x.yaml", registry)

    expected = find_declarations(lines)
    assert len(registry) == len(expected)
    assert sorted(decl.line for decl in registry) == expected

    markers = [
        parse_marker(line) for chunk in instrumented for line in chunk.split("\n")
    ]
    tokens = [token for token in markers if token is not None]
    assert sorted(tokens) == sorted(registry.tokens())
    assert len(set(tokens)) == len(tokens)

    # Removing the marker lines gives back the original document.
    restored = [
        line
        for chunk in instrumented
        for line in chunk.split("\n")
        if parse_marker(line) is None
    ]
    assert restored == lines


def test_marker_follows_declaration_at_resolved_indentation() -> None:
    lines = ["data:", "  script: |", "    echo hi", "  {{- if .Values.debug }}", "    set -x", "  {{- end }}"]
    registry = DeclarationRegistry()
    instrumented = instrument_lines(lines, "templates/cm.yaml", registry)
    (decl,) = registry.declarations()
    assert decl.line == 3
    assert decl.source == "{{- if .Values.debug }}"
    assert instrumented[3] == f"  {{{{- if .Values.debug }}}}\n    # helmlint: {decl.token}"
    assert instrumented[:3] == lines[:3]
    assert instrumented[4:] == lines[4:]


def test_registry_is_frozen_after_injection(tmp_path: Path) -> None:
    (tmp_path / "a.yaml").write_text("{{ if .Values.a }}\nx: 1\n{{ end }}\n", encoding="utf-8")
    registry = inject_markers(tmp_path)
    assert registry.frozen
    with pytest.raises(RegistryFrozenError):
        registry.register("a.yaml", 0, "{{ if .Values.a }}")


def test_inject_and_discover_in_parallel(tmp_path: Path) -> None:
    for idx in range(12):
        sub = tmp_path / "templates" / f"group{idx % 3}"
        sub.mkdir(parents=True, exist_ok=True)
        (sub / f"res{idx}.yaml").write_text(
            "kind: ConfigMap\n{{ if .Values.a }}\na: 1\n{{ end }}\n{{- if .Values.b }}\nb: 2\n{{- end }}\n",
            encoding="utf-8",
        )
    (tmp_path / "templates" / "NOTES.txt").write_text("{{ if .Values.a }}\n", encoding="utf-8")

    expected = list_declarations(tmp_path)
    with ThreadPoolExecutor(max_workers=4) as pool:
        registry = inject_markers(tmp_path, pool)
        found = discover_markers(tmp_path, pool)

    assert len(registry) == len(expected) == 24
    assert found.tokens == set(registry.tokens())
    assert found.errors == []
    assert found.files == 12
    paths = {decl.path for decl in registry}
    assert "templates/group0/res0.yaml" in paths
    assert all(path.endswith(".yaml") for path in paths)


def test_inject_leaves_files_without_declarations_untouched(tmp_path: Path) -> None:
    path = tmp_path / "plain.yaml"
    path.write_text("kind: ConfigMap\n", encoding="utf-8")
    registry = inject_markers(tmp_path)
    assert len(registry) == 0
    assert path.read_text(encoding="utf-8") == "kind: ConfigMap\n"


def test_inject_fails_on_unreadable_file(tmp_path: Path) -> None:
    (tmp_path / "bad.yaml").write_bytes(b"\xff\xfe{{ if x }}")
    with ThreadPoolExecutor(max_workers=2) as pool:
        with pytest.raises(InstrumentationError) as excinfo:
            inject_markers(tmp_path, pool)
    assert excinfo.value.path == "bad.yaml"


def test_scanner_reports_unreadable_files_without_stopping(tmp_path: Path) -> None:
    (tmp_path / "good.yaml").write_text("# helmlint: tok-1\n", encoding="utf-8")
    (tmp_path / "bad.yaml").write_bytes(b"\xff\xfe")
    result = discover_markers(tmp_path)
    assert result.tokens == {"tok-1"}
    assert len(result.errors) == 1
    assert "bad.yaml" in result.errors[0]


def test_scanner_collapses_duplicate_tokens(tmp_path: Path) -> None:
    for name in ("one", "two"):
        out = tmp_path / name
        out.mkdir()
        (out / "cm.yaml").write_text("a: 1\n  # helmlint: tok-1\n", encoding="utf-8")
    result = discover_markers(tmp_path)
    assert result.tokens == {"tok-1"}


def test_scanner_handles_missing_root(tmp_path: Path) -> None:
    result = discover_markers(tmp_path / "missing")
    assert result.tokens == set()
    assert result.files == 0


def test_registry_rejects_colliding_tokens(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(registry_module.uuid, "uuid4", lambda: "same-token")
    registry = DeclarationRegistry()
    registry.register("a.yaml", 0, "{{ if .Values.a }}")
    with pytest.raises(DuplicateTokenError):
        registry.register("a.yaml", 4, "{{ if .Values.b }}")
    assert len(registry) == 1
