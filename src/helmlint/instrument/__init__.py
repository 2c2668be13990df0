from .classifier import (
    MARKER_PREFIX,
    SUPPRESSION_TOKEN,
    find_declarations,
    find_indentation,
    is_declaration,
    marker_line,
    parse_marker,
    suppression_line,
)
from .injector import inject_markers, instrument_lines, list_declarations
from .registry import (
    Declaration,
    DeclarationRegistry,
    DuplicateTokenError,
    RegistryFrozenError,
)
from .scanner import ScanResult, discover_markers

__all__ = [
    "MARKER_PREFIX",
    "SUPPRESSION_TOKEN",
    "find_declarations",
    "find_indentation",
    "is_declaration",
    "marker_line",
    "parse_marker",
    "suppression_line",
    "inject_markers",
    "instrument_lines",
    "list_declarations",
    "Declaration",
    "DeclarationRegistry",
    "DuplicateTokenError",
    "RegistryFrozenError",
    "ScanResult",
    "discover_markers",
]
