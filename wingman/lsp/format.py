"""Human-readable rendering of language server results."""

from __future__ import annotations

import os
from collections.abc import Iterable

from wingman.lsp.proto import (
    CallHierarchyIncomingCall,
    CallHierarchyOutgoingCall,
    Diagnostic,
    DiagnosticSeverity,
    DocumentSymbol,
    Location,
    SymbolInformation,
    WorkspaceSymbol,
)

_SYMBOL_KIND_NAMES = {
    1: "File",
    2: "Module",
    3: "Namespace",
    4: "Package",
    5: "Class",
    6: "Method",
    7: "Property",
    8: "Field",
    9: "Constructor",
    10: "Enum",
    11: "Interface",
    12: "Function",
    13: "Variable",
    14: "Constant",
    15: "String",
    16: "Number",
    17: "Boolean",
    18: "Array",
    19: "Object",
    20: "Key",
    21: "Null",
    22: "EnumMember",
    23: "Struct",
    24: "Event",
    25: "Operator",
    26: "TypeParameter",
}

_SEVERITY_NAMES = {
    DiagnosticSeverity.ERROR: "Error",
    DiagnosticSeverity.WARNING: "Warning",
    DiagnosticSeverity.INFORMATION: "Info",
    DiagnosticSeverity.HINT: "Hint",
}


def rel_path(working_dir: str, path: str) -> str:
    """Return ``path`` relative to ``working_dir`` when it lies inside it, else ``path``."""
    if os.path.isabs(working_dir) != os.path.isabs(path):
        return path
    try:
        rel = os.path.relpath(path, working_dir)
    except ValueError:
        return path
    if rel.startswith(".."):
        return path
    return rel


def uri_to_path(uri: str) -> str:
    """Strip the ``file://`` scheme from a URI, if present."""
    return uri.removeprefix("file://")


def symbol_kind_name(kind: int) -> str:
    """Return the name of an LSP symbol kind, or ``Symbol`` when unknown."""
    return _SYMBOL_KIND_NAMES.get(kind, "Symbol")


def diagnostic_severity_name(severity: int) -> str:
    """Return the human-readable name of a diagnostic severity."""
    try:
        return _SEVERITY_NAMES[DiagnosticSeverity(severity)]
    except ValueError:
        return "Unknown"


def format_locations(title: str, locations: list[Location], working_dir: str) -> str:
    """List locations as ``path:line:column`` under a titled header."""
    lines = [f"{title} ({len(locations)} found):"]
    for loc in locations:
        path = rel_path(working_dir, uri_to_path(loc.uri))
        start = loc.range.start
        lines.append(f"  {path}:{start.line + 1}:{start.character + 1}")
    return "\n".join(lines) + "\n"


def _document_symbol_lines(symbols: Iterable[DocumentSymbol], indent: int) -> Iterable[str]:
    prefix = "  " * (indent + 1)
    for sym in symbols:
        detail = f" {sym.detail}" if sym.detail else ""
        yield (
            f"{prefix}{sym.name} ({symbol_kind_name(sym.kind)}){detail}"
            f" - line {sym.selection_range.start.line + 1}"
        )
        if sym.children:
            yield from _document_symbol_lines(sym.children, indent + 1)


def format_document_symbols(
    symbols: list[DocumentSymbol], file_path: str, working_dir: str, indent: int = 0
) -> str:
    """Render a symbol tree, indenting children under their parents."""
    lines: list[str] = []
    if indent == 0:
        lines.append(f"Symbols in {rel_path(working_dir, file_path)}:")
    lines.extend(_document_symbol_lines(symbols, indent))
    return "".join(line + "\n" for line in lines)


def format_symbol_informations(symbols: list[SymbolInformation], working_dir: str) -> str:
    """Render flat symbols with their file and line."""
    lines = [f"Symbols ({len(symbols)} found):"]
    for sym in symbols:
        path = rel_path(working_dir, uri_to_path(sym.location.uri))
        lines.append(
            f"  {sym.name} ({symbol_kind_name(sym.kind)}) - {path}:{sym.location.range.start.line + 1}"
        )
    return "\n".join(lines) + "\n"


def format_workspace_symbols(symbols: list[WorkspaceSymbol], working_dir: str) -> str:
    """Render workspace symbols, omitting the line when the server gave no range."""
    lines = [f"Symbols ({len(symbols)} found):"]
    for sym in symbols:
        path = rel_path(working_dir, uri_to_path(sym.uri))
        entry = f"  {sym.name} ({symbol_kind_name(sym.kind)}) - {path}"
        if sym.range is not None:
            entry += f":{sym.range.start.line + 1}"
        lines.append(entry)
    return "\n".join(lines) + "\n"


def format_incoming_calls(calls: list[CallHierarchyIncomingCall], working_dir: str) -> str:
    """Render the callers of a symbol."""
    lines = [f"Incoming Calls ({len(calls)} found):"]
    for call in calls:
        item = call.from_
        path = rel_path(working_dir, uri_to_path(item.uri))
        lines.append(
            f"  {item.name} ({symbol_kind_name(item.kind)}) - {path}:{item.selection_range.start.line + 1}"
        )
    return "\n".join(lines) + "\n"


def format_outgoing_calls(calls: list[CallHierarchyOutgoingCall], working_dir: str) -> str:
    """Render the callees of a symbol."""
    lines = [f"Outgoing Calls ({len(calls)} found):"]
    for call in calls:
        item = call.to
        path = rel_path(working_dir, uri_to_path(item.uri))
        lines.append(
            f"  {item.name} ({symbol_kind_name(item.kind)}) - {path}:{item.selection_range.start.line + 1}"
        )
    return "\n".join(lines) + "\n"


def format_diagnostics(diagnostics: list[Diagnostic], file_path: str, working_dir: str) -> str:
    """Render diagnostics for one file, one per line."""
    lines = [f"Diagnostics ({len(diagnostics)} found):"]
    display_path = rel_path(working_dir, file_path)
    for diag in diagnostics:
        source = f"[{diag.source}] " if diag.source else ""
        start = diag.range.start
        lines.append(
            f"  {display_path}:{start.line + 1}:{start.character + 1} "
            f"{diagnostic_severity_name(diag.severity)}: {source}{diag.message}"
        )
    return "\n".join(lines) + "\n"