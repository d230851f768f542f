"""Language Server Protocol types used by the client, with JSON conversion."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any


def _obj(data: Any, what: str) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{what}: expected an object, got {type(data).__name__}")
    return data


def _int(value: Any, what: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{what}: expected a number, got {type(value).__name__}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{what}: expected an integer, got {value}")
    return int(value)


def _str(value: Any, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{what}: expected a string, got {type(value).__name__}")
    return value


def _list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what}: expected an array, got {type(value).__name__}")
    return value


class DiagnosticSeverity(enum.IntEnum):
    """Severity levels of a diagnostic."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


@dataclass(frozen=True)
class Position:
    """A zero-based line and character offset in a document."""

    line: int = 0
    character: int = 0

    @classmethod
    def from_json(cls, data: Any) -> Position:
        """Build a position from its decoded JSON object."""
        obj = _obj(data, "position")
        return cls(
            line=_int(obj.get("line"), "position.line"),
            character=_int(obj.get("character"), "position.character"),
        )

    def to_json(self) -> dict[str, int]:
        """Return the JSON object form of this position."""
        return {"line": self.line, "character": self.character}


@dataclass(frozen=True)
class Range:
    """A span between two positions."""

    start: Position = field(default_factory=Position)
    end: Position = field(default_factory=Position)

    @classmethod
    def from_json(cls, data: Any) -> Range:
        """Build a range from its decoded JSON object."""
        obj = _obj(data, "range")
        return cls(start=Position.from_json(obj.get("start")), end=Position.from_json(obj.get("end")))

    def to_json(self) -> dict[str, Any]:
        """Return the JSON object form of this range."""
        return {"start": self.start.to_json(), "end": self.end.to_json()}


@dataclass(frozen=True)
class Location:
    """A range inside the document at ``uri``."""

    uri: str = ""
    range: Range = field(default_factory=Range)

    @classmethod
    def from_json(cls, data: Any) -> Location:
        """Build a location from its decoded JSON object."""
        obj = _obj(data, "location")
        return cls(uri=_str(obj.get("uri"), "location.uri"), range=Range.from_json(obj.get("range")))

    def to_json(self) -> dict[str, Any]:
        """Return the JSON object form of this location."""
        return {"uri": self.uri, "range": self.range.to_json()}


@dataclass
class Diagnostic:
    """A problem reported by the server for a range of a document."""

    range: Range = field(default_factory=Range)
    severity: int = 0
    code: Any = None
    source: str = ""
    message: str = ""

    @classmethod
    def from_json(cls, data: Any) -> Diagnostic:
        """Build a diagnostic from its decoded JSON object."""
        obj = _obj(data, "diagnostic")
        return cls(
            range=Range.from_json(obj.get("range")),
            severity=_int(obj.get("severity"), "diagnostic.severity"),
            code=obj.get("code"),
            source=_str(obj.get("source"), "diagnostic.source"),
            message=_str(obj.get("message"), "diagnostic.message"),
        )


@dataclass
class DocumentSymbol:
    """A symbol in a document, possibly holding nested symbols."""

    name: str = ""
    detail: str = ""
    kind: int = 0
    range: Range = field(default_factory=Range)
    selection_range: Range = field(default_factory=Range)
    children: list[DocumentSymbol] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> DocumentSymbol:
        """Build a symbol tree from its decoded JSON object."""
        obj = _obj(data, "document symbol")
        return cls(
            name=_str(obj.get("name"), "symbol.name"),
            detail=_str(obj.get("detail"), "symbol.detail"),
            kind=_int(obj.get("kind"), "symbol.kind"),
            range=Range.from_json(obj.get("range")),
            selection_range=Range.from_json(obj.get("selectionRange")),
            children=[cls.from_json(c) for c in _list(obj.get("children"), "symbol.children")],
        )


@dataclass
class SymbolInformation:
    """A flat symbol with a full location."""

    name: str = ""
    kind: int = 0
    location: Location = field(default_factory=Location)

    @classmethod
    def from_json(cls, data: Any) -> SymbolInformation:
        """Build symbol information from its decoded JSON object."""
        obj = _obj(data, "symbol information")
        return cls(
            name=_str(obj.get("name"), "symbol.name"),
            kind=_int(obj.get("kind"), "symbol.kind"),
            location=Location.from_json(obj.get("location")),
        )


@dataclass
class WorkspaceSymbol:
    """A workspace symbol whose location range may be absent."""

    name: str = ""
    kind: int = 0
    uri: str = ""
    range: Range | None = None

    @classmethod
    def from_json(cls, data: Any) -> WorkspaceSymbol:
        """Build a workspace symbol from its decoded JSON object."""
        obj = _obj(data, "workspace symbol")
        location = _obj(obj.get("location"), "workspace symbol location")
        raw_range = location.get("range")
        return cls(
            name=_str(obj.get("name"), "symbol.name"),
            kind=_int(obj.get("kind"), "symbol.kind"),
            uri=_str(location.get("uri"), "symbol.location.uri"),
            range=None if raw_range is None else Range.from_json(raw_range),
        )


@dataclass
class CallHierarchyItem:
    """An item in a call hierarchy; ``data`` is passed back to the server untouched."""

    name: str = ""
    kind: int = 0
    detail: str = ""
    uri: str = ""
    range: Range = field(default_factory=Range)
    selection_range: Range = field(default_factory=Range)
    data: Any = None

    @classmethod
    def from_json(cls, data: Any) -> CallHierarchyItem:
        """Build a call hierarchy item from its decoded JSON object."""
        obj = _obj(data, "call hierarchy item")
        return cls(
            name=_str(obj.get("name"), "item.name"),
            kind=_int(obj.get("kind"), "item.kind"),
            detail=_str(obj.get("detail"), "item.detail"),
            uri=_str(obj.get("uri"), "item.uri"),
            range=Range.from_json(obj.get("range")),
            selection_range=Range.from_json(obj.get("selectionRange")),
            data=obj.get("data"),
        )

    def to_json(self) -> dict[str, Any]:
        """Return the JSON object form of this item."""
        document: dict[str, Any] = {"name": self.name, "kind": self.kind}
        if self.detail:
            document["detail"] = self.detail
        document["uri"] = self.uri
        document["range"] = self.range.to_json()
        document["selectionRange"] = self.selection_range.to_json()
        if self.data is not None:
            document["data"] = self.data
        return document


def _ranges(value: Any) -> list[Range]:
    return [Range.from_json(r) for r in _list(value, "fromRanges")]


@dataclass
class CallHierarchyIncomingCall:
    """A caller of the item in question."""

    from_: CallHierarchyItem = field(default_factory=CallHierarchyItem)
    from_ranges: list[Range] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> CallHierarchyIncomingCall:
        """Build an incoming call from its decoded JSON object."""
        obj = _obj(data, "incoming call")
        return cls(from_=CallHierarchyItem.from_json(obj.get("from")), from_ranges=_ranges(obj.get("fromRanges")))


@dataclass
class CallHierarchyOutgoingCall:
    """A callee of the item in question."""

    to: CallHierarchyItem = field(default_factory=CallHierarchyItem)
    from_ranges: list[Range] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> CallHierarchyOutgoingCall:
        """Build an outgoing call from its decoded JSON object."""
        obj = _obj(data, "outgoing call")
        return cls(to=CallHierarchyItem.from_json(obj.get("to")), from_ranges=_ranges(obj.get("fromRanges")))


def hover_contents_value(data: Any) -> str:
    """Extract the text of hover ``contents`` in any of the shapes servers send.

    Accepts a plain string, a MarkupContent or MarkedString object, or an
    array of MarkedStrings (joined by newlines); anything else is returned
    as its JSON text.
    """
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        value = data.get("value")
        if isinstance(value, str) and value:
            return value
    if isinstance(data, list):
        parts: list[str] = []
        for item in data:
            if item is None:
                parts.append("")
            elif isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict):
                value = item.get("value")
                if value is None:
                    parts.append("")
                elif isinstance(value, str):
                    parts.append(value)
        return "\n".join(parts)
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)