import pytest

from wingman.lsp.proto import (
    CallHierarchyIncomingCall,
    CallHierarchyItem,
    CallHierarchyOutgoingCall,
    Diagnostic,
    DiagnosticSeverity,
    DocumentSymbol,
    Location,
    Position,
    Range,
    SymbolInformation,
    WorkspaceSymbol,
    hover_contents_value,
)


def _range(sl, sc, el, ec):
    return {"start": {"line": sl, "character": sc}, "end": {"line": el, "character": ec}}


def test_severity_values_match_protocol():
    assert [s.value for s in DiagnosticSeverity] == [1, 2, 3, 4]
    assert DiagnosticSeverity(2) is DiagnosticSeverity.WARNING


def test_position_round_trip():
    doc = {"line": 7, "character": 3}
    pos = Position.from_json(doc)
    assert pos == Position(7, 3)
    assert pos.to_json() == doc


def test_position_missing_fields_default_to_zero():
    assert Position.from_json({}) == Position(0, 0)


def test_position_rejects_wrong_types():
    with pytest.raises(ValueError):
        Position.from_json({"line": "x"})
    with pytest.raises(ValueError):
        Position.from_json([1, 2])


def test_range_and_location_round_trip():
    doc = {"uri": "file:///a.go", "range": _range(1, 2, 3, 4)}
    loc = Location.from_json(doc)
    assert loc.uri == "file:///a.go"
    assert loc.range.end == Position(3, 4)
    assert loc.to_json() == doc
    assert Range.from_json(doc["range"]).to_json() == doc["range"]


def test_diagnostic_from_json():
    diag = Diagnostic.from_json(
        {"range": _range(4, 0, 4, 5), "severity": 1, "code": "E1", "source": "vet", "message": "bad"}
    )
    assert diag.severity == DiagnosticSeverity.ERROR
    assert diag.code == "E1"
    assert diag.source == "vet"
    assert diag.message == "bad"
    assert diag.range.start.line == 4


def test_document_symbol_children():
    sym = DocumentSymbol.from_json(
        {
            "name": "Outer",
            "kind": 5,
            "range": _range(0, 0, 10, 0),
            "selectionRange": _range(0, 6, 0, 11),
            "children": [{"name": "inner", "kind": 6, "detail": "func()"}],
        }
    )
    assert sym.name == "Outer"
    assert sym.selection_range.start == Position(0, 6)
    assert [c.name for c in sym.children] == ["inner"]
    assert sym.children[0].detail == "func()"
    assert sym.children[0].children == []


def test_symbol_information_from_json():
    info = SymbolInformation.from_json(
        {"name": "Run", "kind": 12, "location": {"uri": "file:///m.go", "range": _range(2, 0, 2, 3)}}
    )
    assert info.location.uri == "file:///m.go"
    assert info.kind == 12


def test_workspace_symbol_range_optional():
    without = WorkspaceSymbol.from_json({"name": "X", "kind": 13, "location": {"uri": "file:///x.py"}})
    assert without.range is None
    assert without.uri == "file:///x.py"
    with_range = WorkspaceSymbol.from_json(
        {"name": "X", "kind": 13, "location": {"uri": "file:///x.py", "range": _range(5, 1, 5, 2)}}
    )
    assert with_range.range == Range(Position(5, 1), Position(5, 2))


def test_call_hierarchy_item_round_trip_keeps_data():
    doc = {
        "name": "handle",
        "kind": 12,
        "detail": "pkg",
        "uri": "file:///h.go",
        "range": _range(1, 0, 9, 1),
        "selectionRange": _range(1, 5, 1, 11),
        "data": {"opaque": [1, 2]},
    }
    item = CallHierarchyItem.from_json(doc)
    assert item.data == {"opaque": [1, 2]}
    assert item.to_json() == doc


def test_call_hierarchy_item_omits_empty_optionals():
    item = CallHierarchyItem.from_json({"name": "f", "kind": 12, "uri": "file:///f.go"})
    encoded = item.to_json()
    assert "detail" not in encoded
    assert "data" not in encoded


def test_incoming_and_outgoing_calls():
    incoming = CallHierarchyIncomingCall.from_json(
        {"from": {"name": "caller", "uri": "file:///c.go"}, "fromRanges": [_range(3, 1, 3, 4)]}
    )
    assert incoming.from_.name == "caller"
    assert incoming.from_ranges[0].start == Position(3, 1)
    outgoing = CallHierarchyOutgoingCall.from_json({"to": {"name": "callee"}, "fromRanges": []})
    assert outgoing.to.name == "callee"
    assert outgoing.from_ranges == []


def test_hover_plain_string():
    assert hover_contents_value("func main()") == "func main()"


def test_hover_markup_content():
    assert hover_contents_value({"kind": "markdown", "value": "**doc**"}) == "**doc**"


def test_hover_marked_string_array():
    data = ["first", {"language": "go", "value": "second"}, 5]
    assert hover_contents_value(data) == "first\nsecond"


def test_hover_empty_markup_falls_back_to_json_text():
    assert hover_contents_value({"kind": "markdown", "value": ""}) == '{"kind":"markdown","value":""}'


def test_hover_null_is_empty():
    assert hover_contents_value(None) == ""