# wingman

Building blocks for a coding agent that works with a project's source tree:

- `wingman.jsonrpc2`: a JSON-RPC 2.0 implementation. It has message encoding
  and decoding (`encode_message`, `decode_message`), header-framed and raw
  framing (`HeaderFramer`, `RawFramer`), and a bidirectional `Connection` with
  `call`, `notify`, `cancel` and `close`.
- `wingman.lsp`: a language-server client.
  - `detect_servers` and `find_server` scan a workspace for project markers
    such as `go.mod`, `pyproject.toml` or `Cargo.toml`. They pick a server that
    is installed on `PATH`.
  - `Session` starts the server and answers definition, references,
    implementation, hover, document symbol, call hierarchy and diagnostics
    queries. Each answer comes back as readable text.
  - `Manager` keeps sessions cached. It also offers workspace-wide diagnostics
    and symbol search.
- `wingman.mcp`: reads `mcp.json` server configurations (`load_config`).
- `wingman.skill`: finds `SKILL.md` files under `.skills`, `.github`, `.claude`
  and `.opencode`, and renders them as a prompt block (`discover`,
  `format_for_prompt`).

## Install

```
pip install .
```

## Example

```python
from wingman.lsp.manager import Manager

manager = Manager("/path/to/project")
try:
    session = manager.get_session("/path/to/project/main.go")
    uri = session.open_document("/path/to/project/main.go")
    print(session.document_symbols(uri, "/path/to/project/main.go"))
    print(manager.workspace_symbols("Handler"))
finally:
    manager.close()
```

```python
from wingman.skill import discover, format_for_prompt

print(format_for_prompt(discover(".")))
```

## Tests

```
pip install ".[test]"
pytest
```