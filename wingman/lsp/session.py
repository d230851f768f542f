"""A client session with a running language server."""

from __future__ import annotations

import itertools
import os
import subprocess
import threading
import time
from typing import Any

from wingman.jsonrpc2.connection import Connection
from wingman.jsonrpc2.frame import HeaderFramer
from wingman.lsp.format import (
    format_diagnostics,
    format_document_symbols,
    format_incoming_calls,
    format_locations,
    format_outgoing_calls,
    format_symbol_informations,
)
from wingman.lsp.proto import (
    CallHierarchyIncomingCall,
    CallHierarchyItem,
    CallHierarchyOutgoingCall,
    Diagnostic,
    DocumentSymbol,
    Location,
    Position,
    Range,
    SymbolInformation,
    hover_contents_value,
)
from wingman.lsp.servers import Server

_POLL_INTERVAL = 0.3
_SHUTDOWN_TIMEOUT = 5.0

_CLIENT_CAPABILITIES: dict[str, Any] = {
    "textDocument": {
        "synchronization": {"didSave": True},
        "hover": {"contentFormat": ["plaintext", "markdown"]},
        "definition": {},
        "references": {},
        "implementation": {},
        "documentSymbol": {},
        "diagnostic": {},
        "callHierarchy": {},
    }
}


def file_uri(path: str) -> str:
    """Return the ``file://`` URI of ``path``, made absolute."""
    try:
        absolute = os.path.abspath(path)
    except (OSError, ValueError):
        absolute = path
    return "file://" + absolute


def parse_location_response(data: Any) -> list[Location]:
    """Normalise a definition-style result into a list of locations.

    Accepts a single Location, a Location array or a LocationLink array;
    raises ValueError for anything else.
    """
    if data is None:
        return []

    if isinstance(data, dict):
        try:
            location = Location.from_json(data)
        except ValueError:
            location = None
        if location is not None and location.uri:
            return [location]

    if isinstance(data, list) and data:
        try:
            locations = [Location.from_json(item) for item in data]
        except ValueError:
            locations = []
        if locations and locations[0].uri:
            return locations

        links: list[Location] = []
        try:
            for item in data:
                if not isinstance(item, dict):
                    raise ValueError("location link must be an object")
                target = item.get("targetUri")
                if target is not None and not isinstance(target, str):
                    raise ValueError("targetUri must be a string")
                links.append(
                    Location(uri=target or "", range=Range.from_json(item.get("targetSelectionRange")))
                )
        except ValueError:
            links = []
        if links and links[0].uri:
            return links

    raise ValueError("unexpected location response format")


def parse_call_hierarchy_items(data: Any) -> list[CallHierarchyItem]:
    """Parse the result of ``textDocument/prepareCallHierarchy``."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("call hierarchy items: expected an array")
    return [CallHierarchyItem.from_json(item) for item in data]


def _parse_list(data: Any, parse: Any) -> list[Any]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"expected an array, got {type(data).__name__}")
    return [parse(item) for item in data]


def _position_params(uri: str, line: int, column: int) -> dict[str, Any]:
    return {
        "textDocument": {"uri": uri},
        "position": Position(line=line - 1, character=column - 1).to_json(),
    }


class _ProcessCloser:
    """Tears down the server process when the connection closes."""

    def __init__(self, process: subprocess.Popen) -> None:
        self._process = process

    def close(self) -> None:
        if self._process.stdin is not None:
            try:
                self._process.stdin.close()
            except OSError:
                pass
        try:
            self._process.kill()
        except OSError:
            pass
        self._process.wait()


class Session:
    """A connection to one language server rooted at a working directory.

    Requests use ``timeout`` seconds unless told otherwise; ``None`` waits
    without limit.
    """

    def __init__(
        self,
        server: Server,
        conn: Any,
        working_dir: str,
        process: subprocess.Popen | None = None,
        timeout: float | None = None,
    ) -> None:
        self.server = server
        self.working_dir = working_dir
        self.root_uri = file_uri(working_dir)
        self.timeout = timeout
        self._conn = conn
        self._process = process
        self._versions = itertools.count(1)
        self._opened: set[str] = set()
        self._lock = threading.Lock()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def is_alive(self) -> bool:
        """Report whether the server process is still running."""
        return self._process is None or self._process.poll() is None

    def close(self) -> None:
        """Ask the server to shut down and exit, then close the connection."""
        try:
            self.call_and_await("shutdown", None, timeout=_SHUTDOWN_TIMEOUT)
        except Exception:
            pass
        try:
            self._conn.notify("exit", None)
        except Exception:
            pass
        try:
            self._conn.close()
        except Exception:
            pass
        if self._process is not None and self._process.stdout is not None:
            try:
                self._process.stdout.close()
            except OSError:
                pass

    def call_and_await(self, method: str, params: Any, timeout: float | None = None) -> Any:
        """Invoke ``method`` and return its decoded result."""
        if timeout is None:
            timeout = self.timeout
        call = self._conn.call(method, params)
        try:
            return call.wait(timeout)
        except TimeoutError as exc:
            self._conn.retire(call, exc)
            raise

    def _initialize(self, timeout: float | None) -> None:
        params = {
            "processId": os.getpid(),
            "rootUri": self.root_uri,
            "capabilities": _CLIENT_CAPABILITIES,
        }
        self.call_and_await("initialize", params, timeout=timeout)
        self._conn.notify("initialized", {})

    def open_document(self, file_path: str) -> str:
        """Open ``file_path`` in the server, or resend its content if already open; return its URI."""
        uri = file_uri(file_path)
        with open(file_path, "rb") as handle:
            text = handle.read().decode("utf-8", errors="replace")

        with self._lock:
            already_open = uri in self._opened

        if already_open:
            with self._lock:
                version = next(self._versions)
            self._conn.notify(
                "textDocument/didChange",
                {
                    "textDocument": {"uri": uri, "version": version},
                    "contentChanges": [{"text": text}],
                },
            )
            return uri

        self._conn.notify(
            "textDocument/didOpen",
            {
                "textDocument": {
                    "uri": uri,
                    "languageId": self.server.language_id,
                    "version": 1,
                    "text": text,
                }
            },
        )
        with self._lock:
            self._opened.add(uri)
        return uri

    def collect_diagnostics(self, uri: str) -> list[Diagnostic]:
        """Pull the diagnostics of one document; empty on any failure."""
        try:
            result = self.call_and_await("textDocument/diagnostic", {"textDocument": {"uri": uri}})
        except Exception:
            return []

        if isinstance(result, dict):
            items = result.get("items")
            if isinstance(items, list) and items:
                try:
                    return [Diagnostic.from_json(item) for item in items]
                except ValueError:
                    return []
            return []

        if isinstance(result, list):
            try:
                return [Diagnostic.from_json(item) for item in result]
            except ValueError:
                return []

        return []

    def wait_for_diagnostics(self, uri: str, timeout: float | None = None) -> list[Diagnostic]:
        """Poll until diagnostics appear; return an empty list once ``timeout`` runs out."""
        deadline = None if timeout is None else time.monotonic() + timeout

        diagnostics = self.collect_diagnostics(uri)
        while not diagnostics:
            if deadline is None:
                time.sleep(_POLL_INTERVAL)
            else:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return []
                time.sleep(min(_POLL_INTERVAL, remaining))
                if time.monotonic() >= deadline:
                    return []
            diagnostics = self.collect_diagnostics(uri)
        return diagnostics

    def diagnostics(self, uri: str, file_path: str) -> str:
        """Return the formatted diagnostics of one file."""
        found = self.collect_diagnostics(uri)
        if not found:
            return "No diagnostics found"
        return format_diagnostics(found, file_path, self.working_dir)

    def _location_op(self, method: str, title: str, uri: str, line: int, column: int) -> str:
        result = self.call_and_await(method, _position_params(uri, line, column))
        locations = parse_location_response(result)
        if not locations:
            return f"No {title.lower()} found"
        return format_locations(title, locations, self.working_dir)

    def definition(self, uri: str, line: int, column: int) -> str:
        """Return where the symbol at the one-based position is defined."""
        return self._location_op("textDocument/definition", "Definition", uri, line, column)

    def references(self, uri: str, line: int, column: int) -> str:
        """Return every reference to the symbol at the one-based position."""
        params = _position_params(uri, line, column)
        params["context"] = {"includeDeclaration": True}
        result = self.call_and_await("textDocument/references", params)
        locations = parse_location_response(result)
        if not locations:
            return "No references found"
        return format_locations("References", locations, self.working_dir)

    def implementation(self, uri: str, line: int, column: int) -> str:
        """Return the implementations of the symbol at the one-based position."""
        return self._location_op("textDocument/implementation", "Implementations", uri, line, column)

    def hover(self, uri: str, line: int, column: int) -> str:
        """Return the hover text for the symbol at the one-based position."""
        result = self.call_and_await("textDocument/hover", _position_params(uri, line, column))
        if result is None:
            return "No hover information available"
        if not isinstance(result, dict):
            raise ValueError("unexpected hover response format")
        if result.get("range") is not None:
            Range.from_json(result["range"])
        value = hover_contents_value(result.get("contents"))
        if not value:
            return "No hover information available"
        return value

    def document_symbols(self, uri: str, file_path: str) -> str:
        """Return the formatted symbols of a document."""
        result = self.call_and_await("textDocument/documentSymbol", {"textDocument": {"uri": uri}})
        if result is None or not isinstance(result, list) or not result:
            return "No symbols found"

        try:
            infos = [SymbolInformation.from_json(item) for item in result]
        except ValueError:
            infos = []
        if infos and infos[0].location.uri:
            return format_symbol_informations(infos, self.working_dir)

        try:
            symbols = [DocumentSymbol.from_json(item) for item in result]
        except ValueError:
            symbols = []
        if symbols:
            return format_document_symbols(symbols, file_path, self.working_dir, 0)

        return "No symbols found"

    def call_hierarchy(self, uri: str, line: int, column: int, incoming: bool) -> str:
        """Return the callers (``incoming``) or callees of the symbol at the one-based position."""
        prepared = self.call_and_await(
            "textDocument/prepareCallHierarchy", _position_params(uri, line, column)
        )
        try:
            items = parse_call_hierarchy_items(prepared)
        except ValueError:
            items = []
        if not items:
            return "No call hierarchy item found at this position"

        params = {"item": items[0].to_json()}
        if incoming:
            result = self.call_and_await("callHierarchy/incomingCalls", params)
            calls_in = _parse_list(result, CallHierarchyIncomingCall.from_json)
            if not calls_in:
                return "No incoming calls found"
            return format_incoming_calls(calls_in, self.working_dir)

        result = self.call_and_await("callHierarchy/outgoingCalls", params)
        calls_out = _parse_list(result, CallHierarchyOutgoingCall.from_json)
        if not calls_out:
            return "No outgoing calls found"
        return format_outgoing_calls(calls_out, self.working_dir)


def connect(working_dir: str, server: Server, timeout: float | None = 30.0) -> Session:
    """Start ``server`` in ``working_dir`` and complete the initialize handshake."""
    process = subprocess.Popen(
        [server.command, *server.args],
        cwd=working_dir,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL,
        env=dict(os.environ),
    )

    framer = HeaderFramer()
    conn = Connection(
        framer.reader(process.stdout),
        framer.writer(process.stdin),
        _ProcessCloser(process),
    )
    session = Session(server, conn, working_dir, process=process)

    try:
        session._initialize(timeout)
    except Exception as exc:
        try:
            process.kill()
        except OSError:
            pass
        process.wait()
        raise RuntimeError(f"initialize: {exc}") from exc

    return session