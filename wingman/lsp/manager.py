"""Reuse of language server sessions across requests, and workspace-wide queries."""

from __future__ import annotations

import itertools
import os
import stat
import threading
from collections.abc import Iterable, Iterator
from typing import Any, Callable

from wingman.lsp.detect import detect_servers, find_server
from wingman.lsp.format import (
    diagnostic_severity_name,
    format_symbol_informations,
    format_workspace_symbols,
    rel_path,
)
from wingman.lsp.proto import SymbolInformation, WorkspaceSymbol
from wingman.lsp.servers import Server
from wingman.lsp.session import Session, connect

_SKIPPED_DIRS = frozenset({"node_modules", "vendor", "__pycache__", "target", "build", "dist"})
_MAX_WORKSPACE_FILES = 50


def _skip_dir(name: str) -> bool:
    return name.startswith(".") or name in _SKIPPED_DIRS


def _extension(path: str) -> str:
    base = os.path.basename(path)
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def _walk(path: str, is_dir: bool) -> Iterator[str]:
    if not is_dir:
        yield path
        return
    if _skip_dir(os.path.basename(os.path.normpath(path))):
        return
    try:
        with os.scandir(path) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError:
        return
    for entry in entries:
        try:
            child_is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        yield from _walk(os.path.join(path, entry.name), child_is_dir)


def discover_source_files(working_dir: str, extensions: Iterable[str], max_files: int) -> list[str]:
    """Return up to ``max_files`` files with the given extensions, in lexical walk order.

    Hidden directories and common dependency and build directories are skipped.
    """
    wanted = {"." + ext for ext in extensions}
    try:
        root_is_dir = stat.S_ISDIR(os.lstat(working_dir).st_mode)
    except OSError:
        return []
    matching = (path for path in _walk(working_dir, root_is_dir) if _extension(path) in wanted)
    return list(itertools.islice(matching, max(max_files, 1)))


Connector = Callable[[str, Server], Any]


class Manager:
    """Keeps one session per server command so servers are reused."""

    def __init__(self, working_dir: str, connector: Connector | None = None) -> None:
        self.working_dir = working_dir
        self._connect: Connector = connector or connect
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> Manager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_session(self, file_path: str) -> Session:
        """Return a session with a server that handles ``file_path``."""
        server = find_server(self.working_dir, file_path)
        if server is None:
            raise LookupError(f"no LSP server found for file: {file_path}")
        return self.get_session_by_server(server)

    def get_session_by_server(self, server: Server) -> Session:
        """Return the cached session for ``server``, starting one if needed."""
        with self._lock:
            key = server.command
            session = self._sessions.get(key)
            if session is not None:
                if session.is_alive():
                    return session
                del self._sessions[key]

            session = self._connect(self.working_dir, server)
            self._sessions[key] = session
            return session

    def close(self) -> None:
        """Shut down every cached session."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()

    def _servers(self) -> list[Server]:
        servers = detect_servers(self.working_dir)
        if not servers:
            raise RuntimeError("no LSP servers detected in workspace")
        return servers

    def workspace_diagnostics(self) -> str:
        """Collect diagnostics over the workspace's source files."""
        lines: list[str] = []

        for server in self._servers():
            try:
                session = self.get_session_by_server(server)
            except Exception:
                continue

            for file in discover_source_files(self.working_dir, server.languages, _MAX_WORKSPACE_FILES):
                try:
                    uri = session.open_document(file)
                except Exception:
                    continue

                display_path = rel_path(self.working_dir, file)
                for diag in session.collect_diagnostics(uri):
                    start = diag.range.start
                    lines.append(
                        f"  {display_path}:{start.line + 1}:{start.character + 1} "
                        f"{diagnostic_severity_name(diag.severity)}: {diag.message}\n"
                    )

        if not lines:
            return "No workspace diagnostics found"
        return f"Workspace Diagnostics ({len(lines)} found):\n" + "".join(lines)

    def workspace_symbols(self, query: str) -> str:
        """Search every server of the workspace for symbols matching ``query``."""
        infos: list[SymbolInformation] = []
        workspace_symbols: list[WorkspaceSymbol] = []

        for server in self._servers():
            try:
                session = self.get_session_by_server(server)
                result = session.call_and_await("workspace/symbol", {"query": query})
            except Exception:
                continue

            if not isinstance(result, list):
                continue

            try:
                found = [SymbolInformation.from_json(item) for item in result]
            except ValueError:
                found = []
            if found and found[0].location.uri:
                infos.extend(found)
                continue

            try:
                workspace_symbols.extend(WorkspaceSymbol.from_json(item) for item in result)
            except ValueError:
                pass

        if infos:
            return format_symbol_informations(infos, self.working_dir)
        if workspace_symbols:
            return format_workspace_symbols(workspace_symbols, self.working_dir)
        return "No symbols found"