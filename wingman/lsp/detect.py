"""Detection of projects in a directory tree and the language servers that serve them."""

from __future__ import annotations

import fnmatch
import os
import shutil
from dataclasses import dataclass, field

from wingman.lsp.servers import KNOWN_PROJECTS, Server


@dataclass
class ProjectRoot:
    """A detected project directory and the servers available for it."""

    dir: str
    servers: list[Server] = field(default_factory=list)


def _tree_entries(root: str) -> list[tuple[str, str]]:
    """Return (relative directory, name) for every file and directory below ``root``."""
    entries: list[tuple[str, str]] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        rel_dir = os.path.relpath(dirpath, root)
        for name in sorted(dirnames + filenames):
            entries.append((rel_dir, name))
    return entries


def detect_all(working_dir: str) -> list[ProjectRoot]:
    """Find every project root under ``working_dir`` with its first available server."""
    roots: list[ProjectRoot] = []
    seen: set[tuple[str, str]] = set()
    entries = _tree_entries(working_dir)

    for project in KNOWN_PROJECTS:
        for marker in project.markers:
            for rel_dir, name in entries:
                if not fnmatch.fnmatchcase(name, marker):
                    continue
                directory = os.path.normpath(os.path.join(working_dir, rel_dir))

                for candidate in project.servers:
                    key = (directory, candidate.command)
                    if key in seen:
                        continue
                    seen.add(key)

                    if shutil.which(candidate.command) is None:
                        continue

                    roots.append(ProjectRoot(dir=directory, servers=[candidate]))
                    break

    return roots


def _extension(path: str) -> str:
    base = os.path.basename(path)
    dot = base.rfind(".")
    return base[dot + 1 :] if dot >= 0 else ""


def find_server(working_dir: str, file_path: str) -> Server | None:
    """Pick the server of the closest enclosing project that handles the file's extension."""
    ext = _extension(file_path)
    if not ext:
        return None

    directory = os.path.dirname(file_path) or "."
    best: Server | None = None
    best_len = -1

    for root in detect_all(working_dir):
        if not is_sub_path(root.dir, directory):
            continue
        if len(root.dir) <= best_len:
            continue
        for server in root.servers:
            if has_language(server.languages, ext):
                best = server
                best_len = len(root.dir)
                break

    return best


def detect_servers(working_dir: str) -> list[Server]:
    """Return each available server of the workspace once."""
    servers: list[Server] = []
    seen: set[str] = set()
    for root in detect_all(working_dir):
        for server in root.servers:
            if server.command in seen:
                continue
            seen.add(server.command)
            servers.append(server)
    return servers


def has_language(languages, ext: str) -> bool:
    """Report whether ``ext`` is among ``languages``."""
    return ext in languages


def is_sub_path(parent: str, child: str) -> bool:
    """Report whether ``child`` is ``parent`` or lies below it."""
    parent = os.path.normpath(parent)
    child = os.path.normpath(child)
    if parent == child:
        return True
    if not parent.endswith(os.sep):
        parent += os.sep
    return child.startswith(parent)