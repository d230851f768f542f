import os
from unittest import mock

from wingman.lsp.detect import (
    ProjectRoot,
    detect_all,
    detect_servers,
    find_server,
    has_language,
    is_sub_path,
)
from wingman.lsp.servers import KNOWN_PROJECTS

PROJECTS = {p.name: p for p in KNOWN_PROJECTS}
GOPLS = PROJECTS["go"].servers[0]
TS_SERVER = PROJECTS["typescript"].servers[0]
VTSLS = PROJECTS["typescript"].servers[1]
OMNISHARP = PROJECTS["csharp"].servers[0]
TERRAFORM = PROJECTS["terraform"].servers[0]


def _all_available(command):
    return os.path.join(os.sep, "usr", "bin", command)


def _touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("")


def test_is_sub_path():
    base = os.path.join(os.sep, "a", "b")
    assert is_sub_path(base, base)
    assert is_sub_path(base, os.path.join(base, "c"))
    assert is_sub_path(base + os.sep, os.path.join(base, "c", "d"))
    assert not is_sub_path(base, os.path.join(os.sep, "a", "bc"))
    assert not is_sub_path(os.path.join(base, "c"), base)


def test_has_language():
    assert has_language(("go",), "go")
    assert not has_language(("py", "pyi"), "p")


def test_detect_all_finds_roots_in_registry_order(tmp_path):
    _touch(tmp_path / "go.mod")
    _touch(tmp_path / "web" / "package.json")
    with mock.patch("shutil.which", side_effect=_all_available):
        roots = detect_all(str(tmp_path))
    assert roots == [
        ProjectRoot(dir=str(tmp_path), servers=[GOPLS]),
        ProjectRoot(dir=str(tmp_path / "web"), servers=[TS_SERVER]),
    ]


def test_detect_all_falls_back_to_next_candidate(tmp_path):
    _touch(tmp_path / "tsconfig.json")

    def which(command):
        return None if command == TS_SERVER.command else _all_available(command)

    with mock.patch("shutil.which", side_effect=which):
        roots = detect_all(str(tmp_path))
    assert roots == [ProjectRoot(dir=str(tmp_path), servers=[VTSLS])]


def test_detect_all_nothing_installed(tmp_path):
    _touch(tmp_path / "go.mod")
    with mock.patch("shutil.which", return_value=None):
        assert detect_all(str(tmp_path)) == []


def test_detect_all_glob_and_directory_markers(tmp_path):
    _touch(tmp_path / "app" / "App.csproj")
    (tmp_path / "infra" / ".terraform").mkdir(parents=True)
    with mock.patch("shutil.which", side_effect=_all_available):
        roots = detect_all(str(tmp_path))
    assert ProjectRoot(dir=str(tmp_path / "app"), servers=[OMNISHARP]) in roots
    assert ProjectRoot(dir=str(tmp_path / "infra"), servers=[TERRAFORM]) in roots


def test_detect_all_one_root_per_dir_and_command(tmp_path):
    _touch(tmp_path / "go.mod")
    _touch(tmp_path / "go.work")
    with mock.patch("shutil.which", side_effect=_all_available):
        roots = detect_all(str(tmp_path))
    assert roots == [ProjectRoot(dir=str(tmp_path), servers=[GOPLS])]


def test_find_server_picks_matching_language(tmp_path):
    _touch(tmp_path / "go.mod")
    _touch(tmp_path / "web" / "package.json")
    wd = str(tmp_path)
    with mock.patch("shutil.which", side_effect=_all_available):
        assert find_server(wd, str(tmp_path / "web" / "index.ts")) == TS_SERVER
        assert find_server(wd, str(tmp_path / "main.go")) == GOPLS
        assert find_server(wd, str(tmp_path / "web" / "util.go")) == GOPLS


def test_find_server_without_match(tmp_path):
    _touch(tmp_path / "go.mod")
    wd = str(tmp_path)
    with mock.patch("shutil.which", side_effect=_all_available):
        assert find_server(wd, str(tmp_path / "Makefile")) is None
        assert find_server(wd, str(tmp_path / "script.py")) is None


def test_find_server_outside_project(tmp_path):
    _touch(tmp_path / "web" / "package.json")
    with mock.patch("shutil.which", side_effect=_all_available):
        assert find_server(str(tmp_path), str(tmp_path / "other" / "a.ts")) is None


def test_detect_servers_deduplicates_by_command(tmp_path):
    _touch(tmp_path / "a" / "go.mod")
    _touch(tmp_path / "b" / "go.mod")
    with mock.patch("shutil.which", side_effect=_all_available):
        assert len(detect_all(str(tmp_path))) == 2
        assert detect_servers(str(tmp_path)) == [GOPLS]