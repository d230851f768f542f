import json

import pytest

from wingman.mcp.config import Config, ServerConfig, load_config


def _write(tmp_path, document):
    path = tmp_path / "mcp.json"
    path.write_text(json.dumps(document))
    return path


def test_load_config_reads_servers(tmp_path):
    path = _write(
        tmp_path,
        {
            "mcpServers": {
                "local": {"command": "server-bin", "args": ["--stdio"]},
                "remote": {
                    "transport": "http",
                    "url": "http://localhost:9000/mcp",
                    "headers": {"Authorization": "Bearer token"},
                },
            }
        },
    )
    cfg = load_config(path)
    assert set(cfg.servers) == {"local", "remote"}
    assert cfg.servers["local"] == ServerConfig(command="server-bin", args=["--stdio"])
    remote = cfg.servers["remote"]
    assert remote.url == "http://localhost:9000/mcp"
    assert remote.transport == "http"
    assert remote.headers == {"Authorization": "Bearer token"}
    assert remote.command == ""
    assert remote.args == []


def test_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        load_config(tmp_path / "absent.json")


def test_invalid_json_raises(tmp_path):
    path = tmp_path / "mcp.json"
    path.write_text("{not json")
    with pytest.raises(ValueError, match="failed to parse mcp.json"):
        load_config(path)


def test_no_servers_gives_empty_mapping():
    assert Config.from_json("{}").servers == {}


def test_null_document_gives_empty_config():
    assert Config.from_json("null") == Config()


def test_bytes_are_accepted():
    cfg = Config.from_json(b'{"mcpServers": {"a": {"url": "http://localhost/"}}}')
    assert cfg.servers["a"].url == "http://localhost/"


@pytest.mark.parametrize(
    "document",
    [
        {"mcpServers": []},
        {"mcpServers": {"a": {"args": "not-a-list"}}},
        {"mcpServers": {"a": {"command": 5}}},
        {"mcpServers": {"a": {"headers": {"X": 1}}}},
        [1, 2],
    ],
)
def test_wrong_types_raise(document):
    with pytest.raises(ValueError, match="failed to parse mcp.json"):
        Config.from_json(json.dumps(document))