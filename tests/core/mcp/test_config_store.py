import json
from pathlib import Path
from unittest.mock import patch

import pytest

from mcphost_core.mcp.config import DEFAULT_SERVER_ID, MCPConfigStore
from mcphost_core.mcp.models import MCPConnectionHealth, MCPServerConfig, MCPServerState, MCPServerTool


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    return tmp_path / "data" / "mcp-servers.json"


@pytest.fixture
def store(config_file: Path, tmp_path: Path) -> MCPConfigStore:
    return MCPConfigStore(config_file, home_dir=tmp_path / "home")


class TestMCPConfigStore:
    """MCP 서버 설정 저장소 테스트"""

    def test_missing_file_creates_default(self, store: MCPConfigStore, config_file: Path, tmp_path: Path):
        servers = store.load()

        assert len(servers) == 1
        default = servers[0]
        assert default.id == DEFAULT_SERVER_ID
        assert default.name == "Local Filesystem"
        assert default.enabled is True
        assert default.config == {"rootPath": str(tmp_path / "home")}

        assert config_file.exists()
        saved = json.loads(config_file.read_text(encoding="utf-8"))
        assert saved[0]["id"] == DEFAULT_SERVER_ID
        assert "createdAt" in saved[0]

    def test_default_save_failure_is_not_raised(self, store: MCPConfigStore):
        with patch.object(store, "save", side_effect=OSError("read-only")):
            servers = store.load()

        assert servers[0].id == DEFAULT_SERVER_ID

    def test_corrupt_file_is_preserved(self, store: MCPConfigStore, config_file: Path):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("{not json", encoding="utf-8")

        servers = store.load()

        assert servers[0].id == DEFAULT_SERVER_ID
        assert config_file.read_text(encoding="utf-8") == "{not json"

    def test_invalid_shape_is_preserved(self, store: MCPConfigStore, config_file: Path):
        config_file.parent.mkdir(parents=True)
        config_file.write_text(json.dumps([{"name": "no id"}]), encoding="utf-8")

        assert store.load()[0].id == DEFAULT_SERVER_ID
        assert json.loads(config_file.read_text(encoding="utf-8")) == [{"name": "no id"}]

    def test_save_and_load(self, store: MCPConfigStore, config_file: Path):
        server = MCPServerConfig(
            id="gh",
            name="GitHub",
            type="github",
            enabled=True,
            config={"token": "t"},
            status=MCPServerState.READY,
            tools=[MCPServerTool(name="search", description="Search", input_schema={"type": "object"})],
            connection_health=MCPConnectionHealth(connection_attempts=3),
        )

        store.save([server])

        saved = json.loads(config_file.read_text(encoding="utf-8"))
        assert saved[0]["status"] == "ready"
        assert saved[0]["tools"][0]["inputSchema"] == {"type": "object"}
        assert "connectionHealth" not in saved[0]
        assert "lastConnected" in saved[0]

        loaded = store.load()
        assert loaded[0].id == "gh"
        assert loaded[0].status == MCPServerState.DISCONNECTED
        assert loaded[0].tools[0].name == "search"
        assert loaded[0].connection_health is None

    def test_save_overwrites_whole_list(self, store: MCPConfigStore, config_file: Path):
        store.save([MCPServerConfig(id="a", name="A", type="sqlite"), MCPServerConfig(id="b", name="B", type="sqlite")])
        store.save([MCPServerConfig(id="b", name="B", type="sqlite")])

        assert [s["id"] for s in json.loads(config_file.read_text(encoding="utf-8"))] == ["b"]
        assert list(config_file.parent.glob("*.tmp")) == []

    def test_save_failure_raises(self, store: MCPConfigStore):
        with patch("mcphost_core.mcp.config.mcp_config_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                store.save([MCPServerConfig(id="a", name="A", type="sqlite")])

        assert list(store.config_path.parent.glob("*.tmp")) == []

    def test_unknown_fields_survive_round_trip(self, store: MCPConfigStore, config_file: Path):
        config_file.parent.mkdir(parents=True)
        config_file.write_text(
            json.dumps([{"id": "x", "name": "X", "type": "custom", "config": {"command": "foo"}, "icon": "star"}]),
            encoding="utf-8",
        )

        servers = store.load()
        store.save(servers)

        assert json.loads(config_file.read_text(encoding="utf-8"))[0]["icon"] == "star"
