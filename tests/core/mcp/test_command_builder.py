import os

import pytest

from mcphost_core.mcp.command_builder import (
    COMMAND_BUILDERS,
    FILESYSTEM_PACKAGE,
    NPX,
    POSTGRES_PACKAGE,
    SQLITE_PACKAGE,
    build_server_command,
)
from mcphost_core.mcp.exceptions import MCPConfigurationError
from mcphost_core.mcp.models import MCPServerConfig, MCPServerType


def make_config(server_type, config):
    return MCPServerConfig(id="srv", name="Server", type=server_type, config=config)


class TestBuildServerCommand:
    """서버 종류별 실행 명령 생성 테스트"""

    def test_every_type_has_builder(self):
        assert set(COMMAND_BUILDERS) == set(MCPServerType)

    def test_filesystem_root_path_is_last_argument(self):
        command = build_server_command(make_config("filesystem", {"rootPath": "/tmp"}))

        assert command.command == NPX
        assert command.args == ["-y", FILESYSTEM_PACKAGE, "/tmp"]
        assert command.argv[-1] == "/tmp"
        assert command.env == {}

    def test_filesystem_defaults_to_cwd(self):
        command = build_server_command(make_config(MCPServerType.FILESYSTEM, {}))

        assert command.args[-1] == os.getcwd()

    def test_github_token_in_env(self):
        command = build_server_command(make_config("github", {"token": "ghp_secret"}))

        assert command.command == NPX
        assert command.env == {"GITHUB_PERSONAL_ACCESS_TOKEN": "ghp_secret"}

    def test_postgres_connection_string(self):
        command = build_server_command(
            make_config(
                "postgres",
                {"host": "db.local", "port": 6543, "database": "app", "username": "me", "password": "pw"},
            )
        )

        assert command.args == [POSTGRES_PACKAGE]
        assert command.env["POSTGRES_CONNECTION_STRING"] == "postgresql://me:pw@db.local:6543/app"

    def test_sqlite_path(self):
        command = build_server_command(make_config("sqlite", {"path": "/data/app.db"}))

        assert command.argv == [NPX, SQLITE_PACKAGE, "/data/app.db"]

    def test_custom_scoped_package_runs_through_npx(self):
        command = build_server_command(
            make_config("custom", {"command": "@scope/pkg", "args": ["--flag"], "env": {"A": "1"}})
        )

        assert command.command == NPX
        assert command.args == ["@scope/pkg", "--flag"]
        assert command.env == {"A": "1"}

    def test_custom_bare_name_runs_through_npx(self):
        command = build_server_command(make_config("custom", {"command": "mcp-server-time"}))

        assert command.argv == [NPX, "mcp-server-time"]

    def test_custom_path_runs_directly(self):
        command = build_server_command(make_config("custom", {"command": "/usr/local/bin/foo", "args": ["a"]}))

        assert command.command == "/usr/local/bin/foo"
        assert command.args == ["a"]
        assert NPX not in command.argv

    def test_unknown_type(self):
        with pytest.raises(MCPConfigurationError, match="Unsupported server type"):
            build_server_command(make_config("ftp", {}))

    def test_missing_required_option(self):
        with pytest.raises(MCPConfigurationError) as excinfo:
            build_server_command(make_config("github", {}))

        assert "github" in str(excinfo.value)
        assert excinfo.value.errors

    def test_invalid_port(self):
        with pytest.raises(MCPConfigurationError):
            build_server_command(
                make_config("postgres", {"port": 70000, "database": "app", "username": "me"})
            )
