"""
MCP 서버 실행 명령 생성기

서버 종류별 빌더 함수 하나씩을 레지스트리에 등록하고,
설정의 type 으로 빌더를 선택한다. 부수 효과가 없는 순수 함수들이다.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError

from mcphost_core.mcp.exceptions import MCPConfigurationError
from mcphost_core.mcp.models.mcp_server import MCPServerConfig, MCPServerType
from mcphost_core.mcp.models.server_options import (
    CustomServerOptions,
    FilesystemServerOptions,
    GithubServerOptions,
    PostgresServerOptions,
    SqliteServerOptions,
)

NPX = "npx"

FILESYSTEM_PACKAGE = "@modelcontextprotocol/server-filesystem"
GITHUB_PACKAGE = "@modelcontextprotocol/server-github"
POSTGRES_PACKAGE = "@modelcontextprotocol/server-postgres"
SQLITE_PACKAGE = "@modelcontextprotocol/server-sqlite"

OptionsT = TypeVar("OptionsT", bound=BaseModel)


@dataclass(frozen=True)
class ServerCommand:
    """실행할 명령, 인자, 추가 환경 변수"""

    command: str
    args: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)

    @property
    def argv(self) -> List[str]:
        """전체 명령 반환"""
        return [self.command, *self.args]

    def display(self) -> str:
        return " ".join(self.argv)


def _parse_options(model: Type[OptionsT], server_type: MCPServerType, raw: Mapping[str, Any]) -> OptionsT:
    try:
        return model.model_validate(dict(raw or {}))
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
            for error in exc.errors()
        ]
        raise MCPConfigurationError(
            f"Invalid {server_type.value} server configuration: {'; '.join(problems)}",
            errors=problems,
        ) from exc


def build_filesystem_command(options: FilesystemServerOptions) -> ServerCommand:
    return ServerCommand(NPX, ["-y", FILESYSTEM_PACKAGE, options.root_path or os.getcwd()])


def build_github_command(options: GithubServerOptions) -> ServerCommand:
    return ServerCommand(
        NPX,
        ["-y", GITHUB_PACKAGE],
        {"GITHUB_PERSONAL_ACCESS_TOKEN": options.token},
    )


def build_postgres_command(options: PostgresServerOptions) -> ServerCommand:
    return ServerCommand(
        NPX,
        [POSTGRES_PACKAGE],
        {"POSTGRES_CONNECTION_STRING": options.connection_string},
    )


def build_sqlite_command(options: SqliteServerOptions) -> ServerCommand:
    return ServerCommand(NPX, [SQLITE_PACKAGE, options.path])


def build_custom_command(options: CustomServerOptions) -> ServerCommand:
    env = dict(options.env)
    if options.is_npm_package:
        return ServerCommand(NPX, [options.command, *options.args], env)
    return ServerCommand(options.command, list(options.args), env)


_Builder = Callable[[Mapping[str, Any]], ServerCommand]


def _variant(model: Type[OptionsT], server_type: MCPServerType, builder: Callable[[OptionsT], ServerCommand]) -> _Builder:
    return lambda raw: builder(_parse_options(model, server_type, raw))


COMMAND_BUILDERS: Dict[MCPServerType, _Builder] = {
    MCPServerType.FILESYSTEM: _variant(FilesystemServerOptions, MCPServerType.FILESYSTEM, build_filesystem_command),
    MCPServerType.GITHUB: _variant(GithubServerOptions, MCPServerType.GITHUB, build_github_command),
    MCPServerType.POSTGRES: _variant(PostgresServerOptions, MCPServerType.POSTGRES, build_postgres_command),
    MCPServerType.SQLITE: _variant(SqliteServerOptions, MCPServerType.SQLITE, build_sqlite_command),
    MCPServerType.CUSTOM: _variant(CustomServerOptions, MCPServerType.CUSTOM, build_custom_command),
}

_missing = set(MCPServerType) - set(COMMAND_BUILDERS)
if _missing:
    raise RuntimeError(f"Command builders missing for server types: {sorted(t.value for t in _missing)}")


def resolve_server_type(value: Any) -> MCPServerType:
    """문자열/열거형 값을 MCPServerType 으로 변환

    Raises:
        MCPConfigurationError: 지원하지 않는 종류
    """
    try:
        return MCPServerType(value)
    except ValueError as exc:
        raise MCPConfigurationError(f"Unsupported server type: {value}") from exc


def build_server_command(server_config: MCPServerConfig) -> ServerCommand:
    """서버 설정으로 실행 명령 생성

    Raises:
        MCPConfigurationError: 알 수 없는 종류이거나 설정 값이 잘못된 경우
    """
    server_type = resolve_server_type(server_config.type)
    return COMMAND_BUILDERS[server_type](server_config.config)
