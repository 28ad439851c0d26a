"""
MCP 모델 패키지
"""

from mcphost_core.mcp.models.mcp_connection_health import MCPConnectionHealth
from mcphost_core.mcp.models.mcp_server import (
    ConnectionProgress,
    InitializationReport,
    MCPConnectionResult,
    MCPServerConfig,
    MCPServerState,
    MCPServerTool,
    MCPServerType,
    ProgressCallback,
)
from mcphost_core.mcp.models.server_options import (
    CustomServerOptions,
    FilesystemServerOptions,
    GithubServerOptions,
    PostgresServerOptions,
    SqliteServerOptions,
)

__all__ = [
    "ConnectionProgress",
    "CustomServerOptions",
    "FilesystemServerOptions",
    "GithubServerOptions",
    "InitializationReport",
    "MCPConnectionHealth",
    "MCPConnectionResult",
    "MCPServerConfig",
    "MCPServerState",
    "MCPServerTool",
    "MCPServerType",
    "PostgresServerOptions",
    "ProgressCallback",
    "SqliteServerOptions",
]
