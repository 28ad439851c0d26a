"""
MCP 서버 설정 저장소 패키지
"""

from mcphost_core.mcp.config.mcp_config_store import DEFAULT_SERVER_ID, MCPConfigStore

__all__ = ["DEFAULT_SERVER_ID", "MCPConfigStore"]
