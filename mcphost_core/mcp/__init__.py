"""
MCP (Model Context Protocol) 도구 서버 관리 패키지
"""

from mcphost_core.mcp.health_tracker import HealthTracker
from mcphost_core.mcp.mcp_service import MCPService
from mcphost_core.mcp.process.process_supervisor import ProcessSupervisor

__all__ = ["HealthTracker", "MCPService", "ProcessSupervisor"]
