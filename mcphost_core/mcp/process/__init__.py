"""
MCP 서버 프로세스 관리 패키지
"""

from mcphost_core.mcp.process.mcp_process import MCPProcess
from mcphost_core.mcp.process.process_supervisor import CompletedRun, ProcessSupervisor

__all__ = ["CompletedRun", "MCPProcess", "ProcessSupervisor"]
