"""
MCP 서버 설정 검증 패키지
"""

from mcphost_core.mcp.validation.mcp_server_validator import (
    IServerConfigValidator,
    MCPServerValidator,
    ValidationIssue,
    ValidationResult,
    format_validation_errors,
)

__all__ = [
    "IServerConfigValidator",
    "MCPServerValidator",
    "ValidationIssue",
    "ValidationResult",
    "format_validation_errors",
]
