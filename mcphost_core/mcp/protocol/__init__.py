"""
도구 서버 stdio 프로토콜 (JSON-RPC) 패키지
"""

from mcphost_core.mcp.protocol.json_rpc import (
    TOOLS_LIST_METHOD,
    JsonRpcFramer,
    build_tools_list_request,
    decode_message,
    extract_tools,
    find_tools,
)

__all__ = [
    "JsonRpcFramer",
    "TOOLS_LIST_METHOD",
    "build_tools_list_request",
    "decode_message",
    "extract_tools",
    "find_tools",
]
