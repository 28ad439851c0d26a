"""
MCP 서비스 예외 클래스
"""

from typing import List, Optional


class MCPServiceError(Exception):
    """MCP 서비스 기본 예외"""


class MCPConfigurationError(MCPServiceError):
    """서버 설정 오류 - 프로세스 실행 전에 발생하며 자동 재시도하지 않는다"""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        super().__init__(message)


class MCPProcessSpawnError(MCPServiceError):
    """OS 가 실행 파일을 시작하지 못한 경우"""

    def __init__(self, command: str, original_error: Optional[BaseException] = None):
        self.command = command
        self.original_error = original_error
        detail = str(original_error) if original_error else "unknown error"
        super().__init__(f"Failed to start '{command}': {detail}")


class MCPProtocolTimeoutError(MCPServiceError):
    """제한 시간 안에 유효한 tools/list 응답이 오지 않음"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Tools request timed out after {timeout:g}s")


class MCPProtocolParseError(MCPServiceError):
    """서버 출력이 JSON-RPC 메시지로 해석되지 않음"""


class MCPRuntimeExitError(MCPServiceError):
    """서버 프로세스가 예기치 않게 종료됨"""

    def __init__(self, returncode: Optional[int], stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        message = f"Process exited with code {returncode}"
        if stderr:
            message += f": {stderr}"
        super().__init__(message)


class MCPServerNotFoundError(MCPServiceError, KeyError):
    """존재하지 않는 서버 ID - 호출자 오류"""

    def __init__(self, server_id: str):
        self.server_id = server_id
        super().__init__(f"Server configuration not found: {server_id}")

    def __str__(self) -> str:
        return str(self.args[0])
