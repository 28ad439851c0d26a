"""
MCP 서비스 실행 설정 모델
"""

import os
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "MCPHOST_"


class MCPServiceSettings(BaseModel):
    """MCP 서비스 설정

    타임아웃 단위는 모두 초(second)다.
    """

    model_config = ConfigDict(frozen=True)

    config_file_name: str = Field("mcp-servers.json", description="서버 설정 파일 이름")
    connect_timeout: float = Field(30.0, gt=0, description="프로세스 시작 대기 시간")
    handshake_timeout: float = Field(5.0, gt=0, description="tools/list 응답 대기 시간")
    test_timeout: float = Field(10.0, gt=0, description="일회성 연결 테스트 대기 시간")
    kill_timeout: float = Field(5.0, gt=0, description="SIGTERM 이후 SIGKILL 까지 대기 시간")
    stderr_limit: int = Field(64 * 1024, gt=0, description="보관할 stderr 최대 바이트")

    @classmethod
    def from_env(cls, **overrides: Any) -> "MCPServiceSettings":
        """환경 변수(MCPHOST_*)에서 설정 생성

        Args:
            **overrides: 환경 변수보다 우선하는 값
        """
        env_map = {
            "config_file_name": "CONFIG_FILE",
            "connect_timeout": "CONNECT_TIMEOUT",
            "handshake_timeout": "HANDSHAKE_TIMEOUT",
            "test_timeout": "TEST_TIMEOUT",
            "kill_timeout": "KILL_TIMEOUT",
        }
        values: Dict[str, Any] = {}
        for field_name, env_name in env_map.items():
            raw = os.environ.get(ENV_PREFIX + env_name)
            if raw:
                values[field_name] = raw
        values.update(overrides)
        return cls(**values)
