"""
MCP 서버 설정/상태 모델
"""

from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from mcphost_core.mcp.models.mcp_connection_health import MCPConnectionHealth


class MCPServerType(str, Enum):
    """MCP 서버 종류"""

    FILESYSTEM = "filesystem"
    GITHUB = "github"
    POSTGRES = "postgres"
    SQLITE = "sqlite"
    CUSTOM = "custom"


class MCPServerState(str, Enum):
    """서버 연결 상태

    disconnected → connecting → handshaking → {ready | connected} → disconnected
    connecting/handshaking 에서는 error 로 갈 수 있다.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    READY = "ready"
    CONNECTED = "connected"
    ERROR = "error"

    @property
    def is_live(self) -> bool:
        """도구 서버를 사용할 수 있는 상태인지"""
        return self in (MCPServerState.READY, MCPServerState.CONNECTED)

    @property
    def is_pending(self) -> bool:
        """연결 절차가 진행 중인지"""
        return self in (MCPServerState.CONNECTING, MCPServerState.HANDSHAKING)


class MCPServerTool(BaseModel):
    """도구 서버가 광고하는 도구 정보 (inputSchema 는 그대로 전달)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: str
    description: Optional[str] = ""
    input_schema: Any = Field(default_factory=dict)

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value: Any) -> Any:
        # description: null 을 보내는 서버가 있다
        return "" if value is None else value


class MCPServerConfig(BaseModel):
    """MCP 서버 설정 모델

    ``enabled``/``type``/``config`` 만 영속 상태의 기준이며
    status, connection_health 는 런타임 값이다.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        validate_assignment=True,
    )

    id: str
    name: str
    type: Union[MCPServerType, str] = Field(union_mode="left_to_right")
    enabled: bool = False
    config: Dict[str, Any] = Field(default_factory=dict)
    status: MCPServerState = MCPServerState.DISCONNECTED
    tools: List[MCPServerTool] = Field(default_factory=list)
    last_connected: Optional[datetime] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    connection_health: Optional[MCPConnectionHealth] = None

    def touch(self) -> None:
        """수정 시각 갱신"""
        self.updated_at = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """JSON 직렬화 가능한 딕셔너리로 변환 (camelCase 키)"""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MCPServerConfig":
        """딕셔너리에서 생성"""
        return cls.model_validate(data)


class MCPConnectionResult(BaseModel):
    """연결 테스트/연결 결과"""

    success: bool
    tools: List[MCPServerTool] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def ok(cls, tools: Optional[List[MCPServerTool]] = None) -> "MCPConnectionResult":
        return cls(success=True, tools=tools or [])

    @classmethod
    def failed(cls, error: str) -> "MCPConnectionResult":
        return cls(success=False, error=error)


class ConnectionProgress(BaseModel):
    """연결 진행 상황 메시지

    상태가 바뀔 때마다 한 번씩 progress 콜백으로 전달된다.
    """

    server_id: str
    status: MCPServerState
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)


ProgressCallback = Callable[[ConnectionProgress], None]

InitializationState = Literal["ready", "partial", "failed"]


class InitializationReport(BaseModel):
    """활성화된 서버 자동 연결 결과"""

    state: InitializationState = "ready"
    connected: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.connected) + len(self.failed)
