"""
MCP 연결 상태 지표 모델
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MCPConnectionHealth(BaseModel):
    """서버별 연결 지표 (런타임 전용, 영속화하지 않음)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    connection_attempts: int = Field(0, ge=0, description="연결 시도 횟수")
    successful_connections: int = Field(0, ge=0, description="성공한 연결 횟수")
    last_attempt_time: Optional[datetime] = Field(None, description="마지막 시도 시각")
    average_latency_ms: Optional[float] = Field(None, description="평균 연결 지연(ms)")
    uptime_since: Optional[datetime] = Field(None, description="마지막 연결 성공 시각")
    error_rate: float = Field(0.0, ge=0.0, le=1.0, description="오류율 (0.0 ~ 1.0)")
    last_error: Optional[str] = Field(None, description="마지막 오류 메시지")
    last_error_time: Optional[datetime] = Field(None, description="마지막 오류 시각")
