"""
MCP 연결 상태 지표 수집
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from mcphost_core.mcp.models.mcp_connection_health import MCPConnectionHealth
from mcphost_core.util.logger import setup_logger

logger = setup_logger("health_tracker") or logging.getLogger("health_tracker")


class HealthTracker:
    """서버 ID 별 연결 지표를 유지한다.

    설정 파일과 무관한 파생 값이며 영속화하지 않는다.

    오류율은 오류가 날 때만 다시 계산한다::

        error_rate = (old_rate * (attempts - 1) + 1) / attempts

    성공 시에는 갱신하지 않으므로 이후 성공이 오류율을 낮추지 않는다.
    평균 지연은 성공한 연결들의 누적 평균이다.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self._health: Dict[str, MCPConnectionHealth] = {}

    def _get_or_create(self, server_id: str) -> MCPConnectionHealth:
        health = self._health.get(server_id)
        if health is None:
            health = MCPConnectionHealth()
            self._health[server_id] = health
        return health

    def record_attempt(self, server_id: str) -> MCPConnectionHealth:
        """연결 시도 기록"""
        health = self._get_or_create(server_id)
        health.connection_attempts += 1
        health.last_attempt_time = self._clock()
        return health.model_copy()

    def record_success(self, server_id: str, latency_ms: Optional[float] = None) -> MCPConnectionHealth:
        """연결 성공 기록

        Args:
            server_id: 서버 ID
            latency_ms: 시도 시작부터 성공까지 걸린 시간(ms)
        """
        health = self._get_or_create(server_id)
        health.successful_connections += 1
        if latency_ms is not None:
            if health.average_latency_ms is None:
                health.average_latency_ms = float(latency_ms)
            else:
                health.average_latency_ms += (latency_ms - health.average_latency_ms) / health.successful_connections
        health.uptime_since = self._clock()
        return health.model_copy()

    def record_error(self, server_id: str, message: str) -> MCPConnectionHealth:
        """연결 오류 기록"""
        health = self._get_or_create(server_id)
        health.last_error = message
        health.last_error_time = self._clock()

        attempts = health.connection_attempts
        if attempts > 0:
            rate = (health.error_rate * (attempts - 1) + 1) / attempts
        else:
            rate = 1.0
        health.error_rate = min(1.0, max(0.0, rate))
        health.uptime_since = None

        logger.debug("연결 오류 기록: %s (error_rate=%.3f)", server_id, health.error_rate)
        return health.model_copy()

    def mark_down(self, server_id: str) -> None:
        """연결 종료 - 가동 시작 시각만 지운다"""
        health = self._health.get(server_id)
        if health is not None:
            health.uptime_since = None

    def snapshot(self, server_id: str) -> Optional[MCPConnectionHealth]:
        """지표 사본 반환 (기록이 없으면 None)"""
        health = self._health.get(server_id)
        return health.model_copy() if health is not None else None

    def reset(self, server_id: str) -> None:
        """서버 지표 삭제"""
        self._health.pop(server_id, None)

    def clear(self) -> None:
        self._health.clear()
