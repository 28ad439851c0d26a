"""
애플리케이션 설정 패키지

- app_paths: 사용자 데이터 경로 제공자
- settings: MCP 서비스 실행 설정 (타임아웃 등)
"""

from mcphost_core.config.app_paths import ApplicationPaths
from mcphost_core.config.settings import MCPServiceSettings

__all__ = ["ApplicationPaths", "MCPServiceSettings"]
