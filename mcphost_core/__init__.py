"""
mcphost-core: MCP 도구 서버 프로세스 관리 코어

도구 서버 설정을 로드/저장하고, 서버 프로세스를 실행/감독하며,
`tools/list` 핸드셰이크로 도구 목록을 수집합니다.
"""

__version__ = "0.1.0"
