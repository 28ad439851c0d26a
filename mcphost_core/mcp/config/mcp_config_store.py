import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import List, Sequence, Union

from pydantic import TypeAdapter, ValidationError

from mcphost_core.mcp.models.mcp_server import MCPServerConfig, MCPServerState, MCPServerType
from mcphost_core.util.logger import setup_logger

logger = setup_logger("config") or logging.getLogger("config")

DEFAULT_SERVER_ID = "default-filesystem"

_SERVER_LIST = TypeAdapter(List[MCPServerConfig])


class MCPConfigStore:
    """MCP 서버 설정 목록 저장소

    하나의 JSON 배열 파일로 전체 목록을 읽고 쓴다.
    저장은 병합이 아니라 전체 덮어쓰기다.
    """

    def __init__(self, config_file: Union[str, Path], home_dir: Union[str, Path, None] = None) -> None:
        self.config_path = Path(config_file).expanduser()
        self.home_dir = Path(home_dir) if home_dir else Path.home()

    @property
    def config_file(self) -> str:
        return str(self.config_path)

    def load(self) -> List[MCPServerConfig]:
        """설정 목록 로드

        파일이 없으면 기본 목록을 만들어 저장하고,
        파싱에 실패하면 원본 파일을 보존한 채 기본 목록을 사용한다.
        """
        if not self.config_path.exists():
            servers = self.default_servers()
            logger.info("MCP 서버 설정이 없어 기본 파일시스템 서버를 생성합니다: %s", self.config_path)
            try:
                self.save(servers)
            except OSError as exception:
                logger.warning("기본 서버 설정 저장 실패: %s", exception)
            return servers

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                raw = f.read()
            servers = _SERVER_LIST.validate_json(raw)
        except (OSError, ValueError, ValidationError) as exception:
            logger.error("MCP 서버 설정 로드 실패 (원본 파일 보존): %s", exception)
            logger.info("기본 MCP 서버 설정을 대신 사용합니다")
            return self.default_servers()

        for server in servers:
            # 재시작을 넘어 살아있는 프로세스는 없다
            server.status = MCPServerState.DISCONNECTED
            server.connection_health = None

        logger.info("MCP 서버 설정 %d개 로드 완료", len(servers))
        return servers

    def save(self, servers: Sequence[MCPServerConfig]) -> None:
        """설정 목록 전체 저장

        Raises:
            OSError: 파일 쓰기 실패
        """
        payload = [server.model_dump(mode="json", by_alias=True, exclude={"connection_health"}) for server in servers]
        data = json.dumps(payload, indent=2, ensure_ascii=False)

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.config_path.name}.", suffix=".tmp", dir=str(self.config_path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(data)
                os.replace(tmp_name, self.config_path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exception:
            logger.error("MCP 서버 설정 저장 실패: %s", exception)
            raise

        logger.info("MCP 서버 설정 %d개 저장 완료", len(servers))

    def default_servers(self) -> List[MCPServerConfig]:
        """기본 서버 설정 (홈 디렉터리 파일시스템 서버)"""
        now = datetime.now()
        return [
            MCPServerConfig(
                id=DEFAULT_SERVER_ID,
                name="Local Filesystem",
                type=MCPServerType.FILESYSTEM,
                status=MCPServerState.DISCONNECTED,
                enabled=True,
                config={"rootPath": str(self.home_dir)},
                tools=[],
                created_at=now,
                updated_at=now,
            )
        ]
