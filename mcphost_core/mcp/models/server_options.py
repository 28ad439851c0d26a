"""
서버 종류별 설정(config 맵) 모델

영속 파일에는 자유 형식 맵으로 저장되며, 명령 생성 시점에
종류에 맞는 모델로 해석된다.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ServerOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class FilesystemServerOptions(_ServerOptions):
    """파일시스템 서버 - rootPath 가 없으면 현재 작업 디렉터리"""

    root_path: Optional[str] = None


class GithubServerOptions(_ServerOptions):
    """GitHub 서버"""

    token: str


class PostgresServerOptions(_ServerOptions):
    """PostgreSQL 서버"""

    host: str = "localhost"
    port: int = Field(5432, ge=1, le=65535)
    database: str
    username: str
    password: str = ""

    @property
    def connection_string(self) -> str:
        return (
            f"postgresql://{self.username}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class SqliteServerOptions(_ServerOptions):
    """SQLite 서버"""

    path: str


class CustomServerOptions(_ServerOptions):
    """사용자 정의 서버 - command 가 npm 패키지명이면 npx 로 실행"""

    command: str = Field(..., min_length=1)
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_npm_package(self) -> bool:
        """``@scope/pkg`` 이거나 경로 구분자가 없으면 npm 패키지로 본다"""
        command = self.command
        return command.startswith("@") or ("/" not in command and "\\" not in command)
