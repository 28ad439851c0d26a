"""
MCP 서버 설정 검증기
"""

import json
import logging
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from mcphost_core.mcp.models.mcp_server import MCPServerConfig, MCPServerType
from mcphost_core.util.logger import setup_logger

logger = setup_logger("validator") or logging.getLogger("validator")


class ValidationIssue(BaseModel):
    """검증 오류/경고 한 건"""

    field: str
    message: str
    code: str = "invalid"


class ValidationResult(BaseModel):
    """설정 검증 결과"""

    valid: bool = True
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)

    def add_error(self, field: str, message: str, code: str = "invalid") -> None:
        """오류 추가"""
        self.valid = False
        self.errors.append(ValidationIssue(field=field, message=message, code=code))

    def add_warning(self, field: str, message: str, code: str = "warning") -> None:
        """경고 추가"""
        self.warnings.append(ValidationIssue(field=field, message=message, code=code))

    def __bool__(self) -> bool:
        return self.valid


class IServerConfigValidator(ABC):
    """서버 설정 검증기 인터페이스"""

    @abstractmethod
    def validate(self, server_config: MCPServerConfig) -> ValidationResult:
        """서버 설정 검증

        Args:
            server_config: 검증할 서버 설정

        Returns:
            검증 결과
        """

    def get_error_messages(self, errors: List[ValidationIssue]) -> List[str]:
        """오류 목록을 사용자 메시지로 변환"""
        return [f"{issue.field}: {issue.message}" for issue in errors]

    def get_warning_messages(self, warnings: List[ValidationIssue]) -> List[str]:
        """경고 목록을 사용자 메시지로 변환"""
        return [f"{issue.field}: {issue.message}" for issue in warnings]

    def clear_cache(self) -> None:
        """검증 캐시 초기화 (캐시가 없으면 아무 일도 하지 않음)"""


class MCPServerValidator(IServerConfigValidator):
    """기본 MCP 서버 설정 검증기

    서버 종류별 필수 필드를 확인하고, 경로/명령 존재 여부는 경고로 알린다.
    (type, config) 지문 단위로 결과를 캐싱한다.
    """

    def __init__(self, enable_cache: bool = True) -> None:
        self._enable_cache = enable_cache
        self._cache: Dict[str, ValidationResult] = {}

    def validate(self, server_config: MCPServerConfig) -> ValidationResult:
        cache_key = self._fingerprint(server_config)
        if self._enable_cache and cache_key in self._cache:
            return self._cache[cache_key].model_copy(deep=True)

        result = ValidationResult()
        if not server_config.name or not server_config.name.strip():
            result.add_error("name", "Server name is required", code="required")

        try:
            server_type = MCPServerType(server_config.type)
        except ValueError:
            result.add_error("type", f"Unsupported server type: {server_config.type}", code="unsupported")
            server_type = None

        options = server_config.config if isinstance(server_config.config, dict) else {}
        checks = {
            MCPServerType.FILESYSTEM: self._validate_filesystem,
            MCPServerType.GITHUB: self._validate_github,
            MCPServerType.POSTGRES: self._validate_postgres,
            MCPServerType.SQLITE: self._validate_sqlite,
            MCPServerType.CUSTOM: self._validate_custom,
        }
        if server_type is not None:
            checks[server_type](options, result)

        if not result.valid:
            logger.debug("서버 설정 검증 실패 %s: %s", server_config.name, self.get_error_messages(result.errors))

        if self._enable_cache:
            self._cache[cache_key] = result.model_copy(deep=True)
        return result

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.debug("검증 캐시 초기화")

    # ------------------------------------------------------------------
    # 종류별 검증
    # ------------------------------------------------------------------
    @staticmethod
    def _validate_filesystem(options: Dict[str, Any], result: ValidationResult) -> None:
        root_path = options.get("rootPath")
        if root_path is None or root_path == "":
            result.add_warning("config.rootPath", "No root path set, the current working directory will be used")
            return
        if not isinstance(root_path, str):
            result.add_error("config.rootPath", "Root path must be a string")
            return
        if not Path(root_path).expanduser().is_dir():
            result.add_warning("config.rootPath", f"Directory does not exist: {root_path}", code="not_found")

    @staticmethod
    def _validate_github(options: Dict[str, Any], result: ValidationResult) -> None:
        token = options.get("token")
        if not isinstance(token, str) or not token.strip():
            result.add_error("config.token", "GitHub personal access token is required", code="required")

    @staticmethod
    def _validate_postgres(options: Dict[str, Any], result: ValidationResult) -> None:
        for key in ("host", "database", "username"):
            value = options.get(key)
            if not isinstance(value, str) or not value.strip():
                result.add_error(f"config.{key}", f"{key} is required", code="required")

        port = options.get("port")
        if port is None or port == "":
            result.add_warning("config.port", "No port set, 5432 will be used")
            return
        try:
            port_number = int(port)
        except (TypeError, ValueError):
            result.add_error("config.port", f"Port must be an integer: {port}")
            return
        if not 1 <= port_number <= 65535:
            result.add_error("config.port", f"Port out of range: {port_number}")

    @staticmethod
    def _validate_sqlite(options: Dict[str, Any], result: ValidationResult) -> None:
        path = options.get("path")
        if not isinstance(path, str) or not path.strip():
            result.add_error("config.path", "Database path is required", code="required")
            return
        if not Path(path).expanduser().exists():
            result.add_warning("config.path", f"Database file does not exist yet: {path}", code="not_found")

    @staticmethod
    def _validate_custom(options: Dict[str, Any], result: ValidationResult) -> None:
        command = options.get("command")
        if not isinstance(command, str) or not command.strip():
            result.add_error("config.command", "Command is required", code="required")
        elif not command.startswith("@") and ("/" in command or "\\" in command):
            if not (os.path.isfile(command) and os.access(command, os.X_OK)) and shutil.which(command) is None:
                result.add_warning("config.command", f"Command not found or not executable: {command}", code="not_found")

        args = options.get("args")
        if args is not None and (not isinstance(args, list) or not all(isinstance(a, str) for a in args)):
            result.add_error("config.args", "Arguments must be a list of strings")

        env = options.get("env")
        if env is not None and (
            not isinstance(env, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in env.items())
        ):
            result.add_error("config.env", "Environment must map strings to strings")

    @staticmethod
    def _fingerprint(server_config: MCPServerConfig) -> str:
        payload = {
            "name": server_config.name,
            "type": str(getattr(server_config.type, "value", server_config.type)),
            "config": server_config.config,
        }
        return json.dumps(payload, sort_keys=True, default=str)


def format_validation_errors(validator: IServerConfigValidator, result: ValidationResult) -> Optional[str]:
    """검증 실패 메시지를 한 줄로 합친다 (유효하면 None)"""
    if result.valid:
        return None
    return "; ".join(validator.get_error_messages(result.errors))
