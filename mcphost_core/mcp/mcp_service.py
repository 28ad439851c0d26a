"""
MCP 서버 연결 서비스

설정 저장소, 명령 생성, 프로세스 관리, 상태 지표를 묶어
서버 하나하나의 연결 수명주기를 조정한다.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from mcphost_core.config.app_paths import ApplicationPaths
from mcphost_core.config.settings import MCPServiceSettings
from mcphost_core.mcp.command_builder import ServerCommand, build_server_command
from mcphost_core.mcp.config.mcp_config_store import MCPConfigStore
from mcphost_core.mcp.exceptions import (
    MCPConfigurationError,
    MCPProcessSpawnError,
    MCPProtocolTimeoutError,
    MCPRuntimeExitError,
    MCPServerNotFoundError,
    MCPServiceError,
)
from mcphost_core.mcp.health_tracker import HealthTracker
from mcphost_core.mcp.models.mcp_connection_health import MCPConnectionHealth
from mcphost_core.mcp.models.mcp_server import (
    ConnectionProgress,
    InitializationReport,
    MCPConnectionResult,
    MCPServerConfig,
    MCPServerState,
    MCPServerTool,
    MCPServerType,
    ProgressCallback,
)
from mcphost_core.mcp.process.process_supervisor import ProcessSupervisor
from mcphost_core.mcp.protocol.json_rpc import JsonRpcFramer, build_tools_list_request, find_tools
from mcphost_core.mcp.validation.mcp_server_validator import (
    IServerConfigValidator,
    MCPServerValidator,
    ValidationResult,
    format_validation_errors,
)
from mcphost_core.util.logger import setup_logger

logger = setup_logger("mcp_service") or logging.getLogger("mcp_service")

UPDATABLE_FIELDS = ("name", "type", "enabled", "config")
PERSISTED_FIELDS = ("name", "type", "enabled", "config", "created_at", "updated_at")
RUNTIME_FIELDS = ("status", "tools", "last_connected", "error_message")


class MCPService:
    """MCP 서버 연결 조정자

    서버 ID 마다 ``asyncio.Lock`` 하나를 두어 연결/해제/테스트/삭제가
    같은 ID 에 대해 동시에 진행되지 않도록 한다.
    """

    def __init__(
        self,
        paths: Optional[ApplicationPaths] = None,
        settings: Optional[MCPServiceSettings] = None,
        validator: Optional[IServerConfigValidator] = None,
        supervisor: Optional[ProcessSupervisor] = None,
        health_tracker: Optional[HealthTracker] = None,
        config_store: Optional[MCPConfigStore] = None,
    ) -> None:
        self.paths = paths or ApplicationPaths()
        self.settings = settings or MCPServiceSettings.from_env()
        self.validator = validator or MCPServerValidator()
        self.supervisor = supervisor or ProcessSupervisor(
            kill_timeout=self.settings.kill_timeout,
            stderr_limit=self.settings.stderr_limit,
        )
        self.health = health_tracker or HealthTracker()
        self.config_store = config_store or MCPConfigStore(
            self.paths.config_file(self.settings.config_file_name),
            home_dir=self.paths.home_dir,
        )

        self._servers: Dict[str, MCPServerConfig] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._loaded = False

    # ------------------------------------------------------------------
    # 설정 목록
    # ------------------------------------------------------------------
    def load_servers(self) -> List[MCPServerConfig]:
        """설정 파일에서 서버 목록 로드

        이미 실행 중인 서버는 런타임 상태(status, tools)를 유지한다.
        """
        self._merge_servers(self.config_store.load())
        self._loaded = True
        logger.info("MCP 서버 %d개 로드", len(self._servers))
        return self.get_server_configs()

    def save_servers(self, servers: Optional[Sequence[MCPServerConfig]] = None) -> None:
        """서버 목록 저장 (전체 덮어쓰기)

        Args:
            servers: 저장할 목록. 주어지면 메모리 상의 목록도 교체한다.

        Raises:
            OSError: 파일 쓰기 실패
        """
        if servers is not None:
            self._merge_servers(servers)
            self._loaded = True
        self.config_store.save(list(self._servers.values()))

    def _merge_servers(self, servers: Sequence[MCPServerConfig]) -> None:
        """새 목록으로 교체하되 이미 있는 ID 는 기존 객체를 갱신한다.

        진행 중인 연결 흐름이 같은 객체를 계속 수정하므로 객체를 바꿔 끼우지 않는다.
        실행 중이거나 연결 중인 서버는 런타임 상태를 유지한다.
        """
        merged: Dict[str, MCPServerConfig] = {}
        for server in servers:
            current = self._servers.get(server.id)
            if current is None or current is server:
                merged[server.id] = server
                continue

            in_use = self.supervisor.has(server.id) or current.status.is_pending
            fields = PERSISTED_FIELDS if in_use else PERSISTED_FIELDS + RUNTIME_FIELDS
            for name in fields:
                setattr(current, name, getattr(server, name))
            for key, value in (server.model_extra or {}).items():
                setattr(current, key, value)
            merged[server.id] = current
        self._servers = merged

    def _persist(self) -> None:
        """런타임 상태 변경 저장 - 실패해도 연결 흐름은 계속된다"""
        try:
            self.config_store.save(list(self._servers.values()))
        except OSError as exception:
            logger.warning("MCP 서버 상태 저장 실패: %s", exception)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load_servers()

    def get_server(self, server_id: str) -> MCPServerConfig:
        """서버 설정 조회

        Raises:
            MCPServerNotFoundError: 존재하지 않는 ID
        """
        self._ensure_loaded()
        server = self._servers.get(server_id)
        if server is None:
            raise MCPServerNotFoundError(server_id)
        return server

    def get_server_configs(self) -> List[MCPServerConfig]:
        """서버 설정 목록 (연결 지표 포함 사본)"""
        self._ensure_loaded()
        configs = []
        for server in self._servers.values():
            copy = server.model_copy(deep=True)
            copy.connection_health = self.health.snapshot(server.id)
            configs.append(copy)
        return configs

    def get_servers_by_type(self, server_type: Union[MCPServerType, str]) -> List[MCPServerConfig]:
        """종류별 서버 목록"""
        wanted = MCPServerType(server_type).value
        return [c for c in self.get_server_configs() if getattr(c.type, "value", c.type) == wanted]

    def get_connection_health(self, server_id: str) -> Optional[MCPConnectionHealth]:
        """연결 지표 사본 (연결 시도 기록이 없으면 None)"""
        return self.health.snapshot(server_id)

    def get_connected_server_ids(self) -> List[str]:
        """프로세스가 등록되어 있는 서버 ID 목록"""
        return self.supervisor.server_ids()

    def add_server(
        self,
        name: str,
        server_type: Union[MCPServerType, str],
        config: Optional[Dict[str, Any]] = None,
        enabled: bool = False,
    ) -> MCPServerConfig:
        """새 서버 설정 추가 후 저장

        Raises:
            OSError: 저장 실패
        """
        self._ensure_loaded()
        now = datetime.now()
        server = MCPServerConfig(
            id=f"mcp_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
            name=name,
            type=server_type,
            enabled=enabled,
            config=dict(config or {}),
            status=MCPServerState.DISCONNECTED,
            tools=[],
            created_at=now,
            updated_at=now,
        )
        self._servers[server.id] = server
        self.save_servers()
        logger.info("MCP 서버 추가: %s (%s)", server.name, server.id)
        return server

    def update_server(self, server_id: str, **changes: Any) -> MCPServerConfig:
        """서버 설정 일부 수정 후 저장

        수정 가능한 필드: name, type, enabled, config

        Raises:
            MCPServerNotFoundError: 존재하지 않는 ID
            ValueError: 수정할 수 없는 필드
            OSError: 저장 실패
        """
        server = self.get_server(server_id)
        unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(unknown)}")

        for key, value in changes.items():
            setattr(server, key, value)
        server.touch()
        self.save_servers()
        logger.info("MCP 서버 수정: %s (%s)", server.name, ", ".join(changes) or "-")
        return server

    async def delete_server(self, server_id: str) -> None:
        """서버 삭제 - 실행 중이면 먼저 연결을 끊는다

        Raises:
            MCPServerNotFoundError: 존재하지 않는 ID
            OSError: 저장 실패
        """
        self.get_server(server_id)
        # 잠금은 삭제 후에도 남겨 둔다. 대기 중인 호출이 같은 잠금을 이어받아야 한다
        async with self._lock_for(server_id):
            server = self._servers.get(server_id)
            if server is None:
                return
            await self._disconnect_locked(server)
            self._servers.pop(server_id, None)
            self.health.reset(server_id)
            self.save_servers()
        logger.info("MCP 서버 삭제: %s (%s)", server.name, server_id)

    async def toggle_server(
        self, server_id: str, enabled: bool, progress: Optional[ProgressCallback] = None
    ) -> MCPConnectionResult:
        """서버 활성화 여부 전환

        활성화하면 연결하고, 비활성화하면 연결을 끊는다.
        연결에 실패해도 활성화 상태는 저장된다.
        """
        if enabled:
            result = await self.connect_server(server_id, progress)
        else:
            await self.disconnect_server(server_id)
            result = MCPConnectionResult.ok(self.get_server(server_id).tools)
        if server_id in self._servers:
            self.update_server(server_id, enabled=enabled)
        return result

    # ------------------------------------------------------------------
    # 검증
    # ------------------------------------------------------------------
    def validate_server_config(self, server_config: MCPServerConfig) -> ValidationResult:
        """서버 설정 검증"""
        return self.validator.validate(server_config)

    def clear_validation_cache(self) -> None:
        self.validator.clear_cache()

    def _prepare(self, server_config: MCPServerConfig) -> ServerCommand:
        """검증 후 실행 명령 생성

        Raises:
            MCPConfigurationError: 검증 또는 명령 생성 실패
        """
        result = self.validator.validate(server_config)
        if not result.valid:
            detail = format_validation_errors(self.validator, result)
            logger.error("서버 설정 검증 실패 %s: %s", server_config.name, detail)
            raise MCPConfigurationError(
                f"Configuration validation failed: {detail}",
                self.validator.get_error_messages(result.errors),
            )
        for warning in self.validator.get_warning_messages(result.warnings):
            logger.warning("서버 설정 경고 %s: %s", server_config.name, warning)
        return build_server_command(server_config)

    # ------------------------------------------------------------------
    # 연결 테스트
    # ------------------------------------------------------------------
    async def test_connection(self, server_config: MCPServerConfig) -> MCPConnectionResult:
        """일회성 연결 테스트

        프로세스를 실행해 tools/list 요청을 쓰고 stdin 을 닫은 뒤 종료를 기다린다.
        등록된 연결이나 연결 지표에는 영향을 주지 않는다.
        """
        try:
            command = self._prepare(server_config)
        except MCPConfigurationError as exception:
            return MCPConnectionResult.failed(str(exception))

        async with self._lock_for(server_config.id):
            logger.info("MCP 서버 연결 테스트: %s (%s)", server_config.name, command.display())
            try:
                run = await self.supervisor.run_once(
                    command, build_tools_list_request(1), self.settings.test_timeout
                )
            except MCPProcessSpawnError as exception:
                return MCPConnectionResult.failed(str(exception))
            except MCPProtocolTimeoutError:
                logger.warning("MCP 서버 연결 테스트 시간 초과: %s", server_config.name)
                return MCPConnectionResult.failed("Connection test timed out")

        if run.returncode != 0:
            error = MCPRuntimeExitError(run.returncode, run.stderr_text)
            logger.warning("MCP 서버 연결 테스트 실패 %s: %s", server_config.name, error)
            return MCPConnectionResult.failed(str(error))

        tools = self._to_tools(find_tools(JsonRpcFramer.parse_output(run.stdout)))
        logger.info("MCP 서버 연결 테스트 성공: %s (도구 %d개)", server_config.name, len(tools))
        return MCPConnectionResult.ok(tools)

    # ------------------------------------------------------------------
    # 연결 / 해제
    # ------------------------------------------------------------------
    async def connect_server(
        self, server_id: str, progress: Optional[ProgressCallback] = None
    ) -> MCPConnectionResult:
        """서버 연결

        기존 연결이 있으면 같은 잠금 안에서 먼저 끊고 다시 연결한다.
        잠금을 기다리는 동안 서버가 삭제되면 실패 결과를 돌려준다.

        Raises:
            MCPServerNotFoundError: 존재하지 않는 ID
        """
        self.get_server(server_id)
        async with self._lock_for(server_id):
            server = self._servers.get(server_id)
            if server is None:
                return self._vanished(server_id)
            return await self._connect_locked(server, progress)

    async def _connect_locked(
        self, server: MCPServerConfig, progress: Optional[ProgressCallback]
    ) -> MCPConnectionResult:
        try:
            command = self._prepare(server)
        except MCPConfigurationError as exception:
            server.error_message = str(exception)
            return MCPConnectionResult.failed(str(exception))

        if self.supervisor.has(server.id):
            await self._disconnect_locked(server)

        logger.info("MCP 서버 연결 중: %s", server.name)
        started = time.monotonic()
        server.error_message = None
        self.health.record_attempt(server.id)
        self._set_status(server, MCPServerState.CONNECTING, progress, command.display())

        try:
            live = await asyncio.wait_for(
                self.supervisor.spawn(server.id, command, on_exit=self._handle_unexpected_exit),
                self.settings.connect_timeout,
            )
        except MCPProcessSpawnError as exception:
            return self._fail(server, str(exception), progress)
        except asyncio.TimeoutError:
            await self.supervisor.terminate(server.id)
            return self._fail(server, "Connection timed out", progress)

        self._set_status(server, MCPServerState.HANDSHAKING, progress, f"pid={live.pid}")
        try:
            raw_tools = await live.request_tools(self.settings.handshake_timeout)
        except MCPRuntimeExitError as exception:
            await self.supervisor.terminate(server.id)
            return self._fail(server, str(exception), progress)
        except MCPProtocolTimeoutError as exception:
            if not live.is_alive:
                await self.supervisor.terminate(server.id)
                return self._fail(server, str(MCPRuntimeExitError(live.returncode, live.stderr_text)), progress)
            logger.warning("도구 목록 응답 없음, 도구 없이 연결 유지: %s (%s)", server.name, exception)
            raw_tools = []

        tools = self._to_tools(raw_tools)
        server.tools = tools
        server.last_connected = datetime.now()
        self.health.record_success(server.id, (time.monotonic() - started) * 1000.0)
        status = MCPServerState.READY if tools else MCPServerState.CONNECTED
        self._set_status(server, status, progress, f"{len(tools)} tools")
        self._persist()

        logger.info("MCP 서버 연결 완료: %s (%s, 도구 %d개)", server.name, status.value, len(tools))
        return MCPConnectionResult.ok(tools)

    def _fail(
        self, server: MCPServerConfig, message: str, progress: Optional[ProgressCallback]
    ) -> MCPConnectionResult:
        logger.error("MCP 서버 연결 실패 %s: %s", server.name, message)
        server.error_message = message
        self.health.record_error(server.id, message)
        self._set_status(server, MCPServerState.ERROR, progress, message)
        self._persist()
        return MCPConnectionResult.failed(message)

    def _handle_unexpected_exit(self, server_id: str, returncode: Optional[int]) -> None:
        server = self._servers.get(server_id)
        if server is None or not server.status.is_live:
            # 연결 중 종료는 연결 흐름이 직접 처리한다
            return
        server.error_message = f"Process exited with code {returncode}; tool catalog may be stale"
        server.status = MCPServerState.DISCONNECTED
        self.health.mark_down(server_id)
        logger.warning("MCP 서버 연결 끊김: %s (code=%s)", server.name, returncode)

    async def disconnect_server(self, server_id: str) -> None:
        """서버 연결 해제 (SIGTERM, 응답 없으면 SIGKILL)

        Raises:
            MCPServerNotFoundError: 존재하지 않는 ID
        """
        self.get_server(server_id)
        async with self._lock_for(server_id):
            server = self._servers.get(server_id)
            if server is None:
                # 삭제 과정에서 이미 연결이 끊겼다
                return
            await self._disconnect_locked(server)

    async def _disconnect_locked(self, server: MCPServerConfig) -> None:
        terminated = await self.supervisor.terminate(server.id)
        self.health.mark_down(server.id)
        if terminated or server.status.is_live or server.status.is_pending:
            server.status = MCPServerState.DISCONNECTED
            server.error_message = None
            logger.info("MCP 서버 연결 해제: %s", server.name)

    async def disconnect_all(self) -> None:
        """모든 서버 연결 해제

        반환 이후에는 종료 콜백이 더 이상 호출되지 않는다.
        """
        server_ids = self.supervisor.server_ids()
        if not server_ids:
            return

        async def _disconnect(server_id: str) -> None:
            async with self._lock_for(server_id):
                server = self._servers.get(server_id)
                if server is None:
                    await self.supervisor.terminate(server_id)
                else:
                    await self._disconnect_locked(server)

        results = await asyncio.gather(*(_disconnect(sid) for sid in server_ids), return_exceptions=True)
        for server_id, result in zip(server_ids, results):
            if isinstance(result, Exception):
                logger.error("MCP 서버 연결 해제 실패 %s: %s", server_id, result)
        logger.info("MCP 서버 %d개 연결 해제", len(server_ids))

    # ------------------------------------------------------------------
    # 도구
    # ------------------------------------------------------------------
    async def get_server_tools(self, server_id: str) -> List[MCPServerTool]:
        """실행 중인 서버에 tools/list 를 다시 요청한다.

        연결되어 있지 않거나 응답이 없으면 경고를 남기고 빈 목록을 돌려준다.

        Raises:
            MCPServerNotFoundError: 존재하지 않는 ID
        """
        self.get_server(server_id)
        async with self._lock_for(server_id):
            if server_id not in self._servers:
                logger.warning("삭제된 서버의 도구 목록 요청: %s", server_id)
                return []
            try:
                return await self._request_tools_locked(server_id)
            except MCPServiceError as exception:
                logger.warning("도구 목록 요청 실패 %s: %s", server_id, exception)
                return []

    async def _request_tools_locked(self, server_id: str) -> List[MCPServerTool]:
        live = self.supervisor.get(server_id)
        if live is None:
            raise MCPServiceError(f"Server not connected: {server_id}")
        return self._to_tools(await live.request_tools(self.settings.handshake_timeout))

    async def refresh_server_tools(self, server_id: str) -> MCPConnectionResult:
        """연결된 서버의 도구 목록 갱신

        도구를 받으면 ready 로 전환하고 목록을 저장한다.
        """
        self.get_server(server_id)
        async with self._lock_for(server_id):
            server = self._servers.get(server_id)
            if server is None:
                return self._vanished(server_id)
            if not server.status.is_live:
                return MCPConnectionResult.failed(f"Server is not connected: {server.name}")
            try:
                tools = await self._request_tools_locked(server_id)
            except MCPServiceError as exception:
                logger.warning("도구 목록 갱신 실패 %s: %s", server.name, exception)
                return MCPConnectionResult.failed(str(exception))

            server.tools = tools
            if tools:
                server.status = MCPServerState.READY
            self._persist()
        logger.info("도구 목록 갱신: %s (%d개)", server.name, len(tools))
        return MCPConnectionResult.ok(tools)

    # ------------------------------------------------------------------
    # 자동 연결
    # ------------------------------------------------------------------
    async def connect_enabled_servers(self, progress: Optional[ProgressCallback] = None) -> InitializationReport:
        """활성화된 서버를 순서대로 연결

        Returns:
            모두 성공 ready, 일부 실패 partial, 모두 실패 failed
        """
        self._ensure_loaded()
        report = InitializationReport()
        enabled = [server.id for server in self._servers.values() if server.enabled]
        for server_id in enabled:
            result = await self.connect_server(server_id, progress)
            if result.success:
                report.connected.append(server_id)
            else:
                report.failed[server_id] = result.error or "Connection failed"

        if report.failed and not report.connected:
            report.state = "failed"
        elif report.failed:
            report.state = "partial"
        logger.info(
            "활성 MCP 서버 자동 연결: %s (성공 %d, 실패 %d)", report.state, len(report.connected), len(report.failed)
        )
        return report

    # ------------------------------------------------------------------
    # 내부 도우미
    # ------------------------------------------------------------------
    def _lock_for(self, server_id: str) -> asyncio.Lock:
        return self._locks.setdefault(server_id, asyncio.Lock())

    @staticmethod
    def _vanished(server_id: str) -> MCPConnectionResult:
        logger.warning("잠금을 기다리는 동안 서버가 삭제됨: %s", server_id)
        return MCPConnectionResult.failed(f"Server configuration not found: {server_id}")

    @staticmethod
    def _set_status(
        server: MCPServerConfig,
        status: MCPServerState,
        progress: Optional[ProgressCallback],
        message: str = "",
    ) -> None:
        server.status = status
        if progress is None:
            return
        try:
            progress(ConnectionProgress(server_id=server.id, status=status, message=message))
        except Exception as exception:  # pylint: disable=broad-except
            logger.error("진행 상황 콜백 오류 (%s): %s", server.id, exception)

    @staticmethod
    def _to_tools(raw_tools: Sequence[Any]) -> List[MCPServerTool]:
        tools: List[MCPServerTool] = []
        for raw in raw_tools:
            if isinstance(raw, MCPServerTool):
                tools.append(raw)
                continue
            if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
                logger.debug("도구 정보 형식 오류 무시: %.200s", raw)
                continue
            try:
                tools.append(MCPServerTool.model_validate(raw))
            except ValueError as exception:
                logger.debug("도구 정보 변환 실패 %s: %s", raw.get("name"), exception)
        return tools

    async def __aenter__(self) -> "MCPService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect_all()
