from __future__ import annotations

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from mcphost_core.mcp.command_builder import ServerCommand
from mcphost_core.mcp.exceptions import MCPProcessSpawnError, MCPProtocolTimeoutError
from mcphost_core.mcp.process.mcp_process import MCPProcess
from mcphost_core.util.logger import setup_logger

logger = setup_logger("process_supervisor") or logging.getLogger("process_supervisor")

ServerExitCallback = Callable[[str, Optional[int]], None]


@dataclass
class CompletedRun:
    """일회성 실행 결과"""

    returncode: Optional[int]
    stdout: bytes
    stderr: bytes

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace").strip()


class ProcessSupervisor:
    """서버 ID 와 실행 중인 프로세스의 대응을 관리한다.

    ID 하나에 프로세스는 최대 하나만 등록된다.
    같은 ID 로 다시 실행하면 기존 프로세스를 먼저 제거하고 종료시킨다.
    """

    def __init__(self, kill_timeout: float = 5.0, stderr_limit: int = 64 * 1024) -> None:
        self.kill_timeout = kill_timeout
        self.stderr_limit = stderr_limit
        self._processes: Dict[str, MCPProcess] = {}

    async def spawn(
        self,
        server_id: str,
        command: ServerCommand,
        on_exit: Optional[ServerExitCallback] = None,
    ) -> MCPProcess:
        """서버 프로세스 실행 및 등록

        Raises:
            MCPProcessSpawnError: 실행 파일을 시작하지 못한 경우
        """
        if server_id in self._processes:
            logger.warning("이미 실행 중인 프로세스를 종료하고 다시 시작합니다: %s", server_id)
            await self.terminate(server_id)

        process = await self._start(command)

        def _handle_exit(live: MCPProcess, returncode: Optional[int]) -> None:
            if self._processes.get(server_id) is live:
                del self._processes[server_id]
            logger.warning("MCP 서버 프로세스가 예기치 않게 종료됨: %s (code=%s)", server_id, returncode)
            if on_exit is not None:
                on_exit(server_id, returncode)

        live = MCPProcess(server_id, command, process, stderr_limit=self.stderr_limit, on_exit=_handle_exit)
        self._processes[server_id] = live
        logger.info("MCP 서버 프로세스 시작: %s (pid=%s) %s", server_id, live.pid, command.display())
        return live

    async def terminate(self, server_id: str) -> bool:
        """프로세스 등록 해제 후 종료 (SIGTERM → SIGKILL)

        Returns:
            종료할 프로세스가 있었는지 여부
        """
        live = self._processes.pop(server_id, None)
        if live is None:
            return False
        returncode = await live.terminate(self.kill_timeout)
        logger.info("MCP 서버 프로세스 중지: %s (code=%s)", server_id, returncode)
        return True

    async def terminate_all(self) -> None:
        """모든 프로세스 종료"""
        server_ids = list(self._processes.keys())
        results = await asyncio.gather(*(self.terminate(sid) for sid in server_ids), return_exceptions=True)
        for server_id, result in zip(server_ids, results):
            if isinstance(result, Exception):
                logger.error("MCP 서버 프로세스 종료 실패 %s: %s", server_id, result)

    async def run_once(self, command: ServerCommand, input_data: bytes, timeout: float) -> CompletedRun:
        """등록하지 않는 일회성 실행

        입력을 쓰고 stdin 을 닫은 뒤 종료까지 기다린다.

        Raises:
            MCPProcessSpawnError: 실행 실패
            MCPProtocolTimeoutError: 제한 시간 안에 종료되지 않음
        """
        process = await self._start(command)
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(input_data), timeout)
        except asyncio.TimeoutError as exc:
            raise MCPProtocolTimeoutError(timeout) from exc
        finally:
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
        return CompletedRun(process.returncode, stdout, stderr)

    def get(self, server_id: str) -> Optional[MCPProcess]:
        return self._processes.get(server_id)

    def has(self, server_id: str) -> bool:
        return server_id in self._processes

    def server_ids(self) -> List[str]:
        return list(self._processes.keys())

    def __len__(self) -> int:
        return len(self._processes)

    async def _start(self, command: ServerCommand) -> asyncio.subprocess.Process:
        env = {**os.environ, **command.env}
        # Windows 의 npx.cmd 같은 래퍼를 찾기 위해 PATH 로 먼저 해석한다
        executable = shutil.which(command.command, path=env.get("PATH")) or command.command
        try:
            return await asyncio.create_subprocess_exec(
                executable,
                *command.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as exc:
            logger.error("MCP 서버 프로세스 시작 실패: %s (%s)", command.display(), exc)
            raise MCPProcessSpawnError(command.command, exc) from exc
