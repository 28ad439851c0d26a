from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, List, Optional

from mcphost_core.mcp.command_builder import ServerCommand
from mcphost_core.mcp.exceptions import MCPProtocolTimeoutError, MCPRuntimeExitError
from mcphost_core.mcp.protocol.json_rpc import JsonRpcFramer, build_tools_list_request, extract_tools
from mcphost_core.util.logger import setup_logger

logger = setup_logger("mcp_process") or logging.getLogger("mcp_process")

READ_CHUNK_SIZE = 4096
PIPE_DRAIN_TIMEOUT = 1.0

_EOF = object()

ExitCallback = Callable[["MCPProcess", Optional[int]], None]


class MCPProcess:
    """실행 중인 MCP 서버 프로세스 하나를 감싼다.

    stdout 은 백그라운드 태스크가 읽어 프레이머에 넘기고, 완성된 메시지는 큐에 쌓인다.
    종료를 요청하지 않았는데 프로세스가 끝나면 ``on_exit`` 콜백을 한 번 호출한다.
    """

    def __init__(
        self,
        server_id: str,
        command: ServerCommand,
        process: asyncio.subprocess.Process,
        stderr_limit: int = 64 * 1024,
        on_exit: Optional[ExitCallback] = None,
    ) -> None:
        self.server_id = server_id
        self.command = command
        self.process = process
        self.registered_at = datetime.now()
        self.framer = JsonRpcFramer()

        self._messages: asyncio.Queue = asyncio.Queue()
        self._stderr = bytearray()
        self._stderr_limit = stderr_limit
        self._on_exit = on_exit
        self._closing = False
        self._eof = False
        self._request_id = 0

        self._stdout_task = asyncio.create_task(self._pump_stdout())
        self._stderr_task = asyncio.create_task(self._pump_stderr())
        self._watch_task = asyncio.create_task(self._watch())

    # ---------------------------------------------------------------------
    # 상태
    # ---------------------------------------------------------------------
    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    @property
    def is_alive(self) -> bool:
        """프로세스가 실행 중인지 여부"""
        return self.process.returncode is None

    @property
    def closing(self) -> bool:
        return self._closing

    @property
    def buffer(self) -> str:
        """아직 메시지로 완성되지 않은 stdout"""
        return self.framer.buffer

    @property
    def stderr_text(self) -> str:
        return self._stderr.decode("utf-8", errors="replace").strip()

    # ---------------------------------------------------------------------
    # 프로토콜
    # ---------------------------------------------------------------------
    async def send(self, data: bytes) -> None:
        """stdin 으로 데이터 전송

        Raises:
            MCPRuntimeExitError: 프로세스가 이미 종료되어 쓸 수 없는 경우
        """
        stdin = self.process.stdin
        if stdin is None or stdin.is_closing() or self._closing:
            raise MCPRuntimeExitError(await self._exit_code(), self.stderr_text)
        try:
            stdin.write(data)
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise MCPRuntimeExitError(await self._exit_code(), self.stderr_text) from exc

    async def _exit_code(self) -> Optional[int]:
        # 파이프가 닫힌 직후에는 아직 종료 코드가 수거되지 않았을 수 있다
        try:
            return await asyncio.wait_for(self.process.wait(), PIPE_DRAIN_TIMEOUT)
        except asyncio.TimeoutError:
            return self.process.returncode

    async def request_tools(self, timeout: float) -> List[Any]:
        """``tools/list`` 요청을 보내고 응답의 tools 배열을 기다린다.

        Raises:
            MCPProtocolTimeoutError: 제한 시간 안에 응답 없음
            MCPRuntimeExitError: 응답 전에 프로세스 종료
        """
        self._discard_pending()
        self._request_id += 1
        await self.send(build_tools_list_request(self._request_id))
        try:
            return await asyncio.wait_for(self._await_tools(), timeout)
        except asyncio.TimeoutError as exc:
            raise MCPProtocolTimeoutError(timeout) from exc

    async def _await_tools(self) -> List[Any]:
        while True:
            if self._eof:
                returncode = await self.process.wait()
                raise MCPRuntimeExitError(returncode, self.stderr_text)
            message = await self._messages.get()
            if message is _EOF:
                self._eof = True
                continue
            tools = extract_tools(message)
            if tools is not None:
                return tools
            logger.debug("tools 가 없는 메시지 무시 (%s): %.200s", self.server_id, message)

    def _discard_pending(self) -> None:
        while not self._messages.empty():
            if self._messages.get_nowait() is _EOF:
                self._eof = True

    # ---------------------------------------------------------------------
    # 종료
    # ---------------------------------------------------------------------
    async def terminate(self, kill_timeout: float) -> Optional[int]:
        """SIGTERM 후 ``kill_timeout`` 안에 끝나지 않으면 SIGKILL"""
        self._closing = True
        if self.process.returncode is None:
            try:
                self.process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(self.process.wait(), kill_timeout)
            except asyncio.TimeoutError:
                logger.warning("MCP 서버가 SIGTERM 에 응답하지 않아 강제 종료합니다: %s (pid=%s)", self.server_id, self.pid)
                try:
                    self.process.kill()
                except ProcessLookupError:
                    pass
                await self.process.wait()

        await self._watch_task
        return self.process.returncode

    # ---------------------------------------------------------------------
    # 백그라운드 태스크
    # ---------------------------------------------------------------------
    async def _pump_stdout(self) -> None:
        stdout = self.process.stdout
        if stdout is None:
            self._messages.put_nowait(_EOF)
            return
        try:
            while True:
                chunk = await stdout.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                for message in self.framer.feed(chunk):
                    self._messages.put_nowait(message)
            for message in self.framer.flush():
                self._messages.put_nowait(message)
        finally:
            self._messages.put_nowait(_EOF)

    async def _pump_stderr(self) -> None:
        stderr = self.process.stderr
        if stderr is None:
            return
        while True:
            chunk = await stderr.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            self._stderr.extend(chunk)
            overflow = len(self._stderr) - self._stderr_limit
            if overflow > 0:
                del self._stderr[:overflow]

    async def _watch(self) -> None:
        returncode = await self.process.wait()

        # 자식 프로세스가 파이프를 물고 있으면 EOF 가 오지 않을 수 있다
        pumps = [self._stdout_task, self._stderr_task]
        _, pending = await asyncio.wait(pumps, timeout=PIPE_DRAIN_TIMEOUT)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        logger.debug("MCP 서버 프로세스 종료: %s (code=%s)", self.server_id, returncode)
        if self._closing or self._on_exit is None:
            return
        try:
            self._on_exit(self, returncode)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("종료 콜백 처리 중 오류 (%s): %s", self.server_id, exc)

    def __repr__(self) -> str:
        return f"MCPProcess(server_id={self.server_id!r}, pid={self.pid}, returncode={self.returncode})"
