"""
JSON-RPC 메시지 프레이머

도구 서버 stdout 의 원시 바이트/문자열을 받아 완성된 JSON 객체 단위로 돌려준다.
부분 쓰기(partial write)와 JSON 이 아닌 잡음 출력은 조용히 무시한다.
"""

import codecs
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from mcphost_core.mcp.exceptions import MCPProtocolParseError
from mcphost_core.util.logger import setup_logger

logger = setup_logger("json_rpc") or logging.getLogger("json_rpc")

JSONRPC_VERSION = "2.0"
TOOLS_LIST_METHOD = "tools/list"

JsonMessage = Dict[str, Any]


def build_tools_list_request(request_id: int) -> bytes:
    """``tools/list`` 요청 한 줄 (개행 포함) 생성"""
    payload = {"jsonrpc": JSONRPC_VERSION, "id": request_id, "method": TOOLS_LIST_METHOD}
    return (json.dumps(payload, separators=(",", ":")) + "\n").encode("utf-8")


def extract_tools(message: Any) -> Optional[List[Any]]:
    """응답 메시지에서 ``result.tools`` 배열 추출 (없으면 None)"""
    if not isinstance(message, dict):
        return None
    result = message.get("result")
    if isinstance(result, dict) and isinstance(result.get("tools"), list):
        return result["tools"]
    return None


def find_tools(messages: Iterable[Any]) -> List[Any]:
    """첫 번째 tools 배열 반환, 없으면 빈 목록"""
    for message in messages:
        tools = extract_tools(message)
        if tools is not None:
            return tools
    return []


def decode_message(text: str) -> JsonMessage:
    """한 줄을 JSON-RPC 메시지(객체)로 해석

    Raises:
        MCPProtocolParseError: JSON 이 아니거나 객체가 아닌 경우
    """
    text = text.strip()
    try:
        message = json.loads(text)
    except ValueError as exc:
        raise MCPProtocolParseError(f"Invalid JSON: {text[:200]}") from exc
    if not isinstance(message, dict):
        raise MCPProtocolParseError(f"Expected a JSON object: {text[:200]}")
    return message


class JsonRpcFramer:
    """스트림 버퍼링과 메시지 디코딩을 담당

    - 개행으로 끝난 줄은 한 줄씩 JSON 으로 해석한다.
    - 아직 개행이 오지 않은 나머지 버퍼가 이미 완전한 JSON 객체라면 그것도 내보낸다.
    - 해석에 실패한 줄은 버린다 (타임아웃이 실패를 드러낸다).
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def buffer(self) -> str:
        """아직 소비되지 않은 출력"""
        return self._buffer

    def feed(self, chunk: Union[bytes, str]) -> List[JsonMessage]:
        """출력 조각을 추가하고 완성된 메시지들을 반환"""
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk

        messages: List[JsonMessage] = []
        while "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            message = self._decode(line)
            if message is not None:
                messages.append(message)

        pending = self._decode(self._buffer, quiet=True)
        if pending is not None:
            messages.append(pending)
            self._buffer = ""

        return messages

    def flush(self) -> List[JsonMessage]:
        """스트림 종료 시 남은 버퍼 처리"""
        remainder = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        message = self._decode(remainder)
        return [message] if message is not None else []

    def reset(self) -> None:
        self._decoder.reset()
        self._buffer = ""

    @classmethod
    def parse_output(cls, output: Union[bytes, str]) -> List[JsonMessage]:
        """전체 캡처 출력을 줄 단위로 해석 (일괄 모드)"""
        framer = cls()
        messages = framer.feed(output)
        messages.extend(framer.flush())
        return messages

    @staticmethod
    def _decode(text: str, quiet: bool = False) -> Optional[JsonMessage]:
        if not text.strip():
            return None
        try:
            return decode_message(text)
        except MCPProtocolParseError as exc:
            if not quiet:
                logger.debug("JSON-RPC 메시지가 아닌 출력 무시: %s", exc)
            return None
