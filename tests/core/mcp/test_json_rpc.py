import json

import pytest

from mcphost_core.mcp.exceptions import MCPProtocolParseError
from mcphost_core.mcp.protocol.json_rpc import (
    JsonRpcFramer,
    build_tools_list_request,
    decode_message,
    extract_tools,
    find_tools,
)

TOOLS_RESPONSE = {"jsonrpc": "2.0", "id": 1, "result": {"tools": [{"name": "x", "description": "d", "inputSchema": {}}]}}


class TestToolsListRequest:
    def test_exact_bytes(self):
        assert build_tools_list_request(1) == b'{"jsonrpc":"2.0","id":1,"method":"tools/list"}\n'

    def test_request_id(self):
        assert json.loads(build_tools_list_request(7))["id"] == 7


class TestExtractTools:
    def test_tools_array(self):
        assert extract_tools(TOOLS_RESPONSE) == TOOLS_RESPONSE["result"]["tools"]

    def test_not_a_tools_response(self):
        assert extract_tools({"result": {}}) is None
        assert extract_tools({"result": {"tools": "nope"}}) is None
        assert extract_tools({"error": {"code": -32601}}) is None
        assert extract_tools(["not", "a", "dict"]) is None

    def test_find_tools_falls_back_to_empty(self):
        assert find_tools([{"method": "notifications/initialized"}]) == []
        assert find_tools([]) == []

    def test_find_tools_first_match(self):
        second = {"result": {"tools": [{"name": "y"}]}}
        assert find_tools([{"id": 0}, TOOLS_RESPONSE, second]) == TOOLS_RESPONSE["result"]["tools"]


class TestJsonRpcFramer:
    """스트림 프레이밍 테스트"""

    def test_single_line(self):
        framer = JsonRpcFramer()

        messages = framer.feed((json.dumps(TOOLS_RESPONSE) + "\n").encode())

        assert messages == [TOOLS_RESPONSE]
        assert framer.buffer == ""

    def test_partial_writes(self):
        """한 메시지가 여러 조각으로 나뉘어 도착"""
        framer = JsonRpcFramer()
        data = json.dumps(TOOLS_RESPONSE)

        assert framer.feed(data[:10]) == []
        assert framer.feed(data[10:30]) == []
        assert framer.feed(data[30:] + "\n") == [TOOLS_RESPONSE]

    def test_unterminated_complete_object_is_emitted(self):
        framer = JsonRpcFramer()

        assert framer.feed(json.dumps(TOOLS_RESPONSE)) == [TOOLS_RESPONSE]
        assert framer.buffer == ""
        assert framer.feed("\n") == []

    def test_multiple_messages_in_one_chunk(self):
        framer = JsonRpcFramer()
        chunk = '{"id":1}\n{"id":2}\n{"id":'

        assert framer.feed(chunk) == [{"id": 1}, {"id": 2}]
        assert framer.buffer == '{"id":'
        assert framer.feed("3}\n") == [{"id": 3}]

    def test_noise_is_dropped(self):
        framer = JsonRpcFramer()

        messages = framer.feed(b"Starting server on stdio\n[1, 2]\n" + json.dumps(TOOLS_RESPONSE).encode() + b"\n")

        assert messages == [TOOLS_RESPONSE]

    def test_multibyte_character_split_across_chunks(self):
        framer = JsonRpcFramer()
        data = json.dumps({"result": {"tools": [{"name": "검색"}]}}, ensure_ascii=False).encode("utf-8") + b"\n"
        split = data.index("검".encode("utf-8")) + 1

        assert framer.feed(data[:split]) == []
        assert framer.feed(data[split:]) == [{"result": {"tools": [{"name": "검색"}]}}]

    def test_flush_and_reset(self):
        framer = JsonRpcFramer()
        framer.feed('{"id":')

        assert framer.flush() == []
        assert framer.buffer == ""

        framer.feed("garbage")
        framer.reset()
        assert framer.buffer == ""

    def test_parse_output_batch(self):
        output = b"log line\n" + json.dumps(TOOLS_RESPONSE).encode()

        messages = JsonRpcFramer.parse_output(output)

        assert find_tools(messages) == TOOLS_RESPONSE["result"]["tools"]

    def test_parse_output_without_json(self):
        assert JsonRpcFramer.parse_output("hello\nworld\n") == []


class TestDecodeMessage:
    def test_object(self):
        assert decode_message('  {"id": 1}\r') == {"id": 1}

    @pytest.mark.parametrize("text", ["not json", "[1, 2]", '"text"', '{"id":'])
    def test_rejects_non_objects(self, text):
        with pytest.raises(MCPProtocolParseError):
            decode_message(text)
