"""Tests for response decoding"""

import json

import pytest

from conftest import rpc_error, rpc_result, sse_body
from mcp_bridge.codec import decode_event_stream, decode_response
from mcp_bridge.exceptions import ParseError


class TestDecodeResponse:
    """Plain JSON and event-stream bodies decode to the same response"""

    @pytest.mark.parametrize(
        "payload",
        [
            rpc_result({"tools": [{"name": "search"}]}, id="tools-1"),
            rpc_result(None, id=7),
            rpc_error(-32000, "bad", id="x"),
        ],
    )
    def test_both_encodings_agree(self, payload):
        """Test JSON and framing of the same payload decode identically"""
        from_json = decode_response(json.dumps(payload))
        from_sse = decode_response(sse_body(payload, frame_id="ignored"))

        assert from_json.model_dump() == from_sse.model_dump()

    def test_json_result(self):
        """Test plain JSON success payload"""
        response = decode_response('  {"jsonrpc": "2.0", "id": 1, "result": {"ok": true}}\n')

        assert response.id == 1
        assert response.result == {"ok": True}
        assert not response.is_error

    def test_sse_error(self):
        """Test framed error payload"""
        body = 'data: {"jsonrpc":"2.0","id":"x","error":{"code":-32000,"message":"bad"}}'
        response = decode_response(body)

        assert response.is_error
        assert response.error.code == -32000
        assert response.error.message == "bad"

    def test_frame_id_attached_when_payload_has_none(self):
        """Test out-of-band id fills a missing correlation id"""
        payload = {"jsonrpc": "2.0", "result": {}}
        response = decode_response(sse_body(payload, frame_id="42"))

        assert response.id == "42"

    def test_payload_id_wins_over_frame_id(self):
        """Test framing id does not replace the payload's own id"""
        response = decode_response(sse_body(rpc_result({}, id="abc"), frame_id="42"))

        assert response.id == "abc"

    def test_crlf_framing(self):
        """Test framing with CRLF line endings"""
        body = sse_body(rpc_result({"n": 1})).replace("\n", "\r\n")

        assert decode_response(body).result == {"n": 1}

    def test_broken_json_falls_back_to_framing(self):
        """Test a body starting with '{' that is not JSON is read as framing"""
        body = "{not json\n" + sse_body(rpc_result({"n": 2}))

        assert decode_response(body).result == {"n": 2}

    def test_last_data_line_wins(self):
        """Test the last data line carries the response"""
        body = sse_body(rpc_result({"n": 1})) + sse_body(rpc_result({"n": 2}))

        assert decode_response(body).result == {"n": 2}

    @pytest.mark.parametrize("separator", ["\u2028", "\u2029", "\x85"])
    def test_unicode_line_separators_inside_strings(self, separator):
        """Test raw Unicode separators in a JSON string do not split the data line"""
        payload = rpc_result({"text": f"a{separator}b"}, id="1")
        data = json.dumps(payload, ensure_ascii=False)

        from_sse = decode_response(f"event: message\nid: 1\ndata: {data}\n\n")
        from_json = decode_response(data)

        assert from_sse.result == {"text": f"a{separator}b"}
        assert from_sse.model_dump() == from_json.model_dump()


class TestDecodeFailures:
    """Undecodable bodies raise ParseError"""

    @pytest.mark.parametrize(
        "body",
        [
            "not json and not sse",
            "",
            "event: message\nid: 3\n\n",
            "[1, 2, 3]",
            "data:{\"no\": \"space\"}",
        ],
    )
    def test_no_data_line(self, body):
        """Test bodies without a 'data: ' line"""
        with pytest.raises(ParseError) as exc_info:
            decode_response(body)

        assert str(exc_info.value) == "no data line found"

    def test_undecodable_data_line(self):
        """Test a data line that is not JSON"""
        with pytest.raises(ParseError, match="Failed to parse event-stream data"):
            decode_event_stream("event: message\ndata: {oops\n\n")

    @pytest.mark.parametrize(
        "payload",
        [
            {"jsonrpc": "2.0", "id": 1, "result": {}, "error": {"code": 1, "message": "m"}},
            {"jsonrpc": "2.0", "id": 1},
            {"jsonrpc": "2.0", "id": 1, "error": None},
        ],
    )
    def test_ambiguous_payload(self, payload):
        """Test payloads with both or neither of result/error"""
        with pytest.raises(ParseError, match="Malformed JSON-RPC response"):
            decode_response(json.dumps(payload))

    def test_ambiguous_framed_payload(self):
        """Test framed payloads are held to the same rule"""
        with pytest.raises(ParseError):
            decode_response(sse_body({"jsonrpc": "2.0", "id": 1}))

    def test_error_context_has_body_excerpt(self):
        """Test the body is kept for diagnosis"""
        with pytest.raises(ParseError) as exc_info:
            decode_response("garbage " * 200)

        assert exc_info.value.context["body"].startswith("garbage")
        assert len(exc_info.value.context["body"]) < 600
