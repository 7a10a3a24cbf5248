"""Decoding of MCP responses sent as plain JSON or as event-stream framing."""

import json
import logging
import re

from pydantic import ValidationError

from .exceptions import ParseError
from .models import RPCResponse
from .utils import excerpt

logger = logging.getLogger("mcp-bridge.codec")

DATA_PREFIX = "data: "
ID_PREFIX = "id: "
# Only CR, LF and CRLF end a line; JSON strings may carry Unicode line separators raw
LINE_BREAK = re.compile(r"\r\n|\r|\n")


def decode_response(body: str) -> RPCResponse:
    """Decode a response body into an RPCResponse.

    Servers answer either with a JSON object or with event-stream framing
    (``event: message`` / ``id: <id>`` / ``data: <json>``). Which one is not
    discoverable in advance, so both are handled here.

    Args:
        body: Raw response text.

    Returns:
        The decoded response.

    Raises:
        ParseError: If the body is neither valid JSON-RPC nor framing with a
            data line, or the payload carries both or neither of
            result/error.
    """
    if body.strip().startswith("{"):
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            logger.debug("Body looks like JSON but is not, trying event-stream")
        else:
            return _validate(payload, body)

    return decode_event_stream(body)


def decode_event_stream(body: str) -> RPCResponse:
    """Decode event-stream framing; the last ``data:`` line wins."""
    data_line = None
    frame_id = None
    for line in LINE_BREAK.split(body):
        if line.startswith(DATA_PREFIX):
            data_line = line[len(DATA_PREFIX) :]
        elif line.startswith(ID_PREFIX):
            frame_id = line[len(ID_PREFIX) :].strip()

    if data_line is None:
        raise ParseError(
            "no data line found",
            errors=["Response is neither a JSON object nor event-stream framing"],
            context={"body": excerpt(body)},
        )

    try:
        payload = json.loads(data_line)
    except json.JSONDecodeError as e:
        raise ParseError(
            f"Failed to parse event-stream data: {e.msg}",
            errors=[str(e)],
            context={"body": excerpt(body)},
        ) from e

    if isinstance(payload, dict) and payload.get("id") is None and frame_id:
        payload["id"] = frame_id

    return _validate(payload, body)


def _validate(payload, body: str) -> RPCResponse:
    try:
        return RPCResponse.model_validate(payload)
    except ValidationError as e:
        raise ParseError(
            "Malformed JSON-RPC response",
            errors=[err["msg"] for err in e.errors()],
            suggestions=["The server returned a payload that is not JSON-RPC 2.0"],
            context={"body": excerpt(body)},
        ) from e
