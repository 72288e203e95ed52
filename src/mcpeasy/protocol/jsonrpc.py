"""JSON-RPC 2.0 message parsing and formatting.

Implements the subset of JSON-RPC 2.0 used by MCP over stdio: single
request objects (no batches), one message per line.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Maximum message size (4 MB); tool arguments may carry message bodies
MAX_MESSAGE_SIZE = 4 * 1_048_576


class JsonRpcError(Exception):
    """JSON-RPC error with code and message."""

    def __init__(self, code: int, message: str, data: Any | None = None) -> None:
        """Initialize the error.

        Args:
            code: JSON-RPC error code.
            message: Human-readable error message.
            data: Optional additional error data.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class InvalidRequest(JsonRpcError):
    """Invalid request whose id could still be recovered."""

    def __init__(self, msg_id: int | str | None, detail: str) -> None:
        super().__init__(INVALID_REQUEST, "Invalid Request", detail)
        self.msg_id = msg_id


@dataclass(frozen=True)
class JsonRpcRequest:
    """A parsed JSON-RPC message.

    A request whose id is missing or null is a notification and must not
    be answered.
    """

    method: str
    id: int | str | None = None
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def is_notification(self) -> bool:
        """True when the message expects no response."""
        return self.id is None


def parse_message(raw: str | bytes) -> JsonRpcRequest:
    """Parse a JSON-RPC message from one line of input.

    Args:
        raw: Raw JSON text, or the undecoded bytes of the line.

    Returns:
        Parsed request.

    Raises:
        JsonRpcError: If the message is not valid JSON or not a valid request.
            InvalidRequest keeps the request id when one could be read.
    """
    if len(raw) > MAX_MESSAGE_SIZE:
        raise JsonRpcError(
            PARSE_ERROR, "Parse error", f"Message of {len(raw)} bytes exceeds {MAX_MESSAGE_SIZE}"
        )

    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise JsonRpcError(PARSE_ERROR, "Parse error", f"Invalid UTF-8: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise JsonRpcError(PARSE_ERROR, "Parse error", str(e)) from e

    if not isinstance(data, dict):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request", "Message must be an object")

    msg_id = data.get("id")
    if msg_id is not None and (isinstance(msg_id, bool) or not isinstance(msg_id, int | str)):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request", "id must be integer or string")

    if data.get("jsonrpc") != "2.0":
        raise InvalidRequest(msg_id, "jsonrpc must be '2.0'")

    method = data.get("method")
    if not isinstance(method, str):
        raise InvalidRequest(msg_id, "method must be a string")

    params = data.get("params")
    if params is None:
        params = {}
    elif not isinstance(params, dict):
        raise InvalidRequest(msg_id, "params must be an object")

    return JsonRpcRequest(method=method, id=msg_id, params=params)


def format_response(msg_id: int | str | None, result: Any) -> str:
    """Format a successful JSON-RPC response.

    Args:
        msg_id: Request ID to echo back.
        result: Result payload.

    Returns:
        JSON string.
    """
    response = {
        "jsonrpc": "2.0",
        "id": msg_id,
        "result": result,
    }
    return json.dumps(response)


def format_error(
    msg_id: int | str | None,
    code: int,
    message: str,
    data: Any | None = None,
) -> str:
    """Format a JSON-RPC error response.

    Args:
        msg_id: Request ID (or None for parse errors).
        code: Error code.
        message: Error message.
        data: Optional error data.

    Returns:
        JSON string.
    """
    error_obj: dict[str, Any] = {
        "code": code,
        "message": message,
    }
    if data is not None:
        error_obj["data"] = data

    response = {
        "jsonrpc": "2.0",
        "id": msg_id,
        "error": error_obj,
    }
    return json.dumps(response)
