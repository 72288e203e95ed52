"""Invocation outcomes and their translation to JSON-RPC frames.

Handlers never build wire frames themselves. They return one of the three
outcome types below and ``render`` turns it into exactly one response:

- ``Success``: a normal result payload.
- ``BusinessError``: a tool handler failed. Still a *successful* JSON-RPC
  response, carrying ``isError: true`` so the client shows the message
  inline in the conversation.
- ``ProtocolFault``: the request itself was wrong (unknown method, unknown
  tool, bad params). Rendered as a JSON-RPC ``error`` object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mcpeasy.protocol.jsonrpc import format_error, format_response


def text_content(text: str) -> list[dict[str, Any]]:
    """Wrap text as a single MCP content item."""
    return [{"type": "text", "text": text}]


@dataclass(frozen=True)
class Success:
    """Successful result payload."""

    result: dict[str, Any]


@dataclass(frozen=True)
class BusinessError:
    """Failure raised inside a tool handler."""

    message: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP tools/call result format."""
        return {"content": text_content(self.message), "isError": True}


@dataclass(frozen=True)
class ProtocolFault:
    """JSON-RPC level error."""

    code: int
    message: str
    data: Any | None = None


Outcome = Success | BusinessError | ProtocolFault


def user_message(exc: BaseException) -> str:
    """Message text safe to echo to the client.

    Only the exception's own message is used, never a traceback. Exceptions
    without a message fall back to their class name so the text is never empty.
    """
    message = str(exc).strip()
    return message or type(exc).__name__


def render(msg_id: int | str | None, outcome: Outcome) -> str:
    """Translate an outcome into a JSON-RPC response string.

    Args:
        msg_id: Request id to echo back (None when it could not be read).
        outcome: Outcome produced by the dispatcher.

    Returns:
        Serialized JSON-RPC response.
    """
    if isinstance(outcome, Success):
        return format_response(msg_id, outcome.result)
    if isinstance(outcome, BusinessError):
        return format_response(msg_id, outcome.to_dict())
    if isinstance(outcome, ProtocolFault):
        return format_error(msg_id, outcome.code, outcome.message, outcome.data)
    raise TypeError(f"Unsupported outcome: {outcome!r}")
