"""MCP Protocol layer for JSON-RPC communication."""

from mcpeasy.protocol.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    InvalidRequest,
    JsonRpcError,
    JsonRpcRequest,
    format_error,
    format_response,
    parse_message,
)
from mcpeasy.protocol.lifecycle import MCP_PROTOCOL_VERSION, LifecycleManager, LifecycleState
from mcpeasy.protocol.outcome import BusinessError, Outcome, ProtocolFault, Success, render
from mcpeasy.protocol.prompts import PromptsHandler
from mcpeasy.protocol.tools import ToolsHandler
from mcpeasy.protocol.transport import StdioTransport

__all__ = [
    "BusinessError",
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "InvalidRequest",
    "JsonRpcError",
    "JsonRpcRequest",
    "LifecycleManager",
    "LifecycleState",
    "MCP_PROTOCOL_VERSION",
    "METHOD_NOT_FOUND",
    "Outcome",
    "PARSE_ERROR",
    "PromptsHandler",
    "ProtocolFault",
    "StdioTransport",
    "Success",
    "ToolsHandler",
    "format_error",
    "format_response",
    "parse_message",
    "render",
]
