"""MCP tools/list and tools/call handlers.

Resolves tool names against the service's registry and turns handler
results into outcomes. An unknown tool is a protocol fault; anything a
known tool's handler raises is a business error.
"""

from __future__ import annotations

import time
from typing import Any

from mcpeasy.diagnostics import DiagnosticLogger
from mcpeasy.protocol.jsonrpc import INVALID_PARAMS
from mcpeasy.protocol.outcome import (
    BusinessError,
    Outcome,
    ProtocolFault,
    Success,
    text_content,
    user_message,
)
from mcpeasy.services.base import ToolDefinition
from mcpeasy.services.registry import Registry


class ToolsHandler:
    """Handles tools/list and tools/call MCP requests."""

    def __init__(self, registry: Registry[ToolDefinition], logger: DiagnosticLogger) -> None:
        """Initialize the handler.

        Args:
            registry: Tool catalog of the service being served.
            logger: Diagnostic logger for call records and failures.
        """
        self._registry = registry
        self._logger = logger

    def handle_list(self, params: dict[str, Any]) -> Outcome:
        """Handle tools/list request.

        Returns:
            Success with every registered tool.
        """
        return Success({"tools": self._registry.list_dicts()})

    def handle_call(self, params: dict[str, Any]) -> Outcome:
        """Handle tools/call request.

        Args:
            params: Request params with ``name`` and optional ``arguments``.

        Returns:
            Success with the handler's text, BusinessError when the handler
            raised, or ProtocolFault for an unknown tool or bad arguments.
        """
        name = params.get("name")
        tool = self._registry.get(name) if isinstance(name, str) else None
        if tool is None:
            return ProtocolFault(INVALID_PARAMS, "Unknown tool", f"Tool '{name}' not found")

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        elif not isinstance(arguments, dict):
            return ProtocolFault(INVALID_PARAMS, "Invalid params", "arguments must be an object")

        started = time.perf_counter()
        try:
            text = tool.handler(arguments)
        except Exception as e:
            self._logger.exception("tool_error", e, tool_name=tool.name)
            self._logger.log_tool_call(tool.name, arguments, "error", _elapsed_ms(started))
            return BusinessError(user_message(e))

        self._logger.log_tool_call(tool.name, arguments, "success", _elapsed_ms(started))
        return Success({"content": text_content(str(text)), "isError": False})


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
