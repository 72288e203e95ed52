"""MCP Server - request dispatch.

Ties a service's catalogs to the protocol handlers and routes each parsed
request to exactly one of them.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from mcpeasy.diagnostics import DiagnosticLogger
from mcpeasy.protocol.jsonrpc import (
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    InvalidRequest,
    JsonRpcError,
    JsonRpcRequest,
    format_error,
    parse_message,
)
from mcpeasy.protocol.lifecycle import LifecycleManager
from mcpeasy.protocol.outcome import Outcome, ProtocolFault, Success, render
from mcpeasy.protocol.prompts import PromptsHandler
from mcpeasy.protocol.tools import ToolsHandler
from mcpeasy.protocol.transport import StdioTransport
from mcpeasy.services.base import PromptDefinition, ServiceBase, ToolDefinition
from mcpeasy.services.registry import Registry


class Method(str, Enum):
    """JSON-RPC methods this server understands."""

    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"

    @classmethod
    def lookup(cls, name: str) -> Method | None:
        try:
            return cls(name)
        except ValueError:
            return None


class MCPServer:
    """MCP Server for one service.

    Catalogs are built once here and owned by the instance, so two servers
    (e.g. in tests) never share tools, pages or API clients.
    """

    def __init__(self, service: ServiceBase[Any], logger: DiagnosticLogger | None = None) -> None:
        """Initialize the server.

        Args:
            service: Service whose tools and prompts are served.
            logger: Diagnostic logger; defaults to the service's log file.

        Raises:
            DuplicateNameError: If the service declares a name twice.
        """
        self._service = service
        self._logger = logger or DiagnosticLogger(service.settings.log_file_path(service.name))

        self._tools: Registry[ToolDefinition] = Registry(service.get_tools(), kind="tool")
        self._prompts: Registry[PromptDefinition] = Registry(service.get_prompts(), kind="prompt")

        self._lifecycle = LifecycleManager(
            server_info={"name": service.server_name, "version": service.version},
            has_prompts=len(self._prompts) > 0,
        )
        self._tools_handler = ToolsHandler(self._tools, self._logger)
        self._prompts_handler = PromptsHandler(self._prompts)

        self._routes: dict[Method, Callable[[dict[str, Any]], Outcome]] = {
            Method.INITIALIZE: self._initialize,
            Method.TOOLS_LIST: self._tools_handler.handle_list,
            Method.TOOLS_CALL: self._tools_handler.handle_call,
            Method.PROMPTS_LIST: self._prompts_handler.handle_list,
            Method.PROMPTS_GET: self._prompts_handler.handle_get,
        }

    @property
    def service(self) -> ServiceBase[Any]:
        return self._service

    @property
    def logger(self) -> DiagnosticLogger:
        return self._logger

    @property
    def lifecycle(self) -> LifecycleManager:
        return self._lifecycle

    def list_tools(self) -> list[dict[str, Any]]:
        """List all registered tools in MCP format."""
        return self._tools.list_dicts()

    def list_prompts(self) -> list[dict[str, Any]]:
        """List all registered prompts in MCP format."""
        return self._prompts.list_dicts()

    def handle_message(self, raw_message: str | bytes) -> str | None:
        """Handle an incoming JSON-RPC message.

        Args:
            raw_message: Raw JSON-RPC message, text or undecoded bytes.

        Returns:
            Response string or None for notifications.
        """
        try:
            request = parse_message(raw_message)
        except InvalidRequest as e:
            self._logger.error("request_error", e.message, detail=e.data)
            return format_error(e.msg_id, e.code, e.message, e.data)
        except JsonRpcError as e:
            self._logger.error("request_error", e.message, detail=e.data)
            return format_error(None, e.code, e.message, e.data)

        method = Method.lookup(request.method)

        if method is Method.INITIALIZED:
            self._lifecycle.handle_initialized()
            return None

        if request.is_notification:
            # Other notifications (cancelled, progress, ...) need no action
            return None

        return render(request.id, self.dispatch(method, request))

    def dispatch(self, method: Method | None, request: JsonRpcRequest) -> Outcome:
        """Route a request to its handler.

        Args:
            method: Resolved method, or None when the name is not supported.
            request: The parsed request.

        Returns:
            Outcome for the error translator.
        """
        if method is None or method not in self._routes:
            return ProtocolFault(METHOD_NOT_FOUND, "Method not found", f"Unknown method: {request.method}")

        try:
            return self._routes[method](request.params)
        except Exception as e:
            self._logger.exception("request_error", e, method=request.method)
            return ProtocolFault(INTERNAL_ERROR, "Internal error", str(e))

    def _initialize(self, params: dict[str, Any]) -> Outcome:
        return Success(self._lifecycle.handle_initialize(params))

    def serve(self, transport: StdioTransport | None = None) -> int:
        """Serve requests over stdio until the client disconnects.

        Args:
            transport: Transport to use (defaults to process stdin/stdout).

        Returns:
            Process exit code.
        """
        transport = transport or StdioTransport(self._logger)
        self._logger.info(
            "server_start",
            f"{self._service.server_name} starting on stdio",
            tools=self._tools.names(),
        )
        try:
            return transport.serve(self.handle_message)
        finally:
            self.close()

    def close(self) -> None:
        """Close the server and clean up resources."""
        self._service.close()
        self._logger.close()

    def __enter__(self) -> MCPServer:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()
