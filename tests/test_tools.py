"""Tests for the tool registry and tools/list, tools/call handling."""

import pytest

from mcpeasy.diagnostics import DiagnosticLogger
from mcpeasy.protocol.jsonrpc import INVALID_PARAMS
from mcpeasy.protocol.outcome import BusinessError, ProtocolFault, Success
from mcpeasy.protocol.tools import ToolsHandler
from mcpeasy.services.base import ToolDefinition, ToolError, bool_argument, int_argument, require_argument
from mcpeasy.services.registry import DuplicateNameError, Registry

from conftest import EchoService, read_log


def _tool(name: str) -> ToolDefinition:
    return ToolDefinition(name=name, description=f"{name} tool", input_schema={"type": "object"}, handler=lambda a: name)


class TestRegistry:
    """Tests for the immutable catalog."""

    def test_lists_in_declaration_order(self):
        registry = Registry([_tool("b"), _tool("a")])

        assert registry.names() == ["b", "a"]
        assert len(registry) == 2

    def test_list_dicts_use_mcp_keys(self):
        entry = Registry([_tool("a")]).list_dicts()[0]

        assert entry == {"name": "a", "description": "a tool", "inputSchema": {"type": "object"}}

    def test_rejects_duplicate_names(self):
        with pytest.raises(DuplicateNameError, match="Duplicate tool name: a"):
            Registry([_tool("a"), _tool("a")])

    def test_cannot_be_mutated(self):
        registry = Registry([_tool("a")])
        with pytest.raises(TypeError):
            registry._entries["b"] = _tool("b")  # type: ignore[index]

    def test_lookup(self):
        registry = Registry([_tool("a")])

        assert "a" in registry
        assert registry.get("missing") is None


class TestArgumentHelpers:
    """Tests for handler argument helpers."""

    def test_require_argument_returns_string(self):
        assert require_argument({"channel": "general"}, "channel") == "general"

    def test_require_argument_rejects_missing(self):
        with pytest.raises(ToolError, match="Missing required argument: channel"):
            require_argument({}, "channel")

    def test_require_argument_rejects_blank(self):
        with pytest.raises(ToolError):
            require_argument({"channel": "  "}, "channel")

    def test_int_argument_default_and_clamp(self):
        assert int_argument({}, "limit", 100, 1000) == 100
        assert int_argument({"limit": 5000}, "limit", 100, 1000) == 1000
        assert int_argument({"limit": "25"}, "limit", 100, 1000) == 25
        assert int_argument({"limit": -3}, "limit", 100, 1000) == 1

    def test_int_argument_rejects_text(self):
        with pytest.raises(ToolError, match="must be a number"):
            int_argument({"limit": "lots"}, "limit", 100, 1000)

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(True, True), (False, False), ("false", False), ("False", False), ("0", False), ("yes", True), (None, True)],
    )
    def test_bool_argument_reads_strings(self, value, expected):
        assert bool_argument({"flag": value}, "flag", True) is expected

    def test_bool_argument_rejects_other_text(self):
        with pytest.raises(ToolError, match="must be true or false"):
            bool_argument({"flag": "maybe"}, "flag", True)


class TestToolsHandler:
    """Tests for ToolsHandler."""

    @pytest.fixture
    def handler(self, service: EchoService, logger: DiagnosticLogger) -> ToolsHandler:
        return ToolsHandler(Registry(service.get_tools()), logger)

    def test_list_returns_every_tool(self, handler: ToolsHandler, service: EchoService):
        outcome = handler.handle_list({})

        assert isinstance(outcome, Success)
        assert len(outcome.result["tools"]) == len(service.get_tools())

    def test_call_success(self, handler: ToolsHandler):
        outcome = handler.handle_call({"name": "echo", "arguments": {"message": "hi"}})

        assert outcome == Success({"content": [{"type": "text", "text": "hi"}], "isError": False})

    def test_unknown_tool_is_protocol_fault(self, handler: ToolsHandler):
        """Should never turn an unknown tool into a business error."""
        outcome = handler.handle_call({"name": "bogus", "arguments": {}})

        assert isinstance(outcome, ProtocolFault)
        assert outcome.code == INVALID_PARAMS

    def test_missing_name_is_protocol_fault(self, handler: ToolsHandler):
        assert isinstance(handler.handle_call({}), ProtocolFault)

    def test_non_object_arguments_is_protocol_fault(self, handler: ToolsHandler):
        outcome = handler.handle_call({"name": "echo", "arguments": ["hi"]})

        assert isinstance(outcome, ProtocolFault)
        assert outcome.code == INVALID_PARAMS

    def test_handler_exception_is_business_error(self, handler: ToolsHandler):
        assert handler.handle_call({"name": "fail"}) == BusinessError("upstream exploded")

    def test_missing_argument_is_business_error(self, handler: ToolsHandler):
        outcome = handler.handle_call({"name": "echo", "arguments": {}})

        assert outcome == BusinessError("Missing required argument: message")

    def test_empty_exception_message_still_has_text(self, handler: ToolsHandler):
        assert handler.handle_call({"name": "fail_silently"}) == BusinessError("ValueError")

    def test_failures_are_logged_with_traceback(self, handler: ToolsHandler, logger: DiagnosticLogger):
        handler.handle_call({"name": "fail"})

        entries = read_log(logger)
        error = next(e for e in entries if e["event"] == "tool_error")
        call = next(e for e in entries if e["event"] == "tool_call")
        assert error["error_type"] == "RuntimeError"
        assert "Traceback" in error["traceback"]
        assert call["result_status"] == "error"

    def test_client_built_lazily_and_once(self, handler: ToolsHandler, service: EchoService):
        """Should build the client on first call, then reuse it."""
        assert service.clients_created == 0

        handler.handle_call({"name": "echo", "arguments": {"message": "a"}})
        handler.handle_call({"name": "echo", "arguments": {"message": "b"}})

        assert service.clients_created == 1
