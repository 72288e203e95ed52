"""MCP prompts/list and prompts/get handlers."""

from __future__ import annotations

from typing import Any

from mcpeasy.protocol.jsonrpc import INVALID_PARAMS
from mcpeasy.protocol.outcome import Outcome, ProtocolFault, Success
from mcpeasy.services.base import PromptDefinition
from mcpeasy.services.registry import Registry


class PromptsHandler:
    """Serves the prompt catalog of a service."""

    def __init__(self, registry: Registry[PromptDefinition]) -> None:
        self._registry = registry

    def handle_list(self, params: dict[str, Any]) -> Outcome:
        return Success({"prompts": self._registry.list_dicts()})

    def handle_get(self, params: dict[str, Any]) -> Outcome:
        """Render one prompt.

        Args:
            params: Request params with ``name`` and optional ``arguments``.

        Returns:
            Success with the description and messages, or ProtocolFault for an
            unknown prompt or missing required arguments.
        """
        name = params.get("name")
        prompt = self._registry.get(name) if isinstance(name, str) else None
        if prompt is None:
            return ProtocolFault(INVALID_PARAMS, "Unknown prompt", f"Prompt '{name}' not found")

        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            return ProtocolFault(INVALID_PARAMS, "Invalid params", "arguments must be an object")

        missing = prompt.missing_arguments(arguments)
        if missing:
            return ProtocolFault(
                INVALID_PARAMS,
                "Invalid params",
                f"Missing required argument(s): {', '.join(missing)}",
            )

        return Success({"description": prompt.description, "messages": prompt.render(arguments)})
