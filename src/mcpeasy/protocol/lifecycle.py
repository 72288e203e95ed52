"""MCP lifecycle management.

Handles the initialize/initialized handshake. Requests are not gated on
the handshake: clients that skip straight to tools/list are still served.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MCP_PROTOCOL_VERSION = "2024-11-05"


class LifecycleState(Enum):
    """MCP connection lifecycle states."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


@dataclass
class LifecycleManager:
    """Tracks the handshake and answers ``initialize``."""

    server_info: dict[str, str]
    has_prompts: bool = False
    state: LifecycleState = LifecycleState.UNINITIALIZED
    client_info: dict[str, Any] | None = None
    client_capabilities: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ready(self) -> bool:
        """Check if the client acknowledged initialization."""
        return self.state == LifecycleState.READY

    @property
    def capabilities(self) -> dict[str, Any]:
        """Capabilities advertised to the client."""
        capabilities: dict[str, Any] = {"tools": {}}
        if self.has_prompts:
            capabilities["prompts"] = {}
        return capabilities

    def handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle initialize request.

        A repeated initialize simply restarts the handshake.

        Args:
            params: Initialize request parameters.

        Returns:
            Initialize response result.
        """
        client_info = params.get("clientInfo")
        self.client_info = client_info if isinstance(client_info, dict) else None
        client_capabilities = params.get("capabilities")
        self.client_capabilities = client_capabilities if isinstance(client_capabilities, dict) else {}
        self.state = LifecycleState.INITIALIZING

        return {
            "protocolVersion": MCP_PROTOCOL_VERSION,
            "capabilities": self.capabilities,
            "serverInfo": self.server_info,
        }

    def handle_initialized(self) -> None:
        """Handle the initialized notification."""
        self.state = LifecycleState.READY
