"""Integrated services exposed as MCP tools."""

from mcpeasy.services.base import (
    PromptArgument,
    PromptDefinition,
    ServiceBase,
    ToolDefinition,
    ToolError,
)
from mcpeasy.services.notion import NotionService
from mcpeasy.services.registry import DuplicateNameError, Registry
from mcpeasy.services.slack import SlackService

SERVICES: dict[str, type[ServiceBase]] = {
    "slack": SlackService,
    "notion": NotionService,
}

__all__ = [
    "DuplicateNameError",
    "NotionService",
    "PromptArgument",
    "PromptDefinition",
    "Registry",
    "SERVICES",
    "ServiceBase",
    "SlackService",
    "ToolDefinition",
    "ToolError",
]
