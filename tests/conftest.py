"""Shared fixtures: isolated settings and a small in-memory service."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from mcpeasy.config import Settings
from mcpeasy.credentials import CredentialStore
from mcpeasy.diagnostics import DiagnosticLogger
from mcpeasy.server import MCPServer
from mcpeasy.services.base import (
    PromptArgument,
    PromptDefinition,
    ServiceBase,
    ToolDefinition,
    require_argument,
)

PAGE_SIZE = 5


class EchoClient:
    """Stand-in API client."""

    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class EchoService(ServiceBase[EchoClient]):
    """Service double with one tool per interesting behaviour."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.clients_created = 0

    @property
    def name(self) -> str:
        return "echo"

    def create_client(self) -> EchoClient:
        self.clients_created += 1
        return EchoClient()

    def get_tools(self) -> list[ToolDefinition]:
        empty = {"type": "object", "properties": {}, "required": []}
        return [
            ToolDefinition(
                name="echo",
                description="Echoes input",
                input_schema={
                    "type": "object",
                    "properties": {"message": {"type": "string"}},
                    "required": ["message"],
                },
                handler=self.echo,
            ),
            ToolDefinition(name="fail", description="Always fails", input_schema=empty, handler=self.fail),
            ToolDefinition(
                name="fail_silently",
                description="Fails without a message",
                input_schema=empty,
                handler=self.fail_silently,
            ),
            ToolDefinition(
                name="paged",
                description="Pretends to page through an upstream list",
                input_schema={
                    "type": "object",
                    "properties": {"cursor": {"type": "string"}},
                    "required": [],
                },
                handler=self.paged,
            ),
        ]

    def get_prompts(self) -> list[PromptDefinition]:
        return [
            PromptDefinition(
                name="greet",
                description="Say hello",
                template="Say hello to {person} in {language}",
                arguments=(
                    PromptArgument("person", "Who to greet", required=True),
                    PromptArgument("language", "Language to use", default="English"),
                ),
            )
        ]

    def echo(self, arguments: dict[str, Any]) -> str:
        self.client  # noqa: B018 - touching the client builds it
        return require_argument(arguments, "message")

    def fail(self, arguments: dict[str, Any]) -> str:
        raise RuntimeError("upstream exploded")

    def fail_silently(self, arguments: dict[str, Any]) -> str:
        raise ValueError()

    def paged(self, arguments: dict[str, Any]) -> str:
        cursor = arguments.get("cursor") or None
        page = self.pages.enter("paged", cursor, PAGE_SIZE)
        next_cursor = f"opaque-{page.number}-token"
        self.pages.advance("paged", page, next_cursor)
        return json.dumps({"page": page.number, "start": page.start_index, "next_cursor": next_cursor})


class QuietService(EchoService):
    """EchoService without prompts."""

    def get_prompts(self) -> list[PromptDefinition]:
        return []


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary directory."""
    return Settings(config_dir=tmp_path / "config", logs_dir=tmp_path / "logs")


@pytest.fixture
def store(settings: Settings) -> CredentialStore:
    return CredentialStore(settings)


@pytest.fixture
def service(settings: Settings, store: CredentialStore) -> EchoService:
    return EchoService(settings=settings, credentials=store)


@pytest.fixture
def logger(settings: Settings) -> DiagnosticLogger:
    diagnostics = DiagnosticLogger(settings.log_file_path("echo"))
    yield diagnostics
    diagnostics.close()


@pytest.fixture
def server(service: EchoService, logger: DiagnosticLogger) -> MCPServer:
    """Server for the echo service."""
    return MCPServer(service, logger=logger)


def call(server: MCPServer, method: str, params: dict[str, Any] | None = None, msg_id: Any = 1) -> dict:
    """Send one request and decode the response."""
    message: dict[str, Any] = {"jsonrpc": "2.0", "id": msg_id, "method": method}
    if params is not None:
        message["params"] = params
    response = server.handle_message(json.dumps(message))
    assert response is not None
    return json.loads(response)


def read_log(logger: DiagnosticLogger) -> list[dict[str, Any]]:
    """Parse every entry written by a diagnostic logger."""
    assert logger.path is not None
    if not logger.path.exists():
        return []
    return [json.loads(line) for line in logger.path.read_text().splitlines()]
