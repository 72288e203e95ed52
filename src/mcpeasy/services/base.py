"""Service base class and catalog entries.

A service is one integrated upstream API (Slack, Notion, ...). It declares
the tools and prompts it exposes and knows how to build its API client.
The client is created on first use so listing tools never needs
credentials.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from mcpeasy.config import Settings, load_settings
from mcpeasy.credentials import CredentialStore
from mcpeasy.pagination import PageTracker

ToolHandler = Callable[[dict[str, Any]], str]

ClientT = TypeVar("ClientT")


class ToolError(Exception):
    """Descriptive failure raised by a tool handler."""

    pass


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool provided by a service."""

    name: str
    description: str
    input_schema: dict[str, Any]
    handler: ToolHandler = field(compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP tool format.

        Returns:
            Dictionary in MCP tools/list format.
        """
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class PromptArgument:
    """One named argument of a prompt template."""

    name: str
    description: str
    required: bool = False
    default: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "required": self.required}


@dataclass(frozen=True)
class PromptDefinition:
    """Parameterised user message template.

    ``template`` uses ``str.format`` placeholders named after the arguments.
    """

    name: str
    description: str
    template: str
    arguments: tuple[PromptArgument, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP prompts/list format."""
        return {
            "name": self.name,
            "description": self.description,
            "arguments": [arg.to_dict() for arg in self.arguments],
        }

    def missing_arguments(self, supplied: dict[str, Any]) -> list[str]:
        """Names of required arguments absent from supplied."""
        return [
            arg.name for arg in self.arguments if arg.required and not str(supplied.get(arg.name) or "")
        ]

    def render(self, supplied: dict[str, Any]) -> list[dict[str, Any]]:
        """Fill the template and return MCP prompt messages.

        Args:
            supplied: Argument values from the client.

        Returns:
            A single user message.
        """
        values = {arg.name: str(supplied.get(arg.name) or arg.default) for arg in self.arguments}
        return [
            {
                "role": "user",
                "content": {"type": "text", "text": self.template.format(**values)},
            }
        ]


def require_argument(arguments: dict[str, Any], name: str) -> str:
    """Return a required argument as a non-empty string.

    Raises:
        ToolError: If the argument is missing or blank.
    """
    value = arguments.get(name)
    if value is None or not str(value).strip():
        raise ToolError(f"Missing required argument: {name}")
    return str(value)


def int_argument(arguments: dict[str, Any], name: str, default: int, maximum: int) -> int:
    """Read an optional integer argument, clamped to 1..maximum.

    Raises:
        ToolError: If the value is not a number.
    """
    value = arguments.get(name)
    if value is None or value == "":
        return min(default, maximum)
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ToolError(f"Argument {name} must be a number, got {value!r}") from e
    return max(1, min(number, maximum))


_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off"})


def bool_argument(arguments: dict[str, Any], name: str, default: bool) -> bool:
    """Read an optional boolean argument, accepting "true"/"false" style strings.

    Raises:
        ToolError: If the value cannot be read as a boolean.
    """
    value = arguments.get(name)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ToolError(f"Argument {name} must be true or false, got {value!r}")


class ServiceBase(ABC, Generic[ClientT]):
    """Abstract base class for all services.

    Subclasses implement the catalog and ``create_client``. Handlers reach
    the API through ``self.client``, which is built the first time it is
    needed and then kept for the life of this instance.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        credentials: CredentialStore | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            settings: Runtime settings (loaded from disk when omitted).
            credentials: Credential store (built from settings when omitted).
        """
        self.settings = settings or load_settings()
        self.credentials = credentials or CredentialStore(self.settings)
        self.pages = PageTracker()
        self._client: ClientT | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the service identifier."""
        pass

    @property
    def version(self) -> str:
        """Return the service version."""
        return "1.0.0"

    @property
    def server_name(self) -> str:
        """Name reported in the initialize handshake."""
        return f"{self.name}-mcp-server"

    @abstractmethod
    def get_tools(self) -> list[ToolDefinition]:
        """Return tool definitions provided by this service."""
        pass

    def get_prompts(self) -> list[PromptDefinition]:
        """Return prompt templates provided by this service."""
        return []

    @abstractmethod
    def create_client(self) -> ClientT:
        """Build the upstream API client.

        Raises:
            ConfigError: If credentials are missing.
        """
        pass

    @property
    def client(self) -> ClientT:
        """The API client, constructed on first access."""
        if self._client is None:
            self._client = self.create_client()
        return self._client

    @property
    def has_client(self) -> bool:
        return self._client is not None

    def close(self) -> None:
        """Release the API client if one was built."""
        client = self._client
        self._client = None
        close = getattr(client, "close", None)
        if callable(close):
            close()
