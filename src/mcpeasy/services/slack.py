"""Slack service: channel listing and message posting.

Talks to the Slack Web API with a bot token stored under
``<config_dir>/slack/token.json``.
"""

from __future__ import annotations

import math
import time
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from mcpeasy.config import ConfigError
from mcpeasy.services.base import (
    PromptArgument,
    PromptDefinition,
    ServiceBase,
    ToolDefinition,
    bool_argument,
    int_argument,
    require_argument,
)

SLACK_API_URL = "https://slack.com/api/"
USER_AGENT = "mcpeasy/1.0 (Slack)"
MAX_CHANNEL_PAGE = 1000
MAX_RETRIES = 3
DEFAULT_RETRY_AFTER = 1.0
MAX_RETRY_AFTER = 60.0


def retry_after_seconds(value: str | None) -> float:
    """Seconds to wait from a Retry-After header (delay seconds or an HTTP date).

    Missing or unreadable values wait DEFAULT_RETRY_AFTER seconds; waits are
    capped at MAX_RETRY_AFTER.
    """
    if not value:
        return DEFAULT_RETRY_AFTER
    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return DEFAULT_RETRY_AFTER
        if when.tzinfo is None:
            when = when.replace(tzinfo=UTC)
        seconds = (when - datetime.now(UTC)).total_seconds()
    if math.isnan(seconds):
        return DEFAULT_RETRY_AFTER
    return min(max(seconds, 0.0), MAX_RETRY_AFTER)


class SlackError(Exception):
    """Raised when the Slack API reports a failure."""

    pass


class SlackClient:
    """Thin wrapper around the Slack Web API methods the tools need."""

    def __init__(self, token: str, timeout: float = 10.0, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize the client.

        Args:
            token: Slack bot token (xoxb-...).
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self._client = httpx.Client(
            base_url=SLACK_API_URL,
            headers={"Authorization": f"Bearer {token}", "User-Agent": USER_AGENT},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def _call(self, method: str, payload: dict[str, Any], *, post: bool = False) -> dict[str, Any]:
        """Call a Web API method, retrying when rate limited.

        Raises:
            SlackError: If the API answers ``ok: false`` or keeps rate limiting.
        """
        for attempt in range(MAX_RETRIES + 1):
            if post:
                response = self._client.post(method, json=payload)
            else:
                response = self._client.get(method, params=payload)

            if response.status_code == 429 and attempt < MAX_RETRIES:
                time.sleep(retry_after_seconds(response.headers.get("Retry-After")))
                continue
            if response.status_code == 429:
                raise SlackError(f"Slack API Error: rate limited on {method}")
            response.raise_for_status()

            data = response.json()
            if not data.get("ok"):
                raise SlackError(f"Slack API Error: {data.get('error', 'unknown_error')}")
            return data

        raise SlackError(f"Slack API Error: rate limited on {method}")

    def test_connection(self) -> dict[str, Any]:
        return self._call("auth.test", {})

    def list_channels(
        self, limit: int = 100, cursor: str | None = None, exclude_archived: bool = True
    ) -> dict[str, Any]:
        """List public and private channels.

        Returns:
            ``{"channels": [{"name", "id"}], "has_more", "next_cursor"}``
        """
        params: dict[str, Any] = {
            "types": "public_channel,private_channel",
            "limit": min(limit, MAX_CHANNEL_PAGE),
            "exclude_archived": "true" if exclude_archived else "false",
        }
        if cursor:
            params["cursor"] = cursor

        data = self._call("conversations.list", params)
        next_cursor = (data.get("response_metadata") or {}).get("next_cursor") or None
        return {
            "channels": [{"name": c.get("name"), "id": c.get("id")} for c in data.get("channels", [])],
            "has_more": next_cursor is not None,
            "next_cursor": next_cursor,
        }

    def post_message(
        self,
        channel: str,
        text: str,
        username: str | None = None,
        thread_ts: str | None = None,
    ) -> dict[str, Any]:
        channel = channel.strip().lstrip("#")
        text = text.strip()
        if not channel:
            raise SlackError("Channel cannot be empty")
        if not text:
            raise SlackError("Text cannot be empty")

        payload: dict[str, Any] = {"channel": channel, "text": text}
        if username:
            payload["username"] = username
        if thread_ts:
            payload["thread_ts"] = thread_ts
        return self._call("chat.postMessage", payload, post=True)


class SlackService(ServiceBase[SlackClient]):
    """Slack tools: test_connection, list_channels, post_message."""

    @property
    def name(self) -> str:
        return "slack"

    def create_client(self) -> SlackClient:
        token = self.credentials.read("slack", "bot_token")
        if not token:
            raise ConfigError("Slack bot token is not configured. Run: mcpeasy set-token slack YOUR_TOKEN")
        return SlackClient(token, timeout=self.settings.http_timeout)

    def get_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="test_connection",
                description="Test the Slack API connection",
                input_schema={"type": "object", "properties": {}, "required": []},
                handler=self.test_connection,
            ),
            ToolDefinition(
                name="list_channels",
                description=(
                    "List available Slack channels. When asked to list ALL channels, "
                    "call this tool repeatedly with the cursor parameter until no more pages remain."
                ),
                input_schema={
                    "type": "object",
                    "properties": {
                        "limit": {
                            "type": "number",
                            "description": "Maximum number of channels to return (default: 100, max: 1000)",
                        },
                        "cursor": {
                            "type": "string",
                            "description": "Cursor for pagination, from the previous response",
                        },
                        "exclude_archived": {
                            "type": "boolean",
                            "description": "Exclude archived channels from results (default: true)",
                        },
                    },
                    "required": [],
                },
                handler=self.list_channels,
            ),
            ToolDefinition(
                name="post_message",
                description="Post a message to a Slack channel",
                input_schema={
                    "type": "object",
                    "properties": {
                        "channel": {
                            "type": "string",
                            "description": "The Slack channel name (with or without #)",
                        },
                        "text": {"type": "string", "description": "The message text to post"},
                        "username": {
                            "type": "string",
                            "description": "Optional custom username for the message",
                        },
                        "thread_ts": {
                            "type": "string",
                            "description": "Optional timestamp of parent message to reply to",
                        },
                    },
                    "required": ["channel", "text"],
                },
                handler=self.post_message,
            ),
        ]

    def get_prompts(self) -> list[PromptDefinition]:
        return [
            PromptDefinition(
                name="post_update",
                description="Post a short status update to a channel",
                template="Post a short, friendly update about {topic} to the #{channel} Slack channel",
                arguments=(
                    PromptArgument("channel", "Channel to post in", required=True),
                    PromptArgument("topic", "What the update is about", required=True),
                ),
            ),
            PromptDefinition(
                name="channel_overview",
                description="List every channel in the workspace",
                template="List all of my Slack channels, fetching every page",
            ),
        ]

    def test_connection(self, arguments: dict[str, Any]) -> str:
        response = self.client.test_connection()
        return f"Successfully connected to Slack. Bot: {response.get('user')}, Team: {response.get('team')}"

    def list_channels(self, arguments: dict[str, Any]) -> str:
        limit = int_argument(arguments, "limit", self.settings.page_size("slack"), MAX_CHANNEL_PAGE)
        cursor = str(arguments.get("cursor") or "").strip() or None
        exclude_archived = bool_argument(arguments, "exclude_archived", True)

        page = self.pages.enter("list_channels", cursor, limit)
        result = self.client.list_channels(limit=limit, cursor=cursor, exclude_archived=exclude_archived)
        self.pages.advance("list_channels", page, result["next_cursor"])

        channels = result["channels"]
        listing = ", ".join(f"#{c['name']} (ID: {c['id']})" for c in channels)
        first, last = page.item_range(len(channels))

        if result["has_more"]:
            footer = (
                f"Page {page.number} | Showing channels {first}-{last}\n"
                f'More channels available. Use cursor: "{result["next_cursor"]}" to get the next page.'
            )
        else:
            total = page.start_index + len(channels)
            footer = f"Page {page.number} | Showing channels {first}-{last} of {total} total"

        return f"{len(channels)} Available channels: {listing}\n\n{footer}\n"

    def post_message(self, arguments: dict[str, Any]) -> str:
        channel = require_argument(arguments, "channel").lstrip("#")
        text = require_argument(arguments, "text")
        username = str(arguments.get("username") or "") or None
        thread_ts = str(arguments.get("thread_ts") or "") or None

        response = self.client.post_message(channel, text, username=username, thread_ts=thread_ts)
        return f"Message posted successfully to #{channel} (Message timestamp: {response.get('ts')})"
