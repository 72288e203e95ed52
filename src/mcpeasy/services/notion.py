"""Notion service: search, page details and database queries.

Uses the Notion REST API with an integration key stored under
``<config_dir>/notion/token.json``.
"""

from __future__ import annotations

import re
from typing import Any

import httpx

from mcpeasy.config import ConfigError
from mcpeasy.pagination import Page
from mcpeasy.services.base import (
    PromptArgument,
    PromptDefinition,
    ServiceBase,
    ToolDefinition,
    int_argument,
    require_argument,
)

NOTION_API_URL = "https://api.notion.com/v1/"
NOTION_VERSION = "2022-06-28"
USER_AGENT = "mcpeasy/1.0 (Notion)"
MAX_PAGE_SIZE = 100

_ID_PATTERN = re.compile(r"([0-9a-fA-F]{32})(?:[?#].*)?$")


class NotionError(Exception):
    """Raised when the Notion API rejects a request."""

    pass


def clean_notion_id(raw: str) -> str:
    """Normalise a Notion id or page URL to the 32 hex character id.

    Accepts dashed UUIDs, bare ids, and page URLs ending in ``...-<id>``.
    Anything else is passed through stripped so the API can reject it.
    """
    compact = raw.strip().replace("-", "")
    match = _ID_PATTERN.search(compact)
    if match:
        return match.group(1).lower()
    return raw.strip()


def extract_title(item: dict[str, Any]) -> str:
    """Title of a page or database object."""
    if isinstance(item.get("title"), list):
        return _plain_text(item["title"]) or "Untitled"
    for prop in (item.get("properties") or {}).values():
        if isinstance(prop, dict) and prop.get("type") == "title":
            return _plain_text(prop.get("title") or []) or "Untitled"
    return "Untitled"


def _plain_text(rich_text: list[dict[str, Any]]) -> str:
    return "".join(part.get("plain_text", "") for part in rich_text)


def format_property(prop: dict[str, Any]) -> str:
    """Render a page property value as short text."""
    kind = prop.get("type")
    value = prop.get(kind) if kind else None
    if kind in ("title", "rich_text"):
        return _plain_text(value or [])
    if kind == "number":
        return "" if value is None else str(value)
    if kind in ("select", "status"):
        return (value or {}).get("name", "")
    if kind == "multi_select":
        return ", ".join(option.get("name", "") for option in value or [])
    if kind == "date":
        return (value or {}).get("start", "")
    if kind == "checkbox":
        return "yes" if value else "no"
    if kind in ("url", "email", "phone_number"):
        return value or ""
    return f"[{kind}]"


def extract_block_text(blocks: list[dict[str, Any]]) -> str:
    """Plain text of a list of blocks, one line per block with text."""
    lines = []
    for block in blocks:
        kind = block.get("type")
        body = block.get(kind) or {}
        text = _plain_text(body.get("rich_text") or [])
        if not text:
            continue
        if kind and kind.startswith("heading_"):
            text = "#" * int(kind[-1]) + " " + text
        elif kind in ("bulleted_list_item", "to_do"):
            text = "- " + text
        elif kind == "numbered_list_item":
            text = "1. " + text
        elif kind == "quote":
            text = "> " + text
        lines.append(text)
    return "\n".join(lines)


class NotionClient:
    """Wrapper around the Notion endpoints the tools need."""

    def __init__(self, api_key: str, timeout: float = 10.0, transport: httpx.BaseTransport | None = None) -> None:
        self._client = httpx.Client(
            base_url=NOTION_API_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": NOTION_VERSION,
                "User-Agent": USER_AGENT,
            },
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and return the decoded body.

        Raises:
            NotionError: If Notion answers with a non-2xx status.
        """
        response = self._client.request(method, path, **kwargs)
        if response.is_error:
            try:
                message = response.json().get("message", response.reason_phrase)
            except ValueError:
                message = response.reason_phrase
            raise NotionError(f"Notion API Error ({response.status_code}): {message}")
        return response.json()

    def _summary(self, item: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": item.get("id"),
            "title": extract_title(item),
            "url": item.get("url"),
            "created_time": item.get("created_time"),
            "last_edited_time": item.get("last_edited_time"),
            "properties": item.get("properties") or {},
        }

    def test_connection(self) -> dict[str, Any]:
        return self._request("GET", "users/me")

    def search(self, object_type: str, query: str = "", page_size: int = 10) -> list[dict[str, Any]]:
        """Search pages or databases shared with the integration."""
        body = {
            "query": query.strip(),
            "page_size": min(page_size, MAX_PAGE_SIZE),
            "filter": {"value": object_type, "property": "object"},
        }
        data = self._request("POST", "search", json=body)
        return [self._summary(item) for item in data.get("results", [])]

    def get_page(self, page_id: str) -> dict[str, Any]:
        return self._summary(self._request("GET", f"pages/{clean_notion_id(page_id)}"))

    def get_page_content(self, page_id: str) -> str:
        data = self._request("GET", f"blocks/{clean_notion_id(page_id)}/children")
        return extract_block_text(data.get("results", []))

    def query_database(
        self, database_id: str, page_size: int = 10, start_cursor: str | None = None
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"page_size": min(page_size, MAX_PAGE_SIZE)}
        if start_cursor:
            body["start_cursor"] = start_cursor
        data = self._request("POST", f"databases/{clean_notion_id(database_id)}/query", json=body)
        return {
            "entries": [self._summary(item) for item in data.get("results", [])],
            "has_more": bool(data.get("has_more")),
            "next_cursor": data.get("next_cursor"),
        }

    def list_users(self, page_size: int = 100, start_cursor: str | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"page_size": min(page_size, MAX_PAGE_SIZE)}
        if start_cursor:
            params["start_cursor"] = start_cursor
        data = self._request("GET", "users", params=params)
        users = [
            {
                "id": user.get("id"),
                "type": user.get("type"),
                "name": user.get("name"),
                "email": (user.get("person") or {}).get("email"),
            }
            for user in data.get("results", [])
        ]
        return {
            "users": users,
            "has_more": bool(data.get("has_more")),
            "next_cursor": data.get("next_cursor"),
        }


def _query_schema(description: str) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": description},
            "page_size": {
                "type": "number",
                "description": "Maximum number of results to return (default: 10, max: 100)",
            },
        },
        "required": [],
    }


def _id_schema(key: str, description: str, paginated: bool = False) -> dict[str, Any]:
    properties: dict[str, Any] = {key: {"type": "string", "description": description}}
    if paginated:
        properties["page_size"] = {
            "type": "number",
            "description": "Maximum number of results to return (default: 10, max: 100)",
        }
        properties["cursor"] = {
            "type": "string",
            "description": "Cursor for pagination, from the previous response",
        }
    return {"type": "object", "properties": properties, "required": [key]}


def _pagination_footer(page: Page, count: int, noun: str, next_cursor: str | None) -> str:
    first, last = page.item_range(count)
    if next_cursor:
        return (
            f"Page {page.number} | Showing {noun} {first}-{last}\n"
            f'More {noun} available. Use cursor: "{next_cursor}" to get the next page.'
        )
    return f"Page {page.number} | Showing {noun} {first}-{last} of {page.start_index + count} total"


class NotionService(ServiceBase[NotionClient]):
    """Notion tools for pages, databases and users."""

    @property
    def name(self) -> str:
        return "notion"

    def create_client(self) -> NotionClient:
        api_key = self.credentials.read("notion", "api_key")
        if not api_key:
            raise ConfigError("Notion API key is not configured. Run: mcpeasy set-token notion YOUR_KEY")
        return NotionClient(api_key, timeout=self.settings.http_timeout)

    def get_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="test_connection",
                description="Test the Notion API connection",
                input_schema={"type": "object", "properties": {}, "required": []},
                handler=self.test_connection,
            ),
            ToolDefinition(
                name="search_pages",
                description="Search for pages in the Notion workspace",
                input_schema=_query_schema("Search query (optional, searches all pages if empty)"),
                handler=self.search_pages,
            ),
            ToolDefinition(
                name="search_databases",
                description="Search for databases in the Notion workspace",
                input_schema=_query_schema("Search query (optional, searches all databases if empty)"),
                handler=self.search_databases,
            ),
            ToolDefinition(
                name="get_page",
                description="Get details of a specific Notion page",
                input_schema=_id_schema("page_id", "The ID or URL of the Notion page"),
                handler=self.get_page,
            ),
            ToolDefinition(
                name="get_page_content",
                description="Get the text content of a Notion page",
                input_schema=_id_schema("page_id", "The ID or URL of the Notion page"),
                handler=self.get_page_content,
            ),
            ToolDefinition(
                name="query_database",
                description="Query entries in a Notion database",
                input_schema=_id_schema("database_id", "The ID of the Notion database", paginated=True),
                handler=self.query_database,
            ),
            ToolDefinition(
                name="list_users",
                description="List users in the Notion workspace",
                input_schema={
                    "type": "object",
                    "properties": {
                        "page_size": {
                            "type": "number",
                            "description": "Maximum number of users to return (default: 10, max: 100)",
                        },
                        "cursor": {
                            "type": "string",
                            "description": "Cursor for pagination, from the previous response",
                        },
                    },
                    "required": [],
                },
                handler=self.list_users,
            ),
        ]

    def get_prompts(self) -> list[PromptDefinition]:
        return [
            PromptDefinition(
                name="find_page",
                description="Find a Notion page about a topic",
                template="Find the Notion page about {topic} and show me its details",
                arguments=(PromptArgument("topic", "Topic or title to look for", required=True),),
            ),
            PromptDefinition(
                name="summarize_page",
                description="Summarize the content of a Notion page",
                template="Read the Notion page {page_id} and summarize it in a few bullet points",
                arguments=(PromptArgument("page_id", "ID or URL of the page", required=True),),
            ),
        ]

    def _page_size(self, arguments: dict[str, Any]) -> int:
        return int_argument(arguments, "page_size", self.settings.page_size("notion"), MAX_PAGE_SIZE)

    def test_connection(self, arguments: dict[str, Any]) -> str:
        user = self.client.test_connection()
        return f"Successfully connected to Notion. User: {user.get('name') or user.get('id')}, Type: {user.get('type')}"

    def _format_items(self, heading: str, items: list[dict[str, Any]]) -> str:
        lines = [heading, ""]
        for i, item in enumerate(items, 1):
            lines.append(f"{i}. **{item['title']}**")
            lines.append(f"   - ID: `{item['id']}`")
            lines.append(f"   - URL: {item['url']}")
            lines.append(f"   - Last edited: {item['last_edited_time']}")
        return "\n".join(lines) + "\n"

    def search_pages(self, arguments: dict[str, Any]) -> str:
        query = str(arguments.get("query") or "")
        pages = self.client.search("page", query=query, page_size=self._page_size(arguments))
        suffix = f" for query '{query}'" if query else ""
        return self._format_items(f"Found {len(pages)} pages{suffix}:", pages)

    def search_databases(self, arguments: dict[str, Any]) -> str:
        query = str(arguments.get("query") or "")
        databases = self.client.search("database", query=query, page_size=self._page_size(arguments))
        suffix = f" for query '{query}'" if query else ""
        return self._format_items(f"Found {len(databases)} databases{suffix}:", databases)

    def get_page(self, arguments: dict[str, Any]) -> str:
        page = self.client.get_page(require_argument(arguments, "page_id"))
        lines = [
            "**Page Details**",
            "",
            f"**Title:** {page['title']}",
            f"**ID:** `{page['id']}`",
            f"**URL:** {page['url']}",
            f"**Created:** {page['created_time']}",
            f"**Last edited:** {page['last_edited_time']}",
        ]
        if page["properties"]:
            lines += ["", "**Properties:**"]
            lines += [f"- **{name}:** {format_property(prop)}" for name, prop in page["properties"].items()]
        return "\n".join(lines) + "\n"

    def get_page_content(self, arguments: dict[str, Any]) -> str:
        content = self.client.get_page_content(require_argument(arguments, "page_id"))
        if not content:
            return "No content found for this page"
        return f"**Page Content:**\n\n{content}"

    def query_database(self, arguments: dict[str, Any]) -> str:
        database_id = require_argument(arguments, "database_id")
        page_size = self._page_size(arguments)
        cursor = str(arguments.get("cursor") or "").strip() or None

        page = self.pages.enter("query_database", cursor, page_size)
        result = self.client.query_database(database_id, page_size=page_size, start_cursor=cursor)
        self.pages.advance("query_database", page, result["next_cursor"])

        entries = result["entries"]
        body = self._format_items(f"Found {len(entries)} entries in database:", entries)
        return body + "\n" + _pagination_footer(page, len(entries), "entries", result["next_cursor"]) + "\n"

    def list_users(self, arguments: dict[str, Any]) -> str:
        page_size = self._page_size(arguments)
        cursor = str(arguments.get("cursor") or "").strip() or None

        page = self.pages.enter("list_users", cursor, page_size)
        result = self.client.list_users(page_size=page_size, start_cursor=cursor)
        self.pages.advance("list_users", page, result["next_cursor"])

        users = result["users"]
        lines = [f"Found {len(users)} users:", ""]
        for i, user in enumerate(users, page.start_index + 1):
            email = f" <{user['email']}>" if user["email"] else ""
            lines.append(f"{i}. {user['name'] or 'Unnamed'}{email} ({user['type']}, ID: `{user['id']}`)")
        lines += ["", _pagination_footer(page, len(users), "users", result["next_cursor"])]
        return "\n".join(lines) + "\n"
