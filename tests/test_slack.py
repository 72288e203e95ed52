"""Tests for the Slack client and service, with the HTTP layer mocked."""

import json
from collections.abc import Callable
from unittest import mock

import httpx
import pytest

from mcpeasy.protocol.tools import ToolsHandler
from mcpeasy.server import MCPServer
from mcpeasy.services import slack
from mcpeasy.services.registry import Registry
from mcpeasy.services.slack import SlackClient, SlackError, SlackService, retry_after_seconds

from conftest import call

Handler = Callable[[httpx.Request], httpx.Response]


def _channels(names: list[str], next_cursor: str = "") -> dict:
    return {
        "ok": True,
        "channels": [{"name": name, "id": f"C{index}"} for index, name in enumerate(names)],
        "response_metadata": {"next_cursor": next_cursor},
    }


@pytest.fixture
def requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def make_client(requests: list[httpx.Request]) -> Callable[[Handler], SlackClient]:
    def factory(handler: Handler) -> SlackClient:
        def recording(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        return SlackClient("xoxb-test", transport=httpx.MockTransport(recording))

    return factory


@pytest.fixture
def slack_service(settings, store) -> SlackService:
    return SlackService(settings=settings, credentials=store)


class TestSlackClient:
    """Tests for SlackClient."""

    def test_sends_bearer_token(self, make_client, requests):
        client = make_client(lambda r: httpx.Response(200, json={"ok": True, "user": "bot"}))

        assert client.test_connection()["user"] == "bot"
        assert requests[0].headers["Authorization"] == "Bearer xoxb-test"
        assert requests[0].url.path == "/api/auth.test"

    def test_api_error_raises(self, make_client):
        client = make_client(lambda r: httpx.Response(200, json={"ok": False, "error": "invalid_auth"}))

        with pytest.raises(SlackError, match="invalid_auth"):
            client.test_connection()

    def test_list_channels_passes_cursor_and_caps_limit(self, make_client, requests):
        client = make_client(lambda r: httpx.Response(200, json=_channels(["general"], "next-1")))

        result = client.list_channels(limit=5000, cursor="abc")

        params = requests[0].url.params
        assert params["cursor"] == "abc"
        assert params["limit"] == "1000"
        assert result == {"channels": [{"name": "general", "id": "C0"}], "has_more": True, "next_cursor": "next-1"}

    def test_empty_next_cursor_means_last_page(self, make_client):
        client = make_client(lambda r: httpx.Response(200, json=_channels(["general"])))

        result = client.list_channels()

        assert result["has_more"] is False
        assert result["next_cursor"] is None

    def test_post_message_strips_hash(self, make_client, requests):
        client = make_client(lambda r: httpx.Response(200, json={"ok": True, "ts": "1.2"}))

        client.post_message("#general", " hi ", thread_ts="1.0")

        assert requests[0].method == "POST"
        assert json.loads(requests[0].content) == {"channel": "general", "text": "hi", "thread_ts": "1.0"}

    def test_post_message_rejects_empty_text(self, make_client):
        client = make_client(lambda r: httpx.Response(200, json={"ok": True}))

        with pytest.raises(SlackError, match="Text cannot be empty"):
            client.post_message("general", "   ")

    def test_retries_when_rate_limited(self, make_client, requests, monkeypatch):
        sleeps: list[float] = []
        monkeypatch.setattr(slack.time, "sleep", sleeps.append)
        responses = iter(
            [
                httpx.Response(429, headers={"Retry-After": "2"}),
                httpx.Response(200, json={"ok": True, "ts": "9.9"}),
            ]
        )
        client = make_client(lambda r: next(responses))

        assert client.post_message("general", "hi")["ts"] == "9.9"
        assert len(requests) == 2
        assert sleeps == [2.0]

    def test_gives_up_after_retries(self, make_client, monkeypatch):
        monkeypatch.setattr(slack.time, "sleep", lambda seconds: None)
        client = make_client(lambda r: httpx.Response(429))

        with pytest.raises(SlackError, match="rate limited"):
            client.test_connection()

    def test_http_error_raises(self, make_client):
        client = make_client(lambda r: httpx.Response(500))

        with pytest.raises(httpx.HTTPStatusError):
            client.test_connection()


class TestSlackService:
    """Tests for SlackService tool handlers."""

    def test_catalog(self, slack_service: SlackService):
        assert [t.name for t in slack_service.get_tools()] == ["test_connection", "list_channels", "post_message"]
        assert [p.name for p in slack_service.get_prompts()] == ["post_update", "channel_overview"]
        assert slack_service.server_name == "slack-mcp-server"

    def test_missing_token_is_tool_error(self, slack_service, settings, logger):
        server = MCPServer(slack_service, logger=logger)

        result = call(server, "tools/call", {"name": "test_connection", "arguments": {}})["result"]

        assert result["isError"] is True
        assert "Slack bot token is not configured" in result["content"][0]["text"]

    def test_tools_list_needs_no_token(self, slack_service, logger):
        server = MCPServer(slack_service, logger=logger)

        assert len(call(server, "tools/list")["result"]["tools"]) == 3
        assert not slack_service.has_client

    def test_client_built_from_stored_token(self, slack_service, store):
        store.write("slack", "bot_token", "xoxb-stored")

        assert isinstance(slack_service.client, SlackClient)
        slack_service.close()

    def test_list_channels_pages(self, slack_service, make_client):
        pages = {None: _channels(["a", "b"], "cur-2"), "cur-2": _channels(["c"])}
        slack_service._client = make_client(
            lambda r: httpx.Response(200, json=pages[r.url.params.get("cursor")])
        )

        first = slack_service.list_channels({"limit": 2})
        second = slack_service.list_channels({"limit": 2, "cursor": "cur-2"})

        assert first.startswith("2 Available channels: #a (ID: C0), #b (ID: C1)")
        assert "Page 1 | Showing channels 1-2" in first
        assert 'Use cursor: "cur-2"' in first
        assert "Page 2 | Showing channels 3-3 of 3 total" in second

    def test_post_message(self, slack_service, make_client):
        slack_service._client = make_client(lambda r: httpx.Response(200, json={"ok": True, "ts": "123.4"}))

        text = slack_service.post_message({"channel": "#random", "text": "hello"})

        assert text == "Message posted successfully to #random (Message timestamp: 123.4)"

    def test_post_message_requires_channel(self, slack_service, logger):
        handler = ToolsHandler(Registry(slack_service.get_tools()), logger)

        outcome = handler.handle_call({"name": "post_message", "arguments": {"text": "hi"}})

        assert outcome.message == "Missing required argument: channel"

    def test_test_connection_reports_bot_and_team(self, slack_service):
        client = mock.Mock(spec=SlackClient)
        client.test_connection.return_value = {"ok": True, "user": "mcpbot", "team": "Acme"}
        slack_service._client = client

        text = slack_service.test_connection({})

        assert text == "Successfully connected to Slack. Bot: mcpbot, Team: Acme"
        client.test_connection.assert_called_once_with()

    def test_list_channels_uses_configured_page_size(self, slack_service):
        client = mock.Mock(spec=SlackClient)
        client.list_channels.return_value = {"channels": [], "has_more": False, "next_cursor": None}
        slack_service._client = client

        text = slack_service.list_channels({"exclude_archived": False})

        client.list_channels.assert_called_once_with(limit=100, cursor=None, exclude_archived=False)
        assert "Page 1 | Showing channels 0-0 of 0 total" in text

    def test_exclude_archived_accepts_string_false(self, slack_service):
        client = mock.Mock(spec=SlackClient)
        client.list_channels.return_value = {"channels": [], "has_more": False, "next_cursor": None}
        slack_service._client = client

        slack_service.list_channels({"exclude_archived": "false"})

        client.list_channels.assert_called_once_with(limit=100, cursor=None, exclude_archived=False)


class TestRetryAfter:
    """Tests for Retry-After parsing."""

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("2", 2.0),
            ("0.5", 0.5),
            (None, 1.0),
            ("soon", 1.0),
            ("nan", 1.0),
            ("-5", 0.0),
            ("86400", 60.0),
            ("Wed, 21 Oct 2015 07:28:00 GMT", 0.0),
            ("Fri, 31 Dec 9999 23:59:59 GMT", 60.0),
        ],
    )
    def test_parses_seconds_and_dates(self, header, expected):
        assert retry_after_seconds(header) == expected

    def test_http_date_header_does_not_break_retry(self, make_client, requests, monkeypatch):
        sleeps: list[float] = []
        monkeypatch.setattr(slack.time, "sleep", sleeps.append)
        responses = iter(
            [
                httpx.Response(429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}),
                httpx.Response(200, json={"ok": True, "user": "bot"}),
            ]
        )
        client = make_client(lambda r: next(responses))

        assert client.test_connection()["user"] == "bot"
        assert sleeps == [0.0]
