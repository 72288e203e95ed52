#!/usr/bin/env python3
"""mcpeasy - Main entry point.

Runs one MCP server per integrated service over stdin/stdout.

================================================================================
DEVELOPER GUIDE: Adding a New Service
================================================================================

1. CREATE YOUR SERVICE
   Create a new file in src/mcpeasy/services/ subclassing ServiceBase.
   Implement ``name``, ``get_tools`` and ``create_client``; add
   ``get_prompts`` if the service ships prompt templates.

2. WRITE HANDLERS THAT RAISE
   A handler takes the arguments mapping and returns text. On failure it
   raises (use ToolError for "Missing required argument: ..." style
   messages). The server turns the exception into an ``isError: true``
   result for the client and logs the traceback; never catch and format
   errors yourself.

3. REACH THE API THROUGH ``self.client``
   The client is built on first use, so ``tools/list`` works before the
   user has configured credentials.

4. REGISTER THE SERVICE
   Add it to SERVICES in src/mcpeasy/services/__init__.py and its
   credential key to TOKEN_KEYS in src/mcpeasy/credentials.py.

EXAMPLE
-------

    class WeatherService(ServiceBase[WeatherClient]):
        @property
        def name(self) -> str:
            return "weather"

        def create_client(self) -> WeatherClient:
            key = self.credentials.read("weather", "api_key")
            if not key:
                raise ConfigError("Weather API key is not configured")
            return WeatherClient(key, timeout=self.settings.http_timeout)

        def get_tools(self) -> list[ToolDefinition]:
            return [
                ToolDefinition(
                    name="forecast",
                    description="Get the forecast for a city",
                    input_schema={
                        "type": "object",
                        "properties": {"city": {"type": "string"}},
                        "required": ["city"],
                    },
                    handler=self.forecast,
                )
            ]

        def forecast(self, arguments: dict[str, Any]) -> str:
            city = require_argument(arguments, "city")
            return self.client.forecast(city)

LOGGING
-------
stdout belongs to the protocol. Diagnostics go to
~/.local/share/mcpeasy/logs/mcp_<service>.log as JSON lines.

TESTING
-------
See tests/test_slack.py for mocking the HTTP layer with httpx.MockTransport.

================================================================================
"""

from __future__ import annotations

import sys

from mcpeasy.cli import main

if __name__ == "__main__":
    sys.exit(main())
