"""mcpeasy - MCP servers for everyday services over stdio."""

__version__ = "1.0.0"
