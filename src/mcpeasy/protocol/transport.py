"""STDIO transport layer for MCP communication.

Reads one JSON-RPC message per line from stdin and writes one response per
line to stdout. Nothing but protocol frames is ever written to stdout.

Lines are read as raw bytes when the input stream has a binary buffer, so a
line that is not valid UTF-8 reaches the parser (and gets a parse error)
instead of breaking the read loop.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from typing import TextIO

from mcpeasy.diagnostics import DiagnosticLogger
from mcpeasy.protocol.jsonrpc import INTERNAL_ERROR, format_error

MessageHandler = Callable[[str | bytes], str | None]


def _fallback_frame(response: str) -> str:
    """ASCII-only internal error frame for a response that could not be written."""
    try:
        msg_id = json.loads(response).get("id")
    except (ValueError, AttributeError):
        msg_id = None
    if isinstance(msg_id, bool) or not isinstance(msg_id, int | str):
        msg_id = None
    elif isinstance(msg_id, str) and not msg_id.isascii():
        msg_id = None
    return format_error(msg_id, INTERNAL_ERROR, "Internal error", "Response could not be encoded")


class StdioTransport:
    """STDIO transport for MCP communication."""

    def __init__(
        self,
        logger: DiagnosticLogger,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            logger: Where transport-level failures are reported.
            stdin: Input stream (defaults to sys.stdin).
            stdout: Output stream (defaults to sys.stdout).
        """
        self._logger = logger
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout

    def read_message(self) -> str | bytes | None:
        """Read a message from stdin.

        Reads lines until a non-empty line is found.

        Returns:
            Message (stripped), as bytes when stdin has a binary buffer,
            or None on EOF.
        """
        reader = getattr(self._stdin, "buffer", self._stdin)
        while True:
            try:
                line = reader.readline()
            except (OSError, ValueError) as e:
                # Closed or broken stdin ends the session like EOF
                self._logger.exception("transport_error", e)
                return None

            if not line:  # EOF
                return None

            line = line.strip()
            if line:  # Skip empty lines
                return line

    def write_message(self, message: str) -> None:
        """Write a message to stdout and flush it.

        Args:
            message: JSON string to write.
        """
        self._stdout.write(message + "\n")
        self._stdout.flush()

    def _send(self, response: str) -> None:
        try:
            self.write_message(response)
        except UnicodeError as e:
            self._logger.exception("transport_error", e)
            self.write_message(_fallback_frame(response))

    def serve(self, handle_message: MessageHandler) -> int:
        """Run the read/dispatch/write loop until the client disconnects.

        Args:
            handle_message: Turns one raw line into a response, or None.

        Returns:
            Exit code: 0 on EOF or interrupt.
        """
        while True:
            try:
                message = self.read_message()
                if message is None:
                    self._logger.info("server_stop", "EOF received, shutting down")
                    return 0

                response = handle_message(message)
                if response is not None:
                    self._send(response)
            except KeyboardInterrupt:
                self._logger.info("server_stop", "Interrupted, shutting down")
                return 0
            except Exception as e:
                self._logger.exception("transport_error", e)
