"""Diagnostic logging for MCP servers.

stdout is reserved for protocol frames, so everything a server wants to say
about itself goes to an append-only JSON Lines file, one per service.
Writes are best-effort: a failing disk must never break request handling.
"""

from __future__ import annotations

import json
import re
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import IO, Any

# Patterns for sensitive argument keys
SENSITIVE_PATTERNS = [
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"secret", re.IGNORECASE),
    re.compile(r"api[_-]?key", re.IGNORECASE),
    re.compile(r"token", re.IGNORECASE),
    re.compile(r"auth", re.IGNORECASE),
    re.compile(r"credential", re.IGNORECASE),
]


def _is_sensitive_key(key: str) -> bool:
    """Check if a key name indicates sensitive data."""
    return any(pattern.search(key) for pattern in SENSITIVE_PATTERNS)


def sanitize_arguments(arguments: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of arguments with sensitive values redacted.

    Args:
        arguments: Original arguments dictionary.

    Returns:
        New dictionary with sensitive values redacted.
    """
    sanitized = {}
    for key, value in arguments.items():
        if _is_sensitive_key(key):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_arguments(value)
        else:
            sanitized[key] = value
    return sanitized


def _get_timestamp() -> str:
    """Get current UTC timestamp in ISO 8601 format."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class DiagnosticLogger:
    """Append-only JSON Lines logger.

    Every entry carries a timestamp, level and event name. The file is
    flushed after each write. Any OSError while opening or writing is
    dropped, and the logger stays usable for later attempts.
    """

    def __init__(self, log_path: Path | None) -> None:
        """Initialize the logger.

        Args:
            log_path: Path to the log file. None disables file output.
        """
        self._log_path = log_path
        self._file: IO[str] | None = None

    @property
    def path(self) -> Path | None:
        """Location of the log file."""
        return self._log_path

    def _open(self) -> IO[str] | None:
        if self._file is None and self._log_path is not None:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._log_path, "a", encoding="utf-8")  # noqa: SIM115
        return self._file

    def _write_line(self, data: dict[str, Any]) -> None:
        """Write a JSON line to the log file and flush."""
        try:
            stream = self._open()
            if stream is None:
                return
            stream.write(json.dumps(data, default=str) + "\n")
            stream.flush()
        except (OSError, ValueError):
            # ValueError: write to a file closed underneath us
            self._file = None

    def log(self, level: str, event: str, message: str, **details: Any) -> None:
        """Log a single event.

        Args:
            level: Severity name (INFO, WARNING, ERROR).
            event: Short machine-readable event name.
            message: Human-readable description.
            **details: Extra fields to include in the entry.
        """
        entry: dict[str, Any] = {
            "timestamp": _get_timestamp(),
            "level": level,
            "event": event,
            "message": message,
        }
        entry.update(details)
        self._write_line(entry)

    def info(self, event: str, message: str, **details: Any) -> None:
        self.log("INFO", event, message, **details)

    def error(self, event: str, message: str, **details: Any) -> None:
        self.log("ERROR", event, message, **details)

    def exception(self, event: str, exc: BaseException, **details: Any) -> None:
        """Log an exception with its class, message and full traceback.

        Args:
            event: Event name.
            exc: The exception being reported.
            **details: Extra fields to include in the entry.
        """
        self.log(
            "ERROR",
            event,
            str(exc),
            error_type=type(exc).__name__,
            traceback="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            **details,
        )

    def log_tool_call(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        status: str,
        duration_ms: float,
    ) -> None:
        """Log a completed tool invocation.

        Args:
            tool_name: Name of the tool invoked.
            arguments: Tool arguments (will be sanitized).
            status: Result status (success/error).
            duration_ms: Execution time in milliseconds.
        """
        self.info(
            "tool_call",
            f"{tool_name} finished with {status}",
            tool_name=tool_name,
            arguments=sanitize_arguments(arguments),
            result_status=status,
            execution_time_ms=round(duration_ms, 3),
        )

    def close(self) -> None:
        """Close the log file."""
        if self._file and not self._file.closed:
            self._file.close()
        self._file = None

    def __enter__(self) -> DiagnosticLogger:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()
