"""JSON-based credential storage.

Each service keeps its secrets in ``<config_dir>/<service>/token.json``.
The server only reads tokens; writing happens from the CLI.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from mcpeasy.config import SERVICE_NAMES, ConfigError, Settings

TOKEN_FILE_NAME = "token.json"

# Credential key each service reads from its token file
TOKEN_KEYS = {"slack": "bot_token", "notion": "api_key"}


class CredentialStore:
    """Read and write per-service tokens.

    Example:
        store = CredentialStore(settings)
        store.write("slack", "bot_token", "xoxb-...")
        token = store.read("slack", "bot_token")
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize the store.

        Args:
            settings: Settings providing the config directory.
        """
        self._settings = settings

    def token_path(self, service: str) -> Path:
        """Path to a service's token file."""
        return self._settings.service_dir(service) / TOKEN_FILE_NAME

    def _load(self, service: str) -> dict[str, Any]:
        path = self.token_path(service)
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Corrupt credential file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Credential file {path} must contain an object")
        return data

    def read(self, service: str, key: str) -> str | None:
        """Read a credential value.

        Args:
            service: Service name (e.g. "slack").
            key: Credential key (e.g. "bot_token").

        Returns:
            The stored value, or None when absent or empty.
        """
        value = self._load(service).get(key)
        if not value:
            return None
        return str(value)

    def write(self, service: str, key: str, value: str) -> Path:
        """Store a credential value, keeping other keys in the file.

        Args:
            service: Service name.
            key: Credential key.
            value: Value to store.

        Returns:
            Path of the written file.
        """
        path = self.token_path(service)
        path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)

        data = self._load(service)
        data[key] = value

        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        return path

    def exists(self, service: str) -> bool:
        """Whether a token file exists for the service."""
        return self.token_path(service).exists()

    def status(self) -> dict[str, bool]:
        """Which services have a non-empty credential stored under their key.

        Raises:
            ConfigError: If a token file is corrupt.
        """
        return {service: self.read(service, TOKEN_KEYS[service]) is not None for service in SERVICE_NAMES}
