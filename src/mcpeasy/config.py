"""Configuration loading and path resolution.

Settings come from an optional ``config.yaml`` in the config directory.
Everything has a default, so a missing file is not an error; a malformed
one is, and is raised before any server starts serving.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_DIR = "~/.config/mcpeasy"
DEFAULT_LOGS_DIR = "~/.local/share/mcpeasy/logs"
CONFIG_FILE_NAME = "config.yaml"

# Services that keep credentials under the config directory
SERVICE_NAMES = ("slack", "notion")


class ConfigError(Exception):
    """Raised when configuration or credentials are missing or invalid."""

    pass


def expand_env_vars(value: str) -> str:
    """Expand environment variables in a string.

    Supports ${VAR_NAME} syntax. Unknown variables are left unchanged.

    Args:
        value: String potentially containing environment variable references.

    Returns:
        String with known environment variables expanded.
    """
    pattern = re.compile(r"\$\{([^}]+)\}")

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value
        if var_name == "HOME":
            return os.path.expanduser("~")
        return match.group(0)

    return pattern.sub(replacer, value)


def _expand_tree(value: Any) -> Any:
    """Expand environment variables in every string of a parsed YAML tree."""
    if isinstance(value, str):
        return expand_env_vars(value)
    if isinstance(value, dict):
        return {key: _expand_tree(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_tree(item) for item in value]
    return value


def _positive_int(section: dict[str, Any], key: str, default: int, where: str) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{where}.{key} must be a positive integer, got {value!r}")
    return value


@dataclass
class Settings:
    """Resolved runtime configuration."""

    config_dir: Path
    logs_dir: Path
    http_timeout: float = 10.0
    page_sizes: dict[str, int] = field(default_factory=lambda: {"slack": 100, "notion": 10})

    @classmethod
    def from_dict(cls, config: dict[str, Any], config_dir: Path) -> Settings:
        """Create Settings from a parsed configuration dictionary.

        Args:
            config: Dictionary parsed from YAML configuration.
            config_dir: Directory the configuration was loaded from.

        Returns:
            Settings with defaults filled in.

        Raises:
            ConfigError: If a value has the wrong type.
        """
        config = _expand_tree(config)

        logs_dir = os.environ.get("MCPEASY_LOGS_DIR") or config.get("logs_dir") or DEFAULT_LOGS_DIR
        if not isinstance(logs_dir, str):
            raise ConfigError(f"logs_dir must be a string, got {logs_dir!r}")

        http = config.get("http") or {}
        if not isinstance(http, dict):
            raise ConfigError("http must be a mapping")
        timeout = http.get("timeout", 10)
        if isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0:
            raise ConfigError(f"http.timeout must be a positive number, got {timeout!r}")

        page_sizes = {}
        for service, default in (("slack", 100), ("notion", 10)):
            section = config.get(service) or {}
            if not isinstance(section, dict):
                raise ConfigError(f"{service} must be a mapping")
            page_sizes[service] = _positive_int(section, "page_size", default, service)

        return cls(
            config_dir=config_dir,
            logs_dir=Path(logs_dir).expanduser(),
            http_timeout=float(timeout),
            page_sizes=page_sizes,
        )

    def page_size(self, service: str, fallback: int = 10) -> int:
        """Default page size for a service."""
        return self.page_sizes.get(service, fallback)

    def log_file_path(self, service: str) -> Path:
        """Diagnostic log file for a service."""
        return self.logs_dir / f"mcp_{service}.log"

    def service_dir(self, service: str) -> Path:
        """Directory holding a service's credentials."""
        return self.config_dir / service

    def ensure_dirs(self) -> None:
        """Create the config, credential and logs directories."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        for service in SERVICE_NAMES:
            self.service_dir(service).mkdir(parents=True, exist_ok=True, mode=0o700)
        self.logs_dir.mkdir(parents=True, exist_ok=True)


def default_config_dir() -> Path:
    """Config directory, honouring MCPEASY_CONFIG_DIR."""
    return Path(os.environ.get("MCPEASY_CONFIG_DIR") or DEFAULT_CONFIG_DIR).expanduser()


def load_settings(config_dir: Path | None = None) -> Settings:
    """Load settings from ``config.yaml`` in the config directory.

    Args:
        config_dir: Directory to read from. Defaults to ``default_config_dir()``.

    Returns:
        Loaded Settings (defaults when the file does not exist).

    Raises:
        ConfigError: If the file cannot be parsed or has invalid values.
    """
    config_dir = config_dir or default_config_dir()
    config_path = config_dir / CONFIG_FILE_NAME

    if not config_path.exists():
        return Settings.from_dict({}, config_dir)

    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    return Settings.from_dict(config, config_dir)
