"""mcpeasy command line entry point.

Usage:
    mcpeasy serve slack           # run the Slack MCP server on stdio
    mcpeasy set-token slack xoxb-...
    mcpeasy config                # show configuration status
    mcpeasy setup                 # create configuration directories

Only ``serve`` speaks the MCP protocol; it never prints to stdout itself.
Configuration problems are reported on stderr before serving starts.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from mcpeasy import __version__
from mcpeasy.config import ConfigError, load_settings
from mcpeasy.credentials import TOKEN_KEYS, CredentialStore
from mcpeasy.server import MCPServer
from mcpeasy.services import SERVICES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcpeasy",
        description="MCP servers for Slack and Notion over stdio",
    )
    parser.add_argument("--version", "-v", action="version", version=f"mcpeasy {__version__}")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run an MCP server on stdin/stdout")
    serve.add_argument("service", choices=sorted(SERVICES))

    commands.add_parser("setup", help="Create configuration directories")
    commands.add_parser("config", help="Show configuration status")

    set_token = commands.add_parser("set-token", help="Store a service credential")
    set_token.add_argument("service", choices=sorted(TOKEN_KEYS))
    set_token.add_argument("value", help="Slack bot token or Notion API key")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    store = CredentialStore(settings)

    if args.command == "serve":
        try:
            settings.ensure_dirs()
        except OSError as e:
            print(f"Error: cannot create configuration directories: {e}", file=sys.stderr)
            return 1
        service = SERVICES[args.service](settings=settings, credentials=store)
        return MCPServer(service).serve()

    if args.command == "setup":
        settings.ensure_dirs()
        print(f"Created {settings.config_dir} and {settings.logs_dir}")
        return 0

    if args.command == "config":
        print(f"Config directory: {settings.config_dir}")
        print(f"Logs directory: {settings.logs_dir}")
        try:
            status = store.status()
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        for service, configured in status.items():
            print(f"{service} credentials: {'configured' if configured else 'missing'}")
        return 0

    if args.command == "set-token":
        path = store.write(args.service, TOKEN_KEYS[args.service], args.value)
        print(f"Saved {args.service} credential to {path}")
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
