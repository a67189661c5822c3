#!/usr/bin/env python3
"""
BOSH Push Bridge Command Line Interface

Main entry point for the `boshpush` command.

Usage:
    boshpush serve                   # Start the control-plane server
    boshpush serve --port 2020       # Override the configured port
    boshpush config                  # Print the effective configuration
    boshpush --version               # Show version
"""

import argparse
import json
import os
import sys


def cmd_serve(args):
    """Handle serve subcommand."""
    import uvicorn

    from boshpush.config_models import load_config

    if args.config:
        # create_app reads the path when uvicorn builds the app
        os.environ["BOSHPUSH_CONFIG"] = args.config

    config = load_config()
    host = args.host or config.server.host
    port = args.port or config.server.port

    print(f"Starting BOSH push bridge at http://{host}:{port} (transport: {config.push.transport})")
    print("Press Ctrl+C to stop")

    uvicorn.run(
        "boshpush.api.main:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=config.logging.level.lower(),
    )


def cmd_config(args):
    """Print the effective configuration as JSON."""
    from boshpush.config_models import load_config

    config = load_config(args.config)
    print(json.dumps(config.model_dump(by_alias=True), indent=2))


def cmd_version(args):
    """Show version information."""
    try:
        from importlib.metadata import version

        v = version("boshpush")
    except Exception:
        from boshpush import __version__

        v = f"{__version__} (development)"

    print(f"boshpush version {v}")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="boshpush",
        description="Bridge BOSH chat sessions to mobile push notifications",
    )
    parser.add_argument(
        "--version", "-V", action="store_true", help="Show version and exit"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve subcommand
    serve_parser = subparsers.add_parser("serve", help="Start the control-plane server")
    serve_parser.add_argument("--host", default=None, help="Host to bind to (default: from config)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to bind to (default: from config)")
    serve_parser.add_argument("--config", default=None, help="Path to bridge.yaml")
    serve_parser.set_defaults(func=cmd_serve)

    # Config subcommand
    config_parser = subparsers.add_parser("config", help="Print the effective configuration")
    config_parser.add_argument("--config", default=None, help="Path to bridge.yaml")
    config_parser.set_defaults(func=cmd_config)

    args = parser.parse_args()

    # Handle --version at top level
    if args.version:
        cmd_version(args)
        return

    # If no command given, show help
    if not args.command:
        parser.print_help()
        return

    result = args.func(args)

    # Commands may return an exit code
    if isinstance(result, int) and result != 0:
        sys.exit(result)


if __name__ == "__main__":
    main()
