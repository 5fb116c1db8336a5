"""Main module for the pixels gateway CLI."""

import argparse
import asyncio
import sys
from typing import Optional

import uvicorn

from . import __version__
from .core.config import get_settings, load_storage_config
from .core.exceptions import GatewayError
from .core.factories import LoggerAdapter
from .core.logging_config import configure_uvicorn_logging, get_logger
from .core.services import StorageConfigService
from .storage.registry import StorageRegistry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixels-gateway",
        description="Pixels Gateway - on-demand image transformation over S3, FTP and SFTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve the HTTP API with settings from the environment / .env
  pixels-gateway serve --port 4141

  # Verify that a configured storage accepts its credentials
  pixels-gateway check-storage media

  # Show version
  pixels-gateway version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: HOST)")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port (default: PORT)")
    serve_parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes (development)"
    )

    check_parser = subparsers.add_parser(
        "check-storage", help="Check credentials of a configured storage"
    )
    check_parser.add_argument("name", help="Storage name from the storage document")
    check_parser.add_argument(
        "--config", default=None, help="Storage document path (default: STORAGE_CONFIG_PATH)"
    )

    subparsers.add_parser("version", help="Show version information")
    return parser


def serve(host: Optional[str], port: Optional[int], reload: bool) -> None:
    settings = get_settings()
    configure_uvicorn_logging(settings.log_level)
    uvicorn.run(
        "pixels_gateway.api.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        timeout_keep_alive=int(settings.request_timeout_seconds),
        log_config=None,
    )


async def check_storage(name: str, config_path: str) -> dict:
    registry = StorageRegistry.from_document(load_storage_config(config_path))
    service = StorageConfigService(registry, LoggerAdapter(get_logger("cli")))
    try:
        return await service.check_storage_credentials(name)
    finally:
        await registry.close_all()


def main(argv: Optional[list] = None) -> None:
    """Entry point for the ``pixels-gateway`` command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        serve(args.host, args.port, args.reload)

    elif args.command == "check-storage":
        config_path = args.config or get_settings().storage_config_path
        try:
            result = asyncio.run(check_storage(args.name, config_path))
        except GatewayError as e:
            print(f"Storage '{args.name}' check failed: {e.message}", file=sys.stderr)
            sys.exit(1)
        print(result["message"])
        sys.exit(0)

    elif args.command == "version":
        print("Pixels Gateway")
        print(f"Version {__version__}")
        print("On-demand image transformation over S3, FTP and SFTP")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
