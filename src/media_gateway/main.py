"""Main module for the media gateway CLI."""

import sys
import json
import asyncio
import argparse
import mimetypes
from pathlib import Path
from typing import Any, Dict

from .core import (
    ConfigurationError,
    GatewayConfig,
    GatewayFactory,
    NormalizedError,
    UploadFile,
    get_component_logger,
)

VERSION = "0.1.0"


class PrintResponseSink:
    """Response sink writing each reply to stdout as one JSON line."""

    def deliver(self, status_code: int, payload: Dict[str, Any]) -> None:
        print(json.dumps({"status": status_code, **payload}))


def run_upload(args: argparse.Namespace) -> int:
    """
    Upload one local file through the gateway.

    Returns:
        Process exit code: 0 on success, 1 when the upload failed, 2 when
        the command could not start.
    """
    logger = get_component_logger("cli")

    try:
        config = GatewayConfig.from_env()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(json.dumps({"message": str(e)}))
        return 2

    if args.debug:
        config.debug = True

    path = Path(args.path)
    try:
        payload = path.read_bytes()
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
        print(json.dumps({"message": f"Cannot read {path}"}))
        return 2

    content_type = (
        args.content_type
        or mimetypes.guess_type(path.name)[0]
        or "application/octet-stream"
    )
    file = UploadFile(
        filename=args.filename or path.name,
        content_type=content_type,
        payload=payload,
    )

    service = GatewayFactory.create_service(config)
    try:
        asyncio.run(service.upload(file, sink=PrintResponseSink()))
    except NormalizedError:
        return 1
    return 0


def main() -> None:
    """
    Entry point for the command-line interface of the media gateway.

    Endpoints and the upload preset come from environment variables, see
    ``GatewayConfig.from_env``.
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="media-gateway",
        description="Media Gateway - signed image uploads to the CDN",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload an image
  media-gateway upload ./photo.jpg

  # Override the declared name and MIME type
  media-gateway upload ./photo --filename avatar.png --content-type image/png

  # Show version
  media-gateway version
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )

    upload_parser: argparse.ArgumentParser = subparsers.add_parser(
        "upload", help="Upload one image to the CDN"
    )
    upload_parser.add_argument("path", help="Path of the file to upload")
    upload_parser.add_argument(
        "--filename", default=None, help="Declared file name (default: basename)"
    )
    upload_parser.add_argument(
        "--content-type",
        default=None,
        help="Declared MIME type (default: guessed from the file name)",
    )
    upload_parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )

    subparsers.add_parser("version", help="Show version information")

    args: argparse.Namespace = parser.parse_args()

    if args.command == "upload":
        sys.exit(run_upload(args))

    elif args.command == "version":
        print("Media Gateway CLI")
        print(f"Version {VERSION}")
        print("Signed image uploads to the CDN")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
