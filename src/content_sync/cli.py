"""Command-line entry point for content-sync.

Commands:
    init-config  Write a starter config file when none is active.
    ping         Test the configured source connection.
    fetch        Fetch a source document and print it as JSON.

All diagnostics go to stderr; ``fetch`` writes only the document to
stdout (or to ``--output``).
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import requests
from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config
from .config_loader import (
    discover_config_files,
    ensure_config,
    load_hierarchical_config,
)
from .config_schema import UnifiedConfig, build_config
from .core.client import SourceClient
from .logger import setup_logging
from .sync.errors import corrective_action, failure_message, reason_for_status

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def _stderr_print(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="content-sync",
        description="Pull content items and their custom fields from a source site",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Write a commented starter .content_sync/config.yml
  content-sync init-config

  # Test the connection configured in .env or .content_sync/config.yml
  content-sync ping

  # Inspect the document the source serves for a page slug
  content-sync fetch about-us

  # Fetch a post by id and save it
  content-sync fetch 123 --type post --output post-123.json
        """,
    )

    parser.add_argument(
        "--url",
        help="Override source site URL (takes precedence over CONTENT_SYNC_SOURCE_URL and config files)",
    )
    parser.add_argument(
        "--username",
        help="Override source username (takes precedence over CONTENT_SYNC_USERNAME and config files)",
    )
    parser.add_argument(
        "--password",
        help="Override application password"
        " (visible in process list -- prefer CONTENT_SYNC_APP_PASSWORD)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log record format (default: text, or logging.format from config)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"content-sync version {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("ping", help="Test the source connection")
    subparsers.add_parser(
        "init-config",
        help="Write a starter config file unless one is already active",
    )

    fetch = subparsers.add_parser(
        "fetch", help="Fetch a source document and print it as JSON"
    )
    fetch.add_argument("identifier", help="Source id or slug")
    fetch.add_argument(
        "--type",
        dest="content_type",
        help="Content type, e.g. page or post (default: sync.default_content_type)",
    )
    fetch.add_argument(
        "--output", "-o", help="Write the document to this file instead of stdout"
    )

    return parser


def _load_settings(args: argparse.Namespace) -> tuple[UnifiedConfig, Config]:
    """Resolve settings: CLI > env vars (.env loaded first) > YAML > defaults.

    Raises:
        ValueError: If the configuration is incomplete or invalid.
    """
    load_dotenv()

    unified = UnifiedConfig()
    if discover_config_files():
        unified = build_config(load_hierarchical_config())

    yaml_fallbacks = {
        k: v for k, v in unified.source.model_dump().items() if v is not None
    }
    config = load_config(
        url=args.url,
        username=args.username,
        password=args.password,
        insecure=args.insecure,
        debug=args.debug,
        yaml_fallbacks=yaml_fallbacks,
        rest_namespace=unified.sync.rest_namespace,
    )
    return unified, config


def cmd_init_config() -> int:
    path, created = ensure_config()
    if created:
        print(f"Created {path}")
    else:
        print(f"Config file already exists: {path}")
    return EXIT_OK


def cmd_ping(client: SourceClient) -> int:
    is_ok, message = client.check_connection()
    if is_ok:
        print(message)
        return EXIT_OK
    _stderr_print(f"ERROR: {message}")
    return EXIT_FAILURE


def cmd_fetch(
    client: SourceClient, args: argparse.Namespace, default_content_type: str = "page"
) -> int:
    content_type = args.content_type or default_content_type
    try:
        response = client.fetch_document(content_type, args.identifier)
    except ValueError as exc:
        _stderr_print(f"ERROR: {exc}")
        return EXIT_FAILURE
    except requests.RequestException as exc:
        _stderr_print(f"ERROR: Could not reach the source site: {exc}")
        return EXIT_FAILURE

    reason = reason_for_status(response.status_code)
    if reason is not None:
        _stderr_print(
            f"ERROR ({reason.value}): "
            f"{failure_message(reason, response.status_code)}"
        )
        _stderr_print(f"  Tried URL: {response.url}")
        _stderr_print(f"  Action: {corrective_action(reason)}")
        return EXIT_FAILURE

    try:
        document: Any = json.loads(response.body)
    except ValueError:
        document = None
    if not isinstance(document, dict):
        _stderr_print("ERROR (invalid_response): Invalid response from source.")
        return EXIT_FAILURE

    text = json.dumps(document, indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        _stderr_print(f"Wrote {args.output}")
    else:
        print(text)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "init-config":
        setup_logging(debug=args.debug, log_file=args.log_file)
        return cmd_init_config()

    try:
        unified, config = _load_settings(args)
    except ValueError as e:
        setup_logging(debug=args.debug)
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    setup_logging(
        debug=config.debug,
        log_file=args.log_file or unified.logging.file,
        log_format=args.log_format or unified.logging.format,
        level=unified.logging.level,
    )
    logger.debug("Source URL: %s", config.source_url)

    client = SourceClient(config)
    if args.command == "ping":
        return cmd_ping(client)
    return cmd_fetch(client, args, unified.sync.default_content_type)


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        _stderr_print("\nInterrupted.")
        sys.exit(EXIT_OK)


if __name__ == "__main__":
    run()
