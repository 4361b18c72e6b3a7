"""Command line entry point for notion-docsync."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config
from .config_loader import (
    discover_config_files,
    ensure_config,
    load_hierarchical_config,
)
from .config_schema import UnifiedConfig, build_config
from .core.client import NotionClient
from .errors import DocSyncError
from .logger import setup_logging
from .sync import Reconciler, format_sync_report, report_to_json

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notion-docsync",
        description="Sync a tree of markdown files with a Notion page hierarchy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Publish topic/**/*.md below the root page
  notion-docsync push --local-root .

  # Write Notion pages back to disk, skipping the reading list page
  notion-docsync pull --local-root . --excluded-subtree <page-id>

  # Check the token and root page without syncing
  notion-docsync check

Connection settings come from --token/--root-page, NOTION_TOKEN and
NOTION_ROOT_PAGE_ID (also read from .env), or the notion section of
.notion_docsync/config.yml.
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"notion-docsync version {__version__}",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--token",
        help="Notion integration token (prefer NOTION_TOKEN; visible in process list)",
    )
    common.add_argument(
        "--root-page",
        help="Id or URL of the anchor page (overrides NOTION_ROOT_PAGE_ID)",
    )
    common.add_argument(
        "--json", action="store_true", help="Print the report as JSON"
    )
    common.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    common.add_argument("--log-file", help="Also write logs to this file")

    sub = parser.add_subparsers(dest="command", required=True)

    push = sub.add_parser(
        "push", parents=[common], help="Publish local markdown to Notion"
    )
    push.add_argument(
        "--local-root",
        default=".",
        help="Directory holding the topic folders (default: .)",
    )

    pull = sub.add_parser(
        "pull", parents=[common], help="Write Notion pages to local markdown"
    )
    pull.add_argument(
        "--local-root",
        default=".",
        help="Directory receiving the markdown files (default: .)",
    )
    pull.add_argument(
        "--excluded-subtree",
        help="Page id whose subtree is never pulled (overrides NOTION_EXCLUDED_SUBTREE_ID)",
    )

    sub.add_parser(
        "check", parents=[common], help="Validate the token and root page"
    )
    sub.add_parser("init", help="Write a starter config file if none exists")

    return parser


def _load_settings(args: argparse.Namespace) -> tuple[Config, UnifiedConfig]:
    """Merge CLI args, environment, .env and YAML into a validated Config."""
    load_dotenv()

    unified = UnifiedConfig()
    yaml_fallbacks: dict[str, Any] | None = None
    if discover_config_files():
        unified = build_config(load_hierarchical_config())
        yaml_fallbacks = {
            k: v
            for k, v in unified.notion.model_dump().items()
            if v is not None
        }

    config = load_config(
        token=args.token,
        root_page_id=args.root_page,
        excluded_subtree_id=getattr(args, "excluded_subtree", None),
        debug=args.debug,
        yaml_fallbacks=yaml_fallbacks,
    )
    return config, unified


def _print_report(report, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report_to_json(report), indent=2))
    else:
        print(format_sync_report(report))


def _run_sync(
    args: argparse.Namespace, config: Config, unified: UnifiedConfig
) -> int:
    client = NotionClient(config)
    reconciler = Reconciler(
        client,
        unified.sync,
        config.root_page_id,
        excluded_subtree_id=config.excluded_subtree_id,
    )

    def _stop(signum, frame):
        print(
            "\nStopping after the current document (Ctrl-C again to abort)...",
            file=sys.stderr,
        )
        reconciler.request_stop()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    previous = signal.signal(signal.SIGINT, _stop)
    try:
        local_root = Path(args.local_root)
        if args.command == "push":
            report = reconciler.push(local_root)
        else:
            report = reconciler.pull(local_root)
    finally:
        signal.signal(signal.SIGINT, previous)

    _print_report(report, args.json)
    return 1 if report.failed else 0


def _run_check(config: Config) -> int:
    client = NotionClient(config)
    bot = client.validate_connection()
    root = client.get_node(config.root_page_id)
    print(f"Connected as {bot}; root page '{root.title}' ({root.id})")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "init":
        setup_logging()
        path = ensure_config()
        print(f"Config file: {path}")
        return 0

    try:
        config, unified = _load_settings(args)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        debug=config.debug,
        log_file=args.log_file or unified.logging.file,
        level=unified.logging.level,
    )

    try:
        if args.command == "check":
            return _run_check(config)
        return _run_sync(args, config, unified)
    except DocSyncError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
