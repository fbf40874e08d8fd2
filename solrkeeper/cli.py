"""SolrKeeper CLI — export a Solr core to JSON, CSV or XML.

Usage:
    solrkeeper-backup                         # engine "local", JSON, gzip
    solrkeeper-backup prod --format csv --query "type:book" --batch 500
    solrkeeper-backup prod --format xml --compress 0 --output nightly
    solrkeeper-backup prod --fields id,title,author --exclude-version 0

Exit codes: 0 on success, 1 on any failure, 130 when interrupted.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from config.defaults import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_ENGINE,
    DEFAULT_FIELDS,
    DEFAULT_FORMAT,
    DEFAULT_QUERY,
    SUPPORTED_FORMATS,
)
from config.settings import BackupSettings
from solrkeeper.errors import SolrKeeperError
from solrkeeper.models.backup import BackupRequest
from solrkeeper.pipeline import BackupOrchestrator, summary_lines
from solrkeeper.utils.logging_utils import configure_logging

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def str_to_bool(value: str) -> bool:
    """argparse type for flags written as --compress=1 / --compress=false."""
    lowered = str(value).strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean (1/0, true/false), got {value!r}")


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the export command."""
    parser = argparse.ArgumentParser(
        prog="solrkeeper-backup",
        description="Backup Solr data with cursor pagination and multiple export formats",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # ── What to export ─────────────────────────────────────────────────────────
    parser.add_argument(
        "engine", nargs="?", default=DEFAULT_ENGINE, help="The Solr engine to backup"
    )
    parser.add_argument(
        "--format",
        default=DEFAULT_FORMAT,
        help=f"Export format ({'|'.join(SUPPORTED_FORMATS)})",
    )
    parser.add_argument("--query", default=DEFAULT_QUERY, help="Filter query for selective backup")
    parser.add_argument("--output", default=None, help="Custom output filename")
    parser.add_argument(
        "--batch", type=int, default=DEFAULT_BATCH_SIZE, help="Batch size for cursor pagination"
    )
    parser.add_argument(
        "--compress", type=str_to_bool, default=True, help="Compress output with gzip"
    )
    parser.add_argument(
        "--exclude-version",
        type=str_to_bool,
        default=True,
        help="Exclude the _version_ field from exported documents",
    )
    parser.add_argument(
        "--fields",
        default=DEFAULT_FIELDS,
        help="Comma-separated field list (default: all except _version_)",
    )

    # ── Where and how ──────────────────────────────────────────────────────────
    parser.add_argument(
        "--config", default=None, help="Engine profiles JSON file (overrides SOLRKEEPER_ENGINES_CONFIG)"
    )
    parser.add_argument(
        "--backup-root", default=None, help="Backup root directory (overrides SOLRKEEPER_BACKUP_ROOT)"
    )
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING)")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")

    return parser


def args_to_settings(args: argparse.Namespace) -> BackupSettings:
    """Overlay CLI overrides on environment-derived settings."""
    settings = BackupSettings()
    if args.config:
        settings.engines_config_path = args.config
    if args.backup_root:
        settings.backup_root = args.backup_root
    if args.log_level:
        settings.log_level = args.log_level
    return settings


def args_to_request(args: argparse.Namespace) -> BackupRequest:
    """Build and validate the BackupRequest. Raises SolrKeeperError subclasses."""
    return BackupRequest(
        engine=args.engine,
        format=args.format,
        query=args.query,
        fields=args.fields,
        batch_size=args.batch,
        compress=args.compress,
        exclude_version=args.exclude_version,
        output_override=args.output,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint. Returns the process exit code."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    try:
        settings = args_to_settings(args)
    except ValueError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return 1

    configure_logging(log_level=settings.log_level, log_file=args.log_file)
    logger = logging.getLogger("solrkeeper.cli")

    try:
        request = args_to_request(args)
        orchestrator = BackupOrchestrator(settings=settings)
        result = orchestrator.run(request)
        for line in summary_lines(result, request):
            print(line)
        result.raise_for_status()
        return 0

    except SolrKeeperError as exc:
        logger.error("Backup failed: %s", exc)
        print(f"Backup failed: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Backup interrupted by user")
        return 130
    except Exception as exc:
        logger.exception("Backup failed with unhandled exception: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
