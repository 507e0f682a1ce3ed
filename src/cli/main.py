"""Quarry CLI entry points.
This module exposes export and preview commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
import sys
from typing import Any, Sequence

from core.config import QuarryConfig
from core.constants import DEFAULT_DATABASE_ID, DEFAULT_PREVIEW_LIMIT, MAX_WRITE_BATCH_SIZE
from core.errors import QuarryConfigError, QuarryError
from core.types import ExportOptions
from ingest.export_sdk import QuarryClient
from store.value_payload import intent_to_payload


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="quarry",
        description="Export warehouse query rows into document store collections",
    )
    parser.add_argument("--project-id", help="Override the store project for this command")
    parser.add_argument("--log-level", help="Override QUARRY_LOG_LEVEL for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_export_command(subparsers)
    _add_preview_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Quarry CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args)
        if args.command == "export":
            return _run_export_command(client, args)
        if args.command == "preview":
            return _run_preview_command(client, args)
    except QuarryError as error:
        print(f"error={error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(args: argparse.Namespace) -> QuarryClient:
    """Build SDK client with command-line overrides.

    Args:
        args: Parsed CLI args.

    Returns:
        Configured SDK client.

    Raises:
        QuarryConfigError: If an override is out of range.
    """
    config = QuarryConfig.from_env()
    if args.project_id:
        config = replace(config, project_id=args.project_id)
    if args.log_level:
        config = replace(config, log_level=args.log_level)
    workers = getattr(args, "workers", None)
    if workers is not None:
        if workers < 1:
            raise QuarryConfigError(f"--workers must be at least 1, got {workers}.")
        config = replace(config, workers=workers)
    batch_size = getattr(args, "batch_size", None)
    if batch_size is not None:
        if not 1 <= batch_size <= MAX_WRITE_BATCH_SIZE:
            raise QuarryConfigError(
                f"--batch-size must be within 1..{MAX_WRITE_BATCH_SIZE}, got {batch_size}."
            )
        config = replace(config, write_batch_size=batch_size)
    return QuarryClient(config)


def _build_export_options(args: argparse.Namespace) -> ExportOptions:
    """Build export options from parsed args."""
    return ExportOptions(
        collection=args.collection,
        run_id=args.run_id,
        database_id=args.database_id,
        query=args.query,
        source_path=args.source_file,
        output_path=getattr(args, "output_file", None),
    )


def _run_export_command(client: QuarryClient, args: argparse.Namespace) -> int:
    """Handle export command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    summary = client.export(_build_export_options(args))
    print(f"run_id={summary.run_id}")
    print(f"read={summary.read_count}")
    print(f"written={summary.written_count}")
    print(f"dropped={summary.dropped_count}")
    return 0


def _run_preview_command(client: QuarryClient, args: argparse.Namespace) -> int:
    """Handle preview command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    outcomes = client.preview(_build_export_options(args), args.limit)
    for outcome in outcomes:
        if outcome.intent is not None:
            print(json.dumps(intent_to_payload(outcome.intent), sort_keys=True))
        elif outcome.failure is not None:
            payload = {
                "dropped": outcome.failure.message,
                "error_type": outcome.failure.error_type,
            }
            print(json.dumps(payload, sort_keys=True))
    return 0


def _add_source_arguments(parser: Any) -> None:
    """Register shared source and destination arguments."""
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--query", help="Standard-SQL query to export")
    source.add_argument("--source-file", help="Local Parquet file to export instead of a query")
    parser.add_argument("--collection", required=True, help="Collection root for output documents")
    parser.add_argument("--run-id", required=True, help="Run identifier used as a path segment")
    parser.add_argument(
        "--database-id",
        default=DEFAULT_DATABASE_ID,
        help="Target database id (default: (default))",
    )


def _add_export_command(subparsers: Any) -> None:
    """Register export subcommand."""
    parser = subparsers.add_parser("export", help="Export rows into documents")
    _add_source_arguments(parser)
    parser.add_argument("--output-file", help="Write documents to a local JSONL file instead")
    parser.add_argument("--workers", type=int, help="Conversion worker threads")
    parser.add_argument("--batch-size", type=int, help="Writes per batch request")


def _add_preview_command(subparsers: Any) -> None:
    """Register preview subcommand."""
    parser = subparsers.add_parser("preview", help="Print converted documents without writing")
    _add_source_arguments(parser)
    parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_PREVIEW_LIMIT,
        help="Maximum number of rows to convert",
    )
