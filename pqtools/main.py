#!/usr/bin/env python3
"""
pq - work with Parquet files the way you work with JSONL files.

Usage:
    pq head <file> [-n 10] [--pretty]     Print the first rows as JSON
    pq tail <file> [-n 10] [--pretty]     Print the last rows as JSON
    pq cat <file> [--pretty]              Print every row as JSON
    pq wc <file> [-l]                     Count rows
    pq schema <file>                      Show the schema
    pq split <file> [-n 2]                Split into N smaller Parquet files
    pq version                            Show version information

Examples:
    uv run python -m pqtools.main head data/events.parquet -n 5
    uv run python -m pqtools.main split data/events.parquet -n 4 --verify
"""

from __future__ import annotations

import argparse
import logging
import os
import platform
import sys

import pyarrow as pa

from pqtools import __version__
from pqtools.data_splitter import SOURCE_COMPRESSION, split_file, verify_split
from pqtools.output import write_records
from pqtools.parquet import (
    DEFAULT_BATCH_SIZE,
    ParquetReader,
    ParquetToolError,
    describe,
    describe_fields,
    codec_guard,
)

DEFAULT_HEAD_LINES = 10
DEFAULT_SPLIT_PARTS = 2


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {value}")
    return number


def _silence_stdout() -> None:
    """Point stdout at /dev/null so interpreter shutdown does not hit the closed pipe."""
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, sys.stdout.fileno())


def _emit(records, pretty: bool) -> None:
    if not write_records(records, sys.stdout, pretty=pretty):
        _silence_stdout()


# ============== Commands ==============

def cmd_head(args):
    """Print the first N rows."""
    with ParquetReader(args.file, batch_size=args.batch_size) as reader:
        rows = reader.head(args.lines)
    _emit(rows, args.pretty)


def cmd_tail(args):
    """Print the last N rows, in file order."""
    with ParquetReader(args.file, batch_size=args.batch_size) as reader:
        rows = reader.tail(args.lines)
    _emit(rows, args.pretty)


def cmd_cat(args):
    """Print every row, streaming."""
    with ParquetReader(args.file, batch_size=args.batch_size) as reader:
        _emit(reader.records(), args.pretty)


def cmd_wc(args):
    """Print the row count."""
    with ParquetReader(args.file) as reader:
        count = reader.count()

    if args.lines_only:
        print(count)
    else:
        print(f"{count} {args.file}")


def cmd_schema(args):
    """Print the schema."""
    with ParquetReader(args.file) as reader:
        with codec_guard(args.file, "describe the schema of"):
            fields = describe_fields(reader.schema())
        count = reader.count()

    print(f"Schema information for file: {args.file}\n")
    print(describe(fields, count))


def cmd_split(args):
    """Split a file into N parts."""
    compression = None if args.compression == "none" else args.compression

    parts = split_file(
        args.file,
        args.parts,
        output_dir=args.output_dir,
        batch_size=args.batch_size,
        compression=compression,
        dry_run=args.dry_run,
        progress=args.progress,
    )

    status = "[DRY RUN]" if args.dry_run else "[CREATED]"
    print("Split Plan:")
    print("-" * 60)
    for part in parts:
        print(f"  Part {part.part_num}: {part.count:,} rows (indices {part.start:,}-{part.end - 1:,})")
        print(f"    {status} {part.path}")
    print("-" * 60)
    print(f"Total: {sum(p.count for p in parts):,} rows in {len(parts)} files")

    if args.verify and not args.dry_run:
        if not verify_split(args.file, parts):
            print("Error: split parts do not recombine into the original file", file=sys.stderr)
            sys.exit(1)
        print(f"VERIFIED: {len(parts)} parts combine to recreate {args.file}")


def cmd_version(args):
    """Print version information."""
    print(f"pqtools version: {__version__}")
    print(f"Python version: {platform.python_version()}")
    print("\nDependencies:")
    print(f"- pyarrow: {pa.__version__}")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per command."""
    parser = argparse.ArgumentParser(
        prog="pq",
        description="Inspect and split Parquet files: head, tail, cat, wc, schema, split",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Show debug logging on stderr')
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Head / tail commands
    for name, func, help_text in (
        ('head', cmd_head, 'Show the first rows of a file'),
        ('tail', cmd_tail, 'Show the last rows of a file'),
    ):
        window_parser = subparsers.add_parser(name, help=help_text)
        window_parser.add_argument('file', help='Parquet file path')
        window_parser.add_argument(
            '-n', '--lines',
            type=_non_negative_int,
            default=DEFAULT_HEAD_LINES,
            help=f'Number of rows to show (default: {DEFAULT_HEAD_LINES})'
        )
        window_parser.add_argument('-p', '--pretty', action='store_true', help='Indented JSON, one record over several lines')
        window_parser.add_argument('--batch-size', type=_positive_int, default=DEFAULT_BATCH_SIZE, help=argparse.SUPPRESS)
        window_parser.set_defaults(func=func)

    # Cat command
    cat_parser = subparsers.add_parser('cat', help='Print all rows of a file')
    cat_parser.add_argument('file', help='Parquet file path')
    cat_parser.add_argument('-p', '--pretty', action='store_true', help='Indented JSON, one record over several lines')
    cat_parser.add_argument('--batch-size', type=_positive_int, default=DEFAULT_BATCH_SIZE, help=argparse.SUPPRESS)
    cat_parser.set_defaults(func=cmd_cat)

    # Wc command
    wc_parser = subparsers.add_parser('wc', help='Count the rows of a file')
    wc_parser.add_argument('file', help='Parquet file path')
    wc_parser.add_argument('-l', dest='lines_only', action='store_true', help='Print only the row count')
    wc_parser.set_defaults(func=cmd_wc)

    # Schema command
    schema_parser = subparsers.add_parser('schema', help='Show the schema of a file')
    schema_parser.add_argument('file', help='Parquet file path')
    schema_parser.set_defaults(func=cmd_schema)

    # Split command
    split_parser = subparsers.add_parser('split', help='Split a file into N smaller files')
    split_parser.add_argument('file', help='Parquet file path')
    split_parser.add_argument(
        '-n', '--parts',
        type=_positive_int,
        default=DEFAULT_SPLIT_PARTS,
        help=f'Number of files to split into (default: {DEFAULT_SPLIT_PARTS})'
    )
    split_parser.add_argument('-o', '--output-dir', default=None,
                              help='Output directory (default: same as input)')
    split_parser.add_argument(
        '--batch-size',
        type=_positive_int,
        default=DEFAULT_BATCH_SIZE,
        help=f'Maximum rows held in memory at once (default: {DEFAULT_BATCH_SIZE})'
    )
    split_parser.add_argument(
        '--compression',
        default=SOURCE_COMPRESSION,
        help="Codec for the parts: 'source' (default), 'none', 'snappy', 'zstd', 'gzip', ..."
    )
    split_parser.add_argument('--dry-run', action='store_true',
                              help='Show split plan without writing files')
    split_parser.add_argument('--verify', action='store_true',
                              help='Verify the parts recombine into the original')
    split_parser.add_argument('--progress', action='store_true',
                              help='Show a progress bar')
    split_parser.set_defaults(func=cmd_split)

    # Version command
    version_parser = subparsers.add_parser('version', help='Print version information')
    version_parser.set_defaults(func=cmd_version)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except BrokenPipeError:
        _silence_stdout()
    except (ParquetToolError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
