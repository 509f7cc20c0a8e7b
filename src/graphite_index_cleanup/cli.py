"""Command line for graphite index cleanup."""

from __future__ import annotations

import argparse
import os
import sys

from pydantic import ValidationError

from graphite_index_cleanup.common.config import Settings, build_cleanup_config, get_settings
from graphite_index_cleanup.common.errors import AppError, ConfigurationError
from graphite_index_cleanup.common.logging import setup_logging
from graphite_index_cleanup.domain.enums import RunMode
from graphite_index_cleanup.filters.date_filter import parse_date_filter
from graphite_index_cleanup.filters.patterns import load_patterns
from graphite_index_cleanup.jobs import cleanup_job


def _parse_args(s: Settings, argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Delete stale entries from graphite index table")
    p.add_argument("--globs", default=os.getenv("CLEANUP_GLOBS_FILE", ""), help="graphite index globs file")
    p.add_argument("--index", default=s.index_table, help="graphite index table")
    p.add_argument("--database", default=s.clickhouse_database, help="database of the index table")
    p.add_argument("--dsn", default=None, help="clickhouse DSN (default: CLICKHOUSE_DSN)")
    p.add_argument(
        "--query",
        action="store_true",
        help="show graphite index table query (don't execute)",
    )
    p.add_argument(
        "--reverse",
        action="store_true",
        help="Add reverse paths to cleanup check (if forward paths already deleted)",
    )
    p.add_argument("--delete", action="store_true", help="run delete commands")
    p.add_argument("--show", action="store_true", help="print paths before run delete command")
    p.add_argument("--ask", action="store_true", help="ask before run delete commands")
    p.add_argument("--merges", type=int, default=s.max_merges, help="allowed merges")
    p.add_argument(
        "--dates",
        default="",
        help="restrict dates with like Date > '2020-02-01' AND Date < '2020-03-01'",
    )
    return p.parse_args(argv)


def ask_confirm() -> bool:
    try:
        answer = input("Enter Y for start delete: ")
    except EOFError:
        return False
    return answer == "Y"


def main(argv: list[str] | None = None) -> int:
    try:
        settings = get_settings()
    except (ValidationError, RuntimeError) as e:
        print(f"error: invalid settings: {e}", file=sys.stderr)
        return 2

    setup_logging()
    args = _parse_args(settings, argv)

    try:
        if args.merges < 1:
            raise ConfigurationError("--merges must be >= 1")
        date_filter = parse_date_filter(args.dates)
        patterns = load_patterns(args.globs)
        cfg = build_cleanup_config(
            settings,
            patterns=patterns,
            date_filter=date_filter,
            index_table=args.index,
            database=args.database,
            max_merges=args.merges,
            include_reversed=args.reverse,
            execute=args.delete,
            show_paths=args.show,
            ask=args.ask,
        )

        if cleanup_job.resolve_mode(cfg, show_query=args.query) == RunMode.query:
            print(cleanup_job.show_query(cfg))
            return 0

        cleanup_job.run(cfg, dsn=args.dsn, confirm=ask_confirm)
    except ConfigurationError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 2
    except AppError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
