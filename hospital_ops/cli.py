"""hospital-ops command line

Run the cleaning stages against a CSV directory or the MySQL database, and
print the operational reports.

Usage:
    hospital-ops clean --data-dir data
    hospital-ops clean --source mysql
    hospital-ops report bottlenecks --data-dir data
    hospital-ops report resource-allocation --by-week --out staffing.csv
"""
from __future__ import annotations

import argparse
import logging
import sys

import pandas as pd
import pymysql

from .config import SOURCES, get_settings
from .db import get_connection
from .errors import ConfigError, HospitalOpsError
from .logging_config import setup_logging
from .mysql_pipeline import run_mysql_pipeline
from .pipeline import STAGES, STAGE_NAMES, run_pipeline
from .reports import REPORTS
from .store import append_removed_patients, load_tables, write_csv_dir

logger = logging.getLogger("hospital_ops.cli")


def _clean(args) -> int:
    if args.source == "mysql":
        conn = get_connection()
        try:
            changes = run_mysql_pipeline(conn, stages=args.stages)
        finally:
            conn.close()
    else:
        tables = load_tables("csv", args.data_dir)
        result = run_pipeline(tables, stages=args.stages)
        out_dir = args.out_dir or args.data_dir
        write_csv_dir(result.tables, out_dir)
        append_removed_patients(result.removed_patients, out_dir)
        changes = result.changes

    for name, count in changes.items():
        print(f"  - {name}: {count} rows")
    print("Cleaning complete.")
    return 0


def _report(args) -> int:
    tables = run_pipeline(load_tables(args.source, args.data_dir)).tables

    kwargs = {}
    if args.name == "preview":
        kwargs["limit"] = args.limit
    elif args.name == "resource-allocation":
        kwargs["by_week"] = args.by_week
    elif args.name == "geriatric":
        kwargs["min_age"] = args.min_age

    frame = REPORTS[args.name](tables, **kwargs)
    if args.out:
        frame.to_csv(args.out, index=False)
        print(f"Wrote {len(frame)} rows to {args.out}")
    else:
        with pd.option_context("display.max_rows", None, "display.width", 120):
            print(frame.to_string(index=False))
    return 0


def _stages(args) -> int:
    for stage in STAGES:
        requires = f" (after {', '.join(stage.requires)})" if stage.requires else ""
        print(f"{stage.name}{requires}: {stage.description}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--source", choices=SOURCES, default=settings.source, help="Where the tables live")
    common.add_argument("--data-dir", default=settings.data_dir, help="Directory holding the table CSVs")

    parser = argparse.ArgumentParser(prog="hospital-ops", description="Hospital operations cleaning and reports")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    sub = parser.add_subparsers(dest="command", required=True)

    clean = sub.add_parser("clean", parents=[common], help="Run the cleaning stages")
    clean.add_argument("--out-dir", help="Write cleaned CSVs here instead of back into --data-dir")
    clean.add_argument("--stages", nargs="+", choices=STAGE_NAMES, help="Run only these stages, in this order")
    clean.set_defaults(func=_clean)

    report = sub.add_parser("report", parents=[common], help="Print a report over the cleaned tables")
    report.add_argument("name", choices=sorted(REPORTS))
    report.add_argument("--limit", type=int, default=10, help="Rows for the preview report")
    report.add_argument("--by-week", action="store_true", help="Resource allocation per service-week")
    report.add_argument("--min-age", type=int, default=60, help="Age threshold for the geriatric report")
    report.add_argument("--out", help="Write the report to this CSV file")
    report.set_defaults(func=_report)

    stages = sub.add_parser("stages", help="List the cleaning stages in order")
    stages.set_defaults(func=_stages)
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
    except ConfigError as e:
        setup_logging("INFO")
        logger.error("configuration error: %s", e)
        return 1

    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    try:
        return args.func(args)
    except (HospitalOpsError, pymysql.MySQLError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
