"""scripts/fetch_report.py

Fetch one of the operational reports from the HTTP API and print it, or
write it to a JSON or CSV file.

Usage (PowerShell):
    $env:API_BASE_URL = 'http://localhost:8000'
    python ./scripts/fetch_report.py bottlenecks
    python ./scripts/fetch_report.py resource-allocation --param by_week=true --out staffing.csv --format csv

"""
from __future__ import annotations
import os
import json
import argparse
from typing import Optional

import pandas as pd
import requests
from dotenv import load_dotenv


load_dotenv()

REPORTS = ("preview", "bottlenecks", "resource-allocation", "geriatric")


def try_get(url: str, params: Optional[dict] = None, timeout: int = 10) -> Optional[requests.Response]:
    try:
        return requests.get(url, params=params, timeout=timeout)
    except requests.RequestException as e:
        print(f"Request to {url} failed: {e}")
        return None


def fetch_report(api_base: str, report: str, params: Optional[dict] = None):
    """Return the report rows as a list, or None when the API can't be read."""
    url = f"{api_base.rstrip('/')}/reports/{report}"
    r = try_get(url, params=params)
    if r is None:
        return None
    if r.status_code != 200:
        print(f"Received {r.status_code} from {url}: {r.text}")
        return None

    try:
        data = r.json()
    except ValueError as e:
        print(f"Failed to parse JSON from {url}: {e}")
        return None

    if not isinstance(data, list):
        print("Expected a list of rows from the report endpoint.")
        return None
    return data


def parse_params(pairs: list[str]) -> dict:
    params = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got {pair!r}")
        params[key] = value
    return params


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Fetch an operational report from the API")
    parser.add_argument("report", choices=REPORTS, help="Report name")
    parser.add_argument(
        "--api-base",
        default=os.environ.get("API_BASE_URL", "http://localhost:8000"),
        help="API base URL",
    )
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        help="Query parameter as key=value (e.g. limit=5, by_week=true, min_age=65)",
    )
    parser.add_argument("--out", help="Optional output file")
    parser.add_argument(
        "--format",
        choices=("json", "csv"),
        default="json",
        help="Output format when --out is provided",
    )
    args = parser.parse_args(argv)

    try:
        params = parse_params(args.param)
    except ValueError as e:
        parser.error(str(e))

    rows = fetch_report(args.api_base, args.report, params)
    if rows is None:
        return 1

    if not args.out:
        print(pd.DataFrame(rows).to_string(index=False))
    elif args.format == "json":
        with open(args.out, "w", encoding="utf8") as fh:
            json.dump(rows, fh, ensure_ascii=False, indent=2)
        print(f"Wrote {len(rows)} rows to {args.out}")
    else:
        pd.DataFrame(rows).to_csv(args.out, index=False)
        print(f"Wrote {len(rows)} rows to {args.out} (CSV)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
