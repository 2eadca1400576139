"""Command-line summary of a fuel log CSV export.

Examples::

    python main.py --csv fuel_logs.csv --owner driver-1
    python main.py --csv fuel_logs.csv --owner driver-1 --json
    python main.py --csv fuel_logs.csv --owner driver-1 --post http://localhost:8000
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from typing import List, Optional

import requests

from data_manager import CSV_PATH, load_fuel_logs
from fuel_stats import (
    FuelLogRecord,
    FuelStatsSnapshot,
    calculate_fuel_stats,
    should_suggest_full_tank,
)

DEFAULT_API_URL = "http://localhost:8000"
POST_TIMEOUT_SECONDS = 5
LOG_PREFIX_FUEL = "FUEL"
LOG_PREFIX_POST = "POST"
LOG_PREFIX_WARN = "WARN"
UNDETERMINED = "—"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""

    parser = argparse.ArgumentParser(
        description="Fuel-economy statistics (full-tank rule) for a CSV of fill-ups",
    )
    parser.add_argument(
        "--csv",
        default=str(CSV_PATH),
        metavar="PATH",
        help="CSV export to read (default: %(default)s).",
    )
    parser.add_argument(
        "--owner",
        metavar="USER_ID",
        help="Only use rows belonging to this driver.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the statistics payload as JSON.",
    )
    parser.add_argument(
        "--post",
        nargs="?",
        const=DEFAULT_API_URL,
        metavar="API_URL",
        help="Send every row to the API's POST /fuel (default URL: %(const)s). Needs --owner.",
    )
    return parser.parse_args(argv)


def log(prefix: str, message: str) -> None:
    """Print structured log messages so tests can verify behaviour."""

    timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
    print(f"[{prefix.upper()}][{timestamp}] {message}")


def _fmt(value: float | None, unit: str = "") -> str:
    if value is None:
        return UNDETERMINED
    return f"{value:.2f}{unit}"


def format_stats(snapshot: FuelStatsSnapshot, suggest_full_tank: bool) -> str:
    """Render the statistics the way the driver reads them on the dashboard."""

    last_full = UNDETERMINED
    if snapshot.last_full_tank_odometer_km is not None:
        last_full = f"{snapshot.last_full_tank_odometer_km:.0f} km"
        if snapshot.last_full_tank_timestamp is not None:
            last_full += f" on {snapshot.last_full_tank_timestamp.date().isoformat()}"

    lines = [
        f"Average consumption : {_fmt(snapshot.average_consumption_km_per_liter, ' km/l')}",
        f"Total liters        : {snapshot.total_liters:.2f}",
        f"Total spent         : {snapshot.total_spent:.2f}",
        f"Price per liter     : {_fmt(snapshot.average_price_per_liter)}",
        f"Last full tank      : {last_full}",
        f"Full tanks          : {snapshot.full_tank_count}",
        f"Partial fills       : {snapshot.partial_fill_count}",
    ]
    if suggest_full_tank:
        lines.append("Tip: fill the tank up next time to keep the average reliable.")
    return "\n".join(lines)


def _to_request_body(record: FuelLogRecord) -> dict:
    body = {
        "odometer": record.odometer_km,
        "liters": record.liters,
        "total_price": record.total_price,
        "is_full_tank": record.is_full_tank,
        "arla_liters": record.arla_liters,
        "fuel_type": record.fuel_type.value,
    }
    if record.station_name:
        body["station_name"] = record.station_name
    return body


def post_logs(records: List[FuelLogRecord], api_url: str, owner_id: str) -> int:
    """POST each record to the API; return how many were accepted.

    Network problems and rejected rows are reported and skipped; one bad
    row never stops the rest of the upload.
    """

    endpoint = api_url.rstrip("/") + "/fuel"
    sent = 0
    for index, record in enumerate(records, start=1):
        try:
            response = requests.post(
                endpoint,
                json=_to_request_body(record),
                headers={"X-User-Id": owner_id},
                timeout=POST_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as exc:
            log(LOG_PREFIX_WARN, f"Row {index}/{len(records)} not sent: {exc}")
            continue
        sent += 1
        log(LOG_PREFIX_POST, f"Row {index}/{len(records)} stored at {record.odometer_km:.0f} km.")
    return sent


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.post and not args.owner:
        log(LOG_PREFIX_WARN, "--post needs --owner so the API knows whose logs these are.")
        return 2

    try:
        records = load_fuel_logs(args.csv, owner_id=args.owner)
    except ValueError as exc:
        log(LOG_PREFIX_WARN, f"Could not read '{args.csv}': {exc}")
        return 1

    snapshot = calculate_fuel_stats(records)
    suggest = should_suggest_full_tank(records)

    if args.json:
        payload = snapshot.to_payload()
        payload["logs_count"] = len(records)
        payload["suggest_full_tank"] = suggest
        print(json.dumps(payload, indent=2))
    else:
        log(LOG_PREFIX_FUEL, f"{len(records)} fill-up(s) analyzed.")
        print(format_stats(snapshot, suggest))

    if args.post:
        sent = post_logs(records, args.post, args.owner)
        log(LOG_PREFIX_POST, f"Sent {sent}/{len(records)} fill-up(s) to {args.post}.")
        if sent < len(records):
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
