"""Load fuel fill-ups from a CSV export into ``FuelLogRecord`` objects."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Dict, List

from fuel_stats import FuelLogRecord, coerce_record

CSV_PATH = Path(__file__).with_name("fuel_logs.csv")
EXPECTED_HEADERS = [
    "id",
    "user_id",
    "odometer",
    "liters",
    "arla_liters",
    "total_price",
    "is_full_tank",
    "fuel_type",
    "station_name",
    "created_at",
]
REQUIRED_HEADERS = ["odometer", "liters", "is_full_tank"]


def _read_csv_rows(path: Path) -> List[Dict[str, str]]:
    """Load the raw rows, returning an empty list if the file is missing."""

    if not path.exists():
        print(f"[DATA] File '{path.name}' missing; no fuel logs loaded.")
        return []

    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError("CSV is missing a header row")
        absent_required = [h for h in REQUIRED_HEADERS if h not in reader.fieldnames]
        if absent_required:
            raise ValueError("CSV is missing required columns: " + ", ".join(absent_required))
        missing = [h for h in EXPECTED_HEADERS if h not in reader.fieldnames]
        rows = list(reader)
        if missing:
            print(
                "[DATA] CSV missing optional columns: "
                + ", ".join(missing)
                + "; filling with blanks."
            )
            for row in rows:
                for field in missing:
                    row[field] = ""
        print(f"[DATA] Loaded {len(rows)} rows from '{path.name}'.")
        return rows


def load_fuel_logs(path: Path | str | None = None, owner_id: str | None = None) -> List[FuelLogRecord]:
    """Return the CSV's fill-ups in file order, skipping rows that do not parse.

    When ``owner_id`` is given only that driver's rows are kept.
    """

    csv_path = Path(path) if path is not None else CSV_PATH
    records: List[FuelLogRecord] = []
    # Line 1 is the header.
    for line_number, row in enumerate(_read_csv_rows(csv_path), start=2):
        try:
            record = coerce_record(row)
        except ValueError as exc:
            print(f"[DATA] Skipping line {line_number}: {exc}")
            continue
        if owner_id is not None and record.owner_id != owner_id:
            continue
        records.append(record)
    return records
