"""Fuel-economy statistics for a driver's fill-up history.

Everything in this module is pure: the functions take records, return
values, and never touch the database, the network, or the console. The
API server and the CLI pull an owner's logs from their own sources, run
them through :func:`coerce_record` when the values are loosely typed, and
hand the resulting list to :func:`calculate_fuel_stats`.

THE FULL-TANK RULE
------------------
Fuel economy is only measured between two fill-ups that both topped the
tank off. The first full tank in the window is a calibration point: the
fuel level before it is unknown, so its own liters are not counted. Every
full tank after it refills exactly what was burned since the previous
one, so ``distance / liters`` over those fill-ups is the real km/l.

Partial fills still count toward money and volume totals, but never
toward the average. Arla 32 is tracked separately and never counts as
fuel volume.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

# Trailing window inspected by the full-tank suggestion, and how many
# partial fills inside it trigger the suggestion.
SUGGESTION_WINDOW = 5
SUGGESTION_PARTIAL_THRESHOLD = 3

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_TRUE_FLAGS = {"true", "1", "yes", "y", "sim", "s"}
_FALSE_FLAGS = {"false", "0", "no", "n", "nao", "não", ""}


class FuelType(str, Enum):
    """What went into the tank. Informational only."""

    DIESEL = "diesel"
    ARLA32 = "arla32"


@dataclass(frozen=True)
class FuelLogRecord:
    """One fill-up event as seen by the statistics code."""

    owner_id: str
    odometer_km: float
    liters: float
    is_full_tank: bool
    total_price: float = 0.0
    arla_liters: float = 0.0
    fuel_type: FuelType = FuelType.DIESEL
    created_at: Optional[datetime] = None
    station_name: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class FuelStatsSnapshot:
    """Aggregate view of one owner's logs, recomputed on every request."""

    average_consumption_km_per_liter: Optional[float]
    total_liters: float
    total_spent: float
    average_price_per_liter: Optional[float]
    last_full_tank_odometer_km: Optional[float]
    last_full_tank_timestamp: Optional[datetime]
    partial_fill_count: int
    full_tank_count: int

    def to_payload(self) -> dict:
        """Return the dictionary shape served by ``GET /fuel/stats``."""

        return {
            "average_consumption": self.average_consumption_km_per_liter,
            "total_liters": self.total_liters,
            "total_spent": self.total_spent,
            "last_full_tank_odometer": self.last_full_tank_odometer_km,
            "last_full_tank_date": (
                self.last_full_tank_timestamp.isoformat()
                if self.last_full_tank_timestamp is not None
                else None
            ),
            "partial_fill_count": self.partial_fill_count,
            "full_tank_count": self.full_tank_count,
            "average_price_per_liter": self.average_price_per_liter,
        }


EMPTY_SNAPSHOT = FuelStatsSnapshot(
    average_consumption_km_per_liter=None,
    total_liters=0.0,
    total_spent=0.0,
    average_price_per_liter=None,
    last_full_tank_odometer_km=None,
    last_full_tank_timestamp=None,
    partial_fill_count=0,
    full_tank_count=0,
)


# ---------------------------------------------------------------------------
# Boundary coercion
# ---------------------------------------------------------------------------

def to_number(value: object, default: float = 0.0) -> float:
    """Parse a loosely typed numeric value from storage or a CSV cell.

    ``None`` and blank strings become ``default``. Strings may use a
    single decimal comma (``"45,5"``). Anything that is not a number
    raises ``ValueError``.
    """

    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got boolean {value!r}")
    if isinstance(value, (int, float, Decimal)):
        return _finite(float(value), value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        if "," in text and "." not in text and text.count(",") == 1:
            text = text.replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            raise ValueError(f"Expected a number, got {value!r}") from None
        return _finite(number, value)
    raise ValueError(f"Expected a number, got {type(value).__name__}")


def _finite(number: float, raw: object) -> float:
    if not math.isfinite(number):
        raise ValueError(f"Expected a finite number, got {raw!r}")
    return number


def _to_flag(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_FLAGS:
        return True
    if text in _FALSE_FLAGS:
        return False
    raise ValueError(f"Expected a true/false flag, got {value!r}")


def _to_timestamp(value: object) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        stamp = value
    else:
        stamp = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if stamp.tzinfo is None:
        # Naive timestamps come from SQLite and CSV exports; both are UTC.
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def coerce_record(row: Mapping[str, object]) -> FuelLogRecord:
    """Build a strict :class:`FuelLogRecord` from a storage-shaped mapping."""

    owner = row.get("user_id", row.get("owner_id"))
    fuel_type = row.get("fuel_type") or FuelType.DIESEL.value
    station = row.get("station_name")
    record_id = row.get("id")

    return FuelLogRecord(
        id=str(record_id) if record_id not in (None, "") else None,
        owner_id="" if owner is None else str(owner),
        odometer_km=to_number(row.get("odometer")),
        liters=to_number(row.get("liters")),
        arla_liters=to_number(row.get("arla_liters")),
        total_price=to_number(row.get("total_price")),
        is_full_tank=_to_flag(row.get("is_full_tank")),
        fuel_type=FuelType(str(getattr(fuel_type, "value", fuel_type)).strip().lower()),
        created_at=_to_timestamp(row.get("created_at")),
        station_name=str(station) if station not in (None, "") else None,
    )


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

def _average_consumption(full_tank_logs: Sequence[FuelLogRecord]) -> Optional[float]:
    """Return km/l between the first and last full tank, or ``None``.

    ``full_tank_logs`` must already be filtered to full tanks and sorted by
    ascending odometer. The order is trusted as given: distance is taken
    from the first and last entries of the supplied sequence.
    """

    if len(full_tank_logs) < 2:
        return None

    distance = full_tank_logs[-1].odometer_km - full_tank_logs[0].odometer_km
    # The first fill-up only calibrates; Arla is never fuel.
    fuel_consumed = sum(log.liters for log in full_tank_logs[1:])

    if distance > 0 and fuel_consumed > 0:
        return distance / fuel_consumed
    return None


def _sort_key(log: FuelLogRecord):
    stamp = log.created_at or _EPOCH
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return (log.odometer_km, stamp)


def calculate_fuel_stats(
    logs: Iterable[FuelLogRecord | Mapping[str, object]],
) -> FuelStatsSnapshot:
    """Fold one owner's fuel logs into a :class:`FuelStatsSnapshot`.

    ``logs`` may arrive in any order and may mix full and partial fills.
    Mappings are coerced with :func:`coerce_record`. Records are never
    modified.
    """

    records = [
        log if isinstance(log, FuelLogRecord) else coerce_record(log)
        for log in logs
    ]
    if not records:
        return EMPTY_SNAPSHOT

    ordered = sorted(records, key=_sort_key)
    full_tank_logs = [log for log in ordered if log.is_full_tank]
    partial_logs = [log for log in ordered if not log.is_full_tank]

    total_liters = sum(log.liters for log in ordered)
    total_spent = sum(log.total_price for log in ordered)
    last_full_tank = full_tank_logs[-1] if full_tank_logs else None

    return FuelStatsSnapshot(
        average_consumption_km_per_liter=_average_consumption(full_tank_logs),
        total_liters=float(total_liters),
        total_spent=float(total_spent),
        average_price_per_liter=total_spent / total_liters if total_liters > 0 else None,
        last_full_tank_odometer_km=(
            last_full_tank.odometer_km if last_full_tank is not None else None
        ),
        last_full_tank_timestamp=(
            last_full_tank.created_at if last_full_tank is not None else None
        ),
        partial_fill_count=len(partial_logs),
        full_tank_count=len(full_tank_logs),
    )


def should_suggest_full_tank(logs: Sequence[FuelLogRecord]) -> bool:
    """True when at least 3 of the trailing 5 logs were partial fills."""

    recent = list(logs)[-SUGGESTION_WINDOW:]
    partial_fills = [log for log in recent if not log.is_full_tank]
    return len(partial_fills) >= SUGGESTION_PARTIAL_THRESHOLD


def is_valid_for_average(
    new_log: FuelLogRecord,
    previous_logs: Sequence[FuelLogRecord],
) -> bool:
    """Can ``new_log`` anchor the average given the owner's earlier logs?

    ``previous_logs`` is expected in chronological order. Only full tanks
    qualify, and only when the odometer moved forward past the most
    recent earlier log. The answer is advisory; nothing is rejected.
    """

    if not new_log.is_full_tank:
        return False
    if not previous_logs:
        return True
    return new_log.odometer_km > previous_logs[-1].odometer_km
