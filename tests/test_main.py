"""Tests for the command-line summary and the API upload."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, List

import pytest
import requests

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import main

CSV_TEXT = (
    "id,user_id,odometer,liters,arla_liters,total_price,is_full_tank,fuel_type,station_name,created_at\n"
    "a1,driver-1,100000,50,0,300,true,diesel,,2025-03-01T08:00:00Z\n"
    "a2,driver-1,100200,20,0,120,false,diesel,,2025-03-02T08:00:00Z\n"
    "a3,driver-1,100500,40,15,240,true,diesel,Posto Graal,2025-03-03T08:00:00Z\n"
    "b1,driver-2,5000,60,0,360,true,diesel,,2025-03-01T09:00:00Z\n"
)


@pytest.fixture()
def csv_path(tmp_path: Path) -> Path:
    path = tmp_path / "fuel_logs.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")
    return path


class _FakeResponse:
    def __init__(self, status_code: int = 201) -> None:
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


def test_text_summary(csv_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main.main(["--csv", str(csv_path), "--owner", "driver-1"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "3 fill-up(s) analyzed" in out
    assert "Average consumption : 12.50 km/l" in out
    assert "Total liters        : 110.00" in out
    assert "Last full tank      : 100500 km on 2025-03-03" in out
    assert "Tip:" not in out


def test_undetermined_average_prints_dash(csv_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main.main(["--csv", str(csv_path), "--owner", "driver-2"])

    out = capsys.readouterr().out
    assert "Average consumption : —" in out


def test_json_payload(csv_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main.main(["--csv", str(csv_path), "--owner", "driver-1", "--json"])

    out = capsys.readouterr().out
    payload = json.loads(out[out.index("{"):])
    assert payload["average_consumption"] == 12.5
    assert payload["total_spent"] == 660
    assert payload["last_full_tank_date"] == "2025-03-03T08:00:00+00:00"
    assert payload["logs_count"] == 3
    assert payload["suggest_full_tank"] is False


def test_format_stats_suggests_full_tank() -> None:
    snapshot = main.calculate_fuel_stats([])

    text = main.format_stats(snapshot, suggest_full_tank=True)

    assert "Price per liter     : —" in text
    assert "Last full tank      : —" in text
    assert text.endswith("keep the average reliable.")


def test_post_requires_owner(csv_path: Path) -> None:
    assert main.main(["--csv", str(csv_path), "--post"]) == 2


def test_post_sends_each_row(csv_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[Dict[str, object]] = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return _FakeResponse()

    monkeypatch.setattr(main.requests, "post", fake_post)

    exit_code = main.main(
        ["--csv", str(csv_path), "--owner", "driver-1", "--post", "http://pi.local:8000/"]
    )

    assert exit_code == 0
    assert len(calls) == 3
    assert calls[0]["url"] == "http://pi.local:8000/fuel"
    assert calls[0]["headers"] == {"X-User-Id": "driver-1"}
    assert calls[0]["timeout"] == main.POST_TIMEOUT_SECONDS
    assert calls[2]["json"] == {
        "odometer": 100500.0,
        "liters": 40.0,
        "total_price": 240.0,
        "is_full_tank": True,
        "arla_liters": 15.0,
        "fuel_type": "diesel",
        "station_name": "Posto Graal",
    }


def test_post_keeps_going_after_failures(
    csv_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    responses = iter(
        [
            _FakeResponse(),
            requests.exceptions.ConnectionError("server down"),
            _FakeResponse(422),
        ]
    )

    def flaky_post(*_args, **_kwargs):
        result = next(responses)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(main.requests, "post", flaky_post)

    exit_code = main.main(["--csv", str(csv_path), "--owner", "driver-1", "--post"])

    out = capsys.readouterr().out
    assert exit_code == 1
    assert "Row 2/3 not sent: server down" in out
    assert "Row 3/3 not sent" in out
    assert "Sent 1/3 fill-up(s) to http://localhost:8000." in out


def test_unreadable_csv_returns_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.csv"
    path.write_text("odometer\n1\n", encoding="utf-8")

    assert main.main(["--csv", str(path)]) == 1
