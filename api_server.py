#!/usr/bin/env python3
"""
Copiloto de Estrada Fuel API
============================

FastAPI server that stores a driver's fuel fill-ups and serves the
fuel-economy statistics computed from them.

HOW TO RUN:
-----------
    python3 api_server.py

The server will start on port 8000. Interactive docs live at /docs.

WHO IS THE DRIVER?
------------------
Authentication happens in front of this service. The auth layer puts the
driver's id in the X-User-Id header and every route below only ever sees
that driver's logs.

ENDPOINTS:
----------
- GET  /health      → liveness check
- GET  /fuel        → the driver's fill-ups, newest first
- POST /fuel        → store a fill-up; full tanks also return fresh statistics
- GET  /fuel/stats  → statistics for one calendar month (default: this month)

All the math lives in fuel_stats.py. This file only loads rows, converts
them into FuelLogRecord objects and shapes the responses.
"""

from datetime import datetime, timezone

from fastapi import FastAPI, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from database import SessionLocal, engine
from fuel_stats import (
    FuelLogRecord,
    calculate_fuel_stats,
    coerce_record,
    is_valid_for_average,
    should_suggest_full_tank,
)
from models import Base, FuelLogModel
from schemas import FuelLogCreated, FuelLogIn, FuelLogOut, FuelStats, FuelStatsResponse

app = FastAPI(
    title="Copiloto de Estrada Fuel API",
    description="Fuel fill-ups and full-tank fuel-economy statistics for truck drivers"
)

# Create the "fuel_logs" table if it doesn't exist yet
Base.metadata.create_all(bind=engine)


# -------------------------------------------------
# REQUEST DEPENDENCIES
# -------------------------------------------------
def get_db():
    """
    Creates a new database session for each request.
    The session is automatically closed when the request finishes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_owner_id(x_user_id: str = Header(..., alias="X-User-Id", min_length=1)) -> str:
    """The authenticated driver, as forwarded by the auth layer."""
    return x_user_id


# -------------------------------------------------
# ROW HELPERS
# -------------------------------------------------
def _to_record(row: FuelLogModel) -> FuelLogRecord:
    """Run a stored row through the same coercion as any other source."""
    return coerce_record({
        column.name: getattr(row, column.name)
        for column in FuelLogModel.__table__.columns
    })


def _owner_rows(db: Session, owner_id: str, start=None, end=None) -> list[FuelLogModel]:
    """All of one driver's rows in creation order, optionally within [start, end)."""
    query = db.query(FuelLogModel).filter(FuelLogModel.user_id == owner_id)
    if start is not None:
        query = query.filter(FuelLogModel.created_at >= start)
    if end is not None:
        query = query.filter(FuelLogModel.created_at < end)
    return query.order_by(FuelLogModel.created_at.asc(), FuelLogModel.id.asc()).all()


def _month_bounds(period: str) -> tuple[datetime, datetime]:
    """Turn "YYYY-MM" into the UTC start of that month and of the next one."""
    try:
        start = datetime.strptime(period, "%Y-%m").replace(tzinfo=timezone.utc)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
    except ValueError:
        # Also covers 9999-12, whose following month does not exist.
        raise HTTPException(status_code=400, detail="period must look like YYYY-MM")
    return start, end


# -------------------------------------------------
# ENDPOINTS
# -------------------------------------------------

@app.get("/health")
def health_check():
    """
    Simple health check endpoint to verify the API is running.
    """
    return {"status": "ok"}


@app.get("/fuel", response_model=list[FuelLogOut])
def list_fuel_logs(
    limit: int | None = Query(None, ge=1),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    Get the driver's fill-ups, newest first.

    Query parameters:
    -----------------
    - limit: how many logs to return (default: all of them)
    """
    query = (
        db.query(FuelLogModel)
        .filter(FuelLogModel.user_id == owner_id)
        .order_by(FuelLogModel.created_at.desc(), FuelLogModel.id.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


@app.post("/fuel", response_model=FuelLogCreated, status_code=201)
def create_fuel_log(
    payload: FuelLogIn,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    Store a new fill-up.

    Steps:
    1. Pydantic validates the incoming JSON against FuelLogIn
    2. The validity gate checks the new log against the driver's history
       (full tank AND odometer past the last log) - advisory only, the log
       is stored either way
    3. The row is inserted and committed
    4. For full tanks, statistics are recomputed from every stored log
    """
    previous = [_to_record(row) for row in _owner_rows(db, owner_id)]
    candidate = coerce_record({**payload.model_dump(), "user_id": owner_id})
    valid_for_average = is_valid_for_average(candidate, previous)

    if payload.is_full_tank and not valid_for_average:
        print(
            f"[FUEL] Full tank at {payload.odometer:.0f} km is not past the last "
            f"log for {owner_id}; it will not anchor the average."
        )

    db_log = FuelLogModel(user_id=owner_id, **payload.model_dump())
    db.add(db_log)
    db.commit()
    db.refresh(db_log)

    fuel_stats = None
    if payload.is_full_tank:
        history = previous + [_to_record(db_log)]
        snapshot = calculate_fuel_stats(history)
        if snapshot.average_consumption_km_per_liter is not None:
            print(
                f"[FUEL] Average recalculated for {owner_id}: "
                f"{snapshot.average_consumption_km_per_liter:.2f} km/l"
            )
        if should_suggest_full_tank(history):
            print(f"[FUEL] Suggesting a full tank to {owner_id} for a reliable average.")
        fuel_stats = FuelStats(**snapshot.to_payload())

    return FuelLogCreated(
        **FuelLogOut.model_validate(db_log).model_dump(),
        valid_for_average=valid_for_average,
        fuel_stats=fuel_stats,
    )


@app.get("/fuel/stats", response_model=FuelStatsResponse)
def get_fuel_stats(
    period: str | None = None,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    Statistics for the fill-ups created in one calendar month.

    Query parameters:
    -----------------
    - period: month as "YYYY-MM" (default: the current UTC month)

    Returns the statistics payload plus:
    - logs_count: how many fill-ups fell in the month
    - suggest_full_tank: True when 3 of the last 5 fill-ups were partial
    - period: the month that was analyzed
    """
    if period is None:
        period = datetime.now(timezone.utc).strftime("%Y-%m")
    start, end = _month_bounds(period)

    logs = [_to_record(row) for row in _owner_rows(db, owner_id, start, end)]
    snapshot = calculate_fuel_stats(logs)

    return FuelStatsResponse(
        **snapshot.to_payload(),
        logs_count=len(logs),
        suggest_full_tank=should_suggest_full_tank(logs),
        period=period,
    )


# Run the server when this file is executed directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api_server:app",
        host="0.0.0.0",  # Listen on all network interfaces
        port=8000,
        reload=False
    )
