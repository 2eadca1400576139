#!/usr/bin/env python3
"""
SQLAlchemy ORM Models
=====================

This file defines the database table structure for storing fuel fill-ups.

THE FuelLogModel CLASS:
-----------------------
Each instance of FuelLogModel = one row in the "fuel_logs" table, i.e. one
visit to the pump. It mirrors the Pydantic models in schemas.py (which
describe the API) and the FuelLogRecord dataclass in fuel_stats.py (which
the statistics code works with).

Rows are only ever inserted. Statistics are never stored here; they are
recomputed from the rows on every request.

FIELD NOTES:
------------
- id: random UUID string, assigned on insert
- user_id: the driver who owns the log; every query filters on it
- odometer: reading in km at the time of the fill-up
- liters: diesel volume; arla_liters is kept apart on purpose
- total_price: what was paid at the pump, as entered
- is_full_tank: True only when the tank was topped off
- created_at: stored as UTC
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, String

from database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FuelLogModel(Base):
    """
    Database model for storing fuel fill-ups.
    """
    __tablename__ = "fuel_logs"

    id = Column(String(36), primary_key=True, default=_new_id)

    user_id = Column(String, index=True, nullable=False)

    # Odometer reading in kilometers
    odometer = Column(Float, nullable=False)

    # Diesel volume in liters
    liters = Column(Float, nullable=False)

    # Arla 32 volume in liters (never mixed into consumption math)
    arla_liters = Column(Float, nullable=False, default=0.0)

    # Amount paid at the pump
    total_price = Column(Float, nullable=False, default=0.0)

    is_full_tank = Column(Boolean, nullable=False, default=False)

    # "diesel" or "arla32"
    fuel_type = Column(String, nullable=False, default="diesel")

    station_name = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), index=True, default=_utcnow)
