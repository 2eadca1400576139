#!/usr/bin/env python3
"""
Pydantic Models for the Fuel API
================================

This file defines the data structures (schemas) for our API using Pydantic.

Pydantic validates incoming JSON (rejecting bad types, missing fields and
out-of-range numbers with a 422 response) and documents every model on
FastAPI's /docs page.

HOW THESE ARE USED:
-------------------
- FuelLogIn: body of POST /fuel, one fill-up typed in (or dictated) by the driver
- FuelLogOut: a stored fill-up as returned by GET /fuel
- FuelLogCreated: response of POST /fuel, the stored log plus whether it can
  anchor the average and, for full tanks, the refreshed statistics
- FuelStats: the statistics payload shared by POST /fuel and GET /fuel/stats
- FuelStatsResponse: GET /fuel/stats, the payload plus period information
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class FuelLogIn(BaseModel):
    """
    Model for a new fill-up.

    Volumes and price must be positive; Arla defaults to zero and the
    tank is assumed partial unless the driver says otherwise.
    """
    odometer: float = Field(gt=0, description="Odometer reading in km")
    liters: float = Field(gt=0, description="Diesel volume in liters")
    total_price: float = Field(gt=0, description="Amount paid at the pump")
    is_full_tank: bool = False
    arla_liters: float = Field(default=0.0, ge=0)
    fuel_type: Literal["diesel", "arla32"] = "diesel"
    station_name: str | None = None


class FuelLogOut(BaseModel):
    """
    Model for fill-ups returned by the API.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    odometer: float
    liters: float
    total_price: float
    is_full_tank: bool
    arla_liters: float
    fuel_type: str
    station_name: str | None = None
    created_at: datetime | None = None


class FuelStats(BaseModel):
    """
    Statistics computed from an owner's fill-ups.

    average_consumption and average_price_per_liter stay null until there
    is enough data; clients show them as "—", never as zero.
    """
    average_consumption: float | None
    total_liters: float
    total_spent: float
    last_full_tank_odometer: float | None
    last_full_tank_date: str | None
    partial_fill_count: int
    full_tank_count: int
    average_price_per_liter: float | None


class FuelStatsResponse(FuelStats):
    logs_count: int
    suggest_full_tank: bool
    period: str


class FuelLogCreated(FuelLogOut):
    valid_for_average: bool
    fuel_stats: FuelStats | None = None
