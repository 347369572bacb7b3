"""Pydantic schemas for sea-time entries."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel

from seatime.models.base import ServiceTypeEnum


class SeaTimeEntryRead(BaseModel):
    entry_id: int
    vessel_id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_hours: Optional[float] = None
    entry_date: Optional[date] = None
    start_lat: Optional[float] = None
    start_lon: Optional[float] = None
    end_lat: Optional[float] = None
    end_lon: Optional[float] = None
    distance_nm: Optional[float] = None
    detection_window_hours: Optional[float] = None
    mca_compliant: Optional[bool] = None
    status: str
    service_type: ServiceTypeEnum
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class SeaTimeEntryList(BaseModel):
    total: int
    entries: list[SeaTimeEntryRead]
