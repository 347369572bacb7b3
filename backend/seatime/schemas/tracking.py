"""Pydantic schemas for scheduler, task, reading and audit endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ScheduledTaskRead(BaseModel):
    task_id: int
    vessel_id: int
    vessel_name: str
    mmsi: str
    kind: str
    interval_hours: float
    last_run_at: Optional[datetime] = None
    next_run_at: datetime
    is_active: bool


class SchedulerStatus(BaseModel):
    running: bool
    busy: bool
    polling_enabled: bool
    tick_seconds: float
    last_iteration: Optional[dict] = None


class PositionReadingRead(BaseModel):
    reading_id: int
    observed_at: datetime
    is_moving: bool
    speed_knots: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    source: Optional[str] = None

    model_config = {"from_attributes": True}


class VesselReadings(BaseModel):
    vessel_id: int
    is_moving: bool
    current: Optional[PositionReadingRead] = None
    recent: list[PositionReadingRead]


class ProviderAuditLogRead(BaseModel):
    audit_id: int
    mmsi: str
    api_url: str
    request_time: datetime
    response_status: str
    response_body: Optional[str] = None
    authentication_status: str
    error_message: Optional[str] = None
    api_source: Optional[str] = None

    model_config = {"from_attributes": True}


class VesselCheckResult(BaseModel):
    vessel_id: int
    fetched: bool
    movement: Optional[str] = None
    entry_action: Optional[str] = None
    entry_id: Optional[int] = None
    error: Optional[str] = None
