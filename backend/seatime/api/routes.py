from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from seatime.database import get_db
from seatime.models.audit_log import ProviderAuditLog
from seatime.models.base import SeaTimeStatusEnum
from seatime.models.scheduled_task import ScheduledTask
from seatime.models.sea_time_entry import SeaTimeEntry
from seatime.models.vessel import Vessel
from seatime.modules.position_fetcher import ProviderConfigError
from seatime.modules.position_store import latest_reading, recent_readings
from seatime.modules.scheduler import SchedulerBusyError, SeaTimeScheduler
from seatime.modules.task_provisioning import deactivate_tracking_tasks, ensure_tracking_tasks
from seatime.schemas.sea_time import SeaTimeEntryList, SeaTimeEntryRead
from seatime.schemas.tracking import (
    PositionReadingRead,
    ProviderAuditLogRead,
    ScheduledTaskRead,
    SchedulerStatus,
    VesselCheckResult,
    VesselReadings,
)
from seatime.utils.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_scheduler(request: Request) -> SeaTimeScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not initialised")
    return scheduler


def _get_vessel_or_404(db: Session, vessel_id: int) -> Vessel:
    vessel = db.query(Vessel).filter(Vessel.vessel_id == vessel_id).first()
    if vessel is None:
        raise HTTPException(status_code=404, detail="Vessel not found")
    return vessel


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------

@router.get("/scheduler/status", response_model=SchedulerStatus, tags=["scheduler"])
def scheduler_status(request: Request):
    scheduler = _get_scheduler(request)
    return SchedulerStatus(
        running=scheduler.is_running,
        busy=scheduler.is_busy,
        polling_enabled=scheduler.polling_enabled,
        tick_seconds=scheduler.tick_seconds,
        last_iteration=scheduler.last_iteration,
    )


@router.get("/scheduled-tasks", response_model=list[ScheduledTaskRead], tags=["scheduler"])
def list_scheduled_tasks(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    """All tasks with their vessel and run times, soonest first."""
    query = db.query(ScheduledTask, Vessel).join(Vessel, Vessel.vessel_id == ScheduledTask.vessel_id)
    if active_only:
        query = query.filter(ScheduledTask.is_active.is_(True))
    rows = query.order_by(ScheduledTask.next_run_at.asc()).all()
    return [
        ScheduledTaskRead(
            task_id=task.task_id,
            vessel_id=vessel.vessel_id,
            vessel_name=vessel.name,
            mmsi=vessel.mmsi,
            kind=task.kind.value,
            interval_hours=task.interval_hours,
            last_run_at=task.last_run_at,
            next_run_at=task.next_run_at,
            is_active=task.is_active,
        )
        for task, vessel in rows
    ]


@router.post("/scheduled-tasks/verify", tags=["scheduler"])
def verify_scheduled_tasks(db: Session = Depends(get_db)):
    """Make sure every active vessel has an active position check task."""
    return ensure_tracking_tasks(db, utcnow())


# ---------------------------------------------------------------------------
# Vessels
# ---------------------------------------------------------------------------

@router.post("/vessels/{vessel_id}/check", response_model=VesselCheckResult, tags=["vessels"])
def check_vessel(vessel_id: int, request: Request, db: Session = Depends(get_db)):
    """Run a position check for one vessel now. Does not move its schedule."""
    scheduler = _get_scheduler(request)
    vessel = _get_vessel_or_404(db, vessel_id)
    try:
        result = scheduler.run_vessel_check(db, vessel)
    except ProviderConfigError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    except SchedulerBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return VesselCheckResult(vessel_id=vessel_id, **result)


@router.post("/vessels/{vessel_id}/deactivate", tags=["vessels"])
def deactivate_vessel(vessel_id: int, db: Session = Depends(get_db)):
    """Stop tracking a vessel: vessel and its tasks become inactive."""
    vessel = _get_vessel_or_404(db, vessel_id)
    vessel.is_active = False
    count = deactivate_tracking_tasks(db, vessel_id)
    db.commit()
    return {"vessel_id": vessel_id, "is_active": False, "tasks_deactivated": count}


@router.get("/vessels/{vessel_id}/readings", response_model=VesselReadings, tags=["vessels"])
def vessel_readings(
    vessel_id: int,
    hours: int = Query(24, ge=1, le=24 * 14),
    db: Session = Depends(get_db),
):
    """Current movement status and recent readings (newest first, max 50)."""
    _get_vessel_or_404(db, vessel_id)
    current = latest_reading(db, vessel_id)
    recent = recent_readings(db, vessel_id, utcnow() - timedelta(hours=hours), limit=50)
    return VesselReadings(
        vessel_id=vessel_id,
        is_moving=bool(current.is_moving) if current else False,
        current=PositionReadingRead.model_validate(current) if current else None,
        recent=[PositionReadingRead.model_validate(r) for r in recent],
    )


@router.get(
    "/vessels/{vessel_id}/audit-logs",
    response_model=list[ProviderAuditLogRead],
    tags=["vessels"],
)
def vessel_audit_logs(
    vessel_id: int,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Provider calls for a vessel, newest first."""
    _get_vessel_or_404(db, vessel_id)
    logs = (
        db.query(ProviderAuditLog)
        .filter(ProviderAuditLog.vessel_id == vessel_id)
        .order_by(ProviderAuditLog.request_time.desc())
        .limit(limit)
        .all()
    )
    return [ProviderAuditLogRead.model_validate(log) for log in logs]


# ---------------------------------------------------------------------------
# Sea time
# ---------------------------------------------------------------------------

@router.get("/sea-time/entries", response_model=SeaTimeEntryList, tags=["sea-time"])
def list_sea_time_entries(
    status: Optional[SeaTimeStatusEnum] = Query(None),
    vessel_id: Optional[int] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    query = db.query(SeaTimeEntry)
    if status is not None:
        query = query.filter(SeaTimeEntry.status == status.value)
    if vessel_id is not None:
        query = query.filter(SeaTimeEntry.vessel_id == vessel_id)
    query = query.order_by(SeaTimeEntry.start_time.desc())
    total = query.count()
    entries = query.offset(offset).limit(limit).all()
    return SeaTimeEntryList(
        total=total,
        entries=[SeaTimeEntryRead.model_validate(e) for e in entries],
    )
