"""Scheduled task provisioning for active vessels.

Every active vessel should own one active position_check task. Run after
vessel activation, or as a repair job when tasks went missing.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from seatime.config import settings
from seatime.models.base import TaskKindEnum
from seatime.models.scheduled_task import ScheduledTask
from seatime.models.vessel import Vessel

logger = logging.getLogger(__name__)


def ensure_tracking_tasks(
    db: Session,
    now: datetime,
    interval_hours: float | None = None,
) -> dict:
    """Create or reactivate the position_check task of every active vessel.

    New tasks are due immediately (next_run_at = now). Existing active tasks
    keep their schedule. Commits once at the end.

    Returns {"total_active_vessels", "created", "reactivated",
    "already_active", "details": [...]}.
    """
    if interval_hours is None:
        interval_hours = settings.DEFAULT_TASK_INTERVAL_HOURS

    summary: dict = {
        "total_active_vessels": 0,
        "created": 0,
        "reactivated": 0,
        "already_active": 0,
        "details": [],
    }

    vessels = db.query(Vessel).filter(Vessel.is_active.is_(True)).all()
    summary["total_active_vessels"] = len(vessels)

    for vessel in vessels:
        task = (
            db.query(ScheduledTask)
            .filter(
                ScheduledTask.vessel_id == vessel.vessel_id,
                ScheduledTask.kind == TaskKindEnum.POSITION_CHECK,
            )
            .first()
        )
        if task is None:
            task = ScheduledTask(
                vessel_id=vessel.vessel_id,
                kind=TaskKindEnum.POSITION_CHECK,
                interval_hours=interval_hours,
                next_run_at=now,
                last_run_at=None,
                is_active=True,
            )
            db.add(task)
            action = "created"
        elif not task.is_active:
            task.is_active = True
            action = "reactivated"
        else:
            action = "already_active"

        summary[action] += 1
        summary["details"].append({
            "vessel_id": vessel.vessel_id,
            "vessel_name": vessel.name,
            "mmsi": vessel.mmsi,
            "action": action,
        })
        logger.info("Tracking task for %s (MMSI: %s): %s", vessel.name, vessel.mmsi, action)

    db.commit()
    return summary


def deactivate_tracking_tasks(db: Session, vessel_id: int) -> int:
    """Mark all of a vessel's tasks inactive. Flushes; the caller commits."""
    tasks = (
        db.query(ScheduledTask)
        .filter(ScheduledTask.vessel_id == vessel_id, ScheduledTask.is_active.is_(True))
        .all()
    )
    for task in tasks:
        task.is_active = False
    db.flush()
    if tasks:
        logger.info("Deactivated %d tracking task(s) for vessel %d", len(tasks), vessel_id)
    return len(tasks)
