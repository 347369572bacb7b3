"""Position check task - fetch → store → analyze → create/extend entry."""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from seatime.models.base import TaskKindEnum
from seatime.models.scheduled_task import ScheduledTask
from seatime.models.vessel import Vessel
from seatime.modules.movement_analyzer import analyze_movement
from seatime.modules.position_store import record_reading
from seatime.modules.sea_time_entries import apply_movement
from seatime.modules.task_registry import TaskContext, register_task_handler

logger = logging.getLogger(__name__)


@register_task_handler(TaskKindEnum.POSITION_CHECK)
def run_position_check(
    db: Session,
    task: ScheduledTask | None,
    vessel: Vessel,
    now: datetime,
    ctx: TaskContext,
) -> dict:
    """Run one position check for *vessel* at *now*.

    A provider error ends the check early; nothing is stored or analyzed.
    The reading is committed before analysis so it survives a failed entry write.
    """
    summary: dict = {"fetched": False, "movement": None, "entry_action": None}

    result = ctx.fetch(db, vessel, api_key=ctx.api_key, client=ctx.http_client)
    if not result.ok:
        summary["error"] = result.error
        return summary

    reading = record_reading(db, vessel.vessel_id, result, now)
    db.commit()
    summary["fetched"] = True
    summary["reading_id"] = reading.reading_id

    movement = analyze_movement(
        db,
        vessel.vessel_id,
        now,
        lookback_hours=ctx.lookback_hours,
        threshold_deg=ctx.threshold_deg,
    )
    summary["movement"] = movement.outcome.value
    if not movement.detected:
        return summary

    outcome = apply_movement(
        db,
        vessel,
        movement,
        day_fn=ctx.day_fn,
        notifier=ctx.notifier,
        mca_min_hours=ctx.mca_min_hours,
    )
    summary["entry_action"] = outcome.action.value
    summary["entry_id"] = outcome.entry.entry_id
    return summary
