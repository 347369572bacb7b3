"""Sea-time entry manager - turns a detected movement into a pending entry.

Per vessel and calendar day there is at most one pending entry:

  * no pending entry on the day of the old reading → create one
    (start = old reading, end = current reading) and fire the notifier;
  * a pending entry already starts on that day → extend it in place.
    Duration is recomputed from the entry's original start, never summed.

Absence of movement never touches an entry; closing an entry is the
mariner's decision, not a timeout.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from seatime.config import settings
from seatime.models.base import SeaTimeStatusEnum
from seatime.models.sea_time_entry import SeaTimeEntry
from seatime.models.vessel import Vessel
from seatime.modules.movement_analyzer import MovementResult
from seatime.modules.notifications import LoggingNotifier, Notifier, SeaTimeNotification
from seatime.utils.dates import CalendarDayFn, get_calendar_day_fn
from seatime.utils.geo import haversine_nm

logger = logging.getLogger(__name__)


class EntryAction(str, enum.Enum):
    CREATED = "created"
    EXTENDED = "extended"
    UNCHANGED = "unchanged"


@dataclass
class EntryOutcome:
    action: EntryAction
    entry: SeaTimeEntry


def find_pending_entry_for_day(
    db: Session,
    vessel_id: int,
    calendar_day: date,
    day_fn: CalendarDayFn,
) -> Optional[SeaTimeEntry]:
    """Return the vessel's pending entry whose start falls on *calendar_day*."""
    pending = (
        db.query(SeaTimeEntry)
        .filter(
            SeaTimeEntry.vessel_id == vessel_id,
            SeaTimeEntry.status == SeaTimeStatusEnum.PENDING.value,
        )
        .order_by(SeaTimeEntry.start_time.asc())
        .all()
    )
    for entry in pending:
        if day_fn(entry.start_time) == calendar_day:
            return entry
    return None


def _extend_entry(
    entry: SeaTimeEntry,
    movement: MovementResult,
    mca_min_hours: float,
) -> EntryAction:
    current = movement.current_reading
    if entry.end_time is not None and current.observed_at <= entry.end_time:
        return EntryAction.UNCHANGED

    entry.end_time = current.observed_at
    entry.end_lat = current.latitude
    entry.end_lon = current.longitude
    entry.duration_hours = (current.observed_at - entry.start_time).total_seconds() / 3600
    if entry.start_lat is not None and entry.start_lon is not None:
        entry.distance_nm = haversine_nm(
            entry.start_lat, entry.start_lon, current.latitude, current.longitude
        )
    entry.mca_compliant = entry.duration_hours >= mca_min_hours
    note = (
        f"Extended to {current.observed_at:%Y-%m-%d %H:%M} UTC: moved "
        f"{movement.distance_nm:.1f} nm in last {movement.duration_hours:.2f} h"
    )
    entry.notes = f"{entry.notes}\n{note}" if entry.notes else note
    return EntryAction.EXTENDED


def apply_movement(
    db: Session,
    vessel: Vessel,
    movement: MovementResult,
    *,
    day_fn: CalendarDayFn | None = None,
    notifier: Notifier | None = None,
    mca_min_hours: float | None = None,
) -> EntryOutcome:
    """Create or extend the vessel's pending entry for a detected movement.

    Commits the mutation. The notifier runs after commit, only for new entries.
    """
    if not movement.detected:
        raise ValueError(f"apply_movement needs a detected movement, got {movement.outcome.value}")
    if day_fn is None:
        day_fn = get_calendar_day_fn(settings.CALENDAR_DAY_POLICY)
    if notifier is None:
        notifier = LoggingNotifier()
    if mca_min_hours is None:
        mca_min_hours = settings.MCA_MIN_SEA_HOURS

    old, current = movement.old_reading, movement.current_reading
    calendar_day = day_fn(old.observed_at)

    existing = find_pending_entry_for_day(db, vessel.vessel_id, calendar_day, day_fn)
    if existing is not None:
        action = _extend_entry(existing, movement, mca_min_hours)
        db.commit()
        if action is EntryAction.EXTENDED:
            logger.info(
                "Extended sea-time entry %d for %s: end=%s, duration=%.2f h",
                existing.entry_id, vessel.name,
                existing.end_time.isoformat(), existing.duration_hours,
            )
        return EntryOutcome(action, existing)

    duration = movement.duration_hours
    entry = SeaTimeEntry(
        vessel_id=vessel.vessel_id,
        start_time=old.observed_at,
        end_time=current.observed_at,
        duration_hours=duration,
        entry_date=calendar_day,
        start_lat=old.latitude,
        start_lon=old.longitude,
        end_lat=current.latitude,
        end_lon=current.longitude,
        distance_nm=movement.distance_nm,
        detection_window_hours=duration,
        mca_compliant=duration >= mca_min_hours,
        status=SeaTimeStatusEnum.PENDING.value,
        service_type=vessel.primary_service_type,
        notes=(
            f"Auto-detected: moved {movement.distance_nm:.1f} nm in {duration:.2f} h "
            f"(position change {movement.max_diff_deg:.4f}°)"
        ),
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        # Another writer got the day's pending slot first
        db.rollback()
        existing = find_pending_entry_for_day(db, vessel.vessel_id, calendar_day, day_fn)
        if existing is None:
            raise
        logger.warning(
            "Pending entry for %s on %s appeared concurrently, extending entry %d instead",
            vessel.name, calendar_day.isoformat(), existing.entry_id,
        )
        action = _extend_entry(existing, movement, mca_min_hours)
        db.commit()
        return EntryOutcome(action, existing)

    logger.info(
        "Created sea-time entry %d for %s: %s → %s, %.2f h, %.1f nm",
        entry.entry_id, vessel.name,
        entry.start_time.isoformat(), entry.end_time.isoformat(),
        entry.duration_hours, entry.distance_nm,
    )

    notification = SeaTimeNotification(
        vessel_id=vessel.vessel_id,
        vessel_name=vessel.name,
        entry_id=entry.entry_id,
        duration_hours=entry.duration_hours,
        mca_compliant=bool(entry.mca_compliant),
    )
    try:
        notifier.notify_entry_created(notification)
    except Exception:
        logger.exception("Notifier failed for sea-time entry %d", entry.entry_id)

    return EntryOutcome(EntryAction.CREATED, entry)
