"""Position store - append-only time series of readings per vessel.

Readings are only ever inserted; ordering by observed_at is the only
relation between rows.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from seatime.models.position_reading import PositionReading
from seatime.modules.position_fetcher import API_SOURCE, PositionFetchResult

logger = logging.getLogger(__name__)


def record_reading(
    db: Session,
    vessel_id: int,
    result: PositionFetchResult,
    observed_at: datetime,
    source: str = API_SOURCE,
) -> PositionReading:
    """Insert a reading for a successful fetch. Flushes; the caller commits."""
    if not result.ok:
        raise ValueError(f"Cannot store a failed fetch result: {result.error}")
    reading = PositionReading(
        vessel_id=vessel_id,
        observed_at=observed_at,
        is_moving=result.is_moving,
        speed_knots=result.speed_knots,
        latitude=result.latitude,
        longitude=result.longitude,
        source=source,
    )
    db.add(reading)
    db.flush()
    return reading


def latest_reading(db: Session, vessel_id: int) -> Optional[PositionReading]:
    """Most recent reading overall."""
    return (
        db.query(PositionReading)
        .filter(PositionReading.vessel_id == vessel_id)
        .order_by(PositionReading.observed_at.desc(), PositionReading.reading_id.desc())
        .first()
    )


def reading_at_or_before(
    db: Session, vessel_id: int, cutoff: datetime
) -> Optional[PositionReading]:
    """Most recent reading observed at or before *cutoff*."""
    return (
        db.query(PositionReading)
        .filter(
            PositionReading.vessel_id == vessel_id,
            PositionReading.observed_at <= cutoff,
        )
        .order_by(PositionReading.observed_at.desc(), PositionReading.reading_id.desc())
        .first()
    )


def recent_readings(
    db: Session, vessel_id: int, since: datetime, limit: int = 50
) -> list[PositionReading]:
    """Readings observed since *since*, newest first."""
    return (
        db.query(PositionReading)
        .filter(
            PositionReading.vessel_id == vessel_id,
            PositionReading.observed_at >= since,
        )
        .order_by(PositionReading.observed_at.desc())
        .limit(limit)
        .all()
    )
