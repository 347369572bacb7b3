"""Movement analyzer - did the vessel move during the last lookback window?

Compares the newest reading with the newest reading at or before
``now - lookback``. Two stages:

  1. Gate: max(|Δlat|, |Δlon|) must exceed the degree threshold (0.1°).
     Cheap, and correlated with displacement without being equal to it.
  2. Report: haversine distance in nautical miles and elapsed hours
     between the two readings.

Holds no state; everything comes from position_readings.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from seatime.config import settings
from seatime.models.position_reading import PositionReading
from seatime.modules.position_store import latest_reading, reading_at_or_before
from seatime.utils.geo import haversine_nm, max_coordinate_delta

logger = logging.getLogger(__name__)


class MovementOutcome(str, enum.Enum):
    INSUFFICIENT_HISTORY = "insufficient_history"
    MISSING_POSITION = "missing_position"
    NO_MOVEMENT = "no_movement"
    MOVEMENT = "movement"


@dataclass
class MovementResult:
    outcome: MovementOutcome
    old_reading: Optional[PositionReading] = None
    current_reading: Optional[PositionReading] = None
    max_diff_deg: Optional[float] = None
    distance_nm: Optional[float] = None
    duration_hours: Optional[float] = None

    @property
    def detected(self) -> bool:
        return self.outcome is MovementOutcome.MOVEMENT


def compare_readings(
    old: PositionReading,
    current: PositionReading,
    threshold_deg: float | None = None,
) -> MovementResult:
    """Apply the degree gate and, past it, compute distance and duration."""
    if threshold_deg is None:
        threshold_deg = settings.MOVEMENT_THRESHOLD_DEG

    if not old.has_position or not current.has_position:
        return MovementResult(MovementOutcome.MISSING_POSITION, old, current)

    max_diff = max_coordinate_delta(old.latitude, old.longitude, current.latitude, current.longitude)
    if max_diff <= threshold_deg:
        return MovementResult(MovementOutcome.NO_MOVEMENT, old, current, max_diff_deg=max_diff)

    distance = haversine_nm(old.latitude, old.longitude, current.latitude, current.longitude)
    duration = (current.observed_at - old.observed_at).total_seconds() / 3600
    return MovementResult(
        MovementOutcome.MOVEMENT,
        old,
        current,
        max_diff_deg=max_diff,
        distance_nm=distance,
        duration_hours=duration,
    )


def analyze_movement(
    db: Session,
    vessel_id: int,
    now: datetime,
    *,
    lookback_hours: float | None = None,
    threshold_deg: float | None = None,
) -> MovementResult:
    """Classify the vessel's movement over the window ending at *now*."""
    if lookback_hours is None:
        lookback_hours = settings.LOOKBACK_WINDOW_HOURS

    cutoff = now - timedelta(hours=lookback_hours)
    old = reading_at_or_before(db, vessel_id, cutoff)
    if old is None:
        logger.debug(
            "Vessel %s has no reading at or before %s, nothing to decide yet",
            vessel_id, cutoff.isoformat(),
        )
        return MovementResult(MovementOutcome.INSUFFICIENT_HISTORY)

    current = latest_reading(db, vessel_id)
    result = compare_readings(old, current, threshold_deg)

    if result.outcome is MovementOutcome.MISSING_POSITION:
        logger.debug("Vessel %s: reading without position in window, skipping", vessel_id)
    else:
        logger.info(
            "Vessel %s window %s → %s: movement=%s, Δ=%.4f°%s",
            vessel_id,
            old.observed_at.isoformat(),
            current.observed_at.isoformat(),
            "YES" if result.detected else "NO",
            result.max_diff_deg,
            f", {result.distance_nm:.2f} nm in {result.duration_hours:.2f} h" if result.detected else "",
        )
    return result
