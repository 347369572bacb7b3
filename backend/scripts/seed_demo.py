"""Seed a demo vessel for local runs without a position provider.

Inserts one active vessel, its position_check task (due now) and two
readings one lookback window apart, 0.15° of latitude between them
(about 9 nm). The next check that stores a reading near the second
position is enough for the analyzer to report movement.

Usage:
    from seatime.database import SessionLocal
    from scripts.seed_demo import seed_demo
    db = SessionLocal()
    seed_demo(db)
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

DEMO_MMSI = "235000001"
DEMO_NAME = "DEMO SURVEYOR"
DEMO_OWNER = "demo"

# (hours before now, lat, lon, speed knots): English Channel, heading north
DEMO_TRACK: list[tuple[float, float, float, float]] = [
    (2.0, 50.000, -1.000, 9.5),
    (0.0, 50.150, -1.000, 9.8),
]


def seed_demo(db: Session, now: Optional[datetime] = None) -> dict:
    """Insert the demo vessel and readings. Idempotent - skips an existing demo vessel."""
    from seatime.models.position_reading import PositionReading
    from seatime.models.vessel import Vessel
    from seatime.modules.task_provisioning import ensure_tracking_tasks
    from seatime.utils.dates import utcnow

    if now is None:
        now = utcnow()

    vessel = (
        db.query(Vessel)
        .filter(Vessel.mmsi == DEMO_MMSI, Vessel.owner_id == DEMO_OWNER)
        .first()
    )
    if vessel is not None:
        logger.info("Demo vessel already present (vessel_id=%d)", vessel.vessel_id)
        return {"vessel_id": vessel.vessel_id, "readings": 0, "created": False}

    vessel = Vessel(mmsi=DEMO_MMSI, name=DEMO_NAME, owner_id=DEMO_OWNER, is_active=True)
    db.add(vessel)
    db.flush()

    for hours_ago, lat, lon, speed in DEMO_TRACK:
        db.add(PositionReading(
            vessel_id=vessel.vessel_id,
            observed_at=now - timedelta(hours=hours_ago),
            is_moving=speed > 0.5,
            speed_knots=speed,
            latitude=lat,
            longitude=lon,
            source="demo",
        ))
    db.commit()

    ensure_tracking_tasks(db, now)
    logger.info("Seeded demo vessel %s (vessel_id=%d)", DEMO_NAME, vessel.vessel_id)
    return {"vessel_id": vessel.vessel_id, "readings": len(DEMO_TRACK), "created": True}


if __name__ == "__main__":
    from seatime.database import SessionLocal, init_db

    logging.basicConfig(level=logging.INFO)
    init_db()
    session = SessionLocal()
    try:
        print(seed_demo(session))
    finally:
        session.close()
