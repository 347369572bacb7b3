"""Tests for the append-only position store."""
from datetime import timedelta

import pytest

from seatime.models.position_reading import PositionReading
from seatime.modules.position_fetcher import PositionFetchResult
from seatime.modules.position_store import (
    latest_reading,
    reading_at_or_before,
    recent_readings,
    record_reading,
)

from conftest import T0, make_reading, make_vessel


class TestRecordReading:
    def test_stores_fetch_result(self, db):
        vessel = make_vessel(db)
        result = PositionFetchResult(is_moving=True, speed_knots=9.5, latitude=50.1, longitude=-1.1)

        reading = record_reading(db, vessel.vessel_id, result, T0)
        db.commit()

        stored = db.query(PositionReading).one()
        assert stored.reading_id == reading.reading_id
        assert stored.observed_at == T0
        assert stored.is_moving is True
        assert stored.latitude == pytest.approx(50.1)
        assert stored.source == "myshiptracking"

    def test_reading_without_position_is_kept(self, db):
        vessel = make_vessel(db)
        reading = record_reading(db, vessel.vessel_id, PositionFetchResult(), T0)
        db.commit()
        assert reading.has_position is False
        assert db.query(PositionReading).count() == 1

    def test_failed_result_is_refused(self, db):
        vessel = make_vessel(db)
        with pytest.raises(ValueError, match="failed fetch"):
            record_reading(db, vessel.vessel_id, PositionFetchResult.failed("HTTP 500"), T0)
        assert db.query(PositionReading).count() == 0

    def test_does_not_commit(self, db):
        vessel = make_vessel(db)
        record_reading(db, vessel.vessel_id, PositionFetchResult(), T0)
        db.rollback()
        assert db.query(PositionReading).count() == 0


class TestQueries:
    def test_latest_reading(self, db):
        vessel = make_vessel(db)
        make_reading(db, vessel, T0, lat=50.0)
        make_reading(db, vessel, T0 + timedelta(hours=2), lat=50.2)
        make_reading(db, vessel, T0 + timedelta(hours=1), lat=50.1)

        assert latest_reading(db, vessel.vessel_id).latitude == pytest.approx(50.2)

    def test_latest_reading_none_for_new_vessel(self, db):
        vessel = make_vessel(db)
        assert latest_reading(db, vessel.vessel_id) is None

    def test_reading_at_or_before_is_inclusive(self, db):
        vessel = make_vessel(db)
        make_reading(db, vessel, T0 - timedelta(hours=1), lat=49.9)
        make_reading(db, vessel, T0, lat=50.0)
        make_reading(db, vessel, T0 + timedelta(minutes=1), lat=50.1)

        assert reading_at_or_before(db, vessel.vessel_id, T0).latitude == pytest.approx(50.0)
        assert reading_at_or_before(db, vessel.vessel_id, T0 - timedelta(hours=2)) is None

    def test_readings_are_per_vessel(self, db):
        a = make_vessel(db, mmsi="235000001")
        b = make_vessel(db, mmsi="235000002")
        make_reading(db, a, T0, lat=10.0)
        make_reading(db, b, T0 + timedelta(hours=1), lat=20.0)

        assert latest_reading(db, a.vessel_id).latitude == pytest.approx(10.0)

    def test_recent_readings_newest_first_and_limited(self, db):
        vessel = make_vessel(db)
        for i in range(5):
            make_reading(db, vessel, T0 + timedelta(hours=i), lat=50.0 + i / 10)

        rows = recent_readings(db, vessel.vessel_id, T0 + timedelta(hours=1), limit=3)

        assert [r.observed_at for r in rows] == [
            T0 + timedelta(hours=4),
            T0 + timedelta(hours=3),
            T0 + timedelta(hours=2),
        ]
