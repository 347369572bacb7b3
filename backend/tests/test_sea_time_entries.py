"""Tests for the sea-time entry manager: create, extend, one pending per day."""
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from seatime.models.base import SeaTimeStatusEnum, ServiceTypeEnum
from seatime.models.position_reading import PositionReading
from seatime.models.sea_time_entry import SeaTimeEntry
from seatime.modules.movement_analyzer import MovementOutcome, MovementResult, compare_readings
from seatime.modules.notifications import Notifier, SeaTimeNotification
from seatime.modules.sea_time_entries import (
    EntryAction,
    apply_movement,
    find_pending_entry_for_day,
)
from seatime.utils.dates import utc_calendar_day

from conftest import T0, make_vessel


def _movement(start, end, start_lat, end_lat, lon=-1.0):
    old = PositionReading(vessel_id=1, observed_at=start, is_moving=True, latitude=start_lat, longitude=lon)
    current = PositionReading(vessel_id=1, observed_at=end, is_moving=True, latitude=end_lat, longitude=lon)
    result = compare_readings(old, current, threshold_deg=0.1)
    assert result.detected
    return result


def _apply(db, vessel, movement, notifier=None):
    return apply_movement(
        db,
        vessel,
        movement,
        day_fn=utc_calendar_day,
        notifier=notifier or MagicMock(spec=Notifier),
        mca_min_hours=4.0,
    )


class TestCreateEntry:
    def test_creates_pending_entry_from_window(self, db):
        vessel = make_vessel(db)
        movement = _movement(T0, T0 + timedelta(hours=2), 50.0, 50.15)

        outcome = _apply(db, vessel, movement)

        assert outcome.action is EntryAction.CREATED
        entry = db.query(SeaTimeEntry).one()
        assert entry.entry_id == outcome.entry.entry_id
        assert entry.status == SeaTimeStatusEnum.PENDING.value
        assert entry.start_time == T0
        assert entry.end_time == T0 + timedelta(hours=2)
        assert entry.duration_hours == pytest.approx(2.0)
        assert entry.entry_date == date(2026, 3, 10)
        assert entry.start_lat == pytest.approx(50.0)
        assert entry.end_lat == pytest.approx(50.15)
        assert entry.distance_nm == pytest.approx(9.006, abs=0.01)
        assert entry.detection_window_hours == pytest.approx(2.0)
        assert entry.mca_compliant is False
        assert entry.service_type is ServiceTypeEnum.ACTUAL_SEA_SERVICE
        assert "Auto-detected" in entry.notes

    def test_duration_is_not_rounded(self, db):
        vessel = make_vessel(db)
        movement = _movement(T0, T0 + timedelta(hours=2, minutes=1), 50.0, 50.2)

        outcome = _apply(db, vessel, movement)

        assert outcome.entry.duration_hours == pytest.approx(2 + 1 / 60)

    def test_service_type_follows_vessel(self, db):
        vessel = make_vessel(db, primary_service_type=ServiceTypeEnum.STANDBY_SERVICE)
        outcome = _apply(db, vessel, _movement(T0, T0 + timedelta(hours=2), 50.0, 50.2))
        assert outcome.entry.service_type is ServiceTypeEnum.STANDBY_SERVICE

    def test_long_window_is_mca_compliant(self, db):
        vessel = make_vessel(db)
        outcome = _apply(db, vessel, _movement(T0, T0 + timedelta(hours=4), 50.0, 50.4))
        assert outcome.entry.mca_compliant is True

    def test_notifier_called_once_with_entry(self, db):
        vessel = make_vessel(db, name="SEA EAGLE")
        notifier = MagicMock(spec=Notifier)

        outcome = _apply(db, vessel, _movement(T0, T0 + timedelta(hours=2), 50.0, 50.2), notifier)

        notifier.notify_entry_created.assert_called_once()
        notification = notifier.notify_entry_created.call_args.args[0]
        assert isinstance(notification, SeaTimeNotification)
        assert notification.entry_id == outcome.entry.entry_id
        assert notification.vessel_name == "SEA EAGLE"
        assert notification.duration_hours == pytest.approx(2.0)

    def test_notifier_failure_keeps_entry(self, db):
        vessel = make_vessel(db)
        notifier = MagicMock(spec=Notifier)
        notifier.notify_entry_created.side_effect = RuntimeError("push service down")

        outcome = _apply(db, vessel, _movement(T0, T0 + timedelta(hours=2), 50.0, 50.2), notifier)

        assert outcome.action is EntryAction.CREATED
        db.expire_all()
        assert db.query(SeaTimeEntry).count() == 1

    def test_requires_detected_movement(self, db):
        vessel = make_vessel(db)
        with pytest.raises(ValueError):
            _apply(db, vessel, MovementResult(MovementOutcome.NO_MOVEMENT))
        assert db.query(SeaTimeEntry).count() == 0


class TestExtendEntry:
    def test_same_day_extends_existing_row(self, db):
        vessel = make_vessel(db)
        notifier = MagicMock(spec=Notifier)
        first = _apply(db, vessel, _movement(T0, T0 + timedelta(hours=2), 50.0, 50.15), notifier)

        second = _apply(
            db, vessel, _movement(T0 + timedelta(hours=2), T0 + timedelta(hours=4), 50.15, 50.3), notifier
        )

        assert second.action is EntryAction.EXTENDED
        assert second.entry.entry_id == first.entry.entry_id
        assert db.query(SeaTimeEntry).count() == 1
        entry = db.query(SeaTimeEntry).one()
        assert entry.start_time == T0
        assert entry.end_time == T0 + timedelta(hours=4)
        assert entry.duration_hours == pytest.approx(4.0)
        assert entry.end_lat == pytest.approx(50.3)
        assert entry.distance_nm == pytest.approx(18.012, abs=0.02)
        assert entry.mca_compliant is True
        assert "Extended to" in entry.notes
        notifier.notify_entry_created.assert_called_once()

    def test_duration_recomputed_from_start_not_summed(self, db):
        vessel = make_vessel(db)
        _apply(db, vessel, _movement(T0, T0 + timedelta(hours=2), 50.0, 50.15))

        # Overlapping window: 07:00 → 10:00
        outcome = _apply(
            db, vessel, _movement(T0 + timedelta(hours=1), T0 + timedelta(hours=4), 50.05, 50.3)
        )

        assert outcome.entry.duration_hours == pytest.approx(4.0)
        assert outcome.entry.detection_window_hours == pytest.approx(2.0)

    def test_older_window_leaves_entry_unchanged(self, db):
        vessel = make_vessel(db)
        _apply(db, vessel, _movement(T0, T0 + timedelta(hours=4), 50.0, 50.3))

        outcome = _apply(
            db, vessel, _movement(T0 + timedelta(hours=1), T0 + timedelta(hours=3), 50.05, 50.25)
        )

        assert outcome.action is EntryAction.UNCHANGED
        assert outcome.entry.end_time == T0 + timedelta(hours=4)
        assert outcome.entry.duration_hours == pytest.approx(4.0)

    def test_next_day_creates_second_entry(self, db):
        vessel = make_vessel(db)
        _apply(db, vessel, _movement(T0, T0 + timedelta(hours=2), 50.0, 50.2))

        next_day = T0 + timedelta(days=1)
        outcome = _apply(db, vessel, _movement(next_day, next_day + timedelta(hours=2), 50.2, 50.4))

        assert outcome.action is EntryAction.CREATED
        assert db.query(SeaTimeEntry).count() == 2
        assert outcome.entry.entry_date == date(2026, 3, 11)

    def test_day_follows_old_reading(self, db):
        vessel = make_vessel(db)
        late = T0.replace(hour=23)
        outcome = _apply(db, vessel, _movement(late, late + timedelta(hours=2), 50.0, 50.2))
        assert outcome.entry.entry_date == date(2026, 3, 10)

    def test_reviewed_entry_does_not_block_new_pending(self, db):
        vessel = make_vessel(db)
        first = _apply(db, vessel, _movement(T0, T0 + timedelta(hours=2), 50.0, 50.2))
        first.entry.status = SeaTimeStatusEnum.CONFIRMED.value
        db.commit()

        outcome = _apply(
            db, vessel, _movement(T0 + timedelta(hours=2), T0 + timedelta(hours=4), 50.2, 50.4)
        )

        assert outcome.action is EntryAction.CREATED
        assert outcome.entry.entry_id != first.entry.entry_id


class TestFindPendingEntryForDay:
    def test_matches_on_start_day_only(self, db):
        vessel = make_vessel(db)
        _apply(db, vessel, _movement(T0, T0 + timedelta(hours=2), 50.0, 50.2))

        assert find_pending_entry_for_day(db, vessel.vessel_id, date(2026, 3, 10), utc_calendar_day)
        assert find_pending_entry_for_day(db, vessel.vessel_id, date(2026, 3, 11), utc_calendar_day) is None

    def test_other_vessel_not_matched(self, db):
        a = make_vessel(db, mmsi="235000001")
        b = make_vessel(db, mmsi="235000002")
        _apply(db, a, _movement(T0, T0 + timedelta(hours=2), 50.0, 50.2))

        assert find_pending_entry_for_day(db, b.vessel_id, date(2026, 3, 10), utc_calendar_day) is None
