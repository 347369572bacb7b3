"""Tests for provisioning and deactivating per-vessel tracking tasks."""
from datetime import timedelta

from seatime.models.base import TaskKindEnum
from seatime.models.scheduled_task import ScheduledTask
from seatime.modules.task_provisioning import deactivate_tracking_tasks, ensure_tracking_tasks

from conftest import T0, make_task, make_vessel


class TestEnsureTrackingTasks:
    def test_creates_missing_task_due_now(self, db):
        vessel = make_vessel(db)

        summary = ensure_tracking_tasks(db, T0, interval_hours=2.0)

        assert summary["created"] == 1
        assert summary["total_active_vessels"] == 1
        task = db.query(ScheduledTask).one()
        assert task.vessel_id == vessel.vessel_id
        assert task.kind is TaskKindEnum.POSITION_CHECK
        assert task.interval_hours == 2.0
        assert task.next_run_at == T0
        assert task.last_run_at is None
        assert task.is_active is True

    def test_reactivates_inactive_task_keeping_schedule(self, db):
        vessel = make_vessel(db)
        make_task(db, vessel, next_run_at=T0 + timedelta(hours=1), is_active=False)

        summary = ensure_tracking_tasks(db, T0)

        assert summary["reactivated"] == 1
        task = db.query(ScheduledTask).one()
        assert task.is_active is True
        assert task.next_run_at == T0 + timedelta(hours=1)

    def test_active_task_left_alone(self, db):
        vessel = make_vessel(db)
        make_task(db, vessel, next_run_at=T0 + timedelta(hours=1))

        summary = ensure_tracking_tasks(db, T0)

        assert summary["already_active"] == 1
        assert summary["created"] == 0
        assert db.query(ScheduledTask).count() == 1

    def test_inactive_vessels_ignored(self, db):
        make_vessel(db, is_active=False)

        summary = ensure_tracking_tasks(db, T0)

        assert summary["total_active_vessels"] == 0
        assert db.query(ScheduledTask).count() == 0

    def test_details_per_vessel(self, db):
        make_vessel(db, mmsi="235000001", name="ALPHA")
        make_vessel(db, mmsi="235000002", name="BRAVO")

        summary = ensure_tracking_tasks(db, T0)

        assert {d["vessel_name"] for d in summary["details"]} == {"ALPHA", "BRAVO"}
        assert all(d["action"] == "created" for d in summary["details"])

    def test_idempotent(self, db):
        make_vessel(db)
        ensure_tracking_tasks(db, T0)
        summary = ensure_tracking_tasks(db, T0)
        assert summary["already_active"] == 1
        assert db.query(ScheduledTask).count() == 1


class TestDeactivateTrackingTasks:
    def test_marks_tasks_inactive(self, db):
        vessel = make_vessel(db)
        make_task(db, vessel)

        count = deactivate_tracking_tasks(db, vessel.vessel_id)
        db.commit()

        assert count == 1
        assert db.query(ScheduledTask).one().is_active is False

    def test_nothing_to_deactivate(self, db):
        vessel = make_vessel(db)
        assert deactivate_tracking_tasks(db, vessel.vessel_id) == 0
