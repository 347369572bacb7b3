"""Background scheduler for periodic vessel position checks.

One SeaTimeScheduler is built by the host at startup and stopped at
shutdown. A daemon thread ticks every SCHEDULER_TICK_SECONDS; each tick
loads the due set (active task, active vessel, next_run_at <= now) and
processes it sequentially, one vessel to completion before the next.

Guarantees:
  - A tick that starts while another is still running is skipped, not queued.
  - A failing task is logged and rolled back; the rest of the due set still runs.
  - Every processed task gets last_run_at = processing time and
    next_run_at = last_run_at + interval_hours, success or failure.

Usage:
    scheduler = SeaTimeScheduler()
    scheduler.start()
    ...
    scheduler.stop()
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import httpx
from sqlalchemy.orm import Session, sessionmaker

from seatime.config import settings
from seatime.models.base import TaskKindEnum
from seatime.models.scheduled_task import ScheduledTask
from seatime.models.vessel import Vessel
from seatime.modules import position_check  # noqa: F401 - registers the position_check handler
from seatime.modules.notifications import LoggingNotifier, Notifier
from seatime.modules.position_fetcher import ProviderConfigError, fetch_vessel_position
from seatime.modules.task_registry import TaskContext, get_task_handler
from seatime.utils.dates import CalendarDayFn, get_calendar_day_fn, utcnow

logger = logging.getLogger(__name__)


class SchedulerBusyError(RuntimeError):
    """A tick is in progress; the requested run would overlap it."""


class SeaTimeScheduler:
    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        *,
        tick_seconds: float | None = None,
        api_key: str | None = None,
        notifier: Notifier | None = None,
        day_fn: CalendarDayFn | None = None,
        clock: Callable[[], datetime] | None = None,
        fetch: Callable[..., Any] | None = None,
        http_client: httpx.Client | None = None,
        lookback_hours: float | None = None,
        threshold_deg: float | None = None,
        mca_min_hours: float | None = None,
    ):
        if session_factory is None:
            from seatime.database import SessionLocal
            session_factory = SessionLocal
        self._session_factory = session_factory
        self.tick_seconds = tick_seconds if tick_seconds is not None else settings.SCHEDULER_TICK_SECONDS
        self._clock = clock or utcnow
        self._context = TaskContext(
            api_key=api_key if api_key is not None else settings.MYSHIPTRACKING_API_KEY,
            fetch=fetch or fetch_vessel_position,
            notifier=notifier or LoggingNotifier(),
            day_fn=day_fn or get_calendar_day_fn(settings.CALENDAR_DAY_POLICY),
            lookback_hours=lookback_hours if lookback_hours is not None else settings.LOOKBACK_WINDOW_HOURS,
            threshold_deg=threshold_deg if threshold_deg is not None else settings.MOVEMENT_THRESHOLD_DEG,
            mca_min_hours=mca_min_hours if mca_min_hours is not None else settings.MCA_MIN_SEA_HOURS,
            http_client=http_client,
        )
        # Reentrancy guard: held for the whole of a tick
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._config_error_logged = False
        self.last_iteration: dict | None = None

    # ── Lifecycle ────────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_busy(self) -> bool:
        return self._tick_lock.locked()

    @property
    def polling_enabled(self) -> bool:
        return bool(self._context.api_key)

    def start(self, run_immediately: bool = True) -> bool:
        """Start the timer thread. Returns False if it was already running."""
        if self.is_running:
            logger.warning("Scheduler is already running")
            return False
        if not self.polling_enabled:
            self._log_config_error()

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            args=(run_immediately,),
            name="seatime-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "Scheduler started - will check for due tasks every %.0fs", self.tick_seconds
        )
        return True

    def stop(self, timeout: float | None = None) -> None:
        """Stop ticking. An in-flight tick is allowed to finish."""
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Scheduler thread still finishing a tick after %ss", timeout)
        self._thread = None
        logger.info("Scheduler stopped")

    def _run_loop(self, run_immediately: bool) -> None:
        if run_immediately:
            self.run_iteration()
        # Fixed cadence: deadlines advance by tick_seconds from the start,
        # ticks missed while a long iteration ran are dropped.
        next_tick = time.monotonic()
        while True:
            next_tick += self.tick_seconds
            delay = next_tick - time.monotonic()
            if delay < 0:
                missed = int(-delay // self.tick_seconds) + 1
                next_tick += missed * self.tick_seconds
                delay = next_tick - time.monotonic()
                logger.debug("Scheduler iteration overran, skipped %d tick(s)", missed)
            if self._stop_event.wait(delay):
                break
            self.run_iteration()

    def _log_config_error(self) -> None:
        if not self._config_error_logged:
            logger.critical(
                "MYSHIPTRACKING_API_KEY not configured - automatic position polling is disabled"
            )
            self._config_error_logged = True

    # ── Ticks ────────────────────────────────────────────────────────────────

    def run_iteration(self) -> dict | None:
        """Process the current due set once.

        Returns a summary dict, or None when skipped because another tick
        holds the guard or the iteration itself failed.
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.debug("Scheduler iteration already in progress, skipping")
            return None
        try:
            if not self.polling_enabled:
                self._log_config_error()
                return {"due": 0, "succeeded": 0, "failed": 0, "polling_enabled": False}
            summary = self._process_due_tasks()
            self.last_iteration = summary
            return summary
        except Exception:
            logger.exception("Error in scheduler iteration")
            return None
        finally:
            self._tick_lock.release()

    def _due_task_ids(self, db: Session, now: datetime) -> list[int]:
        rows = (
            db.query(ScheduledTask.task_id)
            .join(Vessel, Vessel.vessel_id == ScheduledTask.vessel_id)
            .filter(
                ScheduledTask.is_active.is_(True),
                Vessel.is_active.is_(True),
                ScheduledTask.next_run_at <= now,
            )
            .order_by(ScheduledTask.next_run_at.asc(), ScheduledTask.task_id.asc())
            .all()
        )
        return [row.task_id for row in rows]

    def _process_due_tasks(self) -> dict:
        started = self._clock()
        summary = {
            "started_at": started.isoformat(),
            "due": 0,
            "succeeded": 0,
            "fetch_errors": 0,
            "failed": 0,
            "entries_created": 0,
            "entries_extended": 0,
            "polling_enabled": True,
        }
        db = self._session_factory()
        try:
            task_ids = self._due_task_ids(db, started)
            summary["due"] = len(task_ids)
            if task_ids:
                logger.info("Found %d due scheduled task(s)", len(task_ids))
            else:
                logger.debug("No due tasks found at %s", started.isoformat())
            for task_id in task_ids:
                result = self._process_task(db, task_id)
                if result is None:
                    summary["failed"] += 1
                    continue
                summary["succeeded"] += 1
                if result.get("error"):
                    summary["fetch_errors"] += 1
                if result.get("entry_action") == "created":
                    summary["entries_created"] += 1
                elif result.get("entry_action") == "extended":
                    summary["entries_extended"] += 1
        finally:
            db.close()
        summary["finished_at"] = self._clock().isoformat()
        return summary

    def _process_task(self, db: Session, task_id: int) -> dict | None:
        """Run one task's handler, then reschedule it whatever happened.

        Returns None when the task failed or vanished since the due-set query.
        """
        run_at = self._clock()
        vessel_label = "?"
        result: dict | None = None
        try:
            task = db.get(ScheduledTask, task_id)
            vessel = task.vessel if task is not None else None
            if task is None or vessel is None:
                logger.warning(
                    "Scheduled task %d or its vessel no longer exists, skipping", task_id
                )
                return None
            vessel_label = f"{vessel.vessel_id} {vessel.name} (MMSI: {vessel.mmsi})"

            logger.info(
                "Processing scheduled %s: task=%d, vessel=%s, scheduled_for=%s",
                task.kind.value, task_id, vessel_label, task.next_run_at.isoformat(),
            )
            handler = get_task_handler(task.kind)
            result = handler(db, task, vessel, run_at, self._context)
        except Exception:
            db.rollback()
            logger.exception(
                "Error processing scheduled task %d for vessel %s", task_id, vessel_label,
            )

        self._reschedule(db, task_id, run_at)
        return result

    def _reschedule(self, db: Session, task_id: int, run_at: datetime) -> None:
        try:
            task = db.get(ScheduledTask, task_id)
            if task is None:
                logger.warning("Scheduled task %d was deleted before rescheduling", task_id)
                return
            task.last_run_at = run_at
            task.next_run_at = run_at + timedelta(hours=task.interval_hours)
            db.commit()
            logger.info(
                "Updated scheduled task %d: next check at %s",
                task_id, task.next_run_at.isoformat(),
            )
        except Exception:
            db.rollback()
            logger.exception("Failed to reschedule task %d", task_id)

    # ── On-demand checks ─────────────────────────────────────────────────────

    def run_vessel_check(self, db: Session, vessel: Vessel) -> dict:
        """Run a position check for one vessel now, outside its schedule.

        Shares the tick guard so it never interleaves with a tick. The task's
        next_run_at is left alone.

        Raises:
            ProviderConfigError: Polling disabled (no credential).
            SchedulerBusyError: A tick is in progress.
        """
        if not self.polling_enabled:
            raise ProviderConfigError("MYSHIPTRACKING_API_KEY not configured")
        if not self._tick_lock.acquire(blocking=False):
            raise SchedulerBusyError("A scheduler iteration is in progress, retry shortly")
        try:
            handler = get_task_handler(TaskKindEnum.POSITION_CHECK)
            return handler(db, None, vessel, self._clock(), self._context)
        finally:
            self._tick_lock.release()
