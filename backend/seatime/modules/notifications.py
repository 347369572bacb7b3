"""Notification trigger - tells the mariner a new sea-time entry awaits review.

Delivery (push, email, in-app) belongs to the host application. This module
defines the payload and the hook the entry manager calls, exactly once per
newly created entry.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeaTimeNotification:
    vessel_id: int
    vessel_name: str
    entry_id: int
    duration_hours: float
    mca_compliant: bool

    def to_dict(self) -> dict:
        return asdict(self)


class Notifier:
    """Base hook. Subclasses deliver the notification somewhere."""

    def notify_entry_created(self, notification: SeaTimeNotification) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Default notifier: records the trigger in the application log."""

    def notify_entry_created(self, notification: SeaTimeNotification) -> None:
        logger.info(
            "New sea-time entry %d for %s (vessel %d): %.2f h, MCA compliant=%s",
            notification.entry_id,
            notification.vessel_name,
            notification.vessel_id,
            notification.duration_hours,
            notification.mca_compliant,
        )
