"""Task kind → handler registry for the scheduler.

The tick loop looks handlers up here instead of branching on task kind, so a
new periodic job is one decorated function.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

import httpx
from sqlalchemy.orm import Session

from seatime.models.base import TaskKindEnum
from seatime.models.scheduled_task import ScheduledTask
from seatime.models.vessel import Vessel
from seatime.modules.notifications import Notifier
from seatime.utils.dates import CalendarDayFn


@dataclass
class TaskContext:
    """Collaborators and tunables shared by every handler invocation."""

    api_key: Optional[str]
    fetch: Callable[..., Any]
    notifier: Notifier
    day_fn: CalendarDayFn
    lookback_hours: float
    threshold_deg: float
    mca_min_hours: float
    http_client: Optional[httpx.Client] = None


TaskHandler = Callable[[Session, ScheduledTask, Vessel, datetime, TaskContext], dict]

_HANDLERS: dict[TaskKindEnum, TaskHandler] = {}


def register_task_handler(kind: TaskKindEnum) -> Callable[[TaskHandler], TaskHandler]:
    def decorator(fn: TaskHandler) -> TaskHandler:
        if kind in _HANDLERS and _HANDLERS[kind] is not fn:
            raise ValueError(f"Handler already registered for task kind {kind.value!r}")
        _HANDLERS[kind] = fn
        return fn
    return decorator


def get_task_handler(kind: TaskKindEnum) -> TaskHandler:
    try:
        return _HANDLERS[kind]
    except KeyError:
        raise LookupError(f"No handler registered for task kind {kind!r}") from None


def registered_kinds() -> list[TaskKindEnum]:
    return list(_HANDLERS)
