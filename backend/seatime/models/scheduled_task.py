"""ScheduledTask entity - one recurring job per (vessel, kind).

Only the scheduler writes to these rows. next_run_at is set after every run,
success or failure, so a task can never be left behind in the past.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Integer, Float, Boolean, DateTime, ForeignKey, Enum as SAEnum,
    CheckConstraint, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from seatime.models.base import Base, TaskKindEnum


class ScheduledTask(Base):
    __tablename__ = "scheduled_tasks"
    __table_args__ = (
        UniqueConstraint("vessel_id", "kind", name="uq_task_vessel_kind"),
        CheckConstraint("interval_hours > 0", name="ck_task_interval_positive"),
    )

    task_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vessel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vessels.vessel_id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind: Mapped[TaskKindEnum] = mapped_column(
        SAEnum(TaskKindEnum), nullable=False, default=TaskKindEnum.POSITION_CHECK
    )
    interval_hours: Mapped[float] = mapped_column(Float, nullable=False, default=2.0)
    last_run_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    next_run_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    vessel: Mapped["Vessel"] = relationship("Vessel", back_populates="scheduled_tasks")
