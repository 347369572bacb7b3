"""SeaTimeEntry entity - a detected interval of vessel movement.

Created and extended by the entry manager while pending; confirmed or
rejected only by the mariner. At most one pending entry per vessel per
calendar day, enforced by query-before-write and backed by a partial
unique index on (vessel_id, entry_date).
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Integer, Float, String, Text, Boolean, Date, DateTime, ForeignKey,
    Enum as SAEnum, CheckConstraint, Index, func, text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from seatime.models.base import Base, SeaTimeStatusEnum, ServiceTypeEnum


class SeaTimeEntry(Base):
    __tablename__ = "sea_time_entries"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'rejected')", name="ck_sea_time_status"
        ),
        Index(
            "uq_sea_time_pending_per_day",
            "vessel_id",
            "entry_date",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
        Index("ix_sea_time_vessel_status", "vessel_id", "status"),
    )

    entry_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vessel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vessels.vessel_id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    duration_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    # Calendar day the entry counts towards (see utils.dates)
    entry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    start_lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    start_lon: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    end_lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    end_lon: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    distance_nm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    # Length of the lookback window that first detected the movement
    detection_window_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    # True once duration reaches the 4-hour MCA sea-day rule
    mca_compliant: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SeaTimeStatusEnum.PENDING.value, index=True
    )
    service_type: Mapped[ServiceTypeEnum] = mapped_column(
        SAEnum(ServiceTypeEnum), nullable=False, default=ServiceTypeEnum.ACTUAL_SEA_SERVICE
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    vessel: Mapped["Vessel"] = relationship("Vessel", back_populates="sea_time_entries")
