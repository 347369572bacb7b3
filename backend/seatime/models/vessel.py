"""Vessel entity - a tracked ship owned by a mariner."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Boolean, DateTime, Enum as SAEnum, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from seatime.models.base import Base, ServiceTypeEnum


class Vessel(Base):
    __tablename__ = "vessels"
    __table_args__ = (
        # Several mariners may track the same ship, but not twice each
        UniqueConstraint("owner_id", "mmsi", name="uq_vessel_owner_mmsi"),
    )

    vessel_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mmsi: Mapped[str] = mapped_column(String(9), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Opaque reference into the external user store
    owner_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    primary_service_type: Mapped[ServiceTypeEnum] = mapped_column(
        SAEnum(ServiceTypeEnum), nullable=False, default=ServiceTypeEnum.ACTUAL_SEA_SERVICE
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    # Relationships
    position_readings: Mapped[list] = relationship(
        "PositionReading", back_populates="vessel", cascade="all, delete-orphan"
    )
    scheduled_tasks: Mapped[list] = relationship(
        "ScheduledTask", back_populates="vessel", cascade="all, delete-orphan"
    )
    sea_time_entries: Mapped[list] = relationship(
        "SeaTimeEntry", back_populates="vessel", cascade="all, delete-orphan"
    )
    audit_logs: Mapped[list] = relationship(
        "ProviderAuditLog", back_populates="vessel", cascade="all, delete-orphan"
    )
