"""PositionReading entity - one provider observation per successful poll.

Append-only: rows are never updated, and only disappear with their vessel.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, Float, String, Boolean, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from seatime.models.base import Base


class PositionReading(Base):
    __tablename__ = "position_readings"
    __table_args__ = (
        CheckConstraint("latitude IS NULL OR (latitude >= -90 AND latitude <= 90)", name="ck_reading_lat_bounds"),
        CheckConstraint("longitude IS NULL OR (longitude >= -180 AND longitude <= 180)", name="ck_reading_lon_bounds"),
        Index("ix_reading_vessel_observed", "vessel_id", "observed_at"),
    )

    reading_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vessel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vessels.vessel_id", ondelete="CASCADE"), nullable=False, index=True
    )
    observed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_moving: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    speed_knots: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    vessel: Mapped["Vessel"] = relationship("Vessel", back_populates="position_readings")

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None
