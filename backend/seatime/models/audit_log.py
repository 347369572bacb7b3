"""ProviderAuditLog entity - one row per position-provider call, success or failure.

Kept for after-the-fact diagnosis of provider outages. The credential is
masked in api_url before it is stored.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from seatime.models.base import Base


class ProviderAuditLog(Base):
    __tablename__ = "provider_audit_logs"
    __table_args__ = (
        Index("ix_provider_audit_vessel_time", "vessel_id", "request_time"),
    )

    audit_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vessel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vessels.vessel_id", ondelete="CASCADE"), nullable=False
    )
    mmsi: Mapped[str] = mapped_column(String(9), nullable=False, index=True)
    api_url: Mapped[str] = mapped_column(String(500), nullable=False)
    request_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # HTTP status code as text, or "error" / "timeout" when no response arrived
    response_status: Mapped[str] = mapped_column(String(20), nullable=False)
    response_body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    authentication_status: Mapped[str] = mapped_column(String(20), nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    api_source: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    vessel: Mapped["Vessel"] = relationship("Vessel", back_populates="audit_logs")
