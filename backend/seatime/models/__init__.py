"""Import all models to register them with SQLAlchemy metadata."""
from seatime.models.base import Base
from seatime.models.vessel import Vessel
from seatime.models.position_reading import PositionReading
from seatime.models.scheduled_task import ScheduledTask
from seatime.models.sea_time_entry import SeaTimeEntry
from seatime.models.audit_log import ProviderAuditLog

__all__ = [
    "Base",
    "Vessel",
    "PositionReading",
    "ScheduledTask",
    "SeaTimeEntry",
    "ProviderAuditLog",
]
