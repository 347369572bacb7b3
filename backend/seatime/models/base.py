"""Shared declarative base and enums for all models."""
from __future__ import annotations

import enum
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class TaskKindEnum(str, enum.Enum):
    POSITION_CHECK = "position_check"


class SeaTimeStatusEnum(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class ServiceTypeEnum(str, enum.Enum):
    ACTUAL_SEA_SERVICE = "actual_sea_service"
    WATCHKEEPING_SERVICE = "watchkeeping_service"
    STANDBY_SERVICE = "standby_service"
    YARD_SERVICE = "yard_service"
    SERVICE_IN_PORT = "service_in_port"


class AuthenticationStatusEnum(str, enum.Enum):
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
    MISSING = "missing"
