"""Database models package."""

from analytics_store.models.db.analytics_session import (
    AnalyticsSession,
    Device,
    DeviceType,
    Location,
)
from analytics_store.models.db.base import Base, TimestampMixin
from analytics_store.models.db.experiment import Experiment, ExperimentStatus, Variation

__all__ = [
    "AnalyticsSession",
    "Base",
    "Device",
    "DeviceType",
    "Experiment",
    "ExperimentStatus",
    "Location",
    "TimestampMixin",
    "Variation",
]
