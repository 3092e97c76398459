"""Analytics session database model."""

import dataclasses
import enum
import math
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    JSON,
    Index,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, composite, mapped_column, validates

from analytics_store.core.exceptions import ConflictError, ValidationError
from analytics_store.models.db.base import Base, TimestampMixin, as_utc, utcnow

# Engagement points per activity type; unknown types score nothing
ENGAGEMENT_WEIGHTS: dict[str, int] = {
    "PAGE_VIEW": 1,
    "BUTTON_CLICK": 2,
    "FORM_SUBMIT": 5,
    "SEARCH": 2,
    "LIKE": 3,
    "COMMENT": 4,
    "SHARE": 5,
    "PURCHASE": 10,
    "SUBSCRIPTION": 15,
}
CONVERSION_EVENTS = frozenset({"PURCHASE", "SUBSCRIPTION"})
MAX_ENGAGEMENT_SCORE = 100.0
ENGAGED_THRESHOLD = 10.0


class DeviceType(enum.StrEnum):
    """Broad class of the visiting device."""

    DESKTOP = "DESKTOP"
    MOBILE = "MOBILE"
    TABLET = "TABLET"
    OTHER = "OTHER"


@dataclasses.dataclass
class Device:
    """Device descriptor stored inline on the session row."""

    type: DeviceType = DeviceType.OTHER
    brand: str | None = None
    model: str | None = None
    os: str | None = None
    os_version: str | None = None
    browser: str | None = None
    browser_version: str | None = None
    screen_resolution: str | None = None
    language: str | None = None


@dataclasses.dataclass
class Location:
    """Geographic descriptor stored inline on the session row."""

    country: str | None = None
    region: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    timezone: str | None = None


class AnalyticsSession(Base, TimestampMixin):
    """One tracked user visit.

    Counters accrue while the visit is open; the session is closed once
    ``end_time`` is set.
    """

    __tablename__ = "sessions"

    session_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
        index=True,
    )

    # Device
    device_type: Mapped[DeviceType] = mapped_column(
        Enum(DeviceType, name="device_type", validate_strings=True),
        nullable=False,
        default=DeviceType.OTHER,
    )
    device_brand: Mapped[str | None] = mapped_column(String(100), nullable=True)
    device_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    device_os: Mapped[str | None] = mapped_column(String(100), nullable=True)
    device_os_version: Mapped[str | None] = mapped_column(String(50), nullable=True)
    device_browser: Mapped[str | None] = mapped_column(String(100), nullable=True)
    device_browser_version: Mapped[str | None] = mapped_column(String(50), nullable=True)
    device_screen_resolution: Mapped[str | None] = mapped_column(String(50), nullable=True)
    device_language: Mapped[str | None] = mapped_column(String(35), nullable=True)

    device: Mapped[Device] = composite(
        Device,
        "device_type",
        "device_brand",
        "device_model",
        "device_os",
        "device_os_version",
        "device_browser",
        "device_browser_version",
        "device_screen_resolution",
        "device_language",
    )

    # Location
    location_country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location_region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    location: Mapped[Location] = composite(
        Location,
        "location_country",
        "location_region",
        "location_city",
        "location_latitude",
        "location_longitude",
        "location_timezone",
    )

    # Activity
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )
    end_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    page_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    event_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Engagement
    engaged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    engagement_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Outcomes
    conversions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    revenue: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Navigation and attribution
    entry_page: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    exit_page: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    medium: Mapped[str | None] = mapped_column(String(255), nullable=True)
    campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)

    session_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        # Own type instance: as_mutable() tracks every column sharing it
        MutableDict.as_mutable(JSON().with_variant(JSONB(), "postgresql")),
        nullable=False,
        default=dict,
    )

    def __init__(self, **kwargs: Any) -> None:
        if "device" not in kwargs:
            kwargs.setdefault("device_type", DeviceType.OTHER)
        kwargs.setdefault("start_time", utcnow())
        kwargs.setdefault("page_count", 0)
        kwargs.setdefault("event_count", 0)
        kwargs.setdefault("engaged", False)
        kwargs.setdefault("engagement_score", 0.0)
        kwargs.setdefault("conversions", 0)
        kwargs.setdefault("revenue", 0.0)
        kwargs.setdefault("session_metadata", {})
        super().__init__(**kwargs)

    @validates("session_id")
    def _validate_session_id(self, key: str, value: str | None) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError.for_field(key, "is required", value)
        return value

    @validates("device_type")
    def _validate_device_type(self, key: str, value: Any) -> DeviceType:
        if value is None:
            return DeviceType.OTHER
        try:
            return DeviceType(value)
        except ValueError:
            allowed = ", ".join(t.value for t in DeviceType)
            raise ValidationError.for_field(key, f"must be one of {allowed}", value) from None

    @validates("start_time")
    def _validate_start_time(self, key: str, value: datetime | None) -> datetime:
        if value is None:
            raise ValidationError.for_field(key, "is required", value)
        return value

    @property
    def is_closed(self) -> bool:
        """Whether the visit has ended."""
        return self.end_time is not None

    def duration_at(self, now: datetime) -> int:
        """Whole seconds from start to end time, or to ``now`` while open."""
        end = self.end_time if self.end_time is not None else now
        elapsed = (as_utc(end) - as_utc(self.start_time)).total_seconds()
        return math.floor(elapsed)

    @property
    def duration(self) -> int:
        """Whole seconds the visit has lasted so far."""
        return self.duration_at(utcnow())

    def record_page_view(self, page: str | None = None) -> None:
        """Count a page view and track entry / exit pages.

        Raises:
            ConflictError: If the session is closed
        """
        self._require_open()
        self.page_count = (self.page_count or 0) + 1
        if page:
            if self.entry_page is None:
                self.entry_page = page
            self.exit_page = page

    def record_activity(self, event_type: str, amount: float | None = None) -> None:
        """Count one activity and fold it into engagement and outcomes.

        Raises:
            ConflictError: If the session is closed
        """
        self._require_open()
        event_type = event_type.upper()
        self.event_count = (self.event_count or 0) + 1

        score = (self.engagement_score or 0.0) + ENGAGEMENT_WEIGHTS.get(event_type, 0)
        self.engagement_score = min(score, MAX_ENGAGEMENT_SCORE)
        if self.engagement_score >= ENGAGED_THRESHOLD:
            self.engaged = True

        if event_type in CONVERSION_EVENTS:
            self.conversions = (self.conversions or 0) + 1
            self.revenue = (self.revenue or 0.0) + (amount or 0.0)

    def close(self, end_time: datetime | None = None) -> None:
        """End the visit.

        Raises:
            ConflictError: If the session was already closed
            ValidationError: If ``end_time`` precedes ``start_time``
        """
        self._require_open()
        end_time = end_time or utcnow()
        if as_utc(end_time) < as_utc(self.start_time):
            raise ValidationError.for_field("end_time", "must not precede start_time", end_time)
        self.end_time = end_time

    def _require_open(self) -> None:
        if self.end_time is not None:
            raise ConflictError(f"Session '{self.session_id}' is already closed")


Index("ix_sessions_start_time_desc", AnalyticsSession.start_time.desc())
Index(
    "ix_sessions_user_start_time",
    AnalyticsSession.user_id,
    AnalyticsSession.start_time.desc(),
)
