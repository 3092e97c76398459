"""Analytics session Pydantic schemas."""

from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DeviceType(StrEnum):
    """Broad class of the visiting device."""

    DESKTOP = "DESKTOP"
    MOBILE = "MOBILE"
    TABLET = "TABLET"
    OTHER = "OTHER"


class DeviceInfo(BaseModel):
    """Device descriptor."""

    model_config = ConfigDict(from_attributes=True)

    type: DeviceType = DeviceType.OTHER
    brand: str | None = Field(None, max_length=100)
    model: str | None = Field(None, max_length=100)
    os: str | None = Field(None, max_length=100)
    os_version: str | None = Field(None, max_length=50)
    browser: str | None = Field(None, max_length=100)
    browser_version: str | None = Field(None, max_length=50)
    screen_resolution: str | None = Field(None, max_length=50)
    language: str | None = Field(None, max_length=35)


class LocationInfo(BaseModel):
    """Geographic descriptor."""

    model_config = ConfigDict(from_attributes=True)

    country: str | None = Field(None, max_length=100)
    region: str | None = Field(None, max_length=100)
    city: str | None = Field(None, max_length=100)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    timezone: str | None = Field(None, max_length=64)


class SessionStart(BaseModel):
    """Schema for opening a tracked session."""

    session_id: str = Field(..., min_length=1, max_length=255)
    user_id: UUID | None = None
    device: DeviceInfo = Field(default_factory=DeviceInfo)
    location: LocationInfo = Field(default_factory=LocationInfo)
    start_time: datetime | None = Field(None, description="Defaults to now")
    entry_page: str | None = Field(None, max_length=2048)
    source: str | None = Field(None, max_length=255)
    medium: str | None = Field(None, max_length=255)
    campaign: str | None = Field(None, max_length=255)
    session_metadata: dict[str, Any] = Field(default_factory=dict)


class SessionRead(BaseModel):
    """Schema for reading a session."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: str
    user_id: UUID | None
    device: DeviceInfo
    location: LocationInfo | None
    start_time: datetime
    end_time: datetime | None
    duration: int = Field(..., description="Whole seconds, measured to now while open")
    page_count: int
    event_count: int
    engaged: bool
    engagement_score: float
    conversions: int
    revenue: float
    entry_page: str | None
    exit_page: str | None
    source: str | None
    medium: str | None
    campaign: str | None
    session_metadata: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class SessionFilter(BaseModel):
    """Schema for filtering sessions."""

    user_id: UUID | None = None
    start_from: datetime | None = Field(None, description="Sessions started at or after")
    start_to: datetime | None = Field(None, description="Sessions started at or before")
    limit: int = Field(50, ge=1, le=500)
    offset: int = Field(0, ge=0)


class ActivityRecord(BaseModel):
    """One activity to fold into an open session."""

    event_type: str = Field(..., min_length=1, max_length=50)
    amount: float | None = Field(None, ge=0, description="Revenue for conversion events")
