"""Experiment Pydantic schemas for A/B testing."""

from datetime import datetime
from enum import StrEnum
from typing import Any, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ExperimentStatus(StrEnum):
    """Lifecycle status of an experiment."""

    DRAFT = "DRAFT"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    STOPPED = "STOPPED"


class AudienceFilter(BaseModel):
    """One targeting rule, e.g. ``country in ['DE', 'AT']``."""

    field: str = Field(..., min_length=1, max_length=255)
    operator: str = Field(..., min_length=1, max_length=50)
    value: Any = None


class VariationCreate(BaseModel):
    """Schema for defining a variation."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    configuration: dict[str, Any] = Field(
        ..., description="Arm configuration, an open JSON object"
    )
    weight: float = Field(0.5, ge=0, le=1, description="Share of traffic for this arm")
    metrics: dict[str, Any] | None = None


class VariationRead(BaseModel):
    """Schema for reading a variation."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    configuration: dict[str, Any]
    weight: float
    participants: int
    conversions: int
    revenue: float
    metrics: dict[str, Any] | None
    conversion_rate: float


class MetricComparison(BaseModel):
    """Control vs. variation outcome for one metric."""

    name: str
    control_value: float | None = None
    variation_value: float | None = None
    improvement: float | None = None
    confidence: float | None = None
    significance: bool | None = None


class ExperimentResults(BaseModel):
    """Result summary supplied by the analysis process."""

    winner_id: UUID | None = None
    confidence: float | None = None
    significance: bool | None = None
    metrics: list[MetricComparison] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)


class ExperimentCreate(BaseModel):
    """Schema for creating an experiment."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    hypothesis: str = Field(..., min_length=1)
    metrics: list[str] = Field(default_factory=list)
    primary_metric: str | None = Field(None, max_length=255)
    significance_level: float = Field(0.95, ge=0.8, le=0.99)
    minimum_detectable_effect: float = 0.05
    minimum_sample_size: int | None = Field(None, ge=0)
    variations: list[VariationCreate] = Field(default_factory=list)
    start_date: datetime
    end_date: datetime | None = None
    target_filters: list[AudienceFilter] = Field(default_factory=list)
    target_percentage: int = Field(100, ge=0, le=100)

    @model_validator(mode="after")
    def _check_dates(self) -> Self:
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self


class ExperimentUpdate(BaseModel):
    """Schema for updating a DRAFT experiment. Omitted fields are kept."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    hypothesis: str | None = Field(None, min_length=1)
    metrics: list[str] | None = None
    primary_metric: str | None = Field(None, max_length=255)
    significance_level: float | None = Field(None, ge=0.8, le=0.99)
    minimum_detectable_effect: float | None = None
    minimum_sample_size: int | None = Field(None, ge=0)
    variations: list[VariationCreate] | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    target_filters: list[AudienceFilter] | None = None
    target_percentage: int | None = Field(None, ge=0, le=100)


class ExperimentRead(BaseModel):
    """Schema for reading an experiment."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    hypothesis: str
    metrics: list[str]
    primary_metric: str | None
    significance_level: float
    minimum_detectable_effect: float
    minimum_sample_size: int | None
    status: ExperimentStatus
    winner_id: UUID | None
    results: ExperimentResults | None
    variations: list[VariationRead]
    start_date: datetime
    end_date: datetime | None
    target_filters: list[AudienceFilter]
    target_percentage: int
    created_by: UUID
    created_at: datetime
    updated_at: datetime
