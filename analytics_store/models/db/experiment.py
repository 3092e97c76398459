"""Experiment database models for A/B testing."""

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from analytics_store.core.exceptions import ValidationError
from analytics_store.models.db.base import Base, JSONType, TimestampMixin

SIGNIFICANCE_LEVEL_MIN = 0.80
SIGNIFICANCE_LEVEL_MAX = 0.99


class ExperimentStatus(enum.StrEnum):
    """Lifecycle status of an experiment."""

    DRAFT = "DRAFT"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    STOPPED = "STOPPED"


def _require_number(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValidationError.for_field(key, "must be a number", value)
    return value


def _require_bounds(key: str, value: Any, low: float, high: float) -> Any:
    _require_number(key, value)
    if not low <= value <= high:
        raise ValidationError.for_field(key, f"must be between {low} and {high}", value)
    return value


def _require_non_negative(key: str, value: Any) -> Any:
    _require_number(key, value)
    if value < 0:
        raise ValidationError.for_field(key, "must not be negative", value)
    return value


class Variation(Base, TimestampMixin):
    """One arm of an experiment.

    Owned by its experiment: it is created, reordered and deleted only
    through ``Experiment.variations``.
    """

    __tablename__ = "experiment_variations"

    experiment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("experiments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    configuration: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
    )
    weight: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.5,
    )
    participants: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    conversions: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    revenue: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
    )
    metrics: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )

    experiment: Mapped["Experiment"] = relationship(back_populates="variations")

    __table_args__ = (
        CheckConstraint("weight >= 0 AND weight <= 1", name="weight_range"),
        CheckConstraint("participants >= 0", name="participants_non_negative"),
        CheckConstraint("conversions >= 0", name="conversions_non_negative"),
    )

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("weight", 0.5)
        kwargs.setdefault("participants", 0)
        kwargs.setdefault("conversions", 0)
        kwargs.setdefault("revenue", 0.0)
        super().__init__(**kwargs)

    @validates("name")
    def _validate_name(self, key: str, value: str | None) -> str:
        if not value or not value.strip():
            raise ValidationError.for_field(key, "is required", value)
        return value

    @validates("configuration")
    def _validate_configuration(self, key: str, value: Any) -> dict[str, Any]:
        if not isinstance(value, dict):
            raise ValidationError.for_field(key, "must be an object", value)
        return value

    @validates("weight")
    def _validate_weight(self, key: str, value: Any) -> float:
        return _require_bounds(key, value, 0.0, 1.0)

    @validates("participants", "conversions")
    def _validate_counter(self, key: str, value: Any) -> int:
        return _require_non_negative(key, value)

    @property
    def conversion_rate(self) -> float:
        """Conversions per hundred participants, 0 when nobody participated."""
        if not self.participants:
            return 0.0
        return (self.conversions / self.participants) * 100

    def record_participant(self, count: int = 1) -> None:
        """Add participants to this arm."""
        self.participants = (self.participants or 0) + count

    def record_conversion(self, revenue: float = 0.0) -> None:
        """Count one conversion and the revenue it brought."""
        self.conversions = (self.conversions or 0) + 1
        self.revenue = (self.revenue or 0.0) + revenue


class Experiment(Base, TimestampMixin):
    """A/B test definition with its variations and recorded results.

    ``results`` holds the summary produced by the analysis process as a
    JSON document; ``winner_id`` is tracked separately and is never
    derived from it.
    """

    __tablename__ = "experiments"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    hypothesis: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    metrics: Mapped[list[str]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )
    primary_metric: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    significance_level: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.95,
    )
    minimum_detectable_effect: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.05,
    )
    minimum_sample_size: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    status: Mapped[ExperimentStatus] = mapped_column(
        Enum(ExperimentStatus, name="experiment_status", validate_strings=True),
        nullable=False,
        default=ExperimentStatus.DRAFT,
    )
    winner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
    )
    results: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )
    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    target_filters: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )
    target_percentage: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=100,
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )

    variations: Mapped[list[Variation]] = relationship(
        back_populates="experiment",
        order_by=Variation.position,
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            f"significance_level >= {SIGNIFICANCE_LEVEL_MIN} "
            f"AND significance_level <= {SIGNIFICANCE_LEVEL_MAX}",
            name="significance_level_range",
        ),
        CheckConstraint(
            "target_percentage >= 0 AND target_percentage <= 100",
            name="target_percentage_range",
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("status", ExperimentStatus.DRAFT)
        kwargs.setdefault("significance_level", 0.95)
        kwargs.setdefault("minimum_detectable_effect", 0.05)
        kwargs.setdefault("metrics", [])
        kwargs.setdefault("target_filters", [])
        kwargs.setdefault("target_percentage", 100)
        super().__init__(**kwargs)

    @validates("name")
    def _validate_name(self, key: str, value: str | None) -> str:
        trimmed = value.strip() if isinstance(value, str) else ""
        if not trimmed:
            raise ValidationError.for_field(key, "is required", value)
        return trimmed

    @validates("hypothesis")
    def _validate_hypothesis(self, key: str, value: str | None) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError.for_field(key, "is required", value)
        return value

    @validates("status")
    def _validate_status(self, key: str, value: Any) -> ExperimentStatus:
        try:
            return ExperimentStatus(value)
        except ValueError:
            allowed = ", ".join(s.value for s in ExperimentStatus)
            raise ValidationError.for_field(key, f"must be one of {allowed}", value) from None

    @validates("significance_level")
    def _validate_significance_level(self, key: str, value: Any) -> float:
        return _require_bounds(key, value, SIGNIFICANCE_LEVEL_MIN, SIGNIFICANCE_LEVEL_MAX)

    @validates("target_percentage")
    def _validate_target_percentage(self, key: str, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError.for_field(key, "must be a whole number", value)
        return _require_bounds(key, value, 0, 100)

    @validates("minimum_sample_size")
    def _validate_minimum_sample_size(self, key: str, value: Any) -> int | None:
        if value is None:
            return None
        return _require_non_negative(key, value)

    @validates("start_date")
    def _validate_start_date(self, key: str, value: datetime | None) -> datetime:
        if value is None:
            raise ValidationError.for_field(key, "is required", value)
        return value

    @property
    def is_active(self) -> bool:
        """Running with a start date set."""
        return self.status == ExperimentStatus.RUNNING and self.start_date is not None

    def get_variation(self, variation_id: uuid.UUID) -> Variation | None:
        """Find one of this experiment's own variations."""
        for variation in self.variations:
            if variation.id == variation_id:
                return variation
        return None


Index(
    "ix_experiments_status_start_date",
    Experiment.status,
    Experiment.start_date,
)
Index(
    "ix_experiments_created_by_created_at",
    Experiment.created_by,
    Experiment.created_at.desc(),
)
