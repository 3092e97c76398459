"""Experiment service for A/B testing lifecycle management."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from analytics_store.core.exceptions import ConflictError, NotFoundError, ValidationError
from analytics_store.models.db.base import as_utc
from analytics_store.models.db.experiment import Experiment, ExperimentStatus, Variation
from analytics_store.models.domain.experiment import (
    ExperimentCreate,
    ExperimentRead,
    ExperimentResults,
    ExperimentUpdate,
    VariationCreate,
)
from analytics_store.repositories.experiment_repo import ExperimentRepository

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({ExperimentStatus.COMPLETED, ExperimentStatus.STOPPED})


def _build_variation(data: VariationCreate) -> Variation:
    return Variation(
        name=data.name,
        description=data.description,
        configuration=data.configuration,
        weight=data.weight,
        metrics=data.metrics,
    )


class ExperimentService:
    """Manages experiment records: create, edit, lifecycle and results."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._repo = ExperimentRepository(db_session)

    async def create_experiment(
        self,
        data: ExperimentCreate,
        created_by: uuid.UUID,
    ) -> ExperimentRead:
        """Create a new experiment in DRAFT."""
        experiment = Experiment(
            name=data.name,
            description=data.description,
            hypothesis=data.hypothesis,
            metrics=list(data.metrics),
            primary_metric=data.primary_metric,
            significance_level=data.significance_level,
            minimum_detectable_effect=data.minimum_detectable_effect,
            minimum_sample_size=data.minimum_sample_size,
            status=ExperimentStatus.DRAFT,
            variations=[_build_variation(v) for v in data.variations],
            start_date=data.start_date,
            end_date=data.end_date,
            target_filters=[f.model_dump(mode="json") for f in data.target_filters],
            target_percentage=data.target_percentage,
            created_by=created_by,
        )
        created = await self._repo.create(experiment)
        logger.info(
            "Experiment created",
            extra={"experiment_id": str(created.id), "created_by": str(created_by)},
        )
        return ExperimentRead.model_validate(created)

    async def get_experiment(self, experiment_id: uuid.UUID) -> ExperimentRead:
        """Get experiment by ID.

        Raises:
            NotFoundError: If the experiment does not exist
        """
        experiment = await self._get_or_raise(experiment_id)
        return ExperimentRead.model_validate(experiment)

    async def list_experiments(
        self,
        created_by: uuid.UUID | None = None,
        status: ExperimentStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ExperimentRead]:
        """List experiments by creator or by status."""
        if created_by is not None:
            experiments = await self._repo.list_by_creator(
                created_by, status=status, limit=limit, offset=offset
            )
        elif status is not None:
            experiments = await self._repo.list_by_status(status, limit=limit, offset=offset)
        else:
            raise ValidationError("Either created_by or status is required to list experiments")
        return [ExperimentRead.model_validate(e) for e in experiments]

    async def update_experiment(
        self,
        experiment_id: uuid.UUID,
        data: ExperimentUpdate,
    ) -> ExperimentRead:
        """Update experiment settings (only DRAFT experiments)."""
        experiment = await self._get_or_raise(experiment_id)
        if experiment.status != ExperimentStatus.DRAFT:
            raise ConflictError("Can only update DRAFT experiments")

        changes = data.model_dump(exclude_unset=True, exclude={"variations", "target_filters"})
        # Checked against the merged values before the tracked instance is touched
        start_date = changes.get("start_date", experiment.start_date)
        end_date = changes.get("end_date", experiment.end_date)
        if start_date is None:
            raise ValidationError.for_field("start_date", "is required", None)
        if end_date is not None and as_utc(end_date) < as_utc(start_date):
            raise ValidationError.for_field("end_date", "must not precede start_date", end_date)

        previous = {field: getattr(experiment, field) for field in changes}
        try:
            for field, value in changes.items():
                setattr(experiment, field, value)
        except ValidationError:
            for field, value in previous.items():
                if getattr(experiment, field) != value:
                    setattr(experiment, field, value)
            raise

        if data.variations is not None:
            experiment.variations = [_build_variation(v) for v in data.variations]
        if data.target_filters is not None:
            experiment.target_filters = [f.model_dump(mode="json") for f in data.target_filters]

        await self._repo.save(experiment)
        return ExperimentRead.model_validate(experiment)

    async def start_experiment(self, experiment_id: uuid.UUID) -> ExperimentRead:
        """Start a DRAFT experiment."""
        return await self._transition(
            experiment_id, {ExperimentStatus.DRAFT}, ExperimentStatus.RUNNING
        )

    async def pause_experiment(self, experiment_id: uuid.UUID) -> ExperimentRead:
        """Pause a RUNNING experiment."""
        return await self._transition(
            experiment_id, {ExperimentStatus.RUNNING}, ExperimentStatus.PAUSED
        )

    async def resume_experiment(self, experiment_id: uuid.UUID) -> ExperimentRead:
        """Resume a PAUSED experiment."""
        return await self._transition(
            experiment_id, {ExperimentStatus.PAUSED}, ExperimentStatus.RUNNING
        )

    async def complete_experiment(self, experiment_id: uuid.UUID) -> ExperimentRead:
        """Mark a RUNNING or PAUSED experiment as COMPLETED."""
        return await self._transition(
            experiment_id,
            {ExperimentStatus.RUNNING, ExperimentStatus.PAUSED},
            ExperimentStatus.COMPLETED,
        )

    async def stop_experiment(self, experiment_id: uuid.UUID) -> ExperimentRead:
        """Abandon an experiment that has not finished yet."""
        return await self._transition(
            experiment_id,
            {ExperimentStatus.DRAFT, ExperimentStatus.RUNNING, ExperimentStatus.PAUSED},
            ExperimentStatus.STOPPED,
        )

    async def record_results(
        self,
        experiment_id: uuid.UUID,
        results: ExperimentResults,
    ) -> ExperimentRead:
        """Store a result summary exactly as supplied."""
        experiment = await self._get_or_raise(experiment_id)
        experiment.results = results.model_dump(mode="json")
        await self._repo.save(experiment)
        logger.info("Experiment results recorded", extra={"experiment_id": str(experiment_id)})
        return ExperimentRead.model_validate(experiment)

    async def declare_winner(
        self,
        experiment_id: uuid.UUID,
        variation_id: uuid.UUID,
    ) -> ExperimentRead:
        """Point the experiment's winner at one of its own variations."""
        experiment = await self._get_or_raise(experiment_id)
        if experiment.get_variation(variation_id) is None:
            raise ValidationError.for_field(
                "winner_id", "must reference a variation of this experiment", str(variation_id)
            )
        experiment.winner_id = variation_id
        await self._repo.save(experiment)
        logger.info(
            "Experiment winner declared",
            extra={"experiment_id": str(experiment_id), "variation_id": str(variation_id)},
        )
        return ExperimentRead.model_validate(experiment)

    async def _transition(
        self,
        experiment_id: uuid.UUID,
        allowed: set[ExperimentStatus],
        target: ExperimentStatus,
    ) -> ExperimentRead:
        experiment = await self._get_or_raise(experiment_id)
        if experiment.status not in allowed:
            expected = " or ".join(sorted(s.value for s in allowed))
            raise ConflictError(
                f"Cannot move experiment from {experiment.status.value} to "
                f"{target.value}; it must be {expected}"
            )

        previous = experiment.status
        experiment.status = target
        if target in TERMINAL_STATUSES and experiment.end_date is None:
            experiment.end_date = datetime.now(UTC)

        await self._repo.save(experiment)
        logger.info(
            "Experiment status changed",
            extra={
                "experiment_id": str(experiment_id),
                "from_status": previous.value,
                "to_status": target.value,
            },
        )
        return ExperimentRead.model_validate(experiment)

    async def _get_or_raise(self, experiment_id: uuid.UUID) -> Experiment:
        experiment = await self._repo.get_by_id(experiment_id)
        if experiment is None:
            raise NotFoundError(resource="Experiment", resource_id=str(experiment_id))
        return experiment
