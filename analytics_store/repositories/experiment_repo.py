"""Repository for experiment operations."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from analytics_store.models.db.experiment import Experiment, ExperimentStatus


class ExperimentRepository:
    """Database operations for experiments and their variations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, experiment: Experiment) -> Experiment:
        """Persist a new experiment together with its variations."""
        self.session.add(experiment)
        await self.session.flush()
        return experiment

    async def get_by_id(self, experiment_id: uuid.UUID) -> Experiment | None:
        """Get experiment by ID."""
        result = await self.session.execute(
            select(Experiment).where(Experiment.id == experiment_id)
        )
        return result.scalar_one_or_none()

    async def list_by_creator(
        self,
        created_by: uuid.UUID,
        status: ExperimentStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Experiment]:
        """List a user's experiments, newest first, optionally in one status."""
        conditions: list[Any] = [Experiment.created_by == created_by]
        if status is not None:
            conditions.append(Experiment.status == status)

        stmt = (
            select(Experiment)
            .where(and_(*conditions))
            .order_by(Experiment.created_at.desc(), Experiment.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_status(
        self,
        status: ExperimentStatus,
        started_before: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Experiment]:
        """List experiments in a status, earliest start first.

        Args:
            status: Status to match
            started_before: Only experiments whose start_date is at or before this
            limit: Maximum number of results
            offset: Number of results to skip
        """
        conditions: list[Any] = [Experiment.status == status]
        if started_before is not None:
            conditions.append(Experiment.start_date <= started_before)

        stmt = (
            select(Experiment)
            .where(and_(*conditions))
            .order_by(Experiment.start_date.asc(), Experiment.id.asc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def save(self, experiment: Experiment) -> Experiment:
        """Flush pending changes to an experiment."""
        await self.session.flush()
        return experiment

    async def delete(self, experiment: Experiment) -> None:
        """Delete an experiment; its variations go with it."""
        await self.session.delete(experiment)
        await self.session.flush()
