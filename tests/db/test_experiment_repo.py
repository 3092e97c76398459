"""Repository tests for experiments against SQLite."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from analytics_store.core.exceptions import ValidationError
from analytics_store.models.db.experiment import Experiment, ExperimentStatus, Variation
from analytics_store.models.domain.experiment import ExperimentUpdate
from analytics_store.repositories.experiment_repo import ExperimentRepository
from analytics_store.services.experiment_service import ExperimentService

START = datetime(2026, 5, 1, tzinfo=UTC)


def _experiment(
    created_by: uuid.UUID,
    *,
    name: str = "checkout-button",
    status: ExperimentStatus = ExperimentStatus.DRAFT,
    start_date: datetime = START,
    created_at: datetime | None = None,
) -> Experiment:
    return Experiment(
        name=name,
        hypothesis="A green button converts better",
        status=status,
        start_date=start_date,
        created_by=created_by,
        created_at=created_at or START,
        variations=[
            Variation(name="control", configuration={}),
            Variation(name="green", configuration={"color": "green"}, weight=0.3),
        ],
    )


async def _count_variations(db_session: AsyncSession) -> int:
    result = await db_session.execute(select(func.count(Variation.id)))
    return result.scalar_one()


@pytest.fixture
def repo(db_session: AsyncSession) -> ExperimentRepository:
    return ExperimentRepository(db_session)


class TestCreateAndGet:
    @pytest.mark.asyncio
    async def test_create_assigns_defaults(self, repo: ExperimentRepository) -> None:
        created = await repo.create(_experiment(uuid.uuid4()))

        assert created.id is not None
        assert created.updated_at is not None
        assert created.status == ExperimentStatus.DRAFT
        assert all(v.experiment_id == created.id for v in created.variations)

    @pytest.mark.asyncio
    async def test_get_by_id_loads_variations_in_order(
        self, repo: ExperimentRepository, db_session: AsyncSession
    ) -> None:
        created = await repo.create(_experiment(uuid.uuid4()))
        await db_session.commit()
        db_session.expunge_all()

        loaded = await repo.get_by_id(created.id)

        assert loaded is not None
        assert loaded is not created
        assert [v.name for v in loaded.variations] == ["control", "green"]
        assert [v.position for v in loaded.variations] == [0, 1]
        assert loaded.variations[1].configuration == {"color": "green"}
        assert loaded.variations[1].weight == 0.3
        assert loaded.metrics == []

    @pytest.mark.asyncio
    async def test_get_missing(self, repo: ExperimentRepository) -> None:
        assert await repo.get_by_id(uuid.uuid4()) is None


class TestListing:
    @pytest.mark.asyncio
    async def test_list_by_creator_newest_first(self, repo: ExperimentRepository) -> None:
        owner = uuid.uuid4()
        for day in range(3):
            await repo.create(
                _experiment(owner, name=f"exp-{day}", created_at=START + timedelta(days=day))
            )
        await repo.create(_experiment(uuid.uuid4(), name="someone-else"))

        experiments = await repo.list_by_creator(owner)

        assert [e.name for e in experiments] == ["exp-2", "exp-1", "exp-0"]

    @pytest.mark.asyncio
    async def test_list_by_creator_paginates(self, repo: ExperimentRepository) -> None:
        owner = uuid.uuid4()
        for day in range(3):
            await repo.create(
                _experiment(owner, name=f"exp-{day}", created_at=START + timedelta(days=day))
            )

        experiments = await repo.list_by_creator(owner, limit=1, offset=1)

        assert [e.name for e in experiments] == ["exp-1"]

    @pytest.mark.asyncio
    async def test_list_by_status(self, repo: ExperimentRepository) -> None:
        owner = uuid.uuid4()
        await repo.create(
            _experiment(
                owner,
                name="late",
                status=ExperimentStatus.RUNNING,
                start_date=START + timedelta(days=10),
            )
        )
        await repo.create(_experiment(owner, name="early", status=ExperimentStatus.RUNNING))
        await repo.create(_experiment(owner, name="draft"))

        running = await repo.list_by_status(ExperimentStatus.RUNNING)
        started = await repo.list_by_status(
            ExperimentStatus.RUNNING, started_before=START + timedelta(days=1)
        )

        assert [e.name for e in running] == ["early", "late"]
        assert [e.name for e in started] == ["early"]


class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_save_persists_changes(
        self, repo: ExperimentRepository, db_session: AsyncSession
    ) -> None:
        created = await repo.create(_experiment(uuid.uuid4()))
        created.status = ExperimentStatus.RUNNING
        created.variations[0].record_participant(10)
        created.variations[0].record_conversion(revenue=5.0)
        await repo.save(created)
        await db_session.commit()
        db_session.expunge_all()

        loaded = await repo.get_by_id(created.id)

        assert loaded is not None
        assert loaded.status == ExperimentStatus.RUNNING
        assert loaded.variations[0].participants == 10
        assert loaded.variations[0].conversion_rate == 10.0

    @pytest.mark.asyncio
    async def test_removed_variation_is_deleted(
        self, repo: ExperimentRepository, db_session: AsyncSession
    ) -> None:
        created = await repo.create(_experiment(uuid.uuid4()))

        created.variations.pop(0)
        await repo.save(created)

        assert await _count_variations(db_session) == 1
        assert created.variations[0].position == 0

    @pytest.mark.asyncio
    async def test_delete_removes_variations(
        self, repo: ExperimentRepository, db_session: AsyncSession
    ) -> None:
        created = await repo.create(_experiment(uuid.uuid4()))

        await repo.delete(created)

        assert await repo.get_by_id(created.id) is None
        assert await _count_variations(db_session) == 0

    @pytest.mark.asyncio
    async def test_foreign_key_cascades_on_bulk_delete(
        self, repo: ExperimentRepository, db_session: AsyncSession
    ) -> None:
        created = await repo.create(_experiment(uuid.uuid4()))
        await db_session.commit()

        await db_session.execute(
            delete(Experiment.__table__).where(Experiment.__table__.c.id == created.id)
        )

        assert await _count_variations(db_session) == 0


class TestConstraints:
    @pytest.mark.asyncio
    async def test_significance_level_checked_by_database(
        self, db_session: AsyncSession
    ) -> None:
        with pytest.raises(IntegrityError):
            await db_session.execute(
                insert(Experiment.__table__).values(
                    name="raw",
                    hypothesis="h",
                    significance_level=0.5,
                    start_date=START,
                    created_by=uuid.uuid4(),
                )
            )

    @pytest.mark.asyncio
    async def test_variation_weight_checked_by_database(
        self, repo: ExperimentRepository, db_session: AsyncSession
    ) -> None:
        created = await repo.create(_experiment(uuid.uuid4()))

        with pytest.raises(IntegrityError):
            await db_session.execute(
                insert(Variation.__table__).values(
                    experiment_id=created.id,
                    name="heavy",
                    configuration={},
                    weight=1.5,
                )
            )


class TestServiceAgainstDatabase:
    @pytest.mark.asyncio
    async def test_creator_and_status_filtered_before_paging(
        self, repo: ExperimentRepository, db_session: AsyncSession
    ) -> None:
        owner = uuid.uuid4()
        statuses = [ExperimentStatus.RUNNING] * 2 + [ExperimentStatus.DRAFT] * 3
        for day, status in enumerate(statuses):
            await repo.create(
                _experiment(
                    owner,
                    name=f"exp-{day}",
                    status=status,
                    created_at=START + timedelta(days=day),
                )
            )
        service = ExperimentService(db_session)

        running = await service.list_experiments(
            created_by=owner, status=ExperimentStatus.RUNNING, limit=2
        )
        drafts = await repo.list_by_creator(owner, status=ExperimentStatus.DRAFT, limit=2)

        assert [e.name for e in running] == ["exp-1", "exp-0"]
        assert [e.name for e in drafts] == ["exp-4", "exp-3"]

    @pytest.mark.asyncio
    async def test_rejected_update_is_not_persisted(
        self, repo: ExperimentRepository, db_session: AsyncSession
    ) -> None:
        created = await repo.create(_experiment(uuid.uuid4()))
        await db_session.commit()
        service = ExperimentService(db_session)

        with pytest.raises(ValidationError):
            await service.update_experiment(
                created.id,
                ExperimentUpdate(name="changed", end_date=datetime(2020, 1, 1, tzinfo=UTC)),
            )
        await db_session.commit()
        db_session.expunge_all()

        loaded = await repo.get_by_id(created.id)
        assert loaded is not None
        assert loaded.name == "checkout-button"
        assert loaded.end_date is None
