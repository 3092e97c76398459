"""Repository for analytics session operations."""

import uuid
from datetime import datetime

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from analytics_store.core.exceptions import ConflictError
from analytics_store.core.pagination import decode_cursor
from analytics_store.models.db.analytics_session import AnalyticsSession


class AnalyticsSessionRepository:
    """Repository for analytics session database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, record: AnalyticsSession) -> AnalyticsSession:
        """Persist a new session record.

        Args:
            record: The session record to create

        Returns:
            The created session record

        Raises:
            ConflictError: If a record with the same session_id exists
        """
        if await self.get_by_session_id(record.session_id) is not None:
            raise ConflictError(f"Session '{record.session_id}' already exists")

        self.session.add(record)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent writer on the unique index
            raise ConflictError(f"Session '{record.session_id}' already exists") from e
        return record

    async def get_by_session_id(self, session_id: str) -> AnalyticsSession | None:
        """Get a session by its external session identifier.

        Args:
            session_id: The tracking session identifier

        Returns:
            The session if found, None otherwise
        """
        result = await self.session.execute(
            select(AnalyticsSession).where(AnalyticsSession.session_id == session_id)
        )
        return result.scalar_one_or_none()

    async def save(self, record: AnalyticsSession) -> AnalyticsSession:
        """Flush pending changes to a session record."""
        await self.session.flush()
        return record

    async def list_sessions(
        self,
        user_id: uuid.UUID | None = None,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AnalyticsSession]:
        """List sessions with optional filters, most recent first.

        Args:
            user_id: Filter by owning user
            start_from: Sessions started at or after this time
            start_to: Sessions started at or before this time
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            List of sessions matching the filters
        """
        conditions = []

        if user_id is not None:
            conditions.append(AnalyticsSession.user_id == user_id)
        if start_from is not None:
            conditions.append(AnalyticsSession.start_time >= start_from)
        if start_to is not None:
            conditions.append(AnalyticsSession.start_time <= start_to)

        query = select(AnalyticsSession)
        if conditions:
            query = query.where(and_(*conditions))

        query = (
            query.order_by(AnalyticsSession.start_time.desc(), AnalyticsSession.id.desc())
            .limit(limit)
            .offset(offset)
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_sessions(self, user_id: uuid.UUID | None = None) -> int:
        """Count sessions, optionally for one user."""
        query = select(func.count(AnalyticsSession.id))
        if user_id is not None:
            query = query.where(AnalyticsSession.user_id == user_id)

        result = await self.session.execute(query)
        return result.scalar() or 0

    async def list_sessions_cursor(
        self,
        user_id: uuid.UUID | None = None,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[AnalyticsSession]:
        """List sessions with cursor-based pagination.

        Uses start_time as the sort key with id as tie-breaker.
        Returns limit + 1 items so caller can determine if more exist.
        """
        conditions = []

        if user_id is not None:
            conditions.append(AnalyticsSession.user_id == user_id)

        if cursor:
            cursor_data = decode_cursor(cursor)
            # Descending order: strictly after the cursor row
            conditions.append(
                or_(
                    AnalyticsSession.start_time < cursor_data.sort_value,
                    and_(
                        AnalyticsSession.start_time == cursor_data.sort_value,
                        AnalyticsSession.id < cursor_data.id,
                    ),
                )
            )

        query = select(AnalyticsSession)
        if conditions:
            query = query.where(and_(*conditions))

        query = query.order_by(
            AnalyticsSession.start_time.desc(), AnalyticsSession.id.desc()
        ).limit(limit + 1)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def purge_started_before(self, cutoff: datetime) -> int:
        """Delete sessions that started before ``cutoff``.

        Returns:
            Number of sessions deleted
        """
        cursor_result = await self.session.execute(
            delete(AnalyticsSession)
            .where(AnalyticsSession.start_time < cutoff)
            .execution_options(synchronize_session=False)
        )
        return getattr(cursor_result, "rowcount", 0) or 0
