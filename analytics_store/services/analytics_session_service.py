"""Service for tracked analytics sessions."""

import logging
import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from analytics_store.core.config import get_settings
from analytics_store.core.exceptions import NotFoundError
from analytics_store.core.pagination import CursorPage, create_cursor_page
from analytics_store.models.db.analytics_session import (
    AnalyticsSession,
    Device,
    DeviceType,
    Location,
)
from analytics_store.models.domain.analytics_session import (
    ActivityRecord,
    SessionFilter,
    SessionRead,
    SessionStart,
)
from analytics_store.repositories.analytics_session_repo import AnalyticsSessionRepository

logger = logging.getLogger(__name__)


class AnalyticsSessionService:
    """Opens, updates, closes and purges tracked sessions."""

    def __init__(self, db_session: AsyncSession) -> None:
        self.db_session = db_session
        self.session_repo = AnalyticsSessionRepository(db_session)

    async def start_session(self, start: SessionStart) -> SessionRead:
        """Open a new session.

        Args:
            start: Session start data

        Returns:
            The created session

        Raises:
            ConflictError: If the session_id is already taken
        """
        device = start.device
        location = start.location
        record = AnalyticsSession(
            session_id=start.session_id,
            user_id=start.user_id,
            device=Device(
                type=DeviceType(device.type.value),
                brand=device.brand,
                model=device.model,
                os=device.os,
                os_version=device.os_version,
                browser=device.browser,
                browser_version=device.browser_version,
                screen_resolution=device.screen_resolution,
                language=device.language,
            ),
            location=Location(**location.model_dump()),
            start_time=start.start_time or datetime.now(UTC),
            entry_page=start.entry_page,
            source=start.source,
            medium=start.medium,
            campaign=start.campaign,
            session_metadata=dict(start.session_metadata),
        )

        created = await self.session_repo.create(record)
        logger.info("Session started", extra={"session_id": created.session_id})
        return SessionRead.model_validate(created)

    async def get_session(self, session_id: str) -> SessionRead:
        """Get a session by its session identifier.

        Raises:
            NotFoundError: If session not found
        """
        record = await self._get_or_raise(session_id)
        return SessionRead.model_validate(record)

    async def list_sessions(self, filters: SessionFilter) -> list[SessionRead]:
        """List sessions matching the filter, most recent first."""
        records = await self.session_repo.list_sessions(
            user_id=filters.user_id,
            start_from=filters.start_from,
            start_to=filters.start_to,
            limit=filters.limit,
            offset=filters.offset,
        )
        return [SessionRead.model_validate(r) for r in records]

    async def list_sessions_page(
        self,
        user_id: uuid.UUID | None = None,
        cursor: str | None = None,
        limit: int = 50,
    ) -> CursorPage[SessionRead]:
        """List sessions one cursor page at a time."""
        records = await self.session_repo.list_sessions_cursor(
            user_id=user_id, cursor=cursor, limit=limit
        )
        return create_cursor_page(
            records,
            limit,
            get_sort_value=lambda r: r.start_time,
            get_id=lambda r: r.id,
            convert=SessionRead.model_validate,
        )

    async def record_page_view(self, session_id: str, page: str | None = None) -> SessionRead:
        """Count a page view on an open session.

        Raises:
            NotFoundError: If session not found
            ConflictError: If the session is already closed
        """
        record = await self._get_or_raise(session_id)
        record.record_page_view(page)
        await self.session_repo.save(record)
        return SessionRead.model_validate(record)

    async def record_activity(self, session_id: str, activity: ActivityRecord) -> SessionRead:
        """Fold one activity into an open session's counters and engagement."""
        record = await self._get_or_raise(session_id)
        record.record_activity(activity.event_type, activity.amount)
        await self.session_repo.save(record)
        return SessionRead.model_validate(record)

    async def end_session(
        self,
        session_id: str,
        end_time: datetime | None = None,
    ) -> SessionRead:
        """Close a session.

        Raises:
            NotFoundError: If session not found
            ConflictError: If the session is already closed
        """
        record = await self._get_or_raise(session_id)
        record.close(end_time)
        await self.session_repo.save(record)
        logger.info(
            "Session ended",
            extra={"session_id": session_id, "duration_seconds": record.duration},
        )
        return SessionRead.model_validate(record)

    async def purge_older_than(
        self,
        days: int | None = None,
        cutoff: datetime | None = None,
    ) -> int:
        """Delete sessions that started before the cutoff.

        Args:
            days: Retention window in days, defaults to the configured
                session_retention_days
            cutoff: Explicit cutoff timestamp

        Returns:
            Number of sessions deleted
        """
        if cutoff is None:
            if days is None:
                days = get_settings().session_retention_days
            cutoff = datetime.now(UTC) - timedelta(days=days)

        deleted = await self.session_repo.purge_started_before(cutoff)
        logger.info(
            "Purged sessions",
            extra={"cutoff": cutoff.isoformat(), "deleted": deleted},
        )
        return deleted

    async def _get_or_raise(self, session_id: str) -> AnalyticsSession:
        record = await self.session_repo.get_by_session_id(session_id)
        if record is None:
            raise NotFoundError(resource="Session", resource_id=session_id)
        return record
