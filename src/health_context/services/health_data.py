"""Health data retrieval for context assembly.

Reads the three user-scoped record types (daily rollups, discrete events and
extracted upload entries) for a time window. Every fetch opens its own
session so the retriever can run them concurrently, and every fetch returns
a FetchResult instead of raising: one failing source must not take the
others down with it.
"""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Generic, TypeVar

import structlog
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from health_context.core.config import Settings, settings
from health_context.models.daily_metric import DailyMetric
from health_context.models.health_event import HealthEvent
from health_context.models.uploaded_file import UploadedFile
from health_context.schemas.analysis import MetricKey
from health_context.schemas.summary import DataSummary, SummaryDateRange
from health_context.services.query_analyzer import shift_months

logger = structlog.get_logger()

T = TypeVar("T")

# Errors treated as "this source is unavailable" rather than a crash
FETCH_ERRORS: tuple[type[Exception], ...] = (
    SQLAlchemyError,
    OSError,
    ValueError,
    TypeError,
    KeyError,
)

AVERAGE_FIELDS: tuple[MetricKey, ...] = (
    MetricKey.STEPS,
    MetricKey.DISTANCE_KM,
    MetricKey.ACTIVE_CALORIES,
    MetricKey.EXERCISE_MINUTES,
    MetricKey.AVG_HEART_RATE,
    MetricKey.RESTING_HEART_RATE,
    MetricKey.HEART_RATE_VARIABILITY,
    MetricKey.SLEEP_HOURS,
    MetricKey.CALORIES_CONSUMED,
    MetricKey.PROTEIN_G,
    MetricKey.CARBS_G,
    MetricKey.FAT_G,
    MetricKey.WATER_ML,
)

TOTAL_FIELDS: tuple[MetricKey, ...] = (
    MetricKey.STEPS,
    MetricKey.DISTANCE_KM,
    MetricKey.ACTIVE_CALORIES,
    MetricKey.EXERCISE_MINUTES,
    MetricKey.WORKOUT_COUNT,
    MetricKey.STRENGTH_SESSIONS,
    MetricKey.CARDIO_SESSIONS,
)


@dataclass
class FetchResult(Generic[T]):
    """Outcome of one datastore read.

    Attributes:
        success: False when the read failed
        data: Rows (or summary) produced; an empty value on failure
        error: Failure message, None on success
    """

    success: bool
    data: T
    error: str | None = None

    @property
    def is_empty(self) -> bool:
        """True when the read failed or returned nothing."""
        if not self.success or self.data is None:
            return True
        if isinstance(self.data, DataSummary):
            return self.data.is_empty
        if isinstance(self.data, Sequence | dict):
            return len(self.data) == 0
        return False


def _clean_values(metrics: Sequence[DailyMetric], field: MetricKey) -> list[float]:
    values: list[float] = []
    for row in metrics:
        value = row.value_of(field.value)
        if value is None:
            continue
        value = float(value)
        if value != value:  # NaN
            continue
        values.append(value)
    return values


def summarize(
    metrics: Sequence[DailyMetric],
    start: date,
    end: date,
    event_counts: dict[str, int] | None = None,
) -> DataSummary:
    """Compute averages, totals and latest weight from daily rollups.

    Each field is aggregated over the rows where it is present; a field
    reported on 2 of 5 days is averaged over those 2 days only.

    Args:
        metrics: Daily rows for the window
        start: First day of the window
        end: Last day of the window
        event_counts: Event counts by type for the same window

    Returns:
        DataSummary with values rounded to 2 decimal places
    """
    averages: dict[MetricKey, float] = {}
    totals: dict[MetricKey, float] = {}

    for field in AVERAGE_FIELDS:
        values = _clean_values(metrics, field)
        if values:
            averages[field] = round(sum(values) / len(values), 2)

    for field in TOTAL_FIELDS:
        values = _clean_values(metrics, field)
        if values:
            totals[field] = round(sum(values), 2)

    latest_weight = None
    for row in sorted(metrics, key=lambda m: m.date, reverse=True):
        if row.weight_kg is not None:
            latest_weight = float(row.weight_kg)
            break

    return DataSummary(
        date_range=SummaryDateRange(start=start, end=end, days=len(metrics)),
        averages=averages,
        totals=totals,
        events=dict(event_counts or {}),
        latest_weight=latest_weight,
    )


class HealthDataAggregator:
    """Read-only access to a user's health records for a time window.

    All queries filter by user_id; that predicate is the only isolation
    between users.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        config: Settings = settings,
    ) -> None:
        """Initialize aggregator.

        Args:
            session_maker: Factory for per-fetch sessions
            config: Settings providing the upload recency window
        """
        self.session_maker = session_maker
        self.config = config
        self.logger = logger.bind(service="health_data")

    async def _guarded(
        self,
        source: str,
        user_id: str,
        empty: T,
        query: Callable[[AsyncSession], Awaitable[T]],
    ) -> FetchResult[T]:
        """Run one read in its own session and capture failures."""
        try:
            async with self.session_maker() as session:
                data = await query(session)
        except FETCH_ERRORS as e:
            self.logger.warning(
                "Health data fetch failed",
                source=source,
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return FetchResult(success=False, data=empty, error=str(e))

        return FetchResult(success=True, data=data)

    async def fetch_daily_metrics(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> FetchResult[list[DailyMetric]]:
        """Daily rollups between the window's calendar days, oldest first."""

        async def query(session: AsyncSession) -> list[DailyMetric]:
            stmt = (
                select(DailyMetric)
                .where(DailyMetric.user_id == user_id)
                .where(DailyMetric.date >= start.date())
                .where(DailyMetric.date <= end.date())
                .order_by(DailyMetric.date.asc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

        result = await self._guarded("daily_metrics", user_id, [], query)
        self.logger.debug("Fetched daily metrics", user_id=user_id, count=len(result.data))
        return result

    async def fetch_events(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        event_types: list[str] | None = None,
        limit: int | None = None,
    ) -> FetchResult[list[HealthEvent]]:
        """Events starting inside the window, newest first.

        Args:
            user_id: User identifier
            start: Window start
            end: Window end
            event_types: Only include these types
            limit: Maximum rows to return
        """

        async def query(session: AsyncSession) -> list[HealthEvent]:
            stmt = (
                select(HealthEvent)
                .where(HealthEvent.user_id == user_id)
                .where(HealthEvent.start_time >= start)
                .where(HealthEvent.start_time <= end)
                .order_by(HealthEvent.start_time.desc())
            )
            if event_types:
                stmt = stmt.where(HealthEvent.event_type.in_(event_types))
            if limit is not None:
                stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return list(result.scalars().all())

        result = await self._guarded("health_events", user_id, [], query)
        self.logger.debug("Fetched health events", user_id=user_id, count=len(result.data))
        return result

    async def fetch_event_counts(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> FetchResult[dict[str, int]]:
        """Number of events per type inside the window."""

        async def query(session: AsyncSession) -> dict[str, int]:
            stmt = (
                select(HealthEvent.event_type, func.count(HealthEvent.id))
                .where(HealthEvent.user_id == user_id)
                .where(HealthEvent.start_time >= start)
                .where(HealthEvent.start_time <= end)
                .group_by(HealthEvent.event_type)
                .order_by(HealthEvent.event_type)
            )
            result = await session.execute(stmt)
            return {row[0]: int(row[1]) for row in result.all()}

        return await self._guarded("event_counts", user_id, {}, query)

    async def fetch_uploaded_files(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        categories: list[str] | None = None,
    ) -> FetchResult[list[UploadedFile]]:
        """Uploaded documents relevant to the window, newest upload first.

        A file is included when any of these hold:
        - it declares no date range
        - its date range overlaps the window
        - it was uploaded within ``upload_recency_months`` before ``end``

        The last rule keeps a just-uploaded lab report whose draw date
        predates the window.

        Args:
            user_id: User identifier
            start: Window start
            end: Window end
            categories: Only include files declaring any of these categories
        """
        recency_cutoff = shift_months(end, self.config.upload_recency_months)

        async def query(session: AsyncSession) -> list[UploadedFile]:
            range_end = func.coalesce(UploadedFile.date_range_end, UploadedFile.date_range_start)
            stmt = (
                select(UploadedFile)
                .where(UploadedFile.user_id == user_id)
                .where(
                    or_(
                        UploadedFile.date_range_start.is_(None),
                        and_(
                            UploadedFile.date_range_start <= end.date(),
                            range_end >= start.date(),
                        ),
                        UploadedFile.upload_date >= recency_cutoff,
                    )
                )
                .order_by(UploadedFile.upload_date.desc())
            )
            result = await session.execute(stmt)
            files = list(result.scalars().all())
            if categories:
                files = [f for f in files if f.has_category(categories)]
            return files

        result = await self._guarded("uploaded_files", user_id, [], query)
        self.logger.debug("Fetched uploaded files", user_id=user_id, count=len(result.data))
        return result

    async def fetch_summary(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> FetchResult[DataSummary | None]:
        """Summary of the window's rollups plus event counts.

        A failed rollup read fails the summary; a failed count read only
        leaves the event counts empty.
        """
        daily = await self.fetch_daily_metrics(user_id, start, end)
        if not daily.success:
            return FetchResult(success=False, data=None, error=daily.error)

        counts = await self.fetch_event_counts(user_id, start, end)

        summary = summarize(daily.data, start.date(), end.date(), counts.data)
        return FetchResult(success=True, data=summary)
