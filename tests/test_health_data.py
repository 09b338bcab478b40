"""Tests for health data retrieval and summarization."""

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from health_context.models.daily_metric import DailyMetric
from health_context.schemas.analysis import MetricKey
from health_context.services.health_data import HealthDataAggregator, summarize
from tests.fixtures.fakes import FIXED_NOW
from tests.fixtures.health_seed import seed_daily_metrics, seed_events, seed_uploaded_file

USER = "user-1"
OTHER_USER = "user-2"


class _FailingSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


def failing_session_maker():
    """Session factory whose sessions fail every query."""
    return _FailingSession()


class TestSummarize:
    """Tests for the pure summary calculation."""

    def test_averages_only_present_values(self):
        """A field present in 2 of 5 rows is averaged over those 2."""
        rows = [
            DailyMetric(user_id=USER, date=date(2026, 10, d), steps=1000 * d)
            for d in range(1, 6)
        ]
        rows[0].sleep_hours = 6.0
        rows[3].sleep_hours = 8.5

        summary = summarize(rows, date(2026, 10, 1), date(2026, 10, 5))

        assert summary.averages[MetricKey.SLEEP_HOURS] == 7.25
        assert summary.averages[MetricKey.STEPS] == 3000
        assert summary.totals[MetricKey.STEPS] == 15000
        assert summary.date_range.days == 5

    def test_absent_fields_are_omitted(self):
        """Fields with no values appear in neither averages nor totals."""
        rows = [DailyMetric(user_id=USER, date=date(2026, 10, 1), steps=5000)]

        summary = summarize(rows, date(2026, 10, 1), date(2026, 10, 1))

        assert MetricKey.WATER_ML not in summary.averages
        assert MetricKey.WORKOUT_COUNT not in summary.totals

    def test_zero_is_a_value(self):
        """A stored zero counts toward the average."""
        rows = [
            DailyMetric(user_id=USER, date=date(2026, 10, 1), workout_count=0, steps=0),
            DailyMetric(user_id=USER, date=date(2026, 10, 2), workout_count=2, steps=4000),
        ]

        summary = summarize(rows, date(2026, 10, 1), date(2026, 10, 2))

        assert summary.averages[MetricKey.STEPS] == 2000
        assert summary.totals[MetricKey.WORKOUT_COUNT] == 2

    def test_rounding(self):
        """Averages are rounded to 2 decimal places."""
        rows = [
            DailyMetric(user_id=USER, date=date(2026, 10, d), sleep_hours=h)
            for d, h in [(1, 7.0), (2, 7.0), (3, 8.0)]
        ]

        summary = summarize(rows, date(2026, 10, 1), date(2026, 10, 3))

        assert summary.averages[MetricKey.SLEEP_HOURS] == 7.33

    def test_latest_weight_by_date(self):
        """Latest weight comes from the most recent row that has one."""
        rows = [
            DailyMetric(user_id=USER, date=date(2026, 10, 3)),
            DailyMetric(user_id=USER, date=date(2026, 10, 1), weight_kg=80.0),
            DailyMetric(user_id=USER, date=date(2026, 10, 2), weight_kg=79.4),
        ]

        summary = summarize(rows, date(2026, 10, 1), date(2026, 10, 3))

        assert summary.latest_weight == 79.4

    def test_empty(self):
        """No rows and no events is an empty summary."""
        summary = summarize([], date(2026, 10, 1), date(2026, 10, 7))

        assert summary.is_empty
        assert summary.latest_weight is None
        assert summary.averages == {}

    def test_event_counts(self):
        """Event counts are carried through and make the summary non-empty."""
        summary = summarize([], date(2026, 10, 1), date(2026, 10, 7), {"workout": 3})

        assert summary.events == {"workout": 3}
        assert not summary.is_empty


class TestHealthDataAggregator:
    """Tests for datastore reads."""

    async def test_daily_metrics_window_and_order(self, async_session, aggregator):
        """Rows inside the window come back oldest first, scoped to the user."""
        await seed_daily_metrics(async_session, USER, date(2026, 10, 15), days=10)
        await seed_daily_metrics(async_session, OTHER_USER, date(2026, 10, 15), days=10)

        result = await aggregator.fetch_daily_metrics(
            USER, FIXED_NOW - timedelta(days=2), FIXED_NOW
        )

        assert result.success
        assert [row.date for row in result.data] == [
            date(2026, 10, 13),
            date(2026, 10, 14),
            date(2026, 10, 15),
        ]
        assert all(row.user_id == USER for row in result.data)

    async def test_events_newest_first(self, async_session, aggregator):
        """Events are ordered by start time descending."""
        await seed_events(async_session, USER, FIXED_NOW - timedelta(days=1), count=3)

        result = await aggregator.fetch_events(USER, FIXED_NOW - timedelta(days=2), FIXED_NOW)

        starts = [event.start_time for event in result.data]
        assert len(starts) == 3
        assert starts == sorted(starts, reverse=True)

    async def test_events_type_filter_and_limit(self, async_session, aggregator):
        """Type filter and limit narrow the result."""
        window_start = FIXED_NOW - timedelta(days=3)
        await seed_events(async_session, USER, window_start, count=4, event_type="workout")
        await seed_events(async_session, USER, window_start, count=2, event_type="meal")

        meals = await aggregator.fetch_events(USER, window_start, FIXED_NOW, event_types=["meal"])
        limited = await aggregator.fetch_events(USER, window_start, FIXED_NOW, limit=3)

        assert {event.event_type for event in meals.data} == {"meal"}
        assert len(meals.data) == 2
        assert len(limited.data) == 3

    async def test_events_outside_window_excluded(self, async_session, aggregator):
        """Events before the window start are not returned."""
        await seed_events(async_session, USER, FIXED_NOW - timedelta(days=10), count=2)

        result = await aggregator.fetch_events(USER, FIXED_NOW - timedelta(days=2), FIXED_NOW)

        assert result.success
        assert result.is_empty

    async def test_event_counts(self, async_session, aggregator):
        """Counts are grouped by event type."""
        window_start = FIXED_NOW - timedelta(days=3)
        await seed_events(async_session, USER, window_start, count=3, event_type="workout")
        await seed_events(async_session, USER, window_start, count=1, event_type="meal")

        result = await aggregator.fetch_event_counts(USER, window_start, FIXED_NOW)

        assert result.data == {"meal": 1, "workout": 3}

    async def test_uploaded_file_inclusion_rules(self, async_session, aggregator):
        """Undated, overlapping and recently uploaded files are included."""
        window_start = FIXED_NOW - timedelta(days=7)
        long_ago = FIXED_NOW - timedelta(days=400)

        await seed_uploaded_file(async_session, USER, "undated.pdf", upload_date=long_ago)
        await seed_uploaded_file(
            async_session,
            USER,
            "overlapping.csv",
            upload_date=long_ago,
            date_range_start=date(2026, 10, 1),
            date_range_end=date(2026, 10, 10),
        )
        await seed_uploaded_file(
            async_session,
            USER,
            "recent_lab.pdf",
            upload_date=FIXED_NOW - timedelta(days=30),
            date_range_start=date(2025, 1, 5),
            date_range_end=date(2025, 1, 5),
        )
        await seed_uploaded_file(
            async_session,
            USER,
            "stale.pdf",
            upload_date=long_ago,
            date_range_start=date(2025, 1, 1),
            date_range_end=date(2025, 1, 31),
        )
        await seed_uploaded_file(async_session, OTHER_USER, "not_mine.pdf", upload_date=FIXED_NOW)

        result = await aggregator.fetch_uploaded_files(USER, window_start, FIXED_NOW)

        names = [f.file_name for f in result.data]
        assert set(names) == {"undated.pdf", "overlapping.csv", "recent_lab.pdf"}
        # Newest upload first
        assert names[0] == "recent_lab.pdf"

    async def test_uploaded_file_range_without_end(self, async_session, aggregator):
        """A start date with no end date is treated as a single day."""
        long_ago = FIXED_NOW - timedelta(days=400)
        await seed_uploaded_file(
            async_session,
            USER,
            "single_day.pdf",
            upload_date=long_ago,
            date_range_start=date(2026, 10, 12),
        )

        hit = await aggregator.fetch_uploaded_files(
            USER, FIXED_NOW - timedelta(days=7), FIXED_NOW
        )
        miss = await aggregator.fetch_uploaded_files(
            USER, FIXED_NOW - timedelta(days=2), FIXED_NOW
        )

        assert [f.file_name for f in hit.data] == ["single_day.pdf"]
        assert miss.data == []

    async def test_uploaded_file_category_overlap(self, async_session, aggregator):
        """Category filter keeps files declaring any requested category."""
        await seed_uploaded_file(
            async_session, USER, "labs.pdf", upload_date=FIXED_NOW, categories=["Lab_Results"]
        )
        await seed_uploaded_file(
            async_session, USER, "food.csv", upload_date=FIXED_NOW, categories=["nutrition"]
        )
        await seed_uploaded_file(async_session, USER, "none.txt", upload_date=FIXED_NOW)

        result = await aggregator.fetch_uploaded_files(
            USER,
            FIXED_NOW - timedelta(days=7),
            FIXED_NOW,
            categories=["lab_results", "sleep"],
        )

        assert [f.file_name for f in result.data] == ["labs.pdf"]

    async def test_summary(self, async_session, aggregator):
        """Summary combines rollups and event counts for the window."""
        await seed_daily_metrics(async_session, USER, date(2026, 10, 15), days=7)
        await seed_events(async_session, USER, FIXED_NOW - timedelta(days=2), count=2)

        result = await aggregator.fetch_summary(USER, FIXED_NOW - timedelta(days=6), FIXED_NOW)

        assert result.success
        summary = result.data
        assert summary is not None
        assert summary.date_range.days == 7
        assert summary.averages[MetricKey.STEPS] == 8300
        assert summary.totals[MetricKey.STEPS] == 58100
        assert summary.events == {"workout": 2}

    async def test_fetch_failure_is_captured(self, test_settings):
        """A failing datastore produces an unsuccessful result, not an exception."""
        aggregator = HealthDataAggregator(failing_session_maker, test_settings)

        daily = await aggregator.fetch_daily_metrics(USER, FIXED_NOW, FIXED_NOW)
        summary = await aggregator.fetch_summary(USER, FIXED_NOW, FIXED_NOW)

        assert daily.success is False
        assert daily.data == []
        assert "connection refused" in (daily.error or "")
        assert daily.is_empty
        assert summary.success is False
        assert summary.data is None


@pytest.mark.parametrize("days", [0, 1])
async def test_single_day_window(async_session, aggregator, days):
    """A same-day window still returns that day's rollup."""
    await seed_daily_metrics(async_session, USER, date(2026, 10, 15), days=1)
    start = datetime(2026, 10, 15, tzinfo=FIXED_NOW.tzinfo) - timedelta(days=days)

    result = await aggregator.fetch_daily_metrics(USER, start, FIXED_NOW)

    assert len(result.data) == 1
