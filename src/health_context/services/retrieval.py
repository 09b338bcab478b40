"""Health context retrieval for chat turns.

Flow for one turn:
    1. Analyze the query locally; stop here if no personal data is needed
    2. Refine an ambiguous analysis (optional, never fatal)
    3. Resolve the window, defaulting to the last 7 days
    4. Pick the detailed view (<= 3 days) or the summary view
    5. Fetch the view's sources and uploaded files concurrently
    6. Concatenate blocks in a fixed order, or explain that nothing was found
"""

import asyncio
from datetime import timedelta

import structlog

from health_context.core.config import Settings, settings
from health_context.schemas.analysis import QueryAnalysis, TimeRange
from health_context.schemas.context import ContextTimeRange, DataType, RAGContext, RAGMetadata
from health_context.services.formatters import (
    format_daily_metrics,
    format_events,
    format_summary,
    format_uploaded_files,
)
from health_context.services.health_data import HealthDataAggregator
from health_context.services.query_analyzer import Clock, QueryAnalyzer, local_now
from health_context.services.refinement import QueryRefiner

logger = structlog.get_logger()


def no_data_message(time_range: TimeRange) -> str:
    """Context text used when every source came back empty."""
    return (
        f"No health data available for the period {time_range.start.date().isoformat()} "
        f"to {time_range.end.date().isoformat()}. "
        "The user may not have synced their health data yet."
    )


class HealthContextRetriever:
    """Build the RAGContext for a user's question.

    The only component that calls the generation service (through the
    refiner) and that chooses a retrieval strategy.
    """

    def __init__(
        self,
        aggregator: HealthDataAggregator,
        analyzer: QueryAnalyzer | None = None,
        refiner: QueryRefiner | None = None,
        config: Settings = settings,
        clock: Clock = local_now,
    ) -> None:
        """Initialize retriever.

        Args:
            aggregator: Data source reader
            analyzer: Query analyzer (default vocabulary if omitted)
            refiner: Optional refinement strategy for ambiguous queries
            config: Strategy thresholds and limits
            clock: Source of "now" for the default window
        """
        self.aggregator = aggregator
        self.analyzer = analyzer or QueryAnalyzer(clock=clock)
        self.refiner = refiner
        self.config = config
        self.clock = clock
        self.logger = logger.bind(service="retrieval")

    async def retrieve_context(self, user_id: str, query: str) -> RAGContext:
        """Analyze the query and assemble matching health data.

        Args:
            user_id: User identifier
            query: The user's message

        Returns:
            RAGContext; empty when the query needs no personal data
        """
        analysis = self.analyzer.analyze(query)
        self.logger.info(
            "Query analyzed",
            user_id=user_id,
            query=query[:100],
            needs_health_data=analysis.needs_health_data,
            time_range=analysis.time_range.description if analysis.time_range else None,
            metrics=[m.value for m in analysis.metrics],
        )

        if not analysis.needs_health_data:
            return RAGContext.empty()

        if self.refiner is not None and analysis.is_ambiguous:
            analysis = await self.refiner.refine(analysis)

        time_range = analysis.time_range or self.default_time_range()

        blocks, data_types = await self._collect(user_id, time_range)
        health_context = "".join(blocks) if blocks else no_data_message(time_range)

        self.logger.info(
            "Health context assembled",
            user_id=user_id,
            time_range=time_range.description,
            data_types=[d.value for d in data_types],
            context_chars=len(health_context),
        )

        return RAGContext(
            has_health_data=True,
            health_context=health_context,
            metadata=self._metadata(analysis, time_range, data_types),
        )

    def default_time_range(self) -> TimeRange:
        """Window used when neither the query nor refinement named one."""
        now = self.clock()
        return TimeRange(
            start=now - timedelta(days=self.config.default_lookback_days),
            end=now,
            description=f"last {self.config.default_lookback_days} days (default)",
        )

    def use_detailed_view(self, time_range: TimeRange) -> bool:
        """Short windows get per-day detail, longer ones a summary."""
        return time_range.end - time_range.start <= timedelta(
            days=self.config.detailed_view_max_days
        )

    async def _collect(
        self,
        user_id: str,
        time_range: TimeRange,
    ) -> tuple[list[str], list[DataType]]:
        """Fetch the strategy's sources concurrently and render them in order."""
        start, end = time_range.start, time_range.end
        blocks: list[str] = []
        data_types: list[DataType] = []

        if self.use_detailed_view(time_range):
            daily, events, uploads = await asyncio.gather(
                self.aggregator.fetch_daily_metrics(user_id, start, end),
                self.aggregator.fetch_events(user_id, start, end),
                self.aggregator.fetch_uploaded_files(user_id, start, end),
            )
            if not daily.is_empty:
                blocks.append(format_daily_metrics(daily.data))
                data_types.append(DataType.DAILY_METRICS)
            event_limit = self.config.event_render_limit
        else:
            summary, events, uploads = await asyncio.gather(
                self.aggregator.fetch_summary(user_id, start, end),
                self.aggregator.fetch_events(
                    user_id, start, end, limit=self.config.summary_event_limit
                ),
                self.aggregator.fetch_uploaded_files(user_id, start, end),
            )
            if not summary.is_empty and summary.data is not None:
                blocks.append(format_summary(summary.data))
                data_types.append(DataType.SUMMARY)
            event_limit = self.config.summary_event_limit

        if not events.is_empty:
            blocks.append(format_events(events.data, limit=event_limit))
            data_types.append(DataType.HEALTH_EVENTS)

        if not uploads.is_empty:
            blocks.append(format_uploaded_files(uploads.data))
            data_types.append(DataType.UPLOADED_FILES)
            self.logger.info("Retrieved uploaded files", user_id=user_id, count=len(uploads.data))

        return blocks, data_types

    def _metadata(
        self,
        analysis: QueryAnalysis,
        time_range: TimeRange,
        data_types: list[DataType],
    ) -> RAGMetadata:
        return RAGMetadata(
            data_retrieved=bool(data_types),
            time_range=ContextTimeRange.from_time_range(time_range),
            metrics_included=list(analysis.metrics),
            data_types=data_types,
        )
