"""Aggregated health data summary."""

from datetime import date

from pydantic import BaseModel, Field

from health_context.schemas.analysis import MetricKey


class SummaryDateRange(BaseModel):
    """Window covered by a summary."""

    start: date = Field(description="First day of the window")
    end: date = Field(description="Last day of the window")
    days: int = Field(description="Number of days with data")


class DataSummary(BaseModel):
    """Averages and totals over the daily rollups in a window.

    Built per request and never persisted.
    """

    date_range: SummaryDateRange = Field(description="Window and data coverage")
    averages: dict[MetricKey, float] = Field(
        default_factory=dict, description="Mean of non-null values per metric"
    )
    totals: dict[MetricKey, float] = Field(
        default_factory=dict, description="Sum of non-null values per metric"
    )
    events: dict[str, int] = Field(default_factory=dict, description="Event counts by type")
    latest_weight: float | None = Field(default=None, description="Most recent weight (kg)")

    @property
    def is_empty(self) -> bool:
        """True when no rollups or events fell in the window."""
        return self.date_range.days == 0 and not self.events
