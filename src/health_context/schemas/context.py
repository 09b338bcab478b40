"""Retrieval context schemas handed to the prompt builder."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from health_context.schemas.analysis import MetricKey, TimeRange


class DataType(str, Enum):
    """Sources that can contribute a block to the context."""

    DAILY_METRICS = "daily_metrics"
    SUMMARY = "summary"
    HEALTH_EVENTS = "health_events"
    UPLOADED_FILES = "uploaded_files"


class ContextTimeRange(BaseModel):
    """Window recorded in context metadata."""

    start: datetime = Field(description="Window start")
    end: datetime = Field(description="Window end")
    description: str = Field(description="Human-readable label")

    @classmethod
    def from_time_range(cls, time_range: TimeRange) -> "ContextTimeRange":
        """Copy a resolved TimeRange."""
        return cls(start=time_range.start, end=time_range.end, description=time_range.description)


class RAGMetadata(BaseModel):
    """What was retrieved for a turn, stored next to the generated reply."""

    data_retrieved: bool = Field(default=False, description="At least one source produced data")
    time_range: ContextTimeRange | None = Field(default=None, description="Window queried")
    metrics_included: list[MetricKey] = Field(
        default_factory=list, description="Metrics the query asked about"
    )
    data_types: list[DataType] = Field(
        default_factory=list, description="Sources that produced output"
    )

    def to_record(self) -> dict[str, Any]:
        """Serialize to the camelCase shape persisted with chat messages."""
        record: dict[str, Any] = {
            "dataRetrieved": self.data_retrieved,
            "metricsIncluded": [m.value for m in self.metrics_included],
            "dataTypes": [d.value for d in self.data_types],
        }
        if self.time_range is not None:
            record["timeRange"] = {
                "start": self.time_range.start.isoformat(),
                "end": self.time_range.end.isoformat(),
                "description": self.time_range.description,
            }
        return record


class RAGContext(BaseModel):
    """Assembled health context for one chat turn."""

    has_health_data: bool = Field(description="Whether a health block should be added to the prompt")
    health_context: str = Field(default="", description="Natural-language context text")
    metadata: RAGMetadata = Field(default_factory=RAGMetadata, description="Retrieval audit data")

    @classmethod
    def empty(cls) -> "RAGContext":
        """Context for queries that need no personal data."""
        return cls(has_health_data=False, health_context="", metadata=RAGMetadata())
