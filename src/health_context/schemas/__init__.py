"""Pydantic schemas for analysis, summaries and retrieval context."""

from health_context.schemas.analysis import (
    MetricKey,
    QueryAnalysis,
    RefinementResponse,
    TimeRange,
)
from health_context.schemas.chat import ChatReply, ChatTurn
from health_context.schemas.context import (
    ContextTimeRange,
    DataType,
    RAGContext,
    RAGMetadata,
)
from health_context.schemas.summary import DataSummary, SummaryDateRange

__all__ = [
    "ChatReply",
    "ChatTurn",
    "ContextTimeRange",
    "DataSummary",
    "DataType",
    "MetricKey",
    "QueryAnalysis",
    "RAGContext",
    "RAGMetadata",
    "RefinementResponse",
    "SummaryDateRange",
    "TimeRange",
]
