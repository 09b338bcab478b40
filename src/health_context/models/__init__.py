"""Database models."""

from health_context.models.base import Base
from health_context.models.daily_metric import DailyMetric
from health_context.models.health_event import HealthEvent
from health_context.models.uploaded_file import UploadedFile

__all__ = [
    "Base",
    "DailyMetric",
    "HealthEvent",
    "UploadedFile",
]
