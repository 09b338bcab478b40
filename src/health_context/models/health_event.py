"""Discrete health event model (workouts, meals, etc.)."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from health_context.models.base import HealthRecord


class HealthEvent(HealthRecord):
    """A timestamped occurrence such as a workout or a meal."""

    __tablename__ = "health_events"
    __table_args__ = ({"comment": "Discrete health events with free-form metrics"},)

    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Timing
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    duration_seconds: Mapped[int | None] = mapped_column(Integer)

    # Descriptive fields
    title: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    source_app: Mapped[str | None] = mapped_column(String(100))

    # Open metrics map (e.g. {"calories": 420, "avg_hr": 138})
    metrics: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<HealthEvent(user_id={self.user_id}, type={self.event_type}, "
            f"start={self.start_time})>"
        )
