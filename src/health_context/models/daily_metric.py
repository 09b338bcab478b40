"""Daily metric rollup model."""

from datetime import date
from typing import Any

from sqlalchemy import Date, Float, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from health_context.models.base import HealthRecord


class DailyMetric(HealthRecord):
    """One pre-aggregated row per user per calendar day.

    Every metric column is nullable: a missing value means the source did not
    report it that day, which is different from a reported zero.
    """

    __tablename__ = "health_metrics_daily"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_health_metrics_daily_user_date"),
        {"comment": "Daily health metric rollups written by the ingestion pipeline"},
    )

    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Activity
    steps: Mapped[int | None] = mapped_column(Integer)
    distance_km: Mapped[float | None] = mapped_column(Float)
    active_calories: Mapped[float | None] = mapped_column(Float)
    resting_calories: Mapped[float | None] = mapped_column(Float)
    exercise_minutes: Mapped[float | None] = mapped_column(Float)
    flights_climbed: Mapped[int | None] = mapped_column(Integer)

    # Heart
    avg_heart_rate: Mapped[float | None] = mapped_column(Float)
    resting_heart_rate: Mapped[float | None] = mapped_column(Float)
    heart_rate_variability: Mapped[float | None] = mapped_column(Float)

    # Sleep and body
    sleep_hours: Mapped[float | None] = mapped_column(Float)
    weight_kg: Mapped[float | None] = mapped_column(Float)

    # Nutrition
    protein_g: Mapped[float | None] = mapped_column(Float)
    carbs_g: Mapped[float | None] = mapped_column(Float)
    fat_g: Mapped[float | None] = mapped_column(Float)
    calories_consumed: Mapped[float | None] = mapped_column(Float)
    water_ml: Mapped[float | None] = mapped_column(Float)

    # Workouts
    workout_count: Mapped[int | None] = mapped_column(Integer)
    total_workout_minutes: Mapped[float | None] = mapped_column(Float)
    strength_sessions: Mapped[int | None] = mapped_column(Integer)
    cardio_sessions: Mapped[int | None] = mapped_column(Integer)

    data_completeness_score: Mapped[float | None] = mapped_column(Float)

    def __repr__(self) -> str:
        """String representation."""
        return f"<DailyMetric(user_id={self.user_id}, date={self.date})>"

    def value_of(self, field: str) -> Any:
        """Return a metric column by name, or None if the row has no such field."""
        return getattr(self, field, None)
