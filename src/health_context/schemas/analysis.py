"""Query analysis schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MetricKey(str, Enum):
    """Canonical metric identifiers.

    Values match the daily rollup column names. Declaration order is the
    order in which extracted metrics are reported.
    """

    # Activity
    STEPS = "steps"
    DISTANCE_KM = "distance_km"
    ACTIVE_CALORIES = "active_calories"
    RESTING_CALORIES = "resting_calories"
    EXERCISE_MINUTES = "exercise_minutes"
    FLIGHTS_CLIMBED = "flights_climbed"
    # Heart
    AVG_HEART_RATE = "avg_heart_rate"
    RESTING_HEART_RATE = "resting_heart_rate"
    HEART_RATE_VARIABILITY = "heart_rate_variability"
    # Sleep and body
    SLEEP_HOURS = "sleep_hours"
    WEIGHT_KG = "weight_kg"
    # Nutrition
    PROTEIN_G = "protein_g"
    CARBS_G = "carbs_g"
    FAT_G = "fat_g"
    CALORIES_CONSUMED = "calories_consumed"
    WATER_ML = "water_ml"
    # Workouts
    WORKOUT_COUNT = "workout_count"
    TOTAL_WORKOUT_MINUTES = "total_workout_minutes"
    STRENGTH_SESSIONS = "strength_sessions"
    CARDIO_SESSIONS = "cardio_sessions"


class TimeRange(BaseModel):
    """A resolved time window with a human-readable label."""

    model_config = ConfigDict(frozen=True)

    start: datetime = Field(description="Window start")
    end: datetime = Field(description="Window end (inclusive)")
    description: str = Field(description="Label such as 'last week'")

    @model_validator(mode="after")
    def check_order(self) -> "TimeRange":
        """Reject windows that end before they start."""
        if self.start > self.end:
            raise ValueError("TimeRange start must not be after end")
        return self

    @property
    def span_days(self) -> float:
        """Length of the window in (fractional) days."""
        return (self.end - self.start).total_seconds() / 86400


class QueryAnalysis(BaseModel):
    """Structured intent extracted from a user's question."""

    model_config = ConfigDict(frozen=True)

    needs_health_data: bool = Field(description="Whether personal data should be retrieved")
    time_range: TimeRange | None = Field(default=None, description="Resolved window, if any")
    metrics: list[MetricKey] = Field(default_factory=list, description="Metrics mentioned")
    raw_query: str = Field(description="Original query text")

    @field_validator("metrics")
    @classmethod
    def dedupe_metrics(cls, value: list[MetricKey]) -> list[MetricKey]:
        """Keep first occurrence of each metric."""
        return list(dict.fromkeys(value))

    @property
    def is_ambiguous(self) -> bool:
        """True when either the window or the metric list is missing."""
        return self.time_range is None or not self.metrics


class RefinementResponse(BaseModel):
    """JSON shape returned by the generation service when refining a query."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    needs_health_data: bool | None = Field(default=None, alias="needsHealthData")
    time_reference: str | None = Field(default=None, alias="timeReference")
    metrics: list[str] = Field(default_factory=list)

    @field_validator("time_reference")
    @classmethod
    def normalize_time_reference(cls, value: str | None) -> str | None:
        """Treat the literal string 'null' and blanks as no reference."""
        if value is None:
            return None
        value = value.strip()
        if not value or value.lower() == "null":
            return None
        return value

    @field_validator("metrics", mode="before")
    @classmethod
    def coerce_metrics(cls, value: object) -> list[str]:
        """Accept null for an empty list."""
        if value is None:
            return []
        return value  # type: ignore[return-value]

    def known_metrics(self) -> list[MetricKey]:
        """Metrics that map onto canonical keys, unknown names dropped."""
        known: list[MetricKey] = []
        for name in self.metrics:
            try:
                key = MetricKey(str(name).strip().lower())
            except ValueError:
                continue
            if key not in known:
                known.append(key)
        return known
