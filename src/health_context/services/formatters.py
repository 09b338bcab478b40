"""Text renderers for retrieved health data.

Each function turns one kind of record into a plain-text block for the
generation prompt. Output is deterministic for a given input. Absent
values are skipped; a stored zero is still printed.
"""

from collections.abc import Sequence
from typing import Any

from health_context.models.daily_metric import DailyMetric
from health_context.models.health_event import HealthEvent
from health_context.models.uploaded_file import UploadedFile
from health_context.schemas.analysis import MetricKey
from health_context.schemas.summary import DataSummary

DEFAULT_EVENT_LIMIT = 20

# (field, label, unit, decimals) in render order
_DAILY_LINES: tuple[tuple[str, str, str, int | None], ...] = (
    # Activity
    ("steps", "Steps", "", 0),
    ("distance_km", "Distance", " km", 2),
    ("active_calories", "Active Calories", " kcal", None),
    ("exercise_minutes", "Exercise", " minutes", None),
    ("flights_climbed", "Flights Climbed", "", None),
    # Heart
    ("avg_heart_rate", "Avg Heart Rate", " bpm", None),
    ("resting_heart_rate", "Resting Heart Rate", " bpm", None),
    ("heart_rate_variability", "HRV", " ms", None),
    # Sleep
    ("sleep_hours", "Sleep", " hours", 1),
    # Nutrition
    ("calories_consumed", "Calories Consumed", " kcal", None),
    ("protein_g", "Protein", "g", None),
    ("carbs_g", "Carbs", "g", None),
    ("fat_g", "Fat", "g", None),
    ("water_ml", "Water", " ml", None),
    # Workouts
    ("workout_count", "Workouts", "", None),
    # Weight
    ("weight_kg", "Weight", " kg", 1),
)

_AVERAGE_LINES: tuple[tuple[MetricKey, str, str, int], ...] = (
    (MetricKey.STEPS, "Steps", "", 0),
    (MetricKey.DISTANCE_KM, "Distance", " km", 2),
    (MetricKey.ACTIVE_CALORIES, "Active Calories", " kcal", 0),
    (MetricKey.EXERCISE_MINUTES, "Exercise", " minutes", 0),
    (MetricKey.AVG_HEART_RATE, "Avg Heart Rate", " bpm", 0),
    (MetricKey.RESTING_HEART_RATE, "Resting Heart Rate", " bpm", 0),
    (MetricKey.HEART_RATE_VARIABILITY, "HRV", " ms", 0),
    (MetricKey.SLEEP_HOURS, "Sleep", " hours", 1),
    (MetricKey.CALORIES_CONSUMED, "Calories Consumed", " kcal", 0),
    (MetricKey.PROTEIN_G, "Protein", "g", 0),
    (MetricKey.CARBS_G, "Carbs", "g", 0),
    (MetricKey.FAT_G, "Fat", "g", 0),
    (MetricKey.WATER_ML, "Water", " ml", 0),
)

_TOTAL_LINES: tuple[tuple[MetricKey, str, str, int | None], ...] = (
    (MetricKey.STEPS, "Total Steps", "", 0),
    (MetricKey.DISTANCE_KM, "Total Distance", " km", 2),
    (MetricKey.ACTIVE_CALORIES, "Total Active Calories", " kcal", 0),
    (MetricKey.EXERCISE_MINUTES, "Total Exercise", " minutes", 0),
    (MetricKey.WORKOUT_COUNT, "Total Workouts", "", None),
    (MetricKey.STRENGTH_SESSIONS, "Strength Sessions", "", None),
    (MetricKey.CARDIO_SESSIONS, "Cardio Sessions", "", None),
)


def format_number(value: float | int, decimals: int | None = None) -> str:
    """Render a number for prompt text.

    With ``decimals`` the value is rounded to that many places (0 adds
    thousands separators). Without it, whole numbers drop the ".0".
    """
    if decimals == 0:
        return f"{round(value):,}"
    if decimals is not None:
        return f"{value:.{decimals}f}"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_pairs(values: Any) -> str:
    # Ingested JSON is not validated; non-mappings are printed as-is
    if not isinstance(values, dict):
        return str(values)
    return ", ".join(f"{key}: {value}" for key, value in values.items())


def format_daily_metrics(metrics: Sequence[DailyMetric]) -> str:
    """Render per-day rollups, one block per date."""
    if not metrics:
        return "No health data available for this period."

    lines = [f"Health Data ({len(metrics)} days):", ""]
    for day in metrics:
        lines.append(f"Date: {day.date.isoformat()}")
        for field, label, unit, decimals in _DAILY_LINES:
            value = day.value_of(field)
            if value is None:
                continue
            lines.append(f"  {label}: {format_number(value, decimals)}{unit}")
        lines.append("")

    return "\n".join(lines) + "\n"


def format_summary(summary: DataSummary) -> str:
    """Render averages, totals, latest weight and event counts."""
    date_range = summary.date_range
    lines = [
        f"Health Summary ({date_range.start.isoformat()} to {date_range.end.isoformat()}):",
        "",
        f"Period: {date_range.days} days with data",
        "",
    ]

    if summary.averages:
        lines.append("Daily Averages:")
        for key, label, unit, decimals in _AVERAGE_LINES:
            if key in summary.averages:
                lines.append(f"  {label}: {format_number(summary.averages[key], decimals)}{unit}")
        lines.append("")

    if summary.totals:
        lines.append("Totals:")
        for key, label, unit, decimals in _TOTAL_LINES:
            if key in summary.totals:
                lines.append(f"  {label}: {format_number(summary.totals[key], decimals)}{unit}")
        lines.append("")

    if summary.latest_weight is not None:
        lines.append(f"Current Weight: {summary.latest_weight:.1f} kg")
        lines.append("")

    if summary.events:
        lines.append("Activities:")
        for event_type, count in summary.events.items():
            lines.append(f"  {event_type}: {count} times")
        lines.append("")

    return "\n".join(lines) + "\n"


def format_events(events: Sequence[HealthEvent], limit: int = DEFAULT_EVENT_LIMIT) -> str:
    """Render the most recent events.

    ``events`` is expected newest first; only the first ``limit`` are
    rendered but the header reports the full count.
    """
    if not events:
        return ""

    lines = ["", f"Recent Activities ({len(events)} events):", ""]
    for event in events[:limit]:
        lines.append(f"{event.event_type} - {event.start_time.strftime('%Y-%m-%d %H:%M')}")
        if event.title:
            lines.append(f"  Title: {event.title}")
        if event.description:
            lines.append(f"  Description: {event.description}")
        if event.duration_seconds:
            lines.append(f"  Duration: {round(event.duration_seconds / 60)} minutes")
        if event.metrics:
            lines.append(f"  Details: {_format_pairs(event.metrics)}")
        lines.append("")

    if len(events) > limit:
        lines.append(f"... and {len(events) - limit} earlier events")
        lines.append("")

    return "\n".join(lines) + "\n"


def format_uploaded_files(files: Sequence[UploadedFile]) -> str:
    """Render uploaded documents with every extracted entry.

    Uploads are rare and usually lab reports, so nothing is truncated.
    """
    if not files:
        return ""

    lines = ["", f"Uploaded Health Data ({len(files)} files):", ""]
    for uploaded in files:
        lines.append(f"File: {uploaded.file_name}")
        if uploaded.summary:
            lines.append(f"Summary: {uploaded.summary}")
        if uploaded.categories:
            lines.append(f"Categories: {', '.join(uploaded.categories)}")
        if uploaded.date_range_start and uploaded.date_range_end:
            lines.append(
                f"Date Range: {uploaded.date_range_start.isoformat()} "
                f"to {uploaded.date_range_end.isoformat()}"
            )

        entries = uploaded.entries
        if entries:
            lines.append(f"Data Entries ({len(entries)}):")
            for index, entry in enumerate(entries, start=1):
                prefix = entry.get("date") or f"Entry {index}"
                text = f"  {prefix}: {_format_pairs(entry.get('metrics') or {})}"
                if entry.get("notes"):
                    text += f" ({entry['notes']})"
                lines.append(text)
        lines.append("")

    return "\n".join(lines) + "\n"
