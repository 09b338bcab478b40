"""Query intent analysis.

Decides from the raw question text whether personal health data is needed,
which time window the question is about, and which metrics it mentions.
Everything here is keyword and regex matching: no I/O, no model calls.

Rule order in ``parse_time_reference`` matters. Later patterns are broader
than earlier ones ("last week" must win over "last 2 weeks"-style matching,
and "today" over the generic "recent/now" fallback).
"""

import calendar
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from types import MappingProxyType

import structlog

from health_context.schemas.analysis import MetricKey, QueryAnalysis, TimeRange

logger = structlog.get_logger()

Clock = Callable[[], datetime]

DEFAULT_WINDOW_LABEL = "last 7 days (default)"

HEALTH_KEYWORDS: tuple[str, ...] = (
    # Metrics
    "steps", "sleep", "heart rate", "calories", "weight", "exercise",
    "workout", "distance", "activity", "nutrition", "protein", "carbs",
    "water", "hydration", "hrv", "variability", "flights", "stairs",
    # Lab work and medical tests
    "blood work", "bloodwork", "lab results", "lab test", "labs", "test results",
    "cholesterol", "glucose", "a1c", "hemoglobin", "thyroid", "tsh", "vitamin",
    "lipid", "metabolic", "cbc", "cmp", "bmp", "panel", "biomarker", "biomarkers",
    "testosterone", "estrogen", "hormone", "cortisol", "ferritin", "iron",
    "kidney", "liver", "creatinine", "bun", "alt", "ast", "egfr",
    # Questions about data
    "how much", "how many", "how long", "how often",
    "what was", "what were", "what is", "what are",
    "did i", "have i", "am i",
    # Analysis requests
    "average", "total", "summary", "trend", "pattern", "compare",
    "progress", "improvement", "change", "difference",
    # Time-based queries
    "today", "yesterday", "week", "month", "days", "recently", "lately",
    # Health status
    "health", "fitness", "wellness", "performance", "recovery",
)  # fmt: skip

QUESTION_PATTERN = re.compile(r"^(how|what|did|have|show|tell|give|display|list)", re.IGNORECASE)

METRIC_PATTERNS: Mapping[MetricKey, re.Pattern[str]] = MappingProxyType(
    {
        MetricKey.STEPS: re.compile(r"\b(steps?|walking|walked)\b"),
        MetricKey.DISTANCE_KM: re.compile(r"\b(distance|miles?|mi|km|kilometers?)\b"),
        MetricKey.ACTIVE_CALORIES: re.compile(r"\b(active calories|calories burned|energy)\b"),
        MetricKey.RESTING_CALORIES: re.compile(r"\b(resting calories|basal|bmr)\b"),
        MetricKey.EXERCISE_MINUTES: re.compile(
            r"\b(exercise|active minutes?|activity time|workout time)\b"
        ),
        MetricKey.FLIGHTS_CLIMBED: re.compile(r"\b(flights?|stairs?|climbed)\b"),
        MetricKey.AVG_HEART_RATE: re.compile(r"\b(heart rate|hr|bpm|pulse)\b"),
        MetricKey.RESTING_HEART_RATE: re.compile(r"\b(resting heart rate|resting hr|rhr)\b"),
        MetricKey.HEART_RATE_VARIABILITY: re.compile(
            r"\b(hrv|heart rate variability|variability)\b"
        ),
        MetricKey.SLEEP_HOURS: re.compile(r"\b(sleep|slept|sleeping|rest)\b"),
        MetricKey.WEIGHT_KG: re.compile(r"\b(weight|weigh|pounds?|lbs?|kg)\b"),
        MetricKey.PROTEIN_G: re.compile(r"\b(protein)\b"),
        MetricKey.CARBS_G: re.compile(r"\b(carbs?|carbohydrates?)\b"),
        MetricKey.FAT_G: re.compile(r"\b(fat|fats)\b"),
        MetricKey.CALORIES_CONSUMED: re.compile(
            r"\b(calories consumed|ate|eaten|food|nutrition|diet)\b"
        ),
        MetricKey.WATER_ML: re.compile(r"\b(water|hydration|fluid|ounces?|oz|ml)\b"),
        MetricKey.WORKOUT_COUNT: re.compile(r"\b(workouts?|training sessions?|exercises?)\b"),
        MetricKey.TOTAL_WORKOUT_MINUTES: re.compile(
            r"\b(workout minutes|training time|exercise duration)\b"
        ),
        MetricKey.STRENGTH_SESSIONS: re.compile(r"\b(strength|weights?|lifting|resistance)\b"),
        MetricKey.CARDIO_SESSIONS: re.compile(r"\b(cardio|running|cycling|aerobic)\b"),
    }
)


@dataclass(frozen=True)
class AnalyzerVocabulary:
    """Keyword and pattern tables used by QueryAnalyzer.

    Immutable so a vocabulary can be shared across analyzers; tests build
    their own instead of patching module state.
    """

    health_keywords: tuple[str, ...] = HEALTH_KEYWORDS
    question_pattern: re.Pattern[str] = QUESTION_PATTERN
    metric_patterns: Mapping[MetricKey, re.Pattern[str]] = field(
        default_factory=lambda: METRIC_PATTERNS
    )
    min_question_length: int = 20

    def __post_init__(self) -> None:
        # Freeze caller-supplied dicts too
        if not isinstance(self.metric_patterns, MappingProxyType):
            object.__setattr__(self, "metric_patterns", MappingProxyType(dict(self.metric_patterns)))


DEFAULT_VOCABULARY = AnalyzerVocabulary()

_DAYS_PATTERN = re.compile(r"(?:last|past|previous)\s+(\d+)\s+days?")
_WEEKS_PATTERN = re.compile(r"(?:last|past|previous)\s+(\d+)\s+weeks?")
_MONTHS_PATTERN = re.compile(r"(?:last|past|previous)\s+(\d+)\s+months?")
_LAST_WEEK_PATTERN = re.compile(r"last week|past week|previous week")
_LAST_MONTH_PATTERN = re.compile(r"last month|past month|previous month")
_RECENT_PATTERN = re.compile(r"recent|lately|currently|now")


def local_now() -> datetime:
    """Current time in the host process's local timezone."""
    return datetime.now().astimezone()


def start_of_day(moment: datetime) -> datetime:
    """Midnight of the day containing ``moment``, same tzinfo."""
    return datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)


def end_of_day(moment: datetime) -> datetime:
    """Last representable instant of the day containing ``moment``."""
    return datetime.combine(moment.date(), time.max, tzinfo=moment.tzinfo)


def shift_months(moment: datetime, months: int) -> datetime:
    """Move ``moment`` back by whole calendar months, clamping the day.

    Example: March 31 minus one month is February 28 (or 29).
    """
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class QueryAnalyzer:
    """Heuristic parser from query text to QueryAnalysis.

    Pure apart from reading the clock; inject a fixed clock for
    deterministic results.
    """

    def __init__(
        self,
        vocabulary: AnalyzerVocabulary = DEFAULT_VOCABULARY,
        clock: Clock = local_now,
    ) -> None:
        """Initialize analyzer.

        Args:
            vocabulary: Keyword and pattern tables
            clock: Source of "now" for relative time references
        """
        self.vocabulary = vocabulary
        self.clock = clock

    def analyze(self, query: str) -> QueryAnalysis:
        """Analyze a query.

        Time and metric extraction only run when the query needs health data.

        Args:
            query: Raw user question

        Returns:
            QueryAnalysis for the query
        """
        needs_data = self.needs_health_data(query)
        time_range = self.parse_time_reference(query) if needs_data else None
        metrics = self.extract_metrics(query) if needs_data else []

        return QueryAnalysis(
            needs_health_data=needs_data,
            time_range=time_range,
            metrics=metrics,
            raw_query=query,
        )

    def needs_health_data(self, query: str) -> bool:
        """Decide whether the query is about the user's own health data."""
        lower = query.lower()

        if any(keyword in lower for keyword in self.vocabulary.health_keywords):
            return True

        is_data_question = bool(self.vocabulary.question_pattern.match(query.strip()))
        return is_data_question and len(lower) > self.vocabulary.min_question_length

    def extract_metrics(self, query: str) -> list[MetricKey]:
        """Return mentioned metrics in canonical key order."""
        lower = query.lower()
        return [
            key
            for key in MetricKey
            if (pattern := self.vocabulary.metric_patterns.get(key)) is not None
            and pattern.search(lower)
        ]

    def parse_time_reference(self, query: str) -> TimeRange | None:
        """Resolve a natural-language time reference to a window.

        Returns:
            TimeRange, or None when the query names no period
        """
        now = self.clock()
        today = start_of_day(now)
        lower = query.lower()

        if "today" in lower:
            return TimeRange(start=today, end=now, description="today")

        if "yesterday" in lower:
            yesterday = today - timedelta(days=1)
            return TimeRange(start=yesterday, end=end_of_day(yesterday), description="yesterday")

        if "this week" in lower:
            monday = today - timedelta(days=now.weekday())
            return TimeRange(start=monday, end=now, description="this week")

        if _LAST_WEEK_PATTERN.search(lower):
            last_sunday = today - timedelta(days=now.weekday() + 1)
            last_monday = last_sunday - timedelta(days=6)
            return TimeRange(
                start=last_monday,
                end=end_of_day(last_sunday),
                description="last week",
            )

        if "this month" in lower:
            first_day = today.replace(day=1)
            return TimeRange(start=first_day, end=now, description="this month")

        if _LAST_MONTH_PATTERN.search(lower):
            first_this_month = today.replace(day=1)
            last_day_prev = first_this_month - timedelta(days=1)
            return TimeRange(
                start=last_day_prev.replace(day=1),
                end=end_of_day(last_day_prev),
                description="last month",
            )

        if match := _DAYS_PATTERN.search(lower):
            days = int(match.group(1))
            return TimeRange(
                start=today - timedelta(days=days),
                end=now,
                description=f"last {days} days",
            )

        if match := _WEEKS_PATTERN.search(lower):
            weeks = int(match.group(1))
            return TimeRange(
                start=today - timedelta(days=weeks * 7),
                end=now,
                description=f"last {weeks} weeks",
            )

        if match := _MONTHS_PATTERN.search(lower):
            months = int(match.group(1))
            return TimeRange(
                start=shift_months(now, months),
                end=now,
                description=f"last {months} months",
            )

        if _RECENT_PATTERN.search(lower):
            return TimeRange(
                start=today - timedelta(days=7),
                end=now,
                description=DEFAULT_WINDOW_LABEL,
            )

        return None
