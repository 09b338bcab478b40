"""Optional refinement of weak query analyses via the generation service."""

import json
import re
from typing import Protocol

import structlog

from health_context.schemas.analysis import QueryAnalysis, RefinementResponse
from health_context.services.generation import GenerationClient
from health_context.services.query_analyzer import QueryAnalyzer

logger = structlog.get_logger()

REFINEMENT_PROMPT = """Analyze this health-related query and extract structured information.

Query: "{query}"

Respond with JSON only (no markdown, no explanation):
{{
  "needsHealthData": true/false,
  "timeReference": "today|yesterday|this week|last week|last 7 days|last 30 days|last 90 days|null",
  "metrics": ["steps", "sleep_hours", "avg_heart_rate", etc] or []
}}

Valid metric names: {metric_names}

Rules:
- Set needsHealthData to true only if the query asks about specific health metrics or data
- Extract the most specific time reference mentioned
- List only metrics explicitly mentioned or strongly implied
- Return empty array for metrics if none are specifically mentioned"""

_CODE_FENCE = re.compile(r"```(?:json)?\s*")


class QueryRefiner(Protocol):
    """May improve an analysis; must return the input unchanged on failure."""

    async def refine(self, analysis: QueryAnalysis) -> QueryAnalysis: ...


def parse_refinement(raw: str) -> RefinementResponse:
    """Parse the generation service's JSON, tolerating markdown fences.

    Raises:
        ValueError: If no JSON object can be parsed (pydantic's
            ValidationError and json's JSONDecodeError are both ValueErrors)
    """
    cleaned = _CODE_FENCE.sub("", raw).strip()
    if not cleaned.startswith("{"):
        # Prose around the object: keep the outermost braces
        first, last = cleaned.find("{"), cleaned.rfind("}")
        if first == -1 or last <= first:
            raise ValueError("Refinement response contains no JSON object")
        cleaned = cleaned[first : last + 1]

    return RefinementResponse.model_validate(json.loads(cleaned))


class GenerationQueryRefiner:
    """Fill gaps in an ambiguous analysis with one generation call.

    The locally parsed time range always wins because it is exact; the
    refinement's time reference is only used when there is none, and then
    it goes through the same local parser. Refined metrics replace local
    ones only when at least one maps onto a known metric.
    """

    def __init__(self, client: GenerationClient, analyzer: QueryAnalyzer) -> None:
        """Initialize refiner.

        Args:
            client: Generation service client
            analyzer: Analyzer whose time parser resolves returned references
        """
        self.client = client
        self.analyzer = analyzer
        self.logger = logger.bind(service="refinement")

    async def refine(self, analysis: QueryAnalysis) -> QueryAnalysis:
        """Refine an analysis, falling back to it on any failure."""
        if not analysis.is_ambiguous:
            return analysis

        prompt = REFINEMENT_PROMPT.format(
            query=analysis.raw_query,
            metric_names=", ".join(key.value for key in self.analyzer.vocabulary.metric_patterns),
        )

        try:
            raw = await self.client.generate(prompt)
            refined = parse_refinement(raw)
        except Exception as e:
            # Refinement is an optimization; the local analysis stands on its own
            self.logger.warning(
                "Query refinement failed, using local analysis",
                error=str(e),
                error_type=type(e).__name__,
            )
            return analysis

        time_range = analysis.time_range
        if time_range is None and refined.time_reference:
            time_range = self.analyzer.parse_time_reference(refined.time_reference)

        refined_metrics = refined.known_metrics()
        metrics = refined_metrics if refined_metrics else analysis.metrics

        self.logger.info(
            "Query refined",
            time_reference=refined.time_reference,
            metrics=[m.value for m in metrics],
        )

        return analysis.model_copy(update={"time_range": time_range, "metrics": metrics})
