"""Application services."""

from health_context.services.chat import ChatService
from health_context.services.generation import (
    GeminiGenerationClient,
    GenerationClient,
    GenerationServiceError,
)
from health_context.services.health_data import FetchResult, HealthDataAggregator, summarize
from health_context.services.prompt_builder import build_prompt
from health_context.services.query_analyzer import AnalyzerVocabulary, QueryAnalyzer
from health_context.services.refinement import GenerationQueryRefiner, QueryRefiner
from health_context.services.retrieval import HealthContextRetriever

__all__ = [
    "AnalyzerVocabulary",
    "ChatService",
    "FetchResult",
    "GeminiGenerationClient",
    "GenerationClient",
    "GenerationQueryRefiner",
    "GenerationServiceError",
    "HealthContextRetriever",
    "HealthDataAggregator",
    "QueryAnalyzer",
    "QueryRefiner",
    "build_prompt",
    "summarize",
]
