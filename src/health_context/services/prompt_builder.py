"""Final prompt assembly for the generation service."""

from collections.abc import Sequence

from health_context.core.config import settings
from health_context.schemas.chat import ChatTurn
from health_context.schemas.context import RAGContext

DEFAULT_SYSTEM_PROMPT = """You are You-i, a helpful wellness AI assistant. You help users understand their health data and provide personalized wellness guidance.

Be conversational, empathetic, and supportive. Provide actionable advice when appropriate, but always remind users to consult healthcare professionals for medical decisions.

When discussing health metrics, be specific and reference actual data when available. If you don't have specific data, ask clarifying questions to better understand the user's situation."""

CONTEXT_HEADER = "=== USER HEALTH DATA CONTEXT ==="
CONTEXT_FOOTER = "=== END HEALTH DATA ==="
CONTEXT_INSTRUCTION = (
    "Use the above health data to provide personalized, data-driven responses. "
    "Reference specific metrics and dates when relevant."
)


def build_prompt(
    system_prompt: str,
    rag_context: RAGContext,
    history: Sequence[ChatTurn],
    current_message: str,
    assistant_name: str | None = None,
) -> str:
    """Concatenate system prompt, health context, history and the new message.

    Sections appear in that order; the health block only when the context
    carries health data. History is used as given, so callers bound it.

    Args:
        system_prompt: Assistant persona and rules
        rag_context: Retrieved context for this turn
        history: Prior turns, oldest first
        current_message: The user's new message
        assistant_name: Label for assistant turns (configured name if omitted)

    Returns:
        Prompt text ending with the assistant label awaiting completion
    """
    assistant = assistant_name or settings.assistant_name
    parts = [system_prompt, "\n\n"]

    if rag_context.has_health_data and rag_context.health_context:
        parts.append(f"{CONTEXT_HEADER}\n")
        parts.append(rag_context.health_context)
        parts.append(f"\n{CONTEXT_FOOTER}\n\n")
        parts.append(f"{CONTEXT_INSTRUCTION}\n\n")

    if history:
        parts.append("Previous conversation:\n")
        for turn in history:
            label = "User" if turn.role == "user" else assistant
            parts.append(f"{label}: {turn.content}\n")
        parts.append("\n")

    parts.append(f"User: {current_message}\n\n{assistant}:")
    return "".join(parts)
