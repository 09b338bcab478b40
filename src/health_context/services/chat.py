"""One chat turn: retrieve context, build the prompt, generate the reply."""

from collections.abc import Sequence

import structlog

from health_context.core.config import Settings, settings
from health_context.schemas.chat import ChatReply, ChatTurn
from health_context.services.generation import GenerationClient
from health_context.services.prompt_builder import DEFAULT_SYSTEM_PROMPT, build_prompt
from health_context.services.retrieval import HealthContextRetriever

logger = structlog.get_logger()


class ChatService:
    """Caller-side glue around the retriever.

    Generation failures are not handled here; they belong to the chat
    transport, which decides what the user sees.
    """

    def __init__(
        self,
        retriever: HealthContextRetriever,
        client: GenerationClient,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        config: Settings = settings,
    ) -> None:
        """Initialize chat service.

        Args:
            retriever: Health context retriever
            client: Generation service for the final answer
            system_prompt: Assistant persona
            config: History limit and assistant label
        """
        self.retriever = retriever
        self.client = client
        self.system_prompt = system_prompt
        self.config = config
        self.logger = logger.bind(service="chat")

    async def reply(
        self,
        user_id: str,
        message: str,
        history: Sequence[ChatTurn] = (),
    ) -> ChatReply:
        """Generate a reply to ``message``.

        Args:
            user_id: User identifier
            message: The user's new message
            history: Prior turns, oldest first

        Returns:
            ChatReply whose metadata holds ``ragContext`` for the message store

        Raises:
            GenerationServiceError: If the final generation call fails
        """
        context = await self.retriever.retrieve_context(user_id, message)

        recent = list(history)[-self.config.history_limit :] if self.config.history_limit else []
        prompt = build_prompt(
            self.system_prompt,
            context,
            recent,
            message,
            assistant_name=self.config.assistant_name,
        )

        content = await self.client.generate(prompt)
        self.logger.info(
            "Reply generated",
            user_id=user_id,
            history_turns=len(recent),
            data_types=[d.value for d in context.metadata.data_types],
        )

        return ChatReply(content=content, metadata={"ragContext": context.metadata.to_record()})
