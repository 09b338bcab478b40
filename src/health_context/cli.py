"""CLI entry point for health-context."""

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import typer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from health_context import __version__
from health_context.core.config import settings
from health_context.core.logging import configure_logging
from health_context.schemas.context import RAGContext
from health_context.services.retrieval import HealthContextRetriever

app = typer.Typer(
    name="health-context",
    help="Health-data retrieval for wellness chat",
    no_args_is_help=True,
)


def _build_retriever(
    session_maker: async_sessionmaker[AsyncSession],
    refine: bool,
) -> HealthContextRetriever:
    """Wire the retriever; refinement only when enabled and credentials exist."""
    from health_context.services.generation import create_generation_client
    from health_context.services.health_data import HealthDataAggregator
    from health_context.services.query_analyzer import QueryAnalyzer
    from health_context.services.refinement import GenerationQueryRefiner

    analyzer = QueryAnalyzer()
    refiner = None
    if refine and settings.refinement_enabled and settings.has_generation_credentials():
        refiner = GenerationQueryRefiner(create_generation_client(settings), analyzer)

    return HealthContextRetriever(
        aggregator=HealthDataAggregator(session_maker, settings),
        analyzer=analyzer,
        refiner=refiner,
        config=settings,
    )


@asynccontextmanager
async def _open_retriever(refine: bool) -> AsyncIterator[HealthContextRetriever]:
    """Retriever on an engine for the configured URL, disposed on exit."""
    from health_context.core.database import create_engine, create_session_maker

    engine = create_engine(settings.database_url)
    try:
        yield _build_retriever(create_session_maker(engine), refine)
    finally:
        await engine.dispose()


@app.command()
def analyze(query: str = typer.Argument(..., help="Question to analyze")) -> None:
    """Show how a question is interpreted (no database access).

    Example:
        health-context analyze "How many steps did I take yesterday?"
    """
    from health_context.services.query_analyzer import QueryAnalyzer

    analysis = QueryAnalyzer().analyze(query)
    typer.echo(json.dumps(analysis.model_dump(mode="json"), indent=2))


@app.command()
def context(
    user_id: str = typer.Argument(..., help="User identifier"),
    query: str = typer.Argument(..., help="Question to retrieve context for"),
    refine: bool = typer.Option(True, help="Refine ambiguous queries with the generation service"),
) -> None:
    """Print the health context and metadata retrieved for a question."""
    configure_logging(settings.log_level)

    async def run() -> RAGContext:
        async with _open_retriever(refine) as retriever:
            return await retriever.retrieve_context(user_id, query)

    rag = asyncio.run(run())
    typer.echo(rag.health_context or "(no health context needed)")
    typer.echo(json.dumps({"ragContext": rag.metadata.to_record()}, indent=2))


@app.command()
def ask(
    user_id: str = typer.Argument(..., help="User identifier"),
    message: str = typer.Argument(..., help="Message to send"),
) -> None:
    """Answer a single message end to end using the generation service."""
    from health_context.services.chat import ChatService
    from health_context.services.generation import GenerationServiceError, create_generation_client

    configure_logging(settings.log_level)

    async def run() -> str:
        client = create_generation_client(settings)
        async with _open_retriever(refine=True) as retriever:
            reply = await ChatService(retriever, client, config=settings).reply(user_id, message)
            return reply.content

    try:
        typer.echo(asyncio.run(run()))
    except GenerationServiceError as e:
        typer.echo(f"Generation failed: {e}", err=True)
        raise typer.Exit(code=1) from e


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"health-context v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
