from __future__ import annotations

from history_ask.config import Settings, get_settings
from history_ask.db.factory import create_history_store
from history_ask.errors import ConfigurationError
from history_ask.llm.client import ChatModelClient
from history_ask.llm.router import create_chat_model
from history_ask.logging import setup_logging
from history_ask.pipeline.orchestrator import AskPipeline


async def ask(question: str, settings: Settings | None = None, *, debug: bool = False) -> str:
    """Answer a question about the shell history with the configured model.

    Wires settings, logging, the chat model and the history store into an
    ``AskPipeline`` for a single run, then releases the store.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, debug=debug)

    if not settings.ai_enabled:
        raise ConfigurationError(
            "AI search is disabled in configuration; set AI_ENABLED=true to enable it"
        )

    client = ChatModelClient(create_chat_model(settings))
    store = await create_history_store(settings)
    try:
        pipeline = AskPipeline(store=store, client=client, settings=settings)
        return await pipeline.ask(question)
    finally:
        await store.close()
