from __future__ import annotations

import structlog
from langchain_core.language_models.chat_models import BaseChatModel

from history_ask.config import LLMProvider, Settings
from history_ask.errors import ConfigurationError

logger = structlog.get_logger()


def create_chat_model(settings: Settings) -> BaseChatModel:
    """Create the LangChain chat model for the configured provider.

    The model identifier is passed through untouched, so any name the
    provider accepts works.
    """
    if settings.ai_provider == LLMProvider.ANTHROPIC:
        api_key = settings.anthropic_api_key.get_secret_value()
        if not api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY environment variable not set")

        from langchain_anthropic import ChatAnthropic

        model: BaseChatModel = ChatAnthropic(
            model=settings.ai_model,
            api_key=api_key,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
    else:
        api_key = settings.openai_api_key.get_secret_value()
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable not set")

        from langchain_openai import ChatOpenAI

        model = ChatOpenAI(
            model=settings.ai_model,
            api_key=api_key,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )

    logger.info("llm_provider_configured", provider=settings.ai_provider.value, model=settings.ai_model)
    return model
