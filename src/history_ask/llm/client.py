from __future__ import annotations

from typing import Protocol

import structlog
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage

from history_ask.errors import ProviderError

logger = structlog.get_logger()

_PROMPT_LOG_CHARS = 500


class LLMClient(Protocol):
    """One prompt in, one text completion out."""

    async def complete(self, prompt: str) -> str: ...


class ChatModelClient:
    """LLMClient backed by a LangChain chat model."""

    def __init__(self, chat_model: BaseChatModel) -> None:
        self._model = chat_model

    async def complete(self, prompt: str) -> str:
        response = await self._model.ainvoke([HumanMessage(content=prompt)])
        content = response.content
        if isinstance(content, list):
            # Anthropic-style content blocks
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in content
            )
        if not content:
            raise ValueError("empty response from language model")
        return str(content)


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


async def complete(client: LLMClient, prompt: str, *, stage: str) -> str:
    """Call the service once; any failure becomes a ProviderError for ``stage``."""
    logger.debug(
        "llm_request",
        stage=stage,
        prompt=_truncate(prompt, _PROMPT_LOG_CHARS),
        prompt_chars=len(prompt),
    )
    try:
        response = await client.complete(prompt)
    except ProviderError:
        raise
    except Exception as e:
        logger.warning("llm_request_failed", stage=stage, error=str(e))
        raise ProviderError("language model request failed", stage=stage, cause=e) from e
    logger.debug("llm_response", stage=stage, response=response, response_chars=len(response))
    return response
