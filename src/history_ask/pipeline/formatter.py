"""Turns a result set into the plain-text answer.

Small result sets go to the model in a single prompt. Larger ones are split
into token-bounded chunks, each chunk is summarized on its own, and a final
call synthesizes the summaries into one answer.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from history_ask.llm.client import LLMClient, complete
from history_ask.llm.prompts import (
    build_chunk_summary_prompt,
    build_format_prompt,
    build_synthesis_prompt,
)
from history_ask.llm.tokens import chunk_records, estimate_tokens
from history_ask.models.domain import HistoryRecord

logger = structlog.get_logger()


class ResultFormatter:
    def __init__(self, client: LLMClient, max_chunk_tokens: int) -> None:
        self._client = client
        self._max_chunk_tokens = max_chunk_tokens

    async def format(self, question: str, records: Sequence[HistoryRecord]) -> str:
        estimated = estimate_tokens(records)
        if estimated < self._max_chunk_tokens:
            logger.debug("format_single_pass", records=len(records), estimated_tokens=estimated)
            return await complete(
                self._client, build_format_prompt(question, records), stage="format"
            )

        chunks = chunk_records(records, self._max_chunk_tokens)
        logger.info(
            "chunks_built",
            records=len(records),
            estimated_tokens=estimated,
            chunk_count=len(chunks),
        )
        summaries = await self.summarize_chunks(chunks)
        return await self.synthesize(question, summaries)

    async def summarize_chunks(self, chunks: Sequence[Sequence[HistoryRecord]]) -> list[str]:
        summaries: list[str] = []
        for index, chunk in enumerate(chunks):
            summary = await complete(
                self._client, build_chunk_summary_prompt(chunk), stage="summarize"
            )
            logger.debug("chunk_summarized", chunk_index=index, records=len(chunk))
            summaries.append(summary)
        return summaries

    async def synthesize(self, question: str, summaries: Sequence[str]) -> str:
        return await complete(
            self._client, build_synthesis_prompt(question, summaries), stage="synthesize"
        )
