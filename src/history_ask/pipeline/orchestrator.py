from __future__ import annotations

import uuid

import structlog

from history_ask.config import Settings
from history_ask.db.base import HistoryStore
from history_ask.errors import ConfigurationError, QueryExecutionError, QueryTimeoutError
from history_ask.llm.client import LLMClient
from history_ask.llm.sql_generator import INITIAL_STATE, GenerationState, SQLGenerator
from history_ask.models.domain import ExecutionResult, SQLArtifact, StatsSnapshot
from history_ask.pipeline.executor import QueryExecutor
from history_ask.pipeline.formatter import ResultFormatter
from history_ask.pipeline.snapshot import build_snapshot

logger = structlog.get_logger()

NO_RESULTS_MESSAGE = "Could not find any data for that specific query"


class AskPipeline:
    """Coordinates question -> snapshot -> SQL -> rows -> answer.

    Each ``ask`` call is independent: the snapshot, artifacts and results
    live only for that call and nothing is returned unless every stage
    succeeds.
    """

    def __init__(self, store: HistoryStore, client: LLMClient, settings: Settings) -> None:
        self._store = store
        self._settings = settings
        self._generator = SQLGenerator(client, max_retries=settings.ai_max_sql_retries)
        self._executor = QueryExecutor(store, timeout_seconds=settings.ai_sql_timeout_seconds)
        self._formatter = ResultFormatter(client, max_chunk_tokens=settings.ai_max_chunk_tokens)

    async def ask(self, question: str) -> str:
        if not self._settings.ai_enabled:
            raise ConfigurationError("AI search is disabled in configuration")

        # Every event logged by any stage of this run carries its run_id
        with structlog.contextvars.bound_contextvars(run_id=uuid.uuid4().hex[:8]):
            logger.info("ask_started", question=question)

            snapshot = await build_snapshot(self._store)
            artifact, result = await self._query(snapshot, question)

            if not result.records:
                logger.info("ask_no_results", sql=artifact.sql, total_rows=result.total_rows)
                return NO_RESULTS_MESSAGE

            answer = await self._formatter.format(question, result.records)
            logger.info("ask_completed", attempt=artifact.attempt, records=len(result.records))
            return answer

    async def _query(
        self, snapshot: StatsSnapshot, question: str
    ) -> tuple[SQLArtifact, ExecutionResult]:
        """Generate and execute, feeding store errors back as corrections.

        Execution failures share the generator's retry budget. Timeouts are
        always fatal.
        """
        state: GenerationState = INITIAL_STATE
        while True:
            artifact = await self._generator.generate(snapshot, question, state)
            try:
                return artifact, await self._executor.execute(artifact)
            except QueryTimeoutError:
                raise
            except QueryExecutionError as e:
                if not self._settings.ai_retry_on_execution_error:
                    raise
                error_text = str(e.cause) if e.cause is not None else e.message
                logger.info("execution_error_fed_back", attempt=artifact.attempt, error=error_text)
                state = self._generator.reject(artifact, error_text)
