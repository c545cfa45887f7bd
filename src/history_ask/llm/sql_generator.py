"""SQL generation as an explicit retry state machine.

    Attempting(n) --valid--> Success
    Attempting(n) --rejected, n < max--> Attempting(n + 1)
    Attempting(n) --rejected, n == max--> Exhausted

The rejected artifact travels with the next ``Attempting`` state; its query
text and rejection reason are what the corrective prompt embeds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog

from history_ask.db.base import clean_llm_sql, validate_sql
from history_ask.errors import RetriesExhaustedError
from history_ask.llm.client import LLMClient, complete
from history_ask.llm.prompts import build_sql_prompt, build_sql_retry_prompt
from history_ask.models.domain import SQLArtifact, StatsSnapshot

logger = structlog.get_logger()


@dataclass(frozen=True)
class Attempting:
    attempt: int
    last_artifact: SQLArtifact | None = None


@dataclass(frozen=True)
class Success:
    artifact: SQLArtifact


@dataclass(frozen=True)
class Exhausted:
    attempts: int
    last_artifact: SQLArtifact | None = None


GenerationState = Attempting | Success | Exhausted

INITIAL_STATE = Attempting(attempt=1)


class SQLGenerator:
    """Generates a validated history query from a natural-language question."""

    def __init__(self, client: LLMClient, max_retries: int = 3) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._client = client
        self._max_retries = max_retries

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def build_prompt(
        self,
        state: Attempting,
        snapshot: StatsSnapshot,
        question: str,
        now: datetime | None = None,
    ) -> str:
        previous = state.last_artifact
        if previous is None:
            return build_sql_prompt(snapshot, question, now)
        return build_sql_retry_prompt(previous.sql, previous.rejection or "")

    def reject(self, artifact: SQLArtifact, reason: str) -> GenerationState:
        """Record a rejection of ``artifact`` and move to the next state."""
        rejected = artifact.model_copy(update={"rejection": reason})
        if artifact.attempt >= self._max_retries:
            return Exhausted(attempts=artifact.attempt, last_artifact=rejected)
        return Attempting(attempt=artifact.attempt + 1, last_artifact=rejected)

    async def step(
        self, state: Attempting, snapshot: StatsSnapshot, question: str
    ) -> GenerationState:
        prompt = self.build_prompt(state, snapshot, question)
        response = await complete(self._client, prompt, stage="sql_generation")
        artifact = SQLArtifact(sql=clean_llm_sql(response), attempt=state.attempt)

        reason = validate_sql(artifact.sql)
        if reason is None:
            logger.info("sql_generated", attempt=artifact.attempt, sql=artifact.sql)
            return Success(artifact=artifact)

        logger.info(
            "sql_rejected",
            attempt=artifact.attempt,
            max_retries=self._max_retries,
            sql=artifact.sql,
            reason=reason,
        )
        return self.reject(artifact, reason)

    async def generate(
        self,
        snapshot: StatsSnapshot,
        question: str,
        state: GenerationState = INITIAL_STATE,
    ) -> SQLArtifact:
        """Drive the state machine to a terminal state.

        Raises:
            RetriesExhaustedError: every attempt was rejected.
            ProviderError: the language model could not be reached.
        """
        while isinstance(state, Attempting):
            state = await self.step(state, snapshot, question)

        if isinstance(state, Exhausted):
            last_reason = state.last_artifact.rejection if state.last_artifact else None
            logger.warning("sql_generation_exhausted", attempts=state.attempts, last_reason=last_reason)
            raise RetriesExhaustedError(state.attempts, last_reason)

        return state.artifact
