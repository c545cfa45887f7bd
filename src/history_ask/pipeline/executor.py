"""Runs a validated history query and decodes its rows."""

from __future__ import annotations

import asyncio

import structlog
from pydantic import ValidationError

from history_ask.db.base import HistoryStore, validate_sql
from history_ask.errors import QueryExecutionError, QueryTimeoutError
from history_ask.models.domain import ExecutionResult, HistoryRecord, SQLArtifact

logger = structlog.get_logger()


class QueryExecutor:
    """Executes one query against the store under a hard deadline."""

    def __init__(self, store: HistoryStore, timeout_seconds: float) -> None:
        self._store = store
        self._timeout = timeout_seconds

    async def execute(self, artifact: SQLArtifact) -> ExecutionResult:
        reason = validate_sql(artifact.sql)
        if reason is not None:
            raise QueryExecutionError(f"refusing unvalidated query: {reason}")

        try:
            # The store aborts the statement at the deadline; wait_for also bounds
            # stores that cannot interrupt their work.
            rows = await asyncio.wait_for(
                self._store.query(artifact.sql, timeout_seconds=self._timeout),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning("query_timeout", sql=artifact.sql, timeout_seconds=self._timeout)
            raise QueryTimeoutError(self._timeout) from e
        except Exception as e:
            logger.warning("query_failed", sql=artifact.sql, error=str(e))
            raise QueryExecutionError("SQL error", cause=e) from e

        records: list[HistoryRecord] = []
        for index, row in enumerate(rows, start=1):
            try:
                records.append(HistoryRecord.model_validate(row))
            except ValidationError as e:
                # Rows that don't match the history shape are dropped, not fatal
                logger.debug("row_skipped", row=index, error_count=e.error_count())

        result = ExecutionResult(records=records, total_rows=len(rows))
        if result.total_rows and not result.records:
            logger.warning(
                "all_rows_skipped",
                total_rows=result.total_rows,
                hint="column mismatch between query and history schema",
            )
        elif result.skipped_rows:
            logger.info("rows_skipped", skipped=result.skipped_rows, total_rows=result.total_rows)

        logger.info(
            "query_executed",
            attempt=artifact.attempt,
            total_rows=result.total_rows,
            decoded=len(result.records),
        )
        return result
