"""Failure taxonomy for the ask pipeline.

Every fatal error carries the stage it came from and, when there is one, the
underlying exception. ``str()`` renders a single line suitable for a terminal.
"""

from __future__ import annotations


class AskError(Exception):
    """Base class for fatal pipeline failures."""

    stage: str = "pipeline"

    def __init__(self, message: str, *, stage: str | None = None, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.stage}: {self.message}: {self.cause}"
        return f"{self.stage}: {self.message}"


class ConfigurationError(AskError):
    stage = "config"


class ProviderError(AskError):
    """The language-model service call itself failed."""

    stage = "llm"


class RetriesExhaustedError(AskError):
    """No generated query passed validation within the retry budget."""

    stage = "sql_generation"

    def __init__(self, attempts: int, last_reason: str | None = None) -> None:
        message = f"could not generate valid query after {attempts} attempts"
        if last_reason:
            message += f" (last error: {last_reason})"
        super().__init__(message)
        self.attempts = attempts
        self.last_reason = last_reason


class StatsError(AskError):
    stage = "snapshot"


class QueryExecutionError(AskError):
    """The store rejected or failed a validated query."""

    stage = "execution"


class QueryTimeoutError(QueryExecutionError):
    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"query exceeded {timeout_seconds:g}s timeout")
        self.timeout_seconds = timeout_seconds
