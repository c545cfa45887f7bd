from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_SECONDS_PER_DAY = 86400


class HistoryRecord(BaseModel):
    """One row of the ``history`` table."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    timestamp: int
    command: str
    cwd: str = ""
    exit_code: int | None = None
    hostname: str = ""
    user: str = ""
    shell: str = ""
    duration_ms: int = 0
    git_branch: str | None = None
    hash: str | None = None
    session_id: str = ""

    @field_validator("cwd", "hostname", "user", "shell", "session_id", mode="before")
    @classmethod
    def null_text_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("duration_ms", mode="before")
    @classmethod
    def null_int_to_zero(cls, v: Any) -> Any:
        return 0 if v is None else v


class CommandCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: str
    count: int


class DirectoryCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    directory: str
    count: int


class StatsSnapshot(BaseModel):
    """Aggregate view of the history store used to ground SQL generation."""

    model_config = ConfigDict(frozen=True)

    total_commands: int = 0
    unique_commands: int = 0
    success_rate: float = 0.0
    first_timestamp: int | None = None
    last_timestamp: int | None = None
    top_commands: list[CommandCount] = Field(default_factory=list)
    top_directories: list[DirectoryCount] = Field(default_factory=list)

    @property
    def avg_per_day(self) -> float:
        if not self.total_commands or self.first_timestamp is None or self.last_timestamp is None:
            return 0.0
        days = (self.last_timestamp - self.first_timestamp) / _SECONDS_PER_DAY
        if days > 0:
            return self.total_commands / days
        return float(self.total_commands)


class SQLArtifact(BaseModel):
    """A candidate query produced by one generation attempt."""

    model_config = ConfigDict(frozen=True)

    sql: str
    attempt: int
    rejection: str | None = None


class ExecutionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    records: list[HistoryRecord] = Field(default_factory=list)
    total_rows: int = 0

    @property
    def skipped_rows(self) -> int:
        return self.total_rows - len(self.records)
