from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

import pytest
from sqlalchemy import text

from history_ask.config import Settings
from history_ask.db.sqlite import SqliteHistoryStore
from history_ask.models.domain import HistoryRecord, StatsSnapshot

HISTORY_DDL = """
CREATE TABLE IF NOT EXISTS history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp INTEGER NOT NULL,
    command TEXT NOT NULL,
    cwd TEXT,
    exit_code INTEGER,
    hostname TEXT,
    user TEXT,
    shell TEXT,
    duration_ms INTEGER,
    git_branch TEXT,
    hash TEXT UNIQUE,
    session_id TEXT,
    created_at INTEGER NOT NULL DEFAULT (strftime('%s', 'now'))
)
"""

INSERT_SQL = """
INSERT INTO history (timestamp, command, cwd, exit_code, hostname, user, shell,
                     duration_ms, git_branch, hash, session_id)
VALUES (:timestamp, :command, :cwd, :exit_code, :hostname, :user, :shell,
        :duration_ms, :git_branch, :hash, :session_id)
"""

VALID_SQL = "SELECT * FROM history ORDER BY timestamp DESC LIMIT 100"


class FakeLLMClient:
    """LLMClient that replays scripted responses and records every prompt.

    A scripted item that is an exception instance is raised instead of
    returned.
    """

    def __init__(self, responses: Iterable[str | BaseException]) -> None:
        self._responses = list(responses)
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self._responses:
            raise AssertionError("FakeLLMClient ran out of scripted responses")
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    @property
    def call_count(self) -> int:
        return len(self.prompts)


class FakeHistoryStore:
    """HistoryStore double returning canned rows and stats."""

    def __init__(
        self,
        rows: list[dict[str, Any]] | None = None,
        stats: StatsSnapshot | None = None,
        *,
        query_error: Exception | list[Exception | None] | None = None,
        stats_error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.rows = rows or []
        self.stats = stats or StatsSnapshot()
        self._query_errors = query_error if isinstance(query_error, list) else [query_error]
        self.stats_error = stats_error
        self.delay = delay
        self.queries: list[str] = []
        self.timeouts: list[float | None] = []

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def query(self, sql: str, timeout_seconds: float | None = None) -> list[dict[str, Any]]:
        self.queries.append(sql)
        self.timeouts.append(timeout_seconds)
        if self.delay:
            await asyncio.sleep(self.delay)
        error = self._query_errors.pop(0) if len(self._query_errors) > 1 else self._query_errors[0]
        if error is not None:
            raise error
        return list(self.rows)

    async def collect_stats(self, top_n: int = 10) -> StatsSnapshot:
        if self.stats_error is not None:
            raise self.stats_error
        return self.stats


def make_row(
    id: int = 1,
    command: str = "git status",
    cwd: str = "/home/user/project",
    timestamp: int = 1_700_000_000,
    **overrides: Any,
) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": id,
        "timestamp": timestamp,
        "command": command,
        "cwd": cwd,
        "exit_code": 0,
        "hostname": "laptop",
        "user": "dev",
        "shell": "zsh",
        "duration_ms": 12,
        "git_branch": "main",
        "hash": None,
        "session_id": "s-1",
    }
    row.update(overrides)
    return row


def make_record(command: str = "git status", cwd: str = "/home", id: int = 1, **overrides: Any) -> HistoryRecord:
    return HistoryRecord.model_validate(make_row(id=id, command=command, cwd=cwd, **overrides))


@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests independent of the developer's environment."""
    monkeypatch.setenv("AI_ENABLED", "true")
    monkeypatch.setenv("OPENAI_API_KEY", "test-key-openai")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    for name in (
        "AI_PROVIDER",
        "AI_MODEL",
        "AI_SQL_TIMEOUT_SECONDS",
        "AI_MAX_SQL_RETRIES",
        "AI_MAX_CHUNK_TOKENS",
        "AI_RETRY_ON_EXECUTION_ERROR",
        "DATABASE_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
async def sqlite_store() -> SqliteHistoryStore:
    store = SqliteHistoryStore("sqlite+aiosqlite://")
    await store.connect()
    async with store._engine.begin() as conn:
        await conn.execute(text(HISTORY_DDL))
    try:
        yield store  # type: ignore[misc]
    finally:
        await store.close()


async def insert_rows(store: SqliteHistoryStore, rows: Iterable[dict[str, Any]]) -> None:
    async with store._engine.begin() as conn:
        for row in rows:
            params = {k: v for k, v in row.items() if k != "id"}
            await conn.execute(text(INSERT_SQL), params)
