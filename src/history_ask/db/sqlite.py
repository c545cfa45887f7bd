from __future__ import annotations

import time
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from history_ask.models.domain import CommandCount, DirectoryCount, StatsSnapshot

logger = structlog.get_logger()

# SQLite VM instructions between deadline checks
_PROGRESS_OPCODES = 1000

_TOTALS_SQL = text("""
    SELECT
        COUNT(*) AS total,
        COUNT(DISTINCT command) AS unique_commands,
        SUM(CASE WHEN exit_code = 0 THEN 1 ELSE 0 END) AS succeeded,
        MIN(timestamp) AS first_ts,
        MAX(timestamp) AS last_ts
    FROM history
""")

_TOP_COMMANDS_SQL = text("""
    SELECT command, COUNT(*) AS n
    FROM history
    GROUP BY command
    ORDER BY n DESC, MAX(timestamp) DESC
    LIMIT :limit
""")

_TOP_DIRECTORIES_SQL = text("""
    SELECT cwd, COUNT(*) AS n
    FROM history
    WHERE cwd IS NOT NULL AND cwd != ''
    GROUP BY cwd
    ORDER BY n DESC, MAX(timestamp) DESC
    LIMIT :limit
""")


class SqliteHistoryStore:
    """Shell history store on SQLite, via SQLAlchemy async + aiosqlite."""

    def __init__(self, url: str) -> None:
        self._url = url
        self._engine: AsyncEngine | None = None

    async def connect(self) -> None:
        self._engine = create_async_engine(self._url, echo=False)
        logger.info("sqlite_connected", url=self._url)

    async def close(self) -> None:
        if self._engine:
            await self._engine.dispose()

    async def query(self, sql: str, timeout_seconds: float | None = None) -> list[dict[str, Any]]:
        assert self._engine is not None

        async with self._engine.connect() as conn:
            driver = (await conn.get_raw_connection()).driver_connection
            if timeout_seconds:
                deadline = time.monotonic() + timeout_seconds
                # Runs on the aiosqlite worker thread; a non-zero return makes
                # SQLite abort the statement with "interrupted".
                await driver.set_progress_handler(
                    lambda: int(time.monotonic() > deadline), _PROGRESS_OPCODES
                )
            try:
                # exec_driver_sql skips bind-parameter parsing, so ':' and '%' in
                # LIKE patterns reach SQLite untouched.
                result = await conn.exec_driver_sql(sql)
                rows = [dict(row._mapping) for row in result]
            except OperationalError as e:
                if timeout_seconds and "interrupted" in str(e.orig):
                    logger.warning("sqlite_query_interrupted", timeout_seconds=timeout_seconds)
                    raise TimeoutError(f"query exceeded {timeout_seconds:g}s timeout") from e
                raise
            finally:
                if timeout_seconds:
                    await driver.set_progress_handler(None, 0)

        logger.debug("sqlite_query_executed", row_count=len(rows))
        return rows

    async def collect_stats(self, top_n: int = 10) -> StatsSnapshot:
        assert self._engine is not None

        async with self._engine.connect() as conn:
            totals = (await conn.execute(_TOTALS_SQL)).mappings().one()
            total = totals["total"] or 0
            if not total:
                return StatsSnapshot()

            top_commands = (
                await conn.execute(_TOP_COMMANDS_SQL, {"limit": top_n})
            ).fetchall()
            top_dirs = (
                await conn.execute(_TOP_DIRECTORIES_SQL, {"limit": top_n})
            ).fetchall()

        snapshot = StatsSnapshot(
            total_commands=total,
            unique_commands=totals["unique_commands"],
            success_rate=(totals["succeeded"] or 0) / total,
            first_timestamp=totals["first_ts"],
            last_timestamp=totals["last_ts"],
            top_commands=[CommandCount(command=r[0], count=r[1]) for r in top_commands],
            top_directories=[DirectoryCount(directory=r[0], count=r[1]) for r in top_dirs],
        )
        logger.debug(
            "sqlite_stats_collected",
            total=snapshot.total_commands,
            unique=snapshot.unique_commands,
        )
        return snapshot
