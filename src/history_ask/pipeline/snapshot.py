from __future__ import annotations

import structlog

from history_ask.db.base import HistoryStore
from history_ask.errors import StatsError
from history_ask.models.domain import StatsSnapshot

logger = structlog.get_logger()


async def build_snapshot(store: HistoryStore, top_n: int = 10) -> StatsSnapshot:
    """Collect the aggregate stats that ground SQL generation. Not retried."""
    try:
        snapshot = await store.collect_stats(top_n=top_n)
    except Exception as e:
        raise StatsError("failed to collect database stats", cause=e) from e

    logger.debug(
        "snapshot_built",
        total_commands=snapshot.total_commands,
        unique_commands=snapshot.unique_commands,
        avg_per_day=round(snapshot.avg_per_day, 1),
    )
    return snapshot
