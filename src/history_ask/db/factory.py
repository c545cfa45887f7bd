from __future__ import annotations

from pathlib import Path

from history_ask.config import Settings
from history_ask.db.base import HistoryStore
from history_ask.db.sqlite import SqliteHistoryStore


def sqlite_url_for(path: str) -> str:
    """Turn a filesystem path (``~`` allowed) into an aiosqlite URL."""
    if path == ":memory:":
        return "sqlite+aiosqlite://"
    return f"sqlite+aiosqlite:///{Path(path).expanduser()}"


async def create_history_store(settings: Settings) -> HistoryStore:
    """Create and connect the history store configured in settings."""
    store = SqliteHistoryStore(url=sqlite_url_for(settings.database_path))
    await store.connect()
    return store
