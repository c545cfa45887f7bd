from __future__ import annotations

import re
from typing import Any, Protocol

from history_ask.models.domain import StatsSnapshot

HISTORY_TABLE = "history"


class HistoryStore(Protocol):
    """Read-only capability over the shell history store."""

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def query(self, sql: str, timeout_seconds: float | None = None) -> list[dict[str, Any]]:
        """Run a read-only SQL query and return rows as dicts.

        When ``timeout_seconds`` is given the store aborts the statement once
        the deadline passes and raises ``TimeoutError``.
        """
        ...

    async def collect_stats(self, top_n: int = 10) -> StatsSnapshot: ...


# Checked in this order; the first match names the rejection.
_FORBIDDEN_KEYWORDS = ("DROP", "DELETE", "INSERT", "UPDATE", "ALTER", "CREATE")

_HISTORY_REF_RE = re.compile(rf"\bFROM\s+{HISTORY_TABLE}\b", re.IGNORECASE)
_CODE_FENCE_RE = re.compile(r"^```(?:sql)?[ \t]*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)


def validate_sql(sql: str) -> str | None:
    """Gate a generated query. Returns the rejection reason, or None if safe.

    The reason is embedded verbatim in the corrective prompt, so it has to
    tell the model exactly what to fix.
    """
    upper = sql.upper()

    if not upper.lstrip().startswith("SELECT"):
        return "query must start with SELECT"

    if not _HISTORY_REF_RE.search(sql):
        return "query must select from history table"

    for keyword in _FORBIDDEN_KEYWORDS:
        if keyword in upper:
            return f"query contains forbidden keyword: {keyword}"

    return None


def clean_llm_sql(response: str) -> str:
    """Remove a markdown code fence and surrounding whitespace."""
    text = response.strip()
    match = _CODE_FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    if text.startswith("```"):
        # Unterminated fence
        return re.sub(r"^```(?:sql)?", "", text, flags=re.IGNORECASE).strip()
    return text
