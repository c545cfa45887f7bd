from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

from history_ask.models.domain import HistoryRecord

# Heuristic, not a tokenizer: roughly 4 characters per token, plus a fixed
# allowance per record for the timestamp and line formatting.
CHARS_PER_TOKEN = 4
RECORD_OVERHEAD = 30

T = TypeVar("T")


def _record_chars(record: HistoryRecord) -> int:
    return len(record.command) + len(record.cwd) + RECORD_OVERHEAD


def estimate_record_tokens(record: HistoryRecord) -> int:
    return _record_chars(record) // CHARS_PER_TOKEN


def estimate_tokens(records: Sequence[HistoryRecord]) -> int:
    """Estimate the prompt cost of a result set.

    Characters are summed before dividing, so the total can exceed the sum of
    per-record estimates by the accumulated remainders.
    """
    return sum(_record_chars(r) for r in records) // CHARS_PER_TOKEN


def chunk_records(
    records: Sequence[T],
    max_tokens_per_chunk: int,
    estimator: Callable[[T], int] = estimate_record_tokens,  # type: ignore[assignment]
) -> list[list[T]]:
    """Split records into contiguous chunks that fit the token budget.

    Order is preserved and every record lands in exactly one chunk. A record
    that alone exceeds the budget gets a chunk of its own.
    """
    chunks: list[list[T]] = []
    current: list[T] = []
    current_tokens = 0

    for record in records:
        tokens = estimator(record)
        if current_tokens + tokens > max_tokens_per_chunk and current:
            chunks.append(current)
            current = [record]
            current_tokens = tokens
        else:
            current.append(record)
            current_tokens += tokens

    if current:
        chunks.append(current)

    return chunks
