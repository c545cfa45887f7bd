from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from history_ask.models.domain import HistoryRecord, StatsSnapshot

PROMPT_TOP_N = 5

HISTORY_SCHEMA = """\
Database Schema:
  table: history
  columns:
    - id (INTEGER PRIMARY KEY)
    - timestamp (INTEGER, unix timestamp in seconds)
    - command (TEXT)
    - cwd (TEXT, working directory)
    - exit_code (INTEGER)
    - hostname (TEXT)
    - user (TEXT)
    - shell (TEXT)
    - duration_ms (INTEGER, command duration in milliseconds)
    - git_branch (TEXT)
    - hash (TEXT, content fingerprint)
    - session_id (TEXT)"""

SQL_GENERATION_PROMPT = """\
You are a shell history SQL query assistant.

Current Date/Time: {now}

{schema}

Database Stats:
  Total commands: {total}
  Unique commands: {unique}
  Date range: {first} to {last}
  Average per day: {avg_per_day:.1f}
  Success rate: {success_rate:.1%}
  Top commands:
{top_commands}
  Top directories:
{top_directories}

User Query: "{question}"

Generate a SQLite query to answer this question.
Return ONLY the SQL query, no explanation, no markdown, no code blocks.

Important Notes:
- Always select complete rows with SELECT * FROM history; never return aggregates or a partial column list
- Use strftime() for date math (timestamp is unix epoch in seconds)
- For "last week" use: timestamp > strftime('%s', 'now', '-7 days')
- For "yesterday" use: timestamp > strftime('%s', 'now', '-1 day') AND timestamp < strftime('%s', 'now', 'start of day')
- For "today" use: timestamp > strftime('%s', 'now', 'start of day')
- Results should be ordered by timestamp DESC unless the query asks for something else
- Limit results to reasonable amounts (e.g., LIMIT 100)
- The current date is {today}"""

SQL_RETRY_PROMPT = """\
The SQL query you generated had an error:

SQL: {previous_sql}

Error: {error}

Please fix the query and try again.
Return ONLY the corrected SQL query, no explanation, no markdown, no code blocks."""

FORMAT_PROMPT = """\
You are a shell history assistant. Format these command results for CLI display.

User asked: "{question}"

Results ({count} commands):
{lines}

Instructions:
- Format for plain text CLI output (NO markdown, NO code blocks)
- Group logically if helpful (by time, task, etc.)
- Be concise but informative
- Include timestamps or context when relevant
- If there are many similar commands, summarize them
- Use plain text formatting only (spaces, newlines, dashes)"""

CHUNK_SUMMARY_PROMPT = """\
Summarize these shell commands concisely. Focus on patterns and key activities.

Commands ({count} total):
{lines}

Provide a brief summary (2-3 sentences max) of what these commands represent.
Use plain text only (NO markdown)."""

SYNTHESIS_PROMPT = """\
User asked: "{question}"

I've analyzed their command history in chunks. Here are the summaries:

{summaries}

Based on these summaries, provide a final answer to the user's question.
Format for plain text CLI output (NO markdown).
Be concise and directly address their question."""


def _format_ts(ts: int | None, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    if ts is None:
        return "n/a"
    return datetime.fromtimestamp(ts).strftime(fmt)


def build_sql_prompt(
    snapshot: StatsSnapshot, question: str, now: datetime | None = None
) -> str:
    now = now or datetime.now().astimezone()
    top_commands = [
        f"    - {c.command} ({c.count} times)" for c in snapshot.top_commands[:PROMPT_TOP_N]
    ]
    top_dirs = [
        f"    - {d.directory} ({d.count} commands)"
        for d in snapshot.top_directories[:PROMPT_TOP_N]
    ]
    return SQL_GENERATION_PROMPT.format(
        now=now.strftime("%Y-%m-%d %H:%M:%S %Z").strip(),
        schema=HISTORY_SCHEMA,
        total=snapshot.total_commands,
        unique=snapshot.unique_commands,
        first=_format_ts(snapshot.first_timestamp, "%Y-%m-%d"),
        last=_format_ts(snapshot.last_timestamp, "%Y-%m-%d"),
        avg_per_day=snapshot.avg_per_day,
        success_rate=snapshot.success_rate,
        top_commands="\n".join(top_commands) or "    (none)",
        top_directories="\n".join(top_dirs) or "    (none)",
        question=question,
        today=now.strftime("%Y-%m-%d"),
    )


def build_sql_retry_prompt(previous_sql: str, error: str) -> str:
    return SQL_RETRY_PROMPT.format(previous_sql=previous_sql, error=error)


def build_format_prompt(question: str, records: Sequence[HistoryRecord]) -> str:
    lines = [f"[{_format_ts(r.timestamp)}] {r.cwd} {r.command}" for r in records]
    return FORMAT_PROMPT.format(question=question, count=len(records), lines="\n".join(lines))


def build_chunk_summary_prompt(chunk: Sequence[HistoryRecord]) -> str:
    lines = [f"[{_format_ts(r.timestamp)}] {r.command}" for r in chunk]
    return CHUNK_SUMMARY_PROMPT.format(count=len(chunk), lines="\n".join(lines))


def build_synthesis_prompt(question: str, summaries: Sequence[str]) -> str:
    return SYNTHESIS_PROMPT.format(question=question, summaries="\n\n".join(summaries))
