from __future__ import annotations

from datetime import datetime

from history_ask.llm.prompts import (
    build_chunk_summary_prompt,
    build_format_prompt,
    build_sql_prompt,
    build_sql_retry_prompt,
    build_synthesis_prompt,
)
from history_ask.models.domain import CommandCount, DirectoryCount, StatsSnapshot
from tests.conftest import make_record

NOW = datetime(2024, 3, 15, 14, 30, 0)


def _snapshot(**overrides) -> StatsSnapshot:
    data = {
        "total_commands": 1000,
        "unique_commands": 250,
        "success_rate": 0.953,
        "first_timestamp": int(datetime(2024, 1, 1, 12).timestamp()),
        "last_timestamp": int(datetime(2024, 3, 15, 12).timestamp()),
        "top_commands": [
            CommandCount(command=f"cmd{i}", count=100 - i) for i in range(8)
        ],
        "top_directories": [DirectoryCount(directory="/home/user/project", count=400)],
    }
    data.update(overrides)
    return StatsSnapshot(**data)


def test_sql_prompt_contains_context() -> None:
    prompt = build_sql_prompt(_snapshot(), "show me failed commands from last week", NOW)

    assert "Current Date/Time: 2024-03-15 14:30:00" in prompt
    assert "table: history" in prompt
    assert "exit_code (INTEGER)" in prompt
    assert "Total commands: 1000" in prompt
    assert "Unique commands: 250" in prompt
    assert "Date range: 2024-01-01 to 2024-03-15" in prompt
    assert "Average per day: 13.5" in prompt
    assert "Success rate: 95.3%" in prompt
    assert "/home/user/project (400 commands)" in prompt
    assert 'User Query: "show me failed commands from last week"' in prompt
    assert "strftime('%s', 'now', '-7 days')" in prompt
    assert "The current date is 2024-03-15" in prompt


def test_sql_prompt_limits_top_commands_to_five() -> None:
    prompt = build_sql_prompt(_snapshot(), "q", NOW)
    assert "cmd4 (96 times)" in prompt
    assert "cmd5" not in prompt


def test_sql_prompt_empty_store() -> None:
    prompt = build_sql_prompt(StatsSnapshot(), "q", NOW)
    assert "Total commands: 0" in prompt
    assert "Date range: n/a to n/a" in prompt
    assert "Average per day: 0.0" in prompt
    assert "(none)" in prompt


def test_sql_prompt_keeps_braces_in_question() -> None:
    prompt = build_sql_prompt(_snapshot(), "commands with {curly} braces", NOW)
    assert "commands with {curly} braces" in prompt


def test_retry_prompt() -> None:
    prompt = build_sql_retry_prompt("SELECT * FROM users", "query must select from history table")
    assert "SQL: SELECT * FROM users" in prompt
    assert "Error: query must select from history table" in prompt
    assert "Return ONLY the corrected SQL query" in prompt


def test_format_prompt_lists_every_record() -> None:
    ts = int(datetime(2024, 3, 14, 9, 5, 7).timestamp())
    records = [
        make_record(command="git pull", cwd="/repo", id=1, timestamp=ts),
        make_record(command="make", cwd="/repo", id=2, timestamp=ts),
    ]

    prompt = build_format_prompt("what did I do in /repo?", records)

    assert "Results (2 commands):" in prompt
    assert "[2024-03-14 09:05:07] /repo git pull" in prompt
    assert "[2024-03-14 09:05:07] /repo make" in prompt
    assert "NO markdown" in prompt


def test_chunk_summary_prompt_omits_cwd() -> None:
    ts = int(datetime(2024, 3, 14, 9, 5, 7).timestamp())
    prompt = build_chunk_summary_prompt([make_record(command="ls -la", cwd="/secret/dir", timestamp=ts)])
    assert "Commands (1 total):" in prompt
    assert "[2024-03-14 09:05:07] ls -la" in prompt
    assert "/secret/dir" not in prompt
    assert "2-3 sentences" in prompt


def test_synthesis_prompt_orders_summaries() -> None:
    prompt = build_synthesis_prompt("q", ["alpha", "beta", "gamma"])
    assert "alpha\n\nbeta\n\ngamma" in prompt
    assert "NO markdown" in prompt
