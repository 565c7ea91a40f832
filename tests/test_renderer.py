from core.errors import QueryRejected
from core.models import HistoryEntry, QueryResult
from core.renderer import (
    build_result_table,
    format_error,
    format_history,
    format_result_as_text,
    row_count_line,
)


def test_row_count_line():
    assert row_count_line(QueryResult([], execution_ms=0)) == "Empty set (0.000 sec)"
    assert row_count_line(QueryResult([{"a": 1}], execution_ms=12)) == "1 row in set (0.012 sec)"
    assert row_count_line(QueryResult([{"a": 1}, {"a": 2}], execution_ms=1500)) == "2 rows in set (1.500 sec)"


def test_text_rendering_shows_nulls():
    text = format_result_as_text(QueryResult([{"id": "1", "email": None}], execution_ms=2))
    lines = text.splitlines()
    assert "| id" in lines[1]
    assert "NULL" in text
    assert lines[-1] == "1 row in set (0.002 sec)"


def test_rich_table_shape():
    table = build_result_table(QueryResult([{"id": 1, "name": "A"}, {"id": 2, "name": None}]))
    assert [c.header for c in table.columns] == ["id", "name"]
    assert table.row_count == 2


def test_format_error():
    assert format_error(QueryRejected("boom")).plain == "ERROR: boom"


def test_format_history():
    assert format_history([]) == "No query history yet."
    entries = [
        HistoryEntry(sql="SELECT 2", timestamp="2024-01-01T10:00:00+00:00"),
        HistoryEntry(sql="SELECT\n  1", timestamp="2024-01-01T09:00:00+00:00"),
    ]
    lines = format_history(entries).splitlines()
    assert lines[0].startswith("  1. [")
    assert lines[0].endswith("SELECT 2")
    assert lines[1].endswith("SELECT 1")
