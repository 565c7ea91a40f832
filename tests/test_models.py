import pytest

from core.errors import MalformedResponse
from core.models import AssistantExchange, ColumnInfo, QueryResult

ROWS = [
    {"id": 3, "name": "gamma", "city": None},
    {"id": 1, "name": "Alpha", "city": "Paris"},
    {"id": 2, "name": "beta", "city": "Lyon"},
]


def test_columns_come_from_first_row():
    result = QueryResult(ROWS)
    assert result.columns == ["id", "name", "city"]
    assert result.as_matrix()[0] == [3, "gamma", None]


def test_empty_result_has_no_columns_but_is_truthy():
    result = QueryResult([])
    assert result.columns == []
    assert len(result) == 0
    assert bool(result) is True


def test_strict_mode_rejects_diverging_rows():
    with pytest.raises(MalformedResponse):
        QueryResult([{"a": 1}, {"b": 2}], strict=True)
    # Lenient mode keeps the row and reads missing cells as None
    assert QueryResult([{"a": 1}, {"b": 2}]).as_matrix() == [[1], [None]]


def test_filter_matches_any_cell_case_insensitively():
    result = QueryResult(ROWS)
    assert [r["id"] for r in result.filter("PAR").rows] == [1]
    assert result.filter("") is result

    empty = result.filter("zzz")
    assert len(empty) == 0
    assert empty.columns == ["id", "name", "city"]


def test_sorted_by_puts_nulls_first():
    result = QueryResult(ROWS)
    assert [r["city"] for r in result.sorted_by("city").rows] == [None, "Lyon", "Paris"]
    assert [r["id"] for r in result.sorted_by("id", descending=True).rows] == [3, 2, 1]


def test_paging():
    result = QueryResult([{"n": i} for i in range(25)])
    assert result.page_count(10) == 3
    assert [r["n"] for r in result.page(2, 10).rows] == [20, 21, 22, 23, 24]
    assert QueryResult([]).page_count(10) == 1


def test_column_info_from_show_columns_row():
    column = ColumnInfo.from_row({
        "Field": "rowid", "Type": "int(11)", "Null": "NO", "Key": "PRI", "Default": None, "Extra": "auto_increment",
    })
    assert column.is_primary_key and not column.nullable
    assert column.extra == "auto_increment"
    assert column.describe() == "rowid (int(11)) PRIMARY KEY"


def test_assistant_exchange_has_query():
    assert not AssistantExchange(prompt="p", raw_response="r").has_query()
    assert AssistantExchange(prompt="p", raw_response="r", extracted_query="SELECT 1").has_query()
